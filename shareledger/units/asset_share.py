"""
asset_share.py - Fractional ownership shares of a real-world asset

A share ledger is an ERC20-style unit with a fixed supply, sold from and
bought back into a treasury (the contract wallet) at an admin-set price, and
paying a block-weighted reward to every holder.

ARCHITECTURE (Pure Function Pattern):
=====================================

1. FROZEN DATACLASSES:
   - AssetShareTerms: fixed at deployment (supply, currency, wallets, metadata)
   - AssetShareState: price, reward_per_block, paused flag, reward accounts,
     share allowances, operation nonce

2. ADAPTER: load_asset_share() reads terms and state from a LedgerView;
   to_state_dict() writes them back.

3. OPERATIONS (compute_*): validate, then build a PendingTransaction whose
   moves list share moves first and currency payouts last.

Settlement currency:
    - Payment token: the buyer pre-approves the contract wallet, purchase
      pulls the currency into the contract wallet, refunds and claims pay
      out of it.
    - Native currency: purchase forwards the payment into this ledger's
      reserve controller entry; refunds and claims pay out of the contract
      wallet and withdraw any shortfall from the entry.

Conversion (see fixed_point.calculate_currency_due):
    due = floor(shares * price * 10**currency_decimals / (10**share_decimals * rate))

Reward (see rewards.py): every holder, the treasury included, is
checkpointed before its balance changes.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from ..core import (
    LedgerView, LogEvent, Move, PendingTransaction, Unit, UnitStateChange,
    TransactionOrigin, OriginType,
    AccountNotFound, InsufficientBalance, InsufficientContractBalance,
    InsufficientReserve, InsufficientSellerBalance, InvalidAmount, LedgerError,
    NotPaused, Paused,
    SYSTEM_WALLET, UNIT_TYPE_ASSET_SHARE, DEFAULT_CURRENCY_DECIMALS, DEFAULT_SHARE_DECIMALS,
    build_transaction, log_event, to_decimal, _freeze_state,
)
from ..fixed_point import ZERO, calculate_currency_due, calculate_shares_for_value
from ..oracle import RateOracle, read_rate
from ..rewards import RewardAccount, checkpoint_accounts, claim, pending_reward
from ..roles import ADMIN, PAUSER, RoleTable, require_role
from .currency import plan_approve, plan_spend_allowance
from .reserve_controller import plan_deposit, plan_withdrawal


# ============================================================================
# FROZEN DATACLASSES
# ============================================================================

@dataclass(frozen=True, slots=True)
class AssetShareTerms:
    """
    Immutable deployment parameters of a share ledger.

    interest_rate and the coordinates describe the underlying asset; they are
    carried for display and never enter a calculation.
    """
    name: str
    total_supply: Decimal          # Share base units, issued once into contract_wallet
    share_decimals: int
    payment_currency: str
    currency_decimals: int
    native: bool                   # True: settle through the reserve controller
    contract_wallet: str           # Treasury of unsold shares and currency holdings
    controller: Optional[str]      # Reserve controller symbol (native only)
    interest_rate: Decimal = ZERO  # WAD-scaled
    latitude: Decimal = ZERO
    longitude: Decimal = ZERO

    def __post_init__(self):
        for name in ('total_supply', 'interest_rate', 'latitude', 'longitude'):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                object.__setattr__(self, name, to_decimal(value))


@dataclass(frozen=True, slots=True)
class AssetShareState:
    price: Decimal                 # WAD-scaled reference units per whole share
    reward_per_block: Decimal      # Currency base units per block, whole supply
    paused: bool
    accounts: Mapping[str, RewardAccount]
    allowances: Mapping[str, Mapping[str, Decimal]]
    supply_issued: bool = False
    nonce: int = 0


def load_asset_share(view: LedgerView, symbol: str) -> Tuple[AssetShareTerms, AssetShareState]:
    """Read a share ledger's terms and state from the ledger."""
    raw = view.get_unit_state(symbol)
    if not raw or 'contract_wallet' not in raw:
        raise LedgerError(f"{symbol} is not an asset share ledger")
    terms = AssetShareTerms(
        name=raw['name'],
        total_supply=raw['total_supply'],
        share_decimals=int(raw['share_decimals']),
        payment_currency=raw['payment_currency'],
        currency_decimals=int(raw['currency_decimals']),
        native=bool(raw['native']),
        contract_wallet=raw['contract_wallet'],
        controller=raw.get('controller'),
        interest_rate=raw.get('interest_rate', ZERO),
        latitude=raw.get('latitude', ZERO),
        longitude=raw.get('longitude', ZERO),
    )
    accounts = {
        wallet: RewardAccount(a['checkpoint_block'], a['accrued_reward'])
        for wallet, a in raw.get('accounts', {}).items()
    }
    state = AssetShareState(
        price=to_decimal(raw['price']),
        reward_per_block=to_decimal(raw['reward_per_block']),
        paused=bool(raw.get('paused', False)),
        accounts=accounts,
        allowances={o: dict(s) for o, s in raw.get('allowances', {}).items()},
        supply_issued=bool(raw.get('supply_issued', False)),
        nonce=int(raw.get('nonce', 0)),
    )
    return terms, state


def to_state_dict(terms: AssetShareTerms, state: AssetShareState) -> Dict[str, Any]:
    return {
        'name': terms.name,
        'total_supply': terms.total_supply,
        'share_decimals': terms.share_decimals,
        'payment_currency': terms.payment_currency,
        'currency_decimals': terms.currency_decimals,
        'native': terms.native,
        'contract_wallet': terms.contract_wallet,
        'controller': terms.controller,
        'interest_rate': terms.interest_rate,
        'latitude': terms.latitude,
        'longitude': terms.longitude,
        'price': state.price,
        'reward_per_block': state.reward_per_block,
        'paused': state.paused,
        'accounts': {
            wallet: {
                'checkpoint_block': a.checkpoint_block,
                'accrued_reward': a.accrued_reward,
            }
            for wallet, a in state.accounts.items()
        },
        'allowances': {o: dict(s) for o, s in state.allowances.items()},
        'supply_issued': state.supply_issued,
        'nonce': state.nonce,
    }


# ============================================================================
# HELPERS
# ============================================================================

def _positive(amount, what: str) -> Decimal:
    amount = to_decimal(amount)
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount(f"{what} must be positive, got {amount}")
    if amount != amount.to_integral_value():
        raise InvalidAmount(f"{what} must be whole base units, got {amount}")
    return amount


def _require_not_paused(state: AssetShareState, symbol: str) -> None:
    if state.paused:
        raise Paused(f"{symbol} is paused")


def _state_change(view: LedgerView, symbol: str, terms: AssetShareTerms, new_state: AssetShareState) -> UnitStateChange:
    return UnitStateChange(
        unit=symbol,
        old_state=view.get_unit_state(symbol),
        new_state=to_state_dict(terms, replace(new_state, nonce=new_state.nonce + 1)),
    )


def _checkpoint(
    view: LedgerView,
    symbol: str,
    terms: AssetShareTerms,
    state: AssetShareState,
    wallets,
) -> Dict[str, RewardAccount]:
    balances = {w: view.get_balance(w, symbol) for w in wallets}
    return checkpoint_accounts(
        state.accounts, balances, wallets,
        view.current_block, state.reward_per_block, terms.total_supply,
    )


def _plan_payout(
    view: LedgerView,
    symbol: str,
    terms: AssetShareTerms,
    recipient: str,
    amount: Decimal,
    shortage: Type[LedgerError],
    contract_id: str,
) -> Tuple[List[Move], List[UnitStateChange], List[LogEvent]]:
    """
    Pay amount of the settlement currency from the contract wallet to recipient.

    A native ledger withdraws whatever the contract wallet lacks from its
    reserve entry; a token ledger has nowhere to draw from and raises
    shortage instead.
    """
    moves: List[Move] = []
    changes: List[UnitStateChange] = []
    events: List[LogEvent] = []
    if amount <= 0:
        return moves, changes, events

    holdings = view.get_balance(terms.contract_wallet, terms.payment_currency)
    shortfall = amount - holdings
    if shortfall > 0:
        if not terms.native:
            raise shortage(
                f"{symbol} holds {holdings} {terms.payment_currency}, needs {amount}"
            )
        try:
            plan = plan_withdrawal(view, terms.controller, symbol, shortfall, terms.contract_wallet)
        except InsufficientReserve as e:
            raise shortage(str(e)) from e
        moves.extend(plan.moves)
        changes.append(plan.state_change)
        events.extend(plan.events)

    moves.append(Move(amount, terms.payment_currency, terms.contract_wallet, recipient, contract_id))
    return moves, changes, events


# ============================================================================
# UNIT FACTORY AND ISSUANCE
# ============================================================================

def create_asset_share_unit(
    symbol: str,
    name: str,
    total_supply: Decimal,
    price: Decimal,
    reward_per_block: Decimal,
    payment_currency: str,
    contract_wallet: str,
    currency_decimals: int = DEFAULT_CURRENCY_DECIMALS,
    share_decimals: int = DEFAULT_SHARE_DECIMALS,
    native: bool = False,
    controller: Optional[str] = None,
    interest_rate: Decimal = ZERO,
    latitude: Decimal = ZERO,
    longitude: Decimal = ZERO,
) -> Unit:
    """
    Create a share ledger unit.

    Args:
        symbol: Share symbol (e.g., "EA")
        name: Asset name
        total_supply: Fixed supply in share base units
        price: WAD-scaled reference units per whole share
        reward_per_block: Currency base units paid per block across the supply
        payment_currency: Settlement currency symbol
        contract_wallet: Wallet holding unsold shares and currency
        currency_decimals: Decimals of the settlement currency
        share_decimals: Decimals of the share
        native: Settle in native currency through a reserve controller
        controller: Reserve controller symbol (required when native)
        interest_rate: WAD-scaled asset interest rate (informational)
        latitude, longitude: Asset location (informational)

    Returns:
        Unit with no supply; execute compute_issue_supply() to issue it.
    """
    total_supply = _positive(total_supply, "total supply")
    price = _positive(price, "price")
    reward_per_block = to_decimal(reward_per_block)
    if reward_per_block < 0:
        raise InvalidAmount(f"reward per block cannot be negative, got {reward_per_block}")
    if native and not controller:
        raise ValueError("a native-currency share ledger needs a reserve controller")

    terms = AssetShareTerms(
        name=name,
        total_supply=total_supply,
        share_decimals=share_decimals,
        payment_currency=payment_currency,
        currency_decimals=currency_decimals,
        native=native,
        contract_wallet=contract_wallet,
        controller=controller if native else None,
        interest_rate=interest_rate,
        latitude=latitude,
        longitude=longitude,
    )
    state = AssetShareState(
        price=price,
        reward_per_block=reward_per_block,
        paused=False,
        accounts={},
        allowances={},
    )
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_ASSET_SHARE,
        min_balance=Decimal("0"),
        decimal_places=0,
        _frozen_state=_freeze_state(to_state_dict(terms, state)),
    )


def compute_issue_supply(view: LedgerView, symbol: str) -> PendingTransaction:
    """
    Issue the whole supply into the contract wallet.

    Raises:
        LedgerError: If the supply was already issued
    """
    terms, state = load_asset_share(view, symbol)
    if state.supply_issued:
        raise LedgerError(f"{symbol} supply already issued")
    accounts = dict(state.accounts)
    accounts[terms.contract_wallet] = RewardAccount(checkpoint_block=view.current_block)
    new_state = replace(state, accounts=accounts, supply_issued=True)

    return build_transaction(
        view,
        [Move(terms.total_supply, symbol, SYSTEM_WALLET, terms.contract_wallet, f"{symbol}_issue")],
        [_state_change(view, symbol, terms, new_state)],
        origin=TransactionOrigin(OriginType.SYSTEM, SYSTEM_WALLET, symbol, "ISSUE"),
        events=[log_event("Transfer", symbol, sender=SYSTEM_WALLET, recipient=terms.contract_wallet,
                          amount=terms.total_supply)],
    )


# ============================================================================
# PURCHASE / REFUND / CLAIM
# ============================================================================

def _build_purchase(
    view: LedgerView,
    symbol: str,
    terms: AssetShareTerms,
    state: AssetShareState,
    buyer: str,
    share_amount: Decimal,
    due: Decimal,
) -> PendingTransaction:
    currency = terms.payment_currency
    if due <= 0:
        raise InvalidAmount(f"{share_amount} {symbol} is worth less than one base unit of {currency}")
    if view.get_balance(buyer, currency) < due:
        raise InsufficientBalance(f"{buyer} cannot pay {due} {currency}")

    changes: List[UnitStateChange] = []
    events: List[LogEvent] = []
    contract_id = f"{symbol}_purchase"
    if terms.native:
        plan = plan_deposit(view, terms.controller, symbol, due, buyer)
        currency_moves = list(plan.moves)
        reserve_change = plan.state_change
        events.extend(plan.events)
    else:
        currency_state = view.get_unit_state(currency)
        spent = plan_spend_allowance(currency_state, buyer, terms.contract_wallet, due)
        spent['nonce'] = int(currency_state.get('nonce', 0)) + 1
        currency_moves = [Move(due, currency, buyer, terms.contract_wallet, contract_id)]
        reserve_change = UnitStateChange(unit=currency, old_state=currency_state, new_state=spent)

    accounts = _checkpoint(view, symbol, terms, state, [terms.contract_wallet, buyer])
    changes.append(_state_change(view, symbol, terms, replace(state, accounts=accounts)))
    changes.append(reserve_change)
    events.append(log_event("Purchase", symbol, buyer=buyer, shares=share_amount, amount=due))

    moves = [Move(share_amount, symbol, terms.contract_wallet, buyer, contract_id)] + currency_moves
    return build_transaction(
        view, moves, changes,
        origin=TransactionOrigin(OriginType.USER_ACTION, buyer, symbol, "PURCHASE"),
        events=events,
    )


def compute_purchase(
    view: LedgerView,
    oracle: RateOracle,
    symbol: str,
    buyer: str,
    share_amount: Decimal,
) -> PendingTransaction:
    """
    Sell share_amount from the treasury to buyer at the current price.

    Raises:
        InvalidAmount: If share_amount is not positive or is worth nothing
        Paused: If the ledger is paused
        InsufficientSellerBalance: If the treasury holds fewer shares
        OracleError: If no usable rate is available
        InsufficientBalance: If buyer cannot pay
        InsufficientAllowance: If buyer has not approved the contract wallet (token only)
    """
    share_amount = _positive(share_amount, "share amount")
    terms, state = load_asset_share(view, symbol)
    _require_not_paused(state, symbol)
    treasury = view.get_balance(terms.contract_wallet, symbol)
    if share_amount > treasury:
        raise InsufficientSellerBalance(f"treasury holds {treasury} {symbol}, requested {share_amount}")
    rate = read_rate(oracle, terms.payment_currency)
    due = calculate_currency_due(share_amount, state.price, rate, terms.share_decimals, terms.currency_decimals)
    return _build_purchase(view, symbol, terms, state, buyer, share_amount, due)


def compute_purchase_with_value(
    view: LedgerView,
    oracle: RateOracle,
    symbol: str,
    buyer: str,
    value: Decimal,
) -> PendingTransaction:
    """
    Buy as many shares as value (native base units) pays for.

    Only the converted amount is charged; the remainder of value stays with
    the buyer.

    Raises:
        InsufficientBalance: If value buys no shares or buyer lacks value
        (plus everything compute_purchase raises)
    """
    value = _positive(value, "value")
    terms, state = load_asset_share(view, symbol)
    if not terms.native:
        raise LedgerError(f"{symbol} settles in a payment token; use compute_purchase")
    _require_not_paused(state, symbol)
    if view.get_balance(buyer, terms.payment_currency) < value:
        raise InsufficientBalance(f"{buyer} cannot attach {value} {terms.payment_currency}")
    rate = read_rate(oracle, terms.payment_currency)
    shares = calculate_shares_for_value(value, state.price, rate, terms.share_decimals, terms.currency_decimals)
    if shares <= 0:
        raise InsufficientBalance(f"not enough value: {value} {terms.payment_currency} buys no {symbol}")
    treasury = view.get_balance(terms.contract_wallet, symbol)
    if shares > treasury:
        raise InsufficientSellerBalance(f"treasury holds {treasury} {symbol}, requested {shares}")
    due = calculate_currency_due(shares, state.price, rate, terms.share_decimals, terms.currency_decimals)
    return _build_purchase(view, symbol, terms, state, buyer, shares, due)


def compute_refund(
    view: LedgerView,
    oracle: RateOracle,
    symbol: str,
    account: str,
    share_amount: Decimal,
) -> PendingTransaction:
    """
    Buy share_amount back from account into the treasury at the current price.

    The payout uses the same truncating conversion as purchase.

    Raises:
        InvalidAmount: If share_amount is not positive
        Paused: If the ledger is paused
        InsufficientSellerBalance: If account holds fewer shares, or the
            contract wallet and reserve entry together cannot fund the payout
        OracleError: If no usable rate is available
    """
    share_amount = _positive(share_amount, "share amount")
    terms, state = load_asset_share(view, symbol)
    _require_not_paused(state, symbol)
    if account == terms.contract_wallet:
        raise InvalidAmount("the treasury cannot refund to itself")
    balance = view.get_balance(account, symbol)
    if share_amount > balance:
        raise InsufficientSellerBalance(f"{account} holds {balance} {symbol}, refunding {share_amount}")
    rate = read_rate(oracle, terms.payment_currency)
    due = calculate_currency_due(share_amount, state.price, rate, terms.share_decimals, terms.currency_decimals)

    contract_id = f"{symbol}_refund"
    payout_moves, payout_changes, events = _plan_payout(
        view, symbol, terms, account, due, InsufficientSellerBalance, contract_id
    )
    accounts = _checkpoint(view, symbol, terms, state, [account, terms.contract_wallet])
    changes = [_state_change(view, symbol, terms, replace(state, accounts=accounts))] + payout_changes
    events.append(log_event("Refund", symbol, account=account, shares=share_amount, amount=due))

    moves = [Move(share_amount, symbol, account, terms.contract_wallet, contract_id)] + payout_moves
    return build_transaction(
        view, moves, changes,
        origin=TransactionOrigin(OriginType.USER_ACTION, account, symbol, "REFUND"),
        events=events,
    )


def compute_claim_reward(view: LedgerView, symbol: str, account: str) -> PendingTransaction:
    """
    Pay account all reward accrued up to the current block.

    Claiming again in the same block pays zero (and still emits RewardClaimed).

    Raises:
        Paused: If the ledger is paused
        AccountNotFound: If account never held shares
        InsufficientContractBalance: If the payout cannot be funded
    """
    terms, state = load_asset_share(view, symbol)
    _require_not_paused(state, symbol)
    if account == terms.contract_wallet or account not in state.accounts:
        raise AccountNotFound(f"{account} has no {symbol} account")

    amount, zeroed = claim(
        state.accounts[account],
        view.current_block,
        state.reward_per_block,
        view.get_balance(account, symbol),
        terms.total_supply,
    )
    moves, payout_changes, events = _plan_payout(
        view, symbol, terms, account, amount, InsufficientContractBalance, f"{symbol}_reward"
    )
    accounts = dict(state.accounts)
    accounts[account] = zeroed
    changes = [_state_change(view, symbol, terms, replace(state, accounts=accounts))] + payout_changes
    events.append(log_event("RewardClaimed", symbol, account=account, amount=amount))

    return build_transaction(
        view, moves, changes,
        origin=TransactionOrigin(OriginType.USER_ACTION, account, symbol, "CLAIM"),
        events=events,
    )


# ============================================================================
# SHARE TRANSFERS
# ============================================================================

def _build_transfer(
    view: LedgerView,
    symbol: str,
    terms: AssetShareTerms,
    state: AssetShareState,
    sender: str,
    recipient: str,
    amount: Decimal,
    initiator: str,
) -> PendingTransaction:
    if sender == recipient:
        raise InvalidAmount("sender and recipient must differ")
    if recipient == SYSTEM_WALLET:
        raise InvalidAmount("shares cannot be sent to the system wallet")
    balance = view.get_balance(sender, symbol)
    if balance < amount:
        raise InsufficientBalance(f"{sender} holds {balance} {symbol}, sending {amount}")
    accounts = _checkpoint(view, symbol, terms, state, [sender, recipient])
    return build_transaction(
        view,
        [Move(amount, symbol, sender, recipient, f"{symbol}_transfer")],
        [_state_change(view, symbol, terms, replace(state, accounts=accounts))],
        origin=TransactionOrigin(OriginType.USER_ACTION, initiator, symbol, "TRANSFER"),
        events=[log_event("Transfer", symbol, sender=sender, recipient=recipient, amount=amount)],
    )


def compute_transfer(
    view: LedgerView,
    symbol: str,
    sender: str,
    recipient: str,
    amount: Decimal,
) -> PendingTransaction:
    """
    Move shares between holders; both are checkpointed first.

    Transfers remain available while the ledger is paused.
    """
    amount = _positive(amount, "transfer amount")
    terms, state = load_asset_share(view, symbol)
    return _build_transfer(view, symbol, terms, state, sender, recipient, amount, sender)


def compute_transfer_from(
    view: LedgerView,
    symbol: str,
    spender: str,
    owner: str,
    recipient: str,
    amount: Decimal,
) -> PendingTransaction:
    """Move owner's shares on owner's behalf, spending spender's allowance."""
    amount = _positive(amount, "transfer amount")
    terms, state = load_asset_share(view, symbol)
    balance = view.get_balance(owner, symbol)
    if balance < amount:
        raise InsufficientBalance(f"{owner} holds {balance} {symbol}, sending {amount}")
    spent = plan_spend_allowance({'allowances': state.allowances}, owner, spender, amount)
    state = replace(state, allowances=spent['allowances'])
    return _build_transfer(view, symbol, terms, state, owner, recipient, amount, spender)


def compute_approve(
    view: LedgerView,
    symbol: str,
    owner: str,
    spender: str,
    amount: Decimal,
) -> PendingTransaction:
    """Let spender move up to amount of owner's shares."""
    amount = to_decimal(amount)
    terms, state = load_asset_share(view, symbol)
    approved = plan_approve({'allowances': state.allowances}, owner, spender, amount)
    return build_transaction(
        view,
        [],
        [_state_change(view, symbol, terms, replace(state, allowances=approved['allowances']))],
        origin=TransactionOrigin(OriginType.USER_ACTION, owner, symbol, "APPROVE"),
        events=[log_event("Approval", symbol, owner=owner, spender=spender, amount=amount)],
    )


# ============================================================================
# ADMINISTRATION
# ============================================================================

def _admin_transaction(
    view: LedgerView,
    symbol: str,
    terms: AssetShareTerms,
    new_state: AssetShareState,
    caller: str,
    event_type: str,
    event: LogEvent,
    moves: Optional[List[Move]] = None,
) -> PendingTransaction:
    return build_transaction(
        view,
        moves or [],
        [_state_change(view, symbol, terms, new_state)],
        origin=TransactionOrigin(OriginType.ADMIN, caller, symbol, event_type),
        events=[event],
    )


def compute_pause(view: LedgerView, symbol: str, caller: str, roles: RoleTable) -> PendingTransaction:
    """Stop purchase, refund and claim. Requires PAUSER (or ADMIN)."""
    require_role(roles, PAUSER, caller)
    terms, state = load_asset_share(view, symbol)
    _require_not_paused(state, symbol)
    return _admin_transaction(
        view, symbol, terms, replace(state, paused=True), caller, "PAUSE",
        log_event("Paused", symbol, account=caller),
    )


def compute_unpause(view: LedgerView, symbol: str, caller: str, roles: RoleTable) -> PendingTransaction:
    require_role(roles, PAUSER, caller)
    terms, state = load_asset_share(view, symbol)
    if not state.paused:
        raise NotPaused(f"{symbol} is not paused")
    return _admin_transaction(
        view, symbol, terms, replace(state, paused=False), caller, "UNPAUSE",
        log_event("Unpaused", symbol, account=caller),
    )


def compute_set_price(
    view: LedgerView,
    symbol: str,
    price: Decimal,
    caller: str,
    roles: RoleTable,
) -> PendingTransaction:
    require_role(roles, ADMIN, caller)
    price = _positive(price, "price")
    terms, state = load_asset_share(view, symbol)
    return _admin_transaction(
        view, symbol, terms, replace(state, price=price), caller, "SET_PRICE",
        log_event("PriceChanged", symbol, old=state.price, new=price),
    )


def compute_set_reward_per_block(
    view: LedgerView,
    symbol: str,
    reward_per_block: Decimal,
    caller: str,
    roles: RoleTable,
) -> PendingTransaction:
    """
    Change the reward rate.

    Every account is checkpointed at the old rate first, so blocks already
    elapsed keep the rate they accrued under.
    """
    require_role(roles, ADMIN, caller)
    reward_per_block = to_decimal(reward_per_block)
    if reward_per_block < 0:
        raise InvalidAmount(f"reward per block cannot be negative, got {reward_per_block}")
    terms, state = load_asset_share(view, symbol)
    holders = set(state.accounts) | (set(view.get_positions(symbol)) - {SYSTEM_WALLET})
    accounts = _checkpoint(view, symbol, terms, state, sorted(holders))
    return _admin_transaction(
        view, symbol, terms, replace(state, accounts=accounts, reward_per_block=reward_per_block),
        caller, "SET_REWARD_PER_BLOCK",
        log_event("RewardPerBlockChanged", symbol, old=state.reward_per_block, new=reward_per_block),
    )


def compute_withdraw_to_admin(
    view: LedgerView,
    symbol: str,
    caller: str,
    roles: RoleTable,
) -> PendingTransaction:
    """
    Send the contract wallet's entire currency holdings to caller.

    Raises:
        Unauthorized: If caller is not ADMIN
        InsufficientContractBalance: If the contract wallet holds nothing
    """
    require_role(roles, ADMIN, caller, fallback=None)
    terms, state = load_asset_share(view, symbol)
    holdings = view.get_balance(terms.contract_wallet, terms.payment_currency)
    if holdings <= 0:
        raise InsufficientContractBalance(f"{symbol} holds no {terms.payment_currency}")
    return _admin_transaction(
        view, symbol, terms, state, caller, "WITHDRAW_TO_ADMIN",
        log_event("AdminWithdrawal", symbol, to=caller, amount=holdings),
        moves=[Move(holdings, terms.payment_currency, terms.contract_wallet, caller, f"{symbol}_admin_withdrawal")],
    )


# ============================================================================
# VIEWS
# ============================================================================

def get_price(view: LedgerView, symbol: str) -> Decimal:
    return load_asset_share(view, symbol)[1].price


def get_reward_per_block(view: LedgerView, symbol: str) -> Decimal:
    return load_asset_share(view, symbol)[1].reward_per_block


def is_paused(view: LedgerView, symbol: str) -> bool:
    return load_asset_share(view, symbol)[1].paused


def get_treasury_balance(view: LedgerView, symbol: str) -> Decimal:
    """Unsold shares held by the contract wallet."""
    terms, _ = load_asset_share(view, symbol)
    return view.get_balance(terms.contract_wallet, symbol)


def get_reward(view: LedgerView, symbol: str, account: str) -> Decimal:
    """Reward account could claim now (zero if it never held shares)."""
    terms, state = load_asset_share(view, symbol)
    reward_account = state.accounts.get(account)
    if reward_account is None:
        return ZERO
    return pending_reward(
        reward_account,
        view.current_block,
        state.reward_per_block,
        view.get_balance(account, symbol),
        terms.total_supply,
    )


def to_currency_amount(view: LedgerView, oracle: RateOracle, symbol: str, share_amount: Decimal) -> Decimal:
    """Currency base units share_amount converts to at the current price and rate."""
    terms, state = load_asset_share(view, symbol)
    rate = read_rate(oracle, terms.payment_currency)
    return calculate_currency_due(
        to_decimal(share_amount), state.price, rate, terms.share_decimals, terms.currency_decimals
    )


def verify_share_supply(view: LedgerView, symbol: str) -> bool:
    """True if treasury plus all holder balances equals the fixed supply."""
    terms, state = load_asset_share(view, symbol)
    if not state.supply_issued:
        return False
    held = sum(
        (qty for wallet, qty in view.get_positions(symbol).items() if wallet != SYSTEM_WALLET),
        ZERO,
    )
    return held == terms.total_supply
