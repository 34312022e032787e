"""
reserve_controller.py - Partitioned native-currency reserve for share ledgers

The controller holds native currency on behalf of many share ledgers. Each
registered ledger owns one entry:

    wallet        - the ledger's contract wallet (the only wallet that may
                    withdraw from the entry)
    currency_held - currency credited to the entry and still in the
                    controller wallet
    outstanding   - currency deposited through purchases and not yet
                    paid back out; the base for the reserve requirement

The underlying currency pool is one wallet, but entries are logically
partitioned: every path that moves currency in or out of the controller
wallet names exactly one entry, so

    sum(entry.currency_held) == balance(controller_wallet)

holds for every reachable state. The controller never moves currency from one
entry to another.

ARCHITECTURE:
    ControllerTerms / ControllerState / ReserveEntry - frozen inputs
    load_controller / to_state_dict                  - LedgerView adapter
    plan_*                                           - composable fragments
    compute_*                                        - PendingTransactions
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from ..core import (
    LedgerView, LogEvent, Move, PendingTransaction, Unit, UnitStateChange,
    TransactionOrigin, OriginType,
    InsufficientBalance, InsufficientReserve, InvalidAmount, LedgerError,
    LedgerNotRegistered, Unauthorized,
    UNIT_TYPE_RESERVE_CONTROLLER, WAD,
    build_transaction, log_event, to_decimal, _freeze_state,
)
from ..fixed_point import ZERO, calculate_required_reserve, calculate_reserve_value
from ..oracle import RateOracle, read_rate
from ..roles import ADMIN, RoleTable, require_role
from .currency import currency_decimals


@dataclass(frozen=True, slots=True)
class ControllerTerms:
    """Fixed at deployment."""
    controller_wallet: str   # Physically holds all reserve currency
    treasury_wallet: str     # Receives swept excess
    currency: str            # Native currency symbol


@dataclass(frozen=True, slots=True)
class ReserveEntry:
    """One ledger's partition of the reserve."""
    wallet: str
    currency_held: Decimal = ZERO
    outstanding: Decimal = ZERO

    def __post_init__(self):
        if not isinstance(self.currency_held, Decimal):
            object.__setattr__(self, 'currency_held', to_decimal(self.currency_held))
        if not isinstance(self.outstanding, Decimal):
            object.__setattr__(self, 'outstanding', to_decimal(self.outstanding))


@dataclass(frozen=True, slots=True)
class ControllerState:
    reserve_ratio: Decimal            # WAD-scaled, in (0, WAD]
    entries: Mapping[str, ReserveEntry]
    nonce: int = 0


@dataclass(frozen=True, slots=True)
class ReservePlan:
    """
    Moves, state change and events for one controller operation.

    Share ledger operations splice a plan into their own transaction so the
    controller update commits atomically with the purchase, refund or claim.
    """
    moves: Tuple[Move, ...]
    state_change: UnitStateChange
    events: Tuple[LogEvent, ...]


def _validate_ratio(reserve_ratio) -> Decimal:
    reserve_ratio = to_decimal(reserve_ratio)
    if reserve_ratio <= 0 or reserve_ratio > WAD:
        raise InvalidAmount(f"reserve ratio must lie in (0, {WAD}], got {reserve_ratio}")
    return reserve_ratio


def create_reserve_controller_unit(
    symbol: str,
    controller_wallet: str,
    treasury_wallet: str,
    currency: str,
    reserve_ratio: Decimal,
    name: Optional[str] = None,
) -> Unit:
    """
    Create a reserve controller.

    The controller is a unit with no balances of its own; it exists for its
    state. reserve_ratio is WAD-scaled (5 * 10**17 keeps half of every
    outstanding deposit liquid).
    """
    if controller_wallet == treasury_wallet:
        raise ValueError("controller and treasury wallets must differ")
    terms = ControllerTerms(controller_wallet, treasury_wallet, currency)
    state = ControllerState(reserve_ratio=_validate_ratio(reserve_ratio), entries={})
    return Unit(
        symbol=symbol,
        name=name or f"{symbol} reserve controller",
        unit_type=UNIT_TYPE_RESERVE_CONTROLLER,
        _frozen_state=_freeze_state(to_state_dict(terms, state)),
    )


def load_controller(view: LedgerView, symbol: str) -> Tuple[ControllerTerms, ControllerState]:
    """Read a controller's terms and state from the ledger."""
    raw = view.get_unit_state(symbol)
    if not raw or 'controller_wallet' not in raw:
        raise LedgerError(f"{symbol} is not a reserve controller")
    terms = ControllerTerms(
        controller_wallet=raw['controller_wallet'],
        treasury_wallet=raw['treasury_wallet'],
        currency=raw['currency'],
    )
    entries = {
        ledger_id: ReserveEntry(e['wallet'], e['currency_held'], e['outstanding'])
        for ledger_id, e in raw.get('entries', {}).items()
    }
    state = ControllerState(
        reserve_ratio=to_decimal(raw['reserve_ratio']),
        entries=entries,
        nonce=int(raw.get('nonce', 0)),
    )
    return terms, state


def to_state_dict(terms: ControllerTerms, state: ControllerState) -> Dict[str, Any]:
    return {
        'controller_wallet': terms.controller_wallet,
        'treasury_wallet': terms.treasury_wallet,
        'currency': terms.currency,
        'reserve_ratio': state.reserve_ratio,
        'entries': {
            ledger_id: {
                'wallet': e.wallet,
                'currency_held': e.currency_held,
                'outstanding': e.outstanding,
            }
            for ledger_id, e in state.entries.items()
        },
        'nonce': state.nonce,
    }


def _entry(state: ControllerState, controller: str, ledger_id: str) -> ReserveEntry:
    entry = state.entries.get(ledger_id)
    if entry is None:
        raise LedgerNotRegistered(f"{ledger_id} is not registered with {controller}")
    return entry


def _with_entry(state: ControllerState, ledger_id: str, entry: ReserveEntry) -> ControllerState:
    entries = dict(state.entries)
    entries[ledger_id] = entry
    return replace(state, entries=entries, nonce=state.nonce + 1)


def _positive(amount, what: str) -> Decimal:
    amount = to_decimal(amount)
    if amount <= 0:
        raise InvalidAmount(f"{what} must be positive, got {amount}")
    return amount


def _plan(
    view: LedgerView,
    controller: str,
    terms: ControllerTerms,
    new_state: ControllerState,
    moves,
    events,
) -> ReservePlan:
    return ReservePlan(
        moves=tuple(moves),
        state_change=UnitStateChange(
            unit=controller,
            old_state=view.get_unit_state(controller),
            new_state=to_state_dict(terms, new_state),
        ),
        events=tuple(events),
    )


def _build(view: LedgerView, plan: ReservePlan, caller: str, controller: str, event_type: str,
           origin_type: OriginType = OriginType.USER_ACTION) -> PendingTransaction:
    return build_transaction(
        view,
        list(plan.moves),
        [plan.state_change],
        origin=TransactionOrigin(origin_type, caller, controller, event_type),
        events=list(plan.events),
    )


# ============================================================================
# REGISTRATION
# ============================================================================

def compute_register_ledger(
    view: LedgerView,
    controller: str,
    ledger_id: str,
    ledger_wallet: str,
    caller: str,
    roles: RoleTable,
) -> PendingTransaction:
    """
    Open an empty entry for ledger_id, owned by ledger_wallet.

    Raises:
        Unauthorized: If caller is not ADMIN
        LedgerError: If ledger_id is already registered
    """
    require_role(roles, ADMIN, caller)
    terms, state = load_controller(view, controller)
    if ledger_id in state.entries:
        raise LedgerError(f"{ledger_id} is already registered with {controller}")
    if ledger_wallet == terms.controller_wallet:
        raise ValueError("ledger wallet cannot be the controller wallet")
    new_state = _with_entry(state, ledger_id, ReserveEntry(wallet=ledger_wallet))
    plan = _plan(view, controller, terms, new_state, [], [
        log_event("LedgerRegistered", controller, ledger=ledger_id, wallet=ledger_wallet),
    ])
    return _build(view, plan, caller, controller, "REGISTER_LEDGER", OriginType.ADMIN)


# ============================================================================
# DEPOSIT / WITHDRAWAL
# ============================================================================

def plan_deposit(
    view: LedgerView,
    controller: str,
    ledger_id: str,
    amount: Decimal,
    source: str,
) -> ReservePlan:
    """
    Credit amount from source to ledger_id's entry.

    Deposits are accepted unconditionally for a registered ledger and raise
    both currency_held and outstanding.

    Raises:
        LedgerNotRegistered: If ledger_id has no entry
        InsufficientBalance: If source cannot cover amount
    """
    amount = _positive(amount, "deposit")
    terms, state = load_controller(view, controller)
    entry = _entry(state, controller, ledger_id)
    if view.get_balance(source, terms.currency) < amount:
        raise InsufficientBalance(f"{source} cannot deposit {amount} {terms.currency}")
    new_state = _with_entry(state, ledger_id, replace(
        entry,
        currency_held=entry.currency_held + amount,
        outstanding=entry.outstanding + amount,
    ))
    return _plan(
        view, controller, terms, new_state,
        [Move(amount, terms.currency, source, terms.controller_wallet, f"{controller}_deposit_{ledger_id}")],
        [log_event("ReserveDeposited", controller, ledger=ledger_id, amount=amount)],
    )


def compute_deposit(
    view: LedgerView,
    controller: str,
    ledger_id: str,
    amount: Decimal,
    source: str,
) -> PendingTransaction:
    plan = plan_deposit(view, controller, ledger_id, amount, source)
    return _build(view, plan, source, controller, "DEPOSIT")


def plan_withdrawal(
    view: LedgerView,
    controller: str,
    ledger_id: str,
    amount: Decimal,
    caller: str,
) -> ReservePlan:
    """
    Pay amount from ledger_id's entry to the entry's wallet.

    Lowers currency_held and outstanding (outstanding never below zero).

    Raises:
        LedgerNotRegistered: If ledger_id has no entry
        Unauthorized: If caller is not the entry's wallet
        InsufficientReserve: If amount exceeds the entry's currency_held
    """
    amount = _positive(amount, "withdrawal")
    terms, state = load_controller(view, controller)
    entry = _entry(state, controller, ledger_id)
    if caller != entry.wallet:
        raise Unauthorized(f"{caller} cannot withdraw from {ledger_id}'s reserve")
    if amount > entry.currency_held:
        raise InsufficientReserve(
            f"{ledger_id} holds {entry.currency_held} {terms.currency}, requested {amount}"
        )
    new_state = _with_entry(state, ledger_id, replace(
        entry,
        currency_held=entry.currency_held - amount,
        outstanding=max(ZERO, entry.outstanding - amount),
    ))
    return _plan(
        view, controller, terms, new_state,
        [Move(amount, terms.currency, terms.controller_wallet, entry.wallet, f"{controller}_withdraw_{ledger_id}")],
        [log_event("ReserveWithdrawn", controller, ledger=ledger_id, amount=amount)],
    )


def compute_withdrawal(
    view: LedgerView,
    controller: str,
    ledger_id: str,
    amount: Decimal,
    caller: str,
) -> PendingTransaction:
    plan = plan_withdrawal(view, controller, ledger_id, amount, caller)
    return _build(view, plan, caller, controller, "WITHDRAW")


# ============================================================================
# ADMINISTRATION
# ============================================================================

def compute_sweep_excess(
    view: LedgerView,
    controller: str,
    ledger_id: str,
    caller: str,
    roles: RoleTable,
) -> PendingTransaction:
    """
    Move ledger_id's reserve above the required ratio to the treasury wallet.

    excess = currency_held - ceil(outstanding * reserve_ratio / WAD)

    Outstanding is unchanged: the swept currency is still owed to holders,
    it is just no longer kept liquid.

    Raises:
        Unauthorized: If caller is not ADMIN
        InsufficientReserve: If there is no excess
    """
    require_role(roles, ADMIN, caller)
    terms, state = load_controller(view, controller)
    entry = _entry(state, controller, ledger_id)
    excess = _excess(entry, state.reserve_ratio)
    if excess <= 0:
        raise InsufficientReserve(f"{ledger_id} has no reserve above the required ratio")
    new_state = _with_entry(state, ledger_id, replace(entry, currency_held=entry.currency_held - excess))
    plan = _plan(
        view, controller, terms, new_state,
        [Move(excess, terms.currency, terms.controller_wallet, terms.treasury_wallet, f"{controller}_sweep_{ledger_id}")],
        [log_event("ExcessReserveSwept", controller, ledger=ledger_id, amount=excess, to=terms.treasury_wallet)],
    )
    return _build(view, plan, caller, controller, "SWEEP_EXCESS", OriginType.ADMIN)


def compute_top_up(
    view: LedgerView,
    controller: str,
    ledger_id: str,
    amount: Decimal,
    source: str,
    caller: str,
    roles: RoleTable,
) -> PendingTransaction:
    """
    Return currency from source into ledger_id's entry.

    Raises currency_held only; used to refill an entry after a sweep.
    """
    require_role(roles, ADMIN, caller)
    amount = _positive(amount, "top-up")
    terms, state = load_controller(view, controller)
    entry = _entry(state, controller, ledger_id)
    if view.get_balance(source, terms.currency) < amount:
        raise InsufficientBalance(f"{source} cannot top up {amount} {terms.currency}")
    new_state = _with_entry(state, ledger_id, replace(entry, currency_held=entry.currency_held + amount))
    plan = _plan(
        view, controller, terms, new_state,
        [Move(amount, terms.currency, source, terms.controller_wallet, f"{controller}_topup_{ledger_id}")],
        [log_event("ReserveToppedUp", controller, ledger=ledger_id, amount=amount)],
    )
    return _build(view, plan, caller, controller, "TOP_UP", OriginType.ADMIN)


def compute_set_reserve_ratio(
    view: LedgerView,
    controller: str,
    reserve_ratio: Decimal,
    caller: str,
    roles: RoleTable,
) -> PendingTransaction:
    require_role(roles, ADMIN, caller)
    reserve_ratio = _validate_ratio(reserve_ratio)
    terms, state = load_controller(view, controller)
    new_state = replace(state, reserve_ratio=reserve_ratio, nonce=state.nonce + 1)
    plan = _plan(view, controller, terms, new_state, [], [
        log_event("ReserveRatioChanged", controller, old=state.reserve_ratio, new=reserve_ratio),
    ])
    return _build(view, plan, caller, controller, "SET_RESERVE_RATIO", OriginType.ADMIN)


# ============================================================================
# VIEWS
# ============================================================================

def _excess(entry: ReserveEntry, reserve_ratio: Decimal) -> Decimal:
    return entry.currency_held - calculate_required_reserve(entry.outstanding, reserve_ratio)


def get_reserve(view: LedgerView, controller: str, ledger_id: str) -> Decimal:
    """currency_held for ledger_id."""
    _, state = load_controller(view, controller)
    return _entry(state, controller, ledger_id).currency_held


def get_excess_reserve(view: LedgerView, controller: str, ledger_id: str) -> Decimal:
    """Reserve above the required ratio (zero if at or below it)."""
    _, state = load_controller(view, controller)
    return max(ZERO, _excess(_entry(state, controller, ledger_id), state.reserve_ratio))


def get_reserve_value(view: LedgerView, oracle: RateOracle, controller: str, ledger_id: str) -> Decimal:
    """ledger_id's currency_held in WAD-scaled reference units at the oracle rate."""
    terms, state = load_controller(view, controller)
    entry = _entry(state, controller, ledger_id)
    rate = read_rate(oracle, terms.currency)
    return calculate_reserve_value(entry.currency_held, rate, currency_decimals(view, terms.currency))


def verify_reserve_partition(view: LedgerView, controller: str) -> bool:
    """True if the entries sum exactly to the controller wallet's balance."""
    terms, state = load_controller(view, controller)
    total_held = sum((e.currency_held for e in state.entries.values()), ZERO)
    return total_held == view.get_balance(terms.controller_wallet, terms.currency)
