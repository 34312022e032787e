"""
currency.py - Payment currency units

Two kinds of payment currency:
    - Payment tokens (ERC20-style): balances plus an allowance table kept in
      unit state. Contracts may only pull a token from a holder up to the
      allowance the holder granted them.
    - Native currency: balances only. Payment is attached to the call, so
      there are no allowances.

Currency state:
    decimals    - decimals of the currency's base unit (18 for wei-style)
    allowances  - {owner: {spender: amount}} (payment tokens only)
    nonce       - bumped by every state-changing operation
"""

from __future__ import annotations
from decimal import Decimal
from typing import Any, Dict

from ..core import (
    LedgerView, Move, PendingTransaction, Unit, UnitStateChange,
    TransactionOrigin, OriginType,
    InsufficientAllowance, InvalidAmount, LedgerError,
    SYSTEM_WALLET, UNIT_TYPE_PAYMENT_TOKEN, UNIT_TYPE_NATIVE,
    DEFAULT_CURRENCY_DECIMALS,
    build_transaction, log_event, to_decimal, _freeze_state,
)


def create_payment_token_unit(symbol: str, name: str, decimals: int = DEFAULT_CURRENCY_DECIMALS) -> Unit:
    """
    Create an ERC20-style payment token.

    Balances are whole base units and never go negative.
    """
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_PAYMENT_TOKEN,
        min_balance=Decimal("0"),
        decimal_places=0,
        _frozen_state=_freeze_state({
            'decimals': decimals,
            'allowances': {},
            'nonce': 0,
        })
    )


def create_native_currency_unit(symbol: str, name: str, decimals: int = DEFAULT_CURRENCY_DECIMALS) -> Unit:
    """Create the chain's native currency (no allowances)."""
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_NATIVE,
        min_balance=Decimal("0"),
        decimal_places=0,
        _frozen_state=_freeze_state({
            'decimals': decimals,
            'nonce': 0,
        })
    )


def is_native(view: LedgerView, symbol: str) -> bool:
    return view.get_unit(symbol).unit_type == UNIT_TYPE_NATIVE


def currency_decimals(view: LedgerView, symbol: str) -> int:
    return int(view.get_unit_state(symbol).get('decimals', DEFAULT_CURRENCY_DECIMALS))


def get_allowance(view: LedgerView, symbol: str, owner: str, spender: str) -> Decimal:
    """Amount spender may still pull from owner."""
    allowances = view.get_unit_state(symbol).get('allowances', {})
    return to_decimal(allowances.get(owner, {}).get(spender, Decimal("0")))


def plan_approve(state: Dict[str, Any], owner: str, spender: str, amount: Decimal) -> Dict[str, Any]:
    """Return a copy of state with owner's allowance for spender set to amount."""
    amount = to_decimal(amount)
    if amount < 0:
        raise InvalidAmount(f"allowance cannot be negative, got {amount}")
    if owner == spender:
        raise InvalidAmount("owner cannot approve itself")
    allowances = {o: dict(s) for o, s in state.get('allowances', {}).items()}
    allowances.setdefault(owner, {})[spender] = amount
    new_state = dict(state)
    new_state['allowances'] = allowances
    return new_state


def plan_spend_allowance(state: Dict[str, Any], owner: str, spender: str, amount: Decimal) -> Dict[str, Any]:
    """
    Return a copy of state with amount deducted from owner's allowance for spender.

    Raises:
        InsufficientAllowance: If the remaining allowance is below amount
    """
    amount = to_decimal(amount)
    allowances = state.get('allowances', {})
    remaining = to_decimal(allowances.get(owner, {}).get(spender, Decimal("0")))
    if remaining < amount:
        raise InsufficientAllowance(
            f"{spender} may spend {remaining} of {owner}'s funds, needs {amount}"
        )
    return plan_approve(state, owner, spender, remaining - amount)


def _bump_nonce(state: Dict[str, Any]) -> Dict[str, Any]:
    new_state = dict(state)
    new_state['nonce'] = int(state.get('nonce', 0)) + 1
    return new_state


def compute_approve(
    view: LedgerView,
    symbol: str,
    owner: str,
    spender: str,
    amount: Decimal,
) -> PendingTransaction:
    """
    Let spender pull up to amount of owner's payment tokens.

    Replaces any previous allowance. Emits Approval(owner, spender, amount).

    Raises:
        LedgerError: If symbol is a native currency
        InvalidAmount: If amount is negative
    """
    if view.get_unit(symbol).unit_type != UNIT_TYPE_PAYMENT_TOKEN:
        raise LedgerError(f"{symbol} does not support allowances")
    amount = to_decimal(amount)
    state = view.get_unit_state(symbol)
    new_state = _bump_nonce(plan_approve(state, owner, spender, amount))

    return build_transaction(
        view,
        [],
        [UnitStateChange(unit=symbol, old_state=state, new_state=new_state)],
        origin=TransactionOrigin(OriginType.USER_ACTION, owner, symbol, "APPROVE"),
        events=[log_event("Approval", symbol, owner=owner, spender=spender, amount=amount)],
    )


def compute_mint(view: LedgerView, symbol: str, to: str, amount: Decimal) -> PendingTransaction:
    """
    Issue amount base units of a currency to a wallet.

    Issuance is a move out of SYSTEM_WALLET, so the unit's total across all
    wallets stays zero.
    """
    amount = to_decimal(amount)
    if amount <= 0:
        raise InvalidAmount(f"mint amount must be positive, got {amount}")
    state = view.get_unit_state(symbol)

    return build_transaction(
        view,
        [Move(amount, symbol, SYSTEM_WALLET, to, f"mint_{symbol}")],
        [UnitStateChange(unit=symbol, old_state=state, new_state=_bump_nonce(state))],
        origin=TransactionOrigin(OriginType.SYSTEM, SYSTEM_WALLET, symbol, "MINT"),
    )
