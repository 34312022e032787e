"""
fake_view.py - Test Helper for LedgerView

Provides a minimal LedgerView implementation for testing contract functions
without requiring a full Ledger instance.
"""

from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Dict, Set, Optional, Any

from shareledger.core import Unit


# Type aliases (matching core.py)
Positions = Dict[str, Decimal]
UnitState = Dict[str, Any]


class FakeView:
    """
    Minimal LedgerView implementation for testing contract functions.

    Unit state is taken from the Unit objects passed in, so a FakeView built
    from freshly created units sees exactly their initial state.

    Example:
        view = FakeView(
            balances={'alice': {'EL': Decimal(1000)}},
            units={'EL': create_payment_token_unit('EL', 'Elysia')},
            block=10,
        )
        view.get_balance('alice', 'EL')
        # Returns: Decimal('1000')
    """

    def __init__(
        self,
        balances: Dict[str, Dict[str, Decimal]],
        units: Optional[Dict[str, Unit]] = None,
        states: Optional[Dict[str, UnitState]] = None,
        block: int = 0,
        time: Optional[datetime] = None,
    ):
        self._balances = balances
        self._units = units or {}
        self._states = {symbol: unit.state for symbol, unit in self._units.items()}
        self._states.update(states or {})
        self._block = block
        self._time = time or datetime(2025, 1, 1)

    @property
    def current_time(self) -> datetime:
        return self._time

    @property
    def current_block(self) -> int:
        return self._block

    def get_balance(self, wallet: str, unit: str) -> Decimal:
        return Decimal(self._balances.get(wallet, {}).get(unit, 0))

    def get_unit_state(self, unit: str) -> UnitState:
        return dict(self._states.get(unit, {}))

    def get_positions(self, unit: str) -> Positions:
        return {
            w: Decimal(b[unit])
            for w, b in self._balances.items()
            if unit in b and b[unit] != 0
        }

    def list_wallets(self) -> Set[str]:
        return set(self._balances.keys())

    def get_unit(self, symbol: str) -> Unit:
        return self._units[symbol]
