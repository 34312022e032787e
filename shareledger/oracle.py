"""
oracle.py - Exchange-rate infrastructure for share/currency conversion

Provides the rate oracle consumed by purchase, refund and reserve valuation.

Classes:
- RateOracle: Protocol defining the rate interface
- StaticRateOracle: In-memory rates, updated by permissioned callers

Rates are WAD-scaled reference units per one whole unit of the currency
(a currency trading at 1000.0 has rate 1000 * 10**18).

Every conversion re-reads the oracle through read_rate(); there is no cache.
Staleness is not checked here.
"""

from decimal import Decimal
from typing import Dict, Optional, Protocol, runtime_checkable

from .core import InvalidAmount, OracleError, to_decimal
from .roles import ORACLE_UPDATER, RoleTable, require_role


@runtime_checkable
class RateOracle(Protocol):
    """
    Protocol for rate oracles.

    Implementations return the current rate for a currency, or None when
    they have no rate for it.
    """

    def get_rate(self, currency: str) -> Optional[Decimal]:
        """Get the current WAD-scaled rate of a currency."""
        ...


class StaticRateOracle:
    """
    Oracle holding one current rate per currency.

    Rates change only through update_rate(), which requires ORACLE_UPDATER
    (or ADMIN) in the oracle's role table.
    """

    def __init__(self, rates: Dict[str, Decimal], roles: Optional[RoleTable] = None):
        """
        Initialize with a rate map.

        Args:
            rates: Dictionary mapping currency symbols to WAD-scaled rates
            roles: Role table authorizing updates (no updaters if omitted)
        """
        self.roles = roles or RoleTable()
        self.rates: Dict[str, Decimal] = {}
        for currency, rate in rates.items():
            self.rates[currency] = self._validated(currency, rate)

    @staticmethod
    def _validated(currency: str, rate) -> Decimal:
        rate = to_decimal(rate)
        if not rate.is_finite() or rate <= 0:
            raise InvalidAmount(f"rate for {currency} must be positive, got {rate}")
        return rate

    def get_rate(self, currency: str) -> Optional[Decimal]:
        return self.rates.get(currency)

    def update_rate(self, currency: str, rate: Decimal, caller: str) -> None:
        """
        Set the rate of a currency.

        Raises:
            Unauthorized: If caller lacks ORACLE_UPDATER
            InvalidAmount: If rate is not positive
        """
        require_role(self.roles, ORACLE_UPDATER, caller)
        self.rates[currency] = self._validated(currency, rate)

    def __repr__(self):
        return f"StaticRateOracle({len(self.rates)} rates)"


def read_rate(oracle: RateOracle, currency: str) -> Decimal:
    """
    Read a usable rate or fail the enclosing operation.

    Any exception raised by the oracle, a missing rate and a non-positive
    rate all surface as OracleError, before any state has been touched.
    """
    try:
        rate = oracle.get_rate(currency)
    except OracleError:
        raise
    except Exception as e:
        raise OracleError(f"rate oracle failed for {currency}: {e}") from e
    if rate is None:
        raise OracleError(f"no rate for {currency}")
    rate = to_decimal(rate)
    if not rate.is_finite() or rate <= 0:
        raise OracleError(f"unusable rate for {currency}: {rate}")
    return rate
