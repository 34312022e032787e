"""
test_oracle.py - Unit tests for oracle.py and roles.py

Tests:
- StaticRateOracle: rates, permissioned updates, validation
- read_rate: failure mapping to OracleError
- RoleTable / require_role
"""

import pytest
from decimal import Decimal

from shareledger import (
    StaticRateOracle, RateOracle, RoleTable, read_rate, require_role,
    ADMIN, PAUSER, ORACLE_UPDATER, WAD,
    InvalidAmount, OracleError, Unauthorized,
)


class TestStaticRateOracle:
    """Tests for StaticRateOracle."""

    def test_get_rate(self):
        oracle = StaticRateOracle({'ETH': 1000 * WAD})
        assert oracle.get_rate('ETH') == 1000 * WAD

    def test_unknown_currency(self):
        oracle = StaticRateOracle({'ETH': 1000 * WAD})
        assert oracle.get_rate('EL') is None

    def test_implements_protocol(self):
        assert isinstance(StaticRateOracle({}), RateOracle)

    def test_non_positive_rate_rejected(self):
        with pytest.raises(InvalidAmount):
            StaticRateOracle({'ETH': Decimal(0)})
        with pytest.raises(InvalidAmount):
            StaticRateOracle({'ETH': Decimal(-1)})

    def test_update_rate_by_updater(self):
        oracle = StaticRateOracle({'ETH': 1000 * WAD}, RoleTable.with_admin('admin', **{ORACLE_UPDATER: ['feeder']}))
        oracle.update_rate('ETH', 2000 * WAD, 'feeder')
        assert oracle.get_rate('ETH') == 2000 * WAD

    def test_update_rate_by_admin(self):
        oracle = StaticRateOracle({'ETH': 1000 * WAD}, RoleTable.with_admin('admin'))
        oracle.update_rate('ETH', 1500 * WAD, 'admin')
        assert oracle.get_rate('ETH') == 1500 * WAD

    def test_update_rate_unauthorized(self):
        oracle = StaticRateOracle({'ETH': 1000 * WAD}, RoleTable.with_admin('admin'))
        with pytest.raises(Unauthorized):
            oracle.update_rate('ETH', 1 * WAD, 'mallory')
        assert oracle.get_rate('ETH') == 1000 * WAD

    def test_update_rate_rejects_zero(self):
        oracle = StaticRateOracle({'ETH': 1000 * WAD}, RoleTable.with_admin('admin'))
        with pytest.raises(InvalidAmount):
            oracle.update_rate('ETH', Decimal(0), 'admin')


class _BrokenOracle:
    def get_rate(self, currency):
        raise RuntimeError("feed offline")


class _ZeroOracle:
    def get_rate(self, currency):
        return Decimal(0)


class TestReadRate:

    def test_read_rate(self):
        assert read_rate(StaticRateOracle({'EL': Decimal(3 * 10**16)}), 'EL') == Decimal(3 * 10**16)

    def test_missing_rate(self):
        with pytest.raises(OracleError, match="no rate"):
            read_rate(StaticRateOracle({}), 'EL')

    def test_oracle_exception_wrapped(self):
        with pytest.raises(OracleError, match="feed offline"):
            read_rate(_BrokenOracle(), 'EL')

    def test_zero_rate(self):
        with pytest.raises(OracleError, match="unusable"):
            read_rate(_ZeroOracle(), 'EL')


class TestRoleTable:

    def test_with_admin(self):
        roles = RoleTable.with_admin('admin', **{PAUSER: ['ops']})
        assert roles.has_role(ADMIN, 'admin')
        assert roles.has_role(PAUSER, 'ops')
        assert not roles.has_role(PAUSER, 'admin')

    def test_grant_and_revoke_return_new_tables(self):
        roles = RoleTable.with_admin('admin')
        granted = roles.grant(PAUSER, 'ops')
        assert granted.has_role(PAUSER, 'ops')
        assert not roles.has_role(PAUSER, 'ops')
        assert not granted.revoke(PAUSER, 'ops').has_role(PAUSER, 'ops')

    def test_require_role_admin_fallback(self):
        roles = RoleTable.with_admin('admin')
        require_role(roles, PAUSER, 'admin')
        with pytest.raises(Unauthorized):
            require_role(roles, PAUSER, 'admin', fallback=None)

    def test_require_role_unauthorized(self):
        with pytest.raises(Unauthorized, match="mallory lacks role PAUSER"):
            require_role(RoleTable.with_admin('admin'), PAUSER, 'mallory')
