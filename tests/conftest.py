"""
conftest.py - Shared pytest fixtures for shareledger tests

Provides common fixtures used across unit, functional and conformance tests:
- Basic ledgers (empty, funded with a payment token)
- Payment-token share ledger (EL-settled, whole shares)
- Native-currency share ledger with a reserve controller (ETH-settled, 18-decimal shares)
"""

import pytest
from datetime import datetime

from shareledger import Ledger, create_payment_token_unit

from tests.helpers import mint, deploy_token_ledger, deploy_native_ledger


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def empty_ledger():
    """Fresh ledger with no registrations."""
    return Ledger("test", verbose=False, test_mode=True)


@pytest.fixture
def basic_ledger():
    """Ledger with the EL payment token and two wallets."""
    ledger = Ledger("test", datetime(2025, 1, 1), verbose=False, test_mode=True)
    ledger.register_unit(create_payment_token_unit("EL", "Elysia"))
    ledger.register_wallet("alice")
    ledger.register_wallet("bob")
    return ledger


@pytest.fixture
def funded_ledger(basic_ledger):
    """Basic ledger with alice holding 10,000 EL base units, issued from the system wallet."""
    mint(basic_ledger, "EL", "alice", 10000)
    return basic_ledger


# =============================================================================
# SHARE LEDGER FIXTURES
# =============================================================================

@pytest.fixture
def token_deployment():
    return deploy_token_ledger()


@pytest.fixture
def native_deployment():
    return deploy_native_ledger()
