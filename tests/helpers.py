"""
helpers.py - Deployment builders and comparison utilities for shareledger tests
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from hypothesis import strategies as st

from shareledger import (
    Ledger, ExecuteResult, LedgerError, WAD,
    AssetToken, ReserveController, RoleTable, StaticRateOracle,
    PAUSER, ORACLE_UPDATER,
    create_payment_token_unit, create_native_currency_unit,
    compute_mint, compute_currency_approve,
)


# Values from the reference deployments.
EL_RATE = Decimal(3) * 10**16            # EL at 0.03
ETH_RATE = Decimal(1000) * WAD           # ETH at 1000
SHARE_PRICE = Decimal(5) * WAD           # 5.0 per whole share
TOKEN_SUPPLY = Decimal(10000)            # whole shares, 0 decimals
TOKEN_REWARD_PER_BLOCK = Decimal(5) * 10**14
NATIVE_SUPPLY = Decimal(10000) * WAD     # 18-decimal shares
NATIVE_REWARD_PER_BLOCK = Decimal(237) * 10**6
RESERVE_RATIO = WAD / 2
ONE_ETHER = WAD


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def mint(ledger: Ledger, symbol: str, wallet: str, amount) -> None:
    ledger.ensure_wallet(wallet)
    assert ledger.execute(compute_mint(ledger, symbol, wallet, Decimal(amount))) == ExecuteResult.APPLIED


def approve(ledger: Ledger, symbol: str, owner: str, spender: str, amount) -> None:
    result = ledger.execute(compute_currency_approve(ledger, symbol, owner, spender, Decimal(amount)))
    assert result == ExecuteResult.APPLIED


def snapshot(ledger: Ledger) -> Tuple[dict, dict]:
    """Balances and unit states, for before/after comparisons."""
    balances = {w: dict(b) for w, b in ledger.balances.items()}
    states = {s: ledger.get_unit_state(s) for s in ledger.units}
    return balances, states


def ledger_state_equals(ledger1: Ledger, ledger2: Ledger) -> bool:
    """Check if two ledgers have identical balances and unit states."""
    wallets = ledger1.registered_wallets | ledger2.registered_wallets
    units = set(ledger1.units) | set(ledger2.units)
    for wallet in wallets:
        for unit in units:
            bal1 = ledger1.balances.get(wallet, {}).get(unit, Decimal("0"))
            bal2 = ledger2.balances.get(wallet, {}).get(unit, Decimal("0"))
            if bal1 != bal2:
                return False
    for unit in units:
        if unit not in ledger1.units or unit not in ledger2.units:
            return False
        if ledger1.get_unit_state(unit) != ledger2.get_unit_state(unit):
            return False
    return True


@dataclass
class Deployment:
    ledger: Ledger
    oracle: StaticRateOracle
    roles: RoleTable
    token: AssetToken
    controller: Optional[ReserveController] = None

    @property
    def currency(self) -> str:
        return self.token.terms.payment_currency

    def currency_balance(self, wallet: str) -> Decimal:
        return self.ledger.get_balance(wallet, self.currency)


def deploy_token_ledger(**overrides) -> Deployment:
    """EL-settled share ledger; alice and bob hold 10**24 EL and approve the contract."""
    ledger = Ledger("token", datetime(2025, 1, 1), initial_block=100, verbose=False, test_mode=True)
    ledger.register_unit(create_payment_token_unit("EL", "Elysia"))
    roles = RoleTable.with_admin("admin", **{PAUSER: ["pauser"], ORACLE_UPDATER: ["feeder"]})
    oracle = StaticRateOracle({"EL": EL_RATE}, roles)
    ledger.ensure_wallet("admin")
    params = dict(
        total_supply=TOKEN_SUPPLY,
        price=SHARE_PRICE,
        reward_per_block=TOKEN_REWARD_PER_BLOCK,
    )
    params.update(overrides)
    token = AssetToken.deploy(ledger, oracle, "EA", "ExampleAsset", payment_currency="EL", roles=roles, **params)
    for wallet in ("alice", "bob"):
        mint(ledger, "EL", wallet, 10**24)
        approve(ledger, "EL", wallet, token.contract_wallet, 10**24)
    return Deployment(ledger, oracle, roles, token)


def deploy_native_ledger(**overrides) -> Deployment:
    """ETH-settled share ledger with a 50% reserve controller; alice and bob hold 100 ETH."""
    ledger = Ledger("native", datetime(2025, 1, 1), initial_block=100, verbose=False, test_mode=True)
    ledger.register_unit(create_native_currency_unit("ETH", "Ether"))
    roles = RoleTable.with_admin("admin", **{PAUSER: ["pauser"], ORACLE_UPDATER: ["feeder"]})
    oracle = StaticRateOracle({"ETH": ETH_RATE}, roles)
    ledger.ensure_wallet("admin")
    controller = ReserveController.deploy(
        ledger, "RC", "ETH", "controller", "treasury", RESERVE_RATIO, roles, oracle,
    )
    params = dict(
        total_supply=NATIVE_SUPPLY,
        price=SHARE_PRICE,
        reward_per_block=NATIVE_REWARD_PER_BLOCK,
        share_decimals=18,
        interest_rate=Decimal(10**17),
        latitude=Decimal(123),
        longitude=Decimal(456),
    )
    params.update(overrides)
    token = AssetToken.deploy(
        ledger, oracle, "EA", "ExampleAsset", payment_currency="ETH", roles=roles,
        controller=controller, **params,
    )
    for wallet in ("alice", "bob"):
        mint(ledger, "ETH", wallet, 100 * ONE_ETHER)
    return Deployment(ledger, oracle, roles, token, controller)


# =============================================================================
# OPERATION SEQUENCES (property tests)
# =============================================================================

HOLDERS = ["alice", "bob"]


@st.composite
def operation(draw, unit_size):
    """A (kind, holder, amount) holder operation; amounts are multiples of unit_size."""
    kind = draw(st.sampled_from(["purchase", "refund", "transfer", "claim", "advance", "sweep"]))
    holder = draw(st.sampled_from(HOLDERS))
    amount = draw(st.integers(min_value=1, max_value=50)) * unit_size
    return kind, holder, amount


def apply_operation(deployment: Deployment, op) -> bool:
    """Run one operation; failures are part of the sequence and must leave no trace."""
    kind, holder, amount = op
    token = deployment.token
    other = "bob" if holder == "alice" else "alice"
    try:
        if kind == "purchase":
            token.purchase(holder, amount)
        elif kind == "refund":
            token.refund(holder, amount)
        elif kind == "transfer":
            token.transfer(holder, other, amount)
        elif kind == "claim":
            token.claim_reward(holder)
        elif kind == "advance":
            deployment.ledger.advance_blocks(int(amount % 7) + 1)
        elif kind == "sweep" and deployment.controller is not None:
            deployment.controller.sweep_excess(token.symbol, "admin")
    except LedgerError:
        return False
    return True
