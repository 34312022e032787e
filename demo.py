#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Fractional Asset Shares Step by Step

A walkthrough of a share ledger: a fixed supply of shares in a real-world
asset, sold from a treasury for a payment currency and paying every holder a
block-weighted reward. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3: Token ledger   - Deploying, buying shares, rewards across a transfer
  4:   Pausing        - What stops and what keeps working
  5-6: Native ledger  - The reserve controller, refunds drawn from reserve
  7:   Audit          - Events, conservation and replay

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import sys

from shareledger import (
    Ledger, WAD, SYSTEM_WALLET,
    AssetToken, ReserveController, RoleTable, StaticRateOracle,
    PAUSER, ORACLE_UPDATER,
    create_payment_token_unit, create_native_currency_unit,
    compute_mint, compute_currency_approve,
    LedgerError,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    start_block: int = 100

    # Payment token ledger
    el_rate: Decimal = Decimal(3) * 10**16            # EL quoted at 0.03
    token_supply: Decimal = Decimal(10000)            # whole shares
    token_reward_per_block: Decimal = Decimal(5) * 10**14

    # Native ledger
    eth_rate: Decimal = Decimal(1000) * WAD           # ETH quoted at 1000
    native_supply: Decimal = Decimal(10000) * WAD     # 18-decimal shares
    native_reward_per_block: Decimal = Decimal(237) * 10**6
    reserve_ratio: Decimal = WAD / 2

    share_price: Decimal = Decimal(5) * WAD           # 5.0 per whole share


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def fmt(amount: Decimal, decimals: int = 18) -> str:
    """Render base units as whole units."""
    return f"{amount / Decimal(10) ** decimals:,.6f}"


# ============================================================================
# PHASE 1: PAYMENT TOKEN LEDGER (Steps 1-3)
# ============================================================================

def step_01_deploy_token_ledger():
    step_header(1, "Deploying a Share Ledger",
        "A share ledger issues its whole supply into a treasury wallet.")

    print("""
    The ledger holds three kinds of units here:

    - EL:  a payment token (ERC20-style, with allowances)
    - EA:  the asset shares, fixed supply, 0 decimals
    - the treasury is EA's contract wallet, which owns every unsold share

    Prices are WAD-scaled (10**18 = 1.0). The oracle quotes EL at 0.03.
    """)

    ledger = Ledger("tutorial", CONFIG.start_time, initial_block=CONFIG.start_block, verbose=True)
    ledger.register_unit(create_payment_token_unit("EL", "Elysia"))
    roles = RoleTable.with_admin("admin", **{PAUSER: ["ops"], ORACLE_UPDATER: ["feeder"]})
    oracle = StaticRateOracle({"EL": CONFIG.el_rate}, roles)

    print('>>> token = AssetToken.deploy(ledger, oracle, "EA", "ExampleAsset", 10000, 5 * WAD, ...)')
    token = AssetToken.deploy(
        ledger, oracle, "EA", "ExampleAsset",
        CONFIG.token_supply, CONFIG.share_price, CONFIG.token_reward_per_block,
        "EL", roles,
    )

    for wallet in ("alice", "bob"):
        ledger.ensure_wallet(wallet)
        ledger.execute(compute_mint(ledger, "EL", wallet, Decimal(10) ** 24))
        ledger.execute(compute_currency_approve(ledger, "EL", wallet, token.contract_wallet, Decimal(10) ** 24))

    section_header("Initial State")
    print(f"Treasury EA:  {token.treasury_balance}")
    print(f"System EA:    {ledger.get_balance(SYSTEM_WALLET, 'EA')}")
    print(f"Alice EL:     {fmt(ledger.get_balance('alice', 'EL'))}")
    return ledger, token


def step_02_purchase(ledger: Ledger, token: AssetToken):
    step_header(2, "Buying Shares",
        "A purchase moves shares out of the treasury and currency into it, atomically.")

    print("""
    due = floor(shares * price * 10**currency_decimals / (10**share_decimals * rate))

    20 shares at 5.0 with EL at 0.03 costs 3333.33... EL, truncated to base units.
    """)
    wait_for_enter()

    before = ledger.get_balance("alice", "EL")
    print('>>> token.purchase("alice", 20)')
    token.purchase("alice", 20)

    section_header("After Purchase")
    print(f"Treasury EA:  {token.treasury_balance}")
    print(f"Alice EA:     {token.balance_of('alice')}")
    print(f"Alice paid:   {before - ledger.get_balance('alice', 'EL')} base units")

    section_header("Key Insight")
    print("""
    Nothing was partially applied: share move, currency move, allowance
    spend and reward checkpoints all committed in one transaction.
    """)


def step_03_rewards(ledger: Ledger, token: AssetToken):
    step_header(3, "Block-Weighted Rewards",
        "Every holder accrues reward_per_block * balance / total_supply each block.")

    ledger.advance_blocks(10)
    print(">>> ledger.advance_blocks(10)")
    print(f"Alice reward: {token.reward_of('alice')}")

    print('\n>>> token.transfer("alice", "bob", 10)')
    token.transfer("alice", "bob", 10)
    ledger.advance_blocks(5)
    print(">>> ledger.advance_blocks(5)")

    section_header("Accrued Rewards")
    print(f"Alice: {token.reward_of('alice')}  (10 blocks at 20 shares + 5 blocks at 10)")
    print(f"Bob:   {token.reward_of('bob')}  (5 blocks at 10)")

    print('\n>>> token.claim_reward("alice")')
    token.claim_reward("alice")
    print(f"Alice reward after claim: {token.reward_of('alice')}")


# ============================================================================
# PHASE 2: PAUSING (Step 4)
# ============================================================================

def step_04_pause(ledger: Ledger, token: AssetToken):
    step_header(4, "Pausing",
        "A paused ledger refuses purchase, refund and claim; transfers still work.")

    token.pause("ops")
    for label, action in (
        ("purchase", lambda: token.purchase("alice", 1)),
        ("refund", lambda: token.refund("alice", 1)),
        ("claim", lambda: token.claim_reward("alice")),
    ):
        try:
            action()
        except LedgerError as e:
            print(f"{label:<10} -> {type(e).__name__}: {e}")

    token.transfer("bob", "alice", 1)
    print("transfer   -> ok")
    token.unpause("ops")


# ============================================================================
# PHASE 3: NATIVE CURRENCY AND THE RESERVE CONTROLLER (Steps 5-6)
# ============================================================================

def step_05_native_ledger():
    step_header(5, "Native Currency Ledger",
        "Native payments are forwarded into this ledger's entry in a reserve controller.")

    ledger = Ledger("native", CONFIG.start_time, initial_block=CONFIG.start_block, verbose=False)
    ledger.register_unit(create_native_currency_unit("ETH", "Ether"))
    roles = RoleTable.with_admin("admin")
    oracle = StaticRateOracle({"ETH": CONFIG.eth_rate}, roles)
    controller = ReserveController.deploy(
        ledger, "RC", "ETH", "controller", "treasury", CONFIG.reserve_ratio, roles, oracle,
    )
    token = AssetToken.deploy(
        ledger, oracle, "EA", "ExampleAsset",
        CONFIG.native_supply, CONFIG.share_price, CONFIG.native_reward_per_block,
        "ETH", roles, controller=controller, share_decimals=18,
    )
    ledger.ensure_wallet("alice")
    ledger.execute(compute_mint(ledger, "ETH", "alice", 100 * WAD))

    print('>>> token.purchase("alice", 20 * WAD)')
    token.purchase("alice", 20 * WAD)
    print(f"Controller holds for EA: {fmt(controller.reserve_of('EA'))} ETH")
    print(f"Reserve value:           {fmt(controller.reserve_value_of('EA'))}")
    return ledger, token, controller


def step_06_refund_from_reserve(ledger: Ledger, token: AssetToken, controller: ReserveController):
    step_header(6, "Refunds Drawn From Reserve",
        "The contract wallet holds no ETH, so refunds withdraw the shortfall from the entry.")

    print('>>> token.refund("alice", 10 * WAD)')
    token.refund("alice", 10 * WAD)
    event = ledger.events("ReserveWithdrawn")[-1]
    print(f"Event: {event}")
    print(f"Entry now holds: {fmt(controller.reserve_of('EA'))} ETH")

    section_header("Overdraw")
    try:
        controller.request_withdrawal("EA", WAD, token.contract_wallet)
    except LedgerError as e:
        print(f"request_withdrawal(1 ETH) -> {type(e).__name__}: {e}")


# ============================================================================
# PHASE 4: AUDIT (Step 7)
# ============================================================================

def step_07_audit(ledger: Ledger):
    step_header(7, "Audit",
        "Events, conservation and replay make every state reproducible.")

    section_header("Events")
    for event in ledger.events():
        print(f"  {event}")

    section_header("Conservation")
    report = ledger.verify_double_entry()
    for symbol, supply in report['supplies'].items():
        print(f"  {symbol:<4} sum over all wallets = {supply}")

    section_header("Replay")
    replayed = ledger.replay()
    same = all(
        replayed.get_unit_state(symbol) == ledger.get_unit_state(symbol) for symbol in ledger.units
    )
    print(f"  Replayed {len(ledger.transaction_log)} transactions; unit states identical: {same}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       SHARELEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)
    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    ledger, token = step_01_deploy_token_ledger()
    wait_for_enter()
    step_02_purchase(ledger, token)
    wait_for_enter()
    step_03_rewards(ledger, token)
    wait_for_enter()
    step_04_pause(ledger, token)
    wait_for_enter()

    native_ledger, native_token, controller = step_05_native_ledger()
    wait_for_enter()
    step_06_refund_from_reserve(native_ledger, native_token, controller)
    wait_for_enter()
    step_07_audit(native_ledger)

    print("\nTutorial complete.")


if __name__ == "__main__":
    main()
