"""
test_asset_token_scenarios.py - End-to-end share ledger scenarios

Tests complete lifecycles through the AssetToken / ReserveController facades:
- Token-settled purchase, holding and reward accrual across a transfer
- Pause and unpause around holder operations
- Native-settled purchase, refund and claim through the reserve controller
- Controller overdraw and sweep
- Round trips, claim idempotence and event subscribers
"""

import pytest
from decimal import Decimal

from shareledger import (
    WAD, ExecuteResult, commit, compute_purchase,
    InsufficientReserve, InsufficientSellerBalance, Paused, TransactionRejected,
)

from tests.helpers import (
    deploy_native_ledger, mint, snapshot, TOKEN_REWARD_PER_BLOCK, NATIVE_REWARD_PER_BLOCK,
)


class TestTokenLedgerLifecycle:
    """Payment-token ledger: EL at 0.03, shares at 5.0, whole shares."""

    def test_purchase_of_twenty_shares(self, token_deployment):
        d = token_deployment
        alice_before = d.currency_balance("alice")
        d.token.purchase("alice", 20)

        assert d.token.treasury_balance == Decimal(9980)
        assert d.token.balance_of("alice") == Decimal(20)
        assert alice_before - d.currency_balance("alice") == Decimal("3333333333333333333333")
        assert d.token.verify_supply()
        assert d.ledger.verify_double_entry()['valid']

    def test_reward_accrual_across_transfer(self, token_deployment):
        d = token_deployment
        d.token.purchase("alice", 20)
        d.ledger.advance_blocks(10)
        d.token.transfer("alice", "bob", 10)
        d.ledger.advance_blocks(5)

        expected = TOKEN_REWARD_PER_BLOCK * 10 * 20 / 10000 + TOKEN_REWARD_PER_BLOCK * 5 * 10 / 10000
        assert expected == Decimal("12500000000000")
        assert d.token.reward_of("alice") == expected
        assert d.token.reward_of("bob") == TOKEN_REWARD_PER_BLOCK * 5 * 10 / 10000

        before = d.currency_balance("alice")
        d.token.claim_reward("alice")
        assert d.currency_balance("alice") - before == expected

    def test_pause_and_unpause(self, token_deployment):
        d = token_deployment
        d.token.purchase("alice", 20)
        d.ledger.advance_blocks(3)
        d.token.pause("pauser")

        before = snapshot(d.ledger)
        with pytest.raises(Paused):
            d.token.purchase("alice", 1)
        with pytest.raises(Paused):
            d.token.refund("alice", 1)
        with pytest.raises(Paused):
            d.token.claim_reward("alice")
        assert snapshot(d.ledger) == before

        d.token.unpause("pauser")
        d.token.purchase("alice", 1)
        d.token.refund("alice", 1)
        d.token.claim_reward("alice")
        assert d.token.balance_of("alice") == Decimal(20)
        assert [e.name for e in d.ledger.events(emitter="EA") if e.name in ("Paused", "Unpaused")] == [
            "Paused", "Unpaused",
        ]

    def test_round_trip_returns_payment(self, token_deployment):
        d = token_deployment
        before = snapshot(d.ledger)[0]["alice"]["EL"]
        d.token.purchase("alice", 20)
        d.token.refund("alice", 20)
        assert d.currency_balance("alice") == before
        assert d.token.treasury_balance == Decimal(10000)
        assert d.currency_balance(d.token.contract_wallet) == Decimal(0)

    def test_partial_refunds_never_exceed_payment(self, token_deployment):
        d = token_deployment
        before = d.currency_balance("alice")
        d.token.purchase("alice", 7)
        paid = before - d.currency_balance("alice")
        for _ in range(7):
            d.token.refund("alice", 1)
        refunded = d.currency_balance("alice") - (before - paid)
        assert refunded <= paid
        assert d.currency_balance(d.token.contract_wallet) == paid - refunded

    def test_claim_idempotent_within_block(self, token_deployment):
        d = token_deployment
        d.token.purchase("alice", 20)
        d.ledger.advance_blocks(4)
        d.token.claim_reward("alice")
        after_first = d.currency_balance("alice")
        d.token.claim_reward("alice")
        d.token.claim_reward("alice")
        assert d.currency_balance("alice") == after_first

    def test_many_holders_share_reward_by_weight(self, token_deployment):
        d = token_deployment
        d.token.purchase("alice", 30)
        d.token.purchase("bob", 10)
        d.ledger.advance_blocks(100)
        assert d.token.reward_of("alice") == 3 * d.token.reward_of("bob")
        # The unsold treasury accrues too, so holders never exhaust the rate.
        total = d.token.reward_of("alice") + d.token.reward_of("bob")
        assert total < TOKEN_REWARD_PER_BLOCK * 100

    def test_stale_pending_rejected_by_facade(self, token_deployment):
        d = token_deployment
        pending = compute_purchase(d.ledger, d.oracle, "EA", "alice", Decimal(20))
        d.ledger.advance_blocks(1)
        with pytest.raises(TransactionRejected, match="expired"):
            commit(d.ledger, pending)
        assert d.token.balance_of("alice") == Decimal(0)


class TestNativeLedgerLifecycle:
    """Native ledger: ETH at 1000, shares at 5.0, 18-decimal shares, 50% reserve."""

    def test_purchase_and_refund_through_controller(self, native_deployment):
        d = native_deployment
        d.token.purchase("alice", 20 * WAD)
        assert d.currency_balance("controller") == WAD / 10
        assert d.controller.reserve_of("EA") == WAD / 10

        d.token.refund("alice", 10 * WAD)
        withdrawn = d.ledger.events("ReserveWithdrawn")
        assert len(withdrawn) == 1
        assert withdrawn[0].get("amount") == WAD / 20
        assert d.controller.reserve_of("EA") == WAD / 20
        assert d.controller.verify_partition()
        assert d.ledger.verify_double_entry()['valid']

    def test_controller_overdraw_raises(self, native_deployment):
        d = native_deployment
        d.token.purchase("alice", 20 * WAD)
        before = snapshot(d.ledger)
        with pytest.raises(InsufficientReserve):
            d.controller.request_withdrawal("EA", WAD, d.token.contract_wallet)
        assert snapshot(d.ledger) == before

    def test_sweep_then_refund_shortfall(self, native_deployment):
        d = native_deployment
        d.token.purchase("alice", 20 * WAD)
        d.controller.sweep_excess("EA", "admin")
        assert d.currency_balance("treasury") == WAD / 20

        d.token.refund("alice", 10 * WAD)
        with pytest.raises(InsufficientSellerBalance):
            d.token.refund("alice", 10 * WAD)

        mint(d.ledger, "ETH", "admin", WAD)
        d.controller.top_up("EA", WAD / 20, "admin", "admin")
        d.token.refund("alice", 10 * WAD)
        assert d.token.balance_of("alice") == Decimal(0)
        assert d.controller.reserve_of("EA") == Decimal(0)

    def test_entries_are_isolated(self):
        d = deploy_native_ledger()
        second = type(d.token).deploy(
            d.ledger, d.oracle, "EB", "SecondAsset", 1000 * WAD, 10 * WAD, 0, "ETH", d.roles,
            controller=d.controller, share_decimals=18,
        )
        d.token.purchase("alice", 20 * WAD)
        second.purchase("bob", 10 * WAD)
        assert d.controller.reserve_of("EA") == WAD / 10
        assert d.controller.reserve_of("EB") == WAD / 10

        d.controller.sweep_excess("EA", "admin")
        d.token.refund("alice", 10 * WAD)
        with pytest.raises(InsufficientSellerBalance):
            d.token.refund("alice", 10 * WAD)
        assert d.controller.reserve_of("EB") == WAD / 10
        assert d.controller.verify_partition()

    def test_claim_paid_from_reserve(self, native_deployment):
        d = native_deployment
        d.token.purchase("alice", 20 * WAD)
        d.ledger.advance_blocks(100)
        expected = NATIVE_REWARD_PER_BLOCK * 100 * 20 / 10000
        before = d.currency_balance("alice")
        d.token.claim_reward("alice")
        assert d.currency_balance("alice") - before == expected
        assert d.ledger.events("ReserveWithdrawn")[-1].get("amount") == expected

    def test_reserve_value(self, native_deployment):
        d = native_deployment
        d.token.purchase("alice", 20 * WAD)
        assert d.controller.reserve_value_of("EA") == 100 * WAD


class TestSubscribers:

    def test_subscriber_sees_committed_state(self, token_deployment):
        d = token_deployment
        seen = []

        def on_event(ledger, event):
            if event.name == "Purchase":
                seen.append((event.get("buyer"), ledger.get_balance(event.get("buyer"), "EA")))

        d.ledger.subscribe(on_event)
        d.token.purchase("alice", 20)
        assert seen == [("alice", Decimal(20))]

    def test_subscriber_may_act_after_commit(self, token_deployment):
        """A subscriber refunding in reaction to a purchase runs as its own transaction."""
        d = token_deployment

        def refund_on_purchase(ledger, event):
            if event.name == "Purchase" and event.get("buyer") == "bob":
                d.token.refund("bob", event.get("shares"))

        d.ledger.subscribe(refund_on_purchase)
        d.token.purchase("bob", 20)
        assert d.token.balance_of("bob") == Decimal(0)
        assert [e.name for e in d.ledger.events(emitter="EA")][-2:] == ["Purchase", "Refund"]

    def test_unsubscribe(self, token_deployment):
        d = token_deployment
        seen = []

        def listener(ledger, event):
            seen.append(event.name)

        d.ledger.subscribe(listener)
        d.token.purchase("alice", 1)
        d.ledger.unsubscribe(listener)
        d.token.purchase("alice", 1)
        assert seen.count("Purchase") == 1

    def test_clone_has_no_subscribers(self, token_deployment):
        d = token_deployment
        seen = []
        d.ledger.subscribe(lambda ledger, event: seen.append(event.name))
        clone = d.ledger.clone()
        assert clone.execute(compute_purchase(clone, d.oracle, "EA", "alice", Decimal(1))) == ExecuteResult.APPLIED
        assert seen == []
