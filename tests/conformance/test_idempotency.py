"""
Idempotency Conformance Tests

INVARIANT: Duplicate execution is detected and prevented.

    ∀ pending transaction T:
        execute(T) = APPLIED ⟹ execute(T) again = ALREADY_APPLIED
        state after second execute = state after first execute

Repeating an *operation* is not a duplicate: every operation advances the
unit's nonce, so two identical purchases have distinct intent_ids.
"""

from decimal import Decimal
from hypothesis import given, settings, HealthCheck
from hypothesis import strategies as st

from shareledger import (
    ExecuteResult, compute_purchase, compute_claim_reward, compute_transfer,
)

from tests.helpers import deploy_token_ledger, snapshot


class TestIdempotencyProperties:

    @given(st.integers(min_value=1, max_value=5), st.integers(min_value=1, max_value=100))
    @settings(max_examples=30, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_repeated_execution_applies_once(self, num_repeats, shares):
        d = deploy_token_ledger()
        pending = compute_purchase(d.ledger, d.oracle, "EA", "alice", Decimal(shares))

        results = [d.ledger.execute(pending) for _ in range(num_repeats + 1)]

        assert results[0] == ExecuteResult.APPLIED
        assert all(r == ExecuteResult.ALREADY_APPLIED for r in results[1:])
        assert d.token.balance_of("alice") == Decimal(shares)
        assert d.token.treasury_balance == Decimal(10000 - shares)

    @given(st.integers(min_value=2, max_value=6))
    @settings(max_examples=20, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_identical_operations_have_distinct_intents(self, count):
        d = deploy_token_ledger()
        intents = set()
        for _ in range(count):
            pending = compute_purchase(d.ledger, d.oracle, "EA", "alice", Decimal(1))
            intents.add(pending.intent_id)
            assert d.ledger.execute(pending) == ExecuteResult.APPLIED
        assert len(intents) == count
        assert d.token.balance_of("alice") == Decimal(count)


class TestIdempotencyExamples:

    def test_duplicate_leaves_state(self, token_deployment):
        d = token_deployment
        pending = compute_purchase(d.ledger, d.oracle, "EA", "alice", Decimal(20))
        d.ledger.execute(pending)
        after_first = snapshot(d.ledger)
        log_len = len(d.ledger.transaction_log)

        assert d.ledger.execute(pending) == ExecuteResult.ALREADY_APPLIED
        assert snapshot(d.ledger) == after_first
        assert len(d.ledger.transaction_log) == log_len

    def test_duplicate_detected_before_block_check(self, token_deployment):
        """A replayed intent reports ALREADY_APPLIED even after its block has passed."""
        d = token_deployment
        pending = compute_purchase(d.ledger, d.oracle, "EA", "alice", Decimal(20))
        d.ledger.execute(pending)
        d.ledger.advance_blocks(3)
        assert d.ledger.execute(pending) == ExecuteResult.ALREADY_APPLIED

    def test_duplicate_claim_pays_once(self, token_deployment):
        d = token_deployment
        d.token.purchase("alice", 20)
        d.ledger.advance_blocks(10)
        pending = compute_claim_reward(d.ledger, "EA", "alice")
        d.ledger.execute(pending)
        balance = d.currency_balance("alice")
        assert d.ledger.execute(pending) == ExecuteResult.ALREADY_APPLIED
        assert d.currency_balance("alice") == balance

    def test_rejected_not_marked_as_seen(self, token_deployment):
        d = token_deployment
        d.token.purchase("alice", 20)
        pending = compute_transfer(d.ledger, "EA", "alice", "bob", Decimal(20))
        d.ledger.advance_blocks(1)
        assert d.ledger.execute(pending) == ExecuteResult.REJECTED
        assert pending.intent_id not in d.ledger.seen_intent_ids

    def test_duplicate_does_not_notify_subscribers(self, token_deployment):
        d = token_deployment
        seen = []
        d.ledger.subscribe(lambda ledger, event: seen.append(event.name))
        pending = compute_purchase(d.ledger, d.oracle, "EA", "alice", Decimal(20))
        d.ledger.execute(pending)
        d.ledger.execute(pending)
        assert seen == ["Purchase"]
