"""
Determinism Conformance Tests

INVARIANT: The same operations on the same starting state produce the same
final state, the same intent_ids and the same event log.

    ∀ sequence S: run(S) on L1 ≡ run(S) on L2
    replay(L) ≡ L
    clone_at_block(L, b) ≡ state of L at block b
"""

from decimal import Decimal
from hypothesis import given, settings, HealthCheck
from hypothesis import strategies as st

from shareledger import WAD

from tests.helpers import (
    apply_operation, deploy_native_ledger, deploy_token_ledger, ledger_state_equals, operation,
)


class TestDeterminismProperties:

    @given(st.lists(operation(1), min_size=1, max_size=20))
    @settings(max_examples=30, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_identical_sequences_identical_state(self, ops):
        first, second = deploy_token_ledger(), deploy_token_ledger()
        for op in ops:
            assert apply_operation(first, op) == apply_operation(second, op)
        assert ledger_state_equals(first.ledger, second.ledger)
        assert [tx.intent_id for tx in first.ledger.transaction_log] == \
               [tx.intent_id for tx in second.ledger.transaction_log]
        assert first.ledger.events() == second.ledger.events()

    @given(st.lists(operation(WAD), min_size=1, max_size=20))
    @settings(max_examples=30, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_replay_reproduces_state(self, ops):
        d = deploy_native_ledger()
        for op in ops:
            apply_operation(d, op)
        replayed = d.ledger.replay()
        assert ledger_state_equals(d.ledger, replayed)
        assert replayed.current_block == d.ledger.transaction_log[-1].block_number


class TestDeterminismExamples:

    def test_clone_at_block_restores_past(self, token_deployment):
        d = token_deployment
        d.token.purchase("alice", 20)
        d.ledger.advance_blocks(10)
        d.token.transfer("alice", "bob", 10)
        d.ledger.advance_blocks(5)
        d.token.claim_reward("alice")

        past = d.ledger.clone_at_block(105)
        assert past.current_block == 105
        assert past.get_balance("alice", "EA") == Decimal(20)
        assert past.get_balance("bob", "EA") == Decimal(0)

    def test_clone_then_diverge(self, token_deployment):
        d = token_deployment
        d.token.purchase("alice", 20)
        clone = d.ledger.clone()
        d.token.refund("alice", 20)
        assert clone.get_balance("alice", "EA") == Decimal(20)
        assert d.token.balance_of("alice") == Decimal(0)

    def test_same_operation_same_intent_on_twin_ledgers(self):
        first, second = deploy_token_ledger(), deploy_token_ledger()
        first.token.purchase("alice", 20)
        second.token.purchase("alice", 20)
        assert first.ledger.transaction_log[-1].intent_id == second.ledger.transaction_log[-1].intent_id
