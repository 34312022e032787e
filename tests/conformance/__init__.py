"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of shareledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Balances, share supply and reserve partition
2. atomicity.py - All-or-nothing operation semantics
3. idempotency.py - Duplicate execution handling
4. determinism.py - Reproducible behavior and replay
5. rounding.py - Truncation never favors the holder

These tests use hypothesis for property-based testing.
"""
