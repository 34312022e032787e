"""
test_rewards.py - Unit tests for block-weighted reward accrual

Tests:
- pending_reward / checkpoint / claim on a single account
- checkpoint_accounts over several holders
- Balance-change sequences (the weight of each block range)
"""

import pytest
from decimal import Decimal
from hypothesis import given, settings
from hypothesis import strategies as st

from shareledger import (
    RewardAccount, checkpoint, pending_reward, claim, checkpoint_accounts,
    InvalidAmount,
)


RPB = Decimal(5 * 10**14)
SUPPLY = Decimal(10000)


class TestRewardAccount:

    def test_defaults(self):
        account = RewardAccount(checkpoint_block=7)
        assert account.accrued_reward == Decimal(0)

    def test_accrued_coerced_to_decimal(self):
        assert RewardAccount(1, 5).accrued_reward == Decimal(5)


class TestAccrual:

    def test_pending_reward(self):
        account = RewardAccount(checkpoint_block=100)
        assert pending_reward(account, 110, RPB, Decimal(20), SUPPLY) == Decimal(10**13)

    def test_pending_includes_accrued(self):
        account = RewardAccount(100, Decimal(7))
        assert pending_reward(account, 100, RPB, Decimal(20), SUPPLY) == Decimal(7)

    def test_checkpoint_folds_pending(self):
        account = checkpoint(RewardAccount(100), 110, RPB, Decimal(20), SUPPLY)
        assert account == RewardAccount(110, Decimal(10**13))

    def test_checkpoint_missing_account_starts_fresh(self):
        assert checkpoint(None, 55, RPB, Decimal(20), SUPPLY) == RewardAccount(55, Decimal(0))

    def test_checkpoint_in_the_past_raises(self):
        with pytest.raises(InvalidAmount):
            checkpoint(RewardAccount(100), 99, RPB, Decimal(20), SUPPLY)

    def test_claim_zeroes_accrued(self):
        amount, account = claim(RewardAccount(100, Decimal(3)), 110, RPB, Decimal(20), SUPPLY)
        assert amount == Decimal(10**13) + 3
        assert account == RewardAccount(110, Decimal(0))

    def test_second_claim_in_same_block_is_zero(self):
        _, account = claim(RewardAccount(100), 110, RPB, Decimal(20), SUPPLY)
        amount, _ = claim(account, 110, RPB, Decimal(20), SUPPLY)
        assert amount == Decimal(0)

    def test_balance_change_sequence(self):
        """20 shares for 10 blocks, then 10 shares for 5 blocks."""
        account = checkpoint(RewardAccount(100), 110, RPB, Decimal(20), SUPPLY)
        amount, _ = claim(account, 115, RPB, Decimal(10), SUPPLY)
        assert amount == RPB * 10 * 20 / SUPPLY + RPB * 5 * 10 / SUPPLY


class TestCheckpointAccounts:

    def test_only_named_wallets_change(self):
        accounts = {"alice": RewardAccount(100), "bob": RewardAccount(100)}
        updated = checkpoint_accounts(
            accounts, {"alice": Decimal(20)}, ["alice", "carol"], 110, RPB, SUPPLY,
        )
        assert updated["alice"] == RewardAccount(110, Decimal(10**13))
        assert updated["bob"] is accounts["bob"]
        assert updated["carol"] == RewardAccount(110)
        assert "carol" not in accounts

    @given(
        st.lists(st.integers(min_value=0, max_value=50), min_size=1, max_size=10),
        st.integers(min_value=1, max_value=10000),
    )
    @settings(max_examples=100)
    def test_frequent_checkpoints_never_pay_more(self, gaps, balance):
        """Checkpointing more often can only lose truncation dust, never gain."""
        account = RewardAccount(0)
        block = 0
        for gap in gaps:
            block += gap
            account = checkpoint(account, block, RPB, Decimal(balance), SUPPLY)
        lump = pending_reward(RewardAccount(0), block, RPB, Decimal(balance), SUPPLY)
        assert account.accrued_reward <= lump
        assert lump - account.accrued_reward < len(gaps)
