"""
rewards.py - Block-weighted reward accrual

Every holder accrues reward in proportion to its share of the fixed total
supply, for every block it held the shares:

    pending = accrued + floor((block - checkpoint_block) * reward_per_block * balance / total_supply)

Accounts are checkpointed (pending folded into accrued, checkpoint moved to
the current block) immediately before any change to their balance, so each
block range is always weighted by the balance actually held over it.

All functions are pure: they take a RewardAccount and return a new one.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional, Tuple

from .core import to_decimal
from .fixed_point import ZERO, calculate_reward_delta


@dataclass(frozen=True, slots=True)
class RewardAccount:
    """
    Reward bookkeeping for one holder.

    The share balance itself lives in the ledger; only the checkpoint block
    and the reward accrued up to it are kept here.
    """
    checkpoint_block: int
    accrued_reward: Decimal = ZERO

    def __post_init__(self):
        if not isinstance(self.accrued_reward, Decimal):
            object.__setattr__(self, 'accrued_reward', to_decimal(self.accrued_reward))


def pending_reward(
    account: RewardAccount,
    current_block: int,
    reward_per_block: Decimal,
    balance: Decimal,
    total_supply: Decimal,
) -> Decimal:
    """Reward claimable at current_block; does not change the account."""
    delta = calculate_reward_delta(
        current_block - account.checkpoint_block, reward_per_block, balance, total_supply
    )
    return account.accrued_reward + delta


def checkpoint(
    account: Optional[RewardAccount],
    current_block: int,
    reward_per_block: Decimal,
    balance: Decimal,
    total_supply: Decimal,
) -> RewardAccount:
    """
    Fold pending reward into accrued and move the checkpoint to current_block.

    A missing account (first purchase or first incoming transfer) starts at
    current_block with nothing accrued.
    """
    if account is None:
        return RewardAccount(checkpoint_block=current_block)
    return RewardAccount(
        checkpoint_block=current_block,
        accrued_reward=pending_reward(account, current_block, reward_per_block, balance, total_supply),
    )


def claim(
    account: RewardAccount,
    current_block: int,
    reward_per_block: Decimal,
    balance: Decimal,
    total_supply: Decimal,
) -> Tuple[Decimal, RewardAccount]:
    """
    Return (amount, account) where account has nothing accrued.

    Claiming twice in the same block yields zero the second time.
    """
    amount = pending_reward(account, current_block, reward_per_block, balance, total_supply)
    return amount, RewardAccount(checkpoint_block=current_block, accrued_reward=ZERO)


def checkpoint_accounts(
    accounts: Mapping[str, RewardAccount],
    balances: Mapping[str, Decimal],
    wallets: Iterable[str],
    current_block: int,
    reward_per_block: Decimal,
    total_supply: Decimal,
) -> Dict[str, RewardAccount]:
    """
    Checkpoint each of wallets, using its balance from balances.

    Returns a new accounts mapping; accounts not named in wallets are copied
    unchanged.
    """
    updated = dict(accounts)
    for wallet in wallets:
        updated[wallet] = checkpoint(
            accounts.get(wallet),
            current_block,
            reward_per_block,
            balances.get(wallet, ZERO),
            total_supply,
        )
    return updated
