"""
shareledger - Fractional ownership ledger for tokenized real-world assets

Share ledgers sell a fixed supply of asset shares for a payment currency at
an admin-set price, buy them back at the same conversion, and pay every
holder a block-weighted reward. Native-currency ledgers keep their proceeds
in a partitioned reserve controller.

Usage:
    from shareledger import (
        Ledger, StaticRateOracle, RoleTable, AssetToken, WAD,
        create_payment_token_unit, compute_mint, compute_currency_approve,
    )

    ledger = Ledger("main", verbose=False)
    ledger.register_unit(create_payment_token_unit("EL", "Elysia"))
    ledger.register_wallet("alice")
    ledger.execute(compute_mint(ledger, "EL", "alice", 10**22))

    oracle = StaticRateOracle({"EL": 3 * 10**16})
    token = AssetToken.deploy(
        ledger, oracle, "EA", "ExampleAsset", 10000, 5 * WAD, 5 * 10**14,
        "EL", RoleTable.with_admin("admin"))

    ledger.execute(compute_currency_approve(ledger, "EL", "alice", token.contract_wallet, 10**22))
    token.purchase("alice", 20)
    ledger.advance_blocks(10)
    token.claim_reward("alice")
"""

# Core types
from .core import (
    LedgerView,
    Move,
    LogEvent,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    build_transaction,
    empty_pending_transaction,
    log_event,
    Unit,
    UnitStateChange,
    ExecuteResult,
    LedgerError,
    InsufficientFunds,
    BalanceConstraintViolation,
    TransferRuleViolation,
    UnitNotRegistered,
    WalletNotRegistered,
    InvalidAmount,
    InsufficientBalance,
    InsufficientAllowance,
    InsufficientSellerBalance,
    InsufficientReserve,
    InsufficientContractBalance,
    Paused,
    NotPaused,
    Unauthorized,
    AccountNotFound,
    LedgerNotRegistered,
    OracleError,
    ReentrancyViolation,
    TransactionRejected,
    SYSTEM_WALLET,
    WAD,
    UNIT_TYPE_PAYMENT_TOKEN,
    UNIT_TYPE_NATIVE,
    UNIT_TYPE_ASSET_SHARE,
    UNIT_TYPE_RESERVE_CONTROLLER,
)

# Ledger
from .ledger import Ledger

# Fixed-point conversions
from .fixed_point import (
    mul_div_down,
    mul_div_up,
    to_base_units,
    calculate_currency_due,
    calculate_shares_for_value,
    calculate_reward_delta,
    calculate_required_reserve,
    calculate_reserve_value,
)

# Roles and oracle
from .roles import ADMIN, PAUSER, ORACLE_UPDATER, RoleTable, require_role
from .oracle import RateOracle, StaticRateOracle, read_rate

# Rewards
from .rewards import RewardAccount, checkpoint, pending_reward, claim, checkpoint_accounts

# Units
from .units import (
    create_payment_token_unit,
    create_native_currency_unit,
    compute_mint,
    get_allowance,
    compute_currency_approve,
    create_asset_share_unit,
    compute_issue_supply,
    compute_purchase,
    compute_purchase_with_value,
    compute_refund,
    compute_claim_reward,
    compute_transfer,
    compute_transfer_from,
    compute_share_approve,
    compute_pause,
    compute_unpause,
    compute_set_price,
    compute_set_reward_per_block,
    compute_withdraw_to_admin,
    get_reward,
    verify_share_supply,
    create_reserve_controller_unit,
    compute_register_ledger,
    compute_deposit,
    compute_withdrawal,
    compute_sweep_excess,
    compute_top_up,
    compute_set_reserve_ratio,
    get_reserve,
    get_excess_reserve,
    verify_reserve_partition,
)

# Contract facades
from .contracts import AssetToken, ReserveController, commit

__version__ = "0.1.0"

__all__ = [
    # Core
    "LedgerView", "Move", "LogEvent", "Transaction", "PendingTransaction",
    "TransactionOrigin", "OriginType", "build_transaction", "empty_pending_transaction",
    "log_event", "Unit", "UnitStateChange", "ExecuteResult",
    # Errors
    "LedgerError", "InsufficientFunds", "BalanceConstraintViolation",
    "TransferRuleViolation", "UnitNotRegistered", "WalletNotRegistered",
    "InvalidAmount", "InsufficientBalance", "InsufficientAllowance",
    "InsufficientSellerBalance", "InsufficientReserve", "InsufficientContractBalance",
    "Paused", "NotPaused", "Unauthorized", "AccountNotFound", "LedgerNotRegistered",
    "OracleError", "ReentrancyViolation", "TransactionRejected",
    # Constants
    "SYSTEM_WALLET", "WAD", "UNIT_TYPE_PAYMENT_TOKEN", "UNIT_TYPE_NATIVE",
    "UNIT_TYPE_ASSET_SHARE", "UNIT_TYPE_RESERVE_CONTROLLER",
    # Ledger
    "Ledger",
    # Fixed point
    "mul_div_down", "mul_div_up", "to_base_units", "calculate_currency_due",
    "calculate_shares_for_value", "calculate_reward_delta",
    "calculate_required_reserve", "calculate_reserve_value",
    # Roles and oracle
    "ADMIN", "PAUSER", "ORACLE_UPDATER", "RoleTable", "require_role",
    "RateOracle", "StaticRateOracle", "read_rate",
    # Rewards
    "RewardAccount", "checkpoint", "pending_reward", "claim", "checkpoint_accounts",
    # Units
    "create_payment_token_unit", "create_native_currency_unit", "compute_mint",
    "get_allowance", "compute_currency_approve",
    "create_asset_share_unit", "compute_issue_supply", "compute_purchase",
    "compute_purchase_with_value", "compute_refund", "compute_claim_reward",
    "compute_transfer", "compute_transfer_from", "compute_share_approve",
    "compute_pause", "compute_unpause", "compute_set_price",
    "compute_set_reward_per_block", "compute_withdraw_to_admin",
    "get_reward", "verify_share_supply",
    "create_reserve_controller_unit", "compute_register_ledger", "compute_deposit",
    "compute_withdrawal", "compute_sweep_excess", "compute_top_up",
    "compute_set_reserve_ratio", "get_reserve", "get_excess_reserve",
    "verify_reserve_partition",
    # Contracts
    "AssetToken", "ReserveController", "commit",
]
