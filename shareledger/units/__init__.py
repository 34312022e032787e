"""
Units module - Factory functions and operations for the asset share system.

- Currency units: payment tokens with allowances, native currency
- Asset share ledgers: purchase, refund, reward claims, share transfers
- Reserve controllers: partitioned native-currency reserves

All unit factories and related functions are re-exported here for convenience.
"""

# Currency units
from .currency import (
    create_payment_token_unit,
    create_native_currency_unit,
    compute_mint,
    get_allowance,
    plan_spend_allowance,
    compute_approve as compute_currency_approve,
)

# Asset share ledgers
from .asset_share import (
    AssetShareTerms,
    AssetShareState,
    create_asset_share_unit,
    load_asset_share,
    compute_issue_supply,
    compute_purchase,
    compute_purchase_with_value,
    compute_refund,
    compute_claim_reward,
    compute_transfer,
    compute_transfer_from,
    compute_approve as compute_share_approve,
    compute_pause,
    compute_unpause,
    compute_set_price,
    compute_set_reward_per_block,
    compute_withdraw_to_admin,
    get_price,
    get_reward_per_block,
    get_treasury_balance,
    get_reward,
    to_currency_amount,
    is_paused,
    verify_share_supply,
)

# Reserve controllers
from .reserve_controller import (
    ControllerTerms,
    ControllerState,
    ReserveEntry,
    ReservePlan,
    create_reserve_controller_unit,
    load_controller,
    compute_register_ledger,
    plan_deposit,
    compute_deposit,
    plan_withdrawal,
    compute_withdrawal,
    compute_sweep_excess,
    compute_top_up,
    compute_set_reserve_ratio,
    get_reserve,
    get_excess_reserve,
    get_reserve_value,
    verify_reserve_partition,
)
