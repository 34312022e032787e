"""
contracts.py - Deployed-contract facades over the pure operations

AssetToken and ReserveController bind a Ledger, a rate oracle and a role
table. Each method builds the PendingTransaction with the matching compute_*
function and commits it immediately, so a call either completes fully or
raises with no state change.

Example:
    ledger = Ledger("chain", verbose=False)
    ledger.register_unit(create_native_currency_unit("ETH", "Ether"))
    oracle = StaticRateOracle({"ETH": 1000 * WAD})
    roles = RoleTable.with_admin("admin")

    controller = ReserveController.deploy(
        ledger, "RC", "ETH", "controller", "treasury", WAD // 2, roles, oracle)
    token = AssetToken.deploy(
        ledger, oracle, "EA", "ExampleAsset", 10000 * WAD, 5 * WAD, 237 * 10**6,
        "ETH", roles, controller=controller, share_decimals=18)
    token.purchase("alice", 20 * WAD)
"""

from __future__ import annotations
from decimal import Decimal
from typing import Optional

from .core import (
    ExecuteResult, PendingTransaction, TransactionRejected,
    DEFAULT_SHARE_DECIMALS, UNIT_TYPE_NATIVE,
    to_decimal,
)
from .fixed_point import ZERO
from .ledger import Ledger
from .oracle import RateOracle, read_rate
from .roles import ADMIN, RoleTable
from .units import asset_share, reserve_controller
from .units.currency import currency_decimals


def commit(ledger: Ledger, pending: PendingTransaction) -> ExecuteResult:
    """
    Execute pending on ledger.

    Raises:
        TransactionRejected: If the ledger rejects the transaction
    """
    result = ledger.execute(pending)
    if result == ExecuteResult.REJECTED:
        raise TransactionRejected(ledger.last_rejection)
    return result


def _sole_admin(roles: RoleTable) -> str:
    admins = roles.holders(ADMIN)
    if len(admins) != 1:
        raise ValueError("deployer must be given when the role table has no single admin")
    return next(iter(admins))


class ReserveController:
    """A reserve controller deployed on a ledger."""

    def __init__(self, ledger: Ledger, symbol: str, roles: RoleTable, oracle: Optional[RateOracle] = None):
        self.ledger = ledger
        self.symbol = symbol
        self.roles = roles
        self.oracle = oracle

    @classmethod
    def deploy(
        cls,
        ledger: Ledger,
        symbol: str,
        currency: str,
        controller_wallet: str,
        treasury_wallet: str,
        reserve_ratio: Decimal,
        roles: RoleTable,
        oracle: Optional[RateOracle] = None,
    ) -> ReserveController:
        """Register the controller unit and its wallets."""
        if ledger.get_unit(currency).unit_type != UNIT_TYPE_NATIVE:
            raise ValueError(f"reserve currency {currency} must be the native currency")
        ledger.ensure_wallet(controller_wallet)
        ledger.ensure_wallet(treasury_wallet)
        ledger.register_unit(reserve_controller.create_reserve_controller_unit(
            symbol, controller_wallet, treasury_wallet, currency, reserve_ratio,
        ))
        return cls(ledger, symbol, roles, oracle)

    @property
    def terms(self) -> reserve_controller.ControllerTerms:
        return reserve_controller.load_controller(self.ledger, self.symbol)[0]

    @property
    def reserve_ratio(self) -> Decimal:
        return reserve_controller.load_controller(self.ledger, self.symbol)[1].reserve_ratio

    def register(self, ledger_id: str, ledger_wallet: str, caller: str) -> None:
        commit(self.ledger, reserve_controller.compute_register_ledger(
            self.ledger, self.symbol, ledger_id, ledger_wallet, caller, self.roles))

    def deposit(self, ledger_id: str, amount: Decimal, source: str) -> None:
        commit(self.ledger, reserve_controller.compute_deposit(
            self.ledger, self.symbol, ledger_id, amount, source))

    def request_withdrawal(self, ledger_id: str, amount: Decimal, caller: str) -> None:
        commit(self.ledger, reserve_controller.compute_withdrawal(
            self.ledger, self.symbol, ledger_id, amount, caller))

    def sweep_excess(self, ledger_id: str, caller: str) -> None:
        commit(self.ledger, reserve_controller.compute_sweep_excess(
            self.ledger, self.symbol, ledger_id, caller, self.roles))

    def top_up(self, ledger_id: str, amount: Decimal, source: str, caller: str) -> None:
        commit(self.ledger, reserve_controller.compute_top_up(
            self.ledger, self.symbol, ledger_id, amount, source, caller, self.roles))

    def set_reserve_ratio(self, reserve_ratio: Decimal, caller: str) -> None:
        commit(self.ledger, reserve_controller.compute_set_reserve_ratio(
            self.ledger, self.symbol, reserve_ratio, caller, self.roles))

    def reserve_of(self, ledger_id: str) -> Decimal:
        return reserve_controller.get_reserve(self.ledger, self.symbol, ledger_id)

    def excess_reserve_of(self, ledger_id: str) -> Decimal:
        return reserve_controller.get_excess_reserve(self.ledger, self.symbol, ledger_id)

    def reserve_value_of(self, ledger_id: str) -> Decimal:
        if self.oracle is None:
            raise ValueError(f"{self.symbol} was deployed without a rate oracle")
        return reserve_controller.get_reserve_value(self.ledger, self.oracle, self.symbol, ledger_id)

    def get_rate(self) -> Decimal:
        if self.oracle is None:
            raise ValueError(f"{self.symbol} was deployed without a rate oracle")
        return read_rate(self.oracle, self.terms.currency)

    def verify_partition(self) -> bool:
        return reserve_controller.verify_reserve_partition(self.ledger, self.symbol)

    def __repr__(self):
        return f"ReserveController({self.symbol})"


class AssetToken:
    """A share ledger deployed on a ledger."""

    def __init__(
        self,
        ledger: Ledger,
        oracle: RateOracle,
        symbol: str,
        roles: RoleTable,
        controller: Optional[ReserveController] = None,
    ):
        self.ledger = ledger
        self.oracle = oracle
        self.symbol = symbol
        self.roles = roles
        self.controller = controller

    @classmethod
    def deploy(
        cls,
        ledger: Ledger,
        oracle: RateOracle,
        symbol: str,
        name: str,
        total_supply: Decimal,
        price: Decimal,
        reward_per_block: Decimal,
        payment_currency: str,
        roles: RoleTable,
        controller: Optional[ReserveController] = None,
        contract_wallet: Optional[str] = None,
        share_decimals: int = DEFAULT_SHARE_DECIMALS,
        interest_rate: Decimal = ZERO,
        latitude: Decimal = ZERO,
        longitude: Decimal = ZERO,
        deployer: Optional[str] = None,
    ) -> AssetToken:
        """
        Register the share unit, issue its supply to the contract wallet and,
        for a native-currency token, open its entry in the reserve controller.

        Raises:
            ValueError: If a native-currency token has no controller
        """
        native = ledger.get_unit(payment_currency).unit_type == UNIT_TYPE_NATIVE
        if native and controller is None:
            raise ValueError(f"{symbol} settles in native {payment_currency} and needs a reserve controller")
        contract_wallet = contract_wallet or f"{symbol}:contract"
        ledger.ensure_wallet(contract_wallet)
        ledger.register_unit(asset_share.create_asset_share_unit(
            symbol=symbol,
            name=name,
            total_supply=to_decimal(total_supply),
            price=to_decimal(price),
            reward_per_block=to_decimal(reward_per_block),
            payment_currency=payment_currency,
            contract_wallet=contract_wallet,
            currency_decimals=currency_decimals(ledger, payment_currency),
            share_decimals=share_decimals,
            native=native,
            controller=controller.symbol if native else None,
            interest_rate=to_decimal(interest_rate),
            latitude=to_decimal(latitude),
            longitude=to_decimal(longitude),
        ))
        commit(ledger, asset_share.compute_issue_supply(ledger, symbol))
        if native:
            controller.register(symbol, contract_wallet, deployer or _sole_admin(controller.roles))
        return cls(ledger, oracle, symbol, roles, controller if native else None)

    @property
    def terms(self) -> asset_share.AssetShareTerms:
        return asset_share.load_asset_share(self.ledger, self.symbol)[0]

    @property
    def contract_wallet(self) -> str:
        return self.terms.contract_wallet

    # Holder operations

    def purchase(self, buyer: str, share_amount: Decimal) -> None:
        commit(self.ledger, asset_share.compute_purchase(
            self.ledger, self.oracle, self.symbol, buyer, share_amount))

    def purchase_with_value(self, buyer: str, value: Decimal) -> None:
        commit(self.ledger, asset_share.compute_purchase_with_value(
            self.ledger, self.oracle, self.symbol, buyer, value))

    def refund(self, account: str, share_amount: Decimal) -> None:
        commit(self.ledger, asset_share.compute_refund(
            self.ledger, self.oracle, self.symbol, account, share_amount))

    def claim_reward(self, account: str) -> None:
        commit(self.ledger, asset_share.compute_claim_reward(self.ledger, self.symbol, account))

    def transfer(self, sender: str, recipient: str, amount: Decimal) -> None:
        commit(self.ledger, asset_share.compute_transfer(
            self.ledger, self.symbol, sender, recipient, amount))

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: Decimal) -> None:
        commit(self.ledger, asset_share.compute_transfer_from(
            self.ledger, self.symbol, spender, owner, recipient, amount))

    def approve(self, owner: str, spender: str, amount: Decimal) -> None:
        commit(self.ledger, asset_share.compute_approve(
            self.ledger, self.symbol, owner, spender, amount))

    # Administration

    def pause(self, caller: str) -> None:
        commit(self.ledger, asset_share.compute_pause(self.ledger, self.symbol, caller, self.roles))

    def unpause(self, caller: str) -> None:
        commit(self.ledger, asset_share.compute_unpause(self.ledger, self.symbol, caller, self.roles))

    def set_price(self, price: Decimal, caller: str) -> None:
        commit(self.ledger, asset_share.compute_set_price(
            self.ledger, self.symbol, price, caller, self.roles))

    def set_reward_per_block(self, reward_per_block: Decimal, caller: str) -> None:
        commit(self.ledger, asset_share.compute_set_reward_per_block(
            self.ledger, self.symbol, reward_per_block, caller, self.roles))

    def withdraw_to_admin(self, caller: str) -> None:
        commit(self.ledger, asset_share.compute_withdraw_to_admin(
            self.ledger, self.symbol, caller, self.roles))

    # Views

    def balance_of(self, account: str) -> Decimal:
        return self.ledger.get_balance(account, self.symbol)

    @property
    def price(self) -> Decimal:
        return asset_share.get_price(self.ledger, self.symbol)

    @property
    def reward_per_block(self) -> Decimal:
        return asset_share.get_reward_per_block(self.ledger, self.symbol)

    @property
    def paused(self) -> bool:
        return asset_share.is_paused(self.ledger, self.symbol)

    @property
    def treasury_balance(self) -> Decimal:
        return asset_share.get_treasury_balance(self.ledger, self.symbol)

    @property
    def total_supply(self) -> Decimal:
        return self.terms.total_supply

    def reward_of(self, account: str) -> Decimal:
        return asset_share.get_reward(self.ledger, self.symbol, account)

    def to_currency_amount(self, share_amount: Decimal) -> Decimal:
        return asset_share.to_currency_amount(self.ledger, self.oracle, self.symbol, share_amount)

    def verify_supply(self) -> bool:
        return asset_share.verify_share_supply(self.ledger, self.symbol)

    def __repr__(self):
        return f"AssetToken({self.symbol})"
