"""
fixed_point.py - WAD fixed-point arithmetic and conversion formulas

All amounts are integer-valued Decimals in base units. Prices, rates and
ratios are WAD-scaled (1.0 == 10**18).

Rounding policy:
    - Conversions between shares and currency truncate toward zero, for
      purchase and refund alike.
    - Reward accrual truncates toward zero on every checkpoint.
    - Required reserves round up.

Consequence: for a single lot, the sum of partial refunds never exceeds the
price paid, so rounding residue stays with the ledger or the controller.

Functions:
    mul_div_down, mul_div_up  - floor(a*b/c), ceil(a*b/c)
    to_base_units             - whole amount -> base units
    calculate_currency_due    - shares -> currency owed
    calculate_shares_for_value - currency -> shares purchasable
    calculate_reward_delta    - block-weighted reward for one holder
    calculate_required_reserve - liquid reserve for an outstanding balance
    calculate_reserve_value   - currency amount in reference units
"""

from decimal import Decimal

from .core import WAD, InvalidAmount, to_decimal


ZERO = Decimal("0")


def mul_div_down(a: Decimal, b: Decimal, c: Decimal) -> Decimal:
    """
    floor(a * b / c) for non-negative operands.

    Raises:
        InvalidAmount: If c is not positive or a, b are negative.
    """
    a, b, c = to_decimal(a), to_decimal(b), to_decimal(c)
    if c <= ZERO:
        raise InvalidAmount(f"divisor must be positive, got {c}")
    if a < ZERO or b < ZERO:
        raise InvalidAmount(f"operands must be non-negative, got {a}, {b}")
    return (a * b) // c


def mul_div_up(a: Decimal, b: Decimal, c: Decimal) -> Decimal:
    """ceil(a * b / c) for non-negative operands."""
    a, b, c = to_decimal(a), to_decimal(b), to_decimal(c)
    if c <= ZERO:
        raise InvalidAmount(f"divisor must be positive, got {c}")
    if a < ZERO or b < ZERO:
        raise InvalidAmount(f"operands must be non-negative, got {a}, {b}")
    product = a * b
    quotient = product // c
    if quotient * c < product:
        quotient += 1
    return quotient


def to_base_units(amount, decimals: int) -> Decimal:
    """
    Scale a whole amount to base units, truncating anything below one base unit.

    Example:
        to_base_units("0.1", 18) == Decimal("100000000000000000")
    """
    return (to_decimal(amount) * (Decimal(10) ** decimals)) // 1


def calculate_currency_due(
    share_amount: Decimal,
    price: Decimal,
    rate: Decimal,
    share_decimals: int,
    currency_decimals: int,
) -> Decimal:
    """
    Currency (base units) owed for share_amount (base units).

        due = floor(shares * price * 10**currency_decimals / (10**share_decimals * rate))

    Args:
        share_amount: Shares in base units
        price: WAD-scaled reference units per whole share
        rate: WAD-scaled reference units per whole currency unit
        share_decimals: Decimals of the share unit
        currency_decimals: Decimals of the payment currency

    Example (5.0 per share, currency at 1000.0, 20 whole shares of 18 decimals):
        calculate_currency_due(20e18, 5e18, 1000e18, 18, 18) == 0.1e18
    """
    share_amount, price, rate = to_decimal(share_amount), to_decimal(price), to_decimal(rate)
    if rate <= ZERO:
        raise InvalidAmount(f"rate must be positive, got {rate}")
    return mul_div_down(
        share_amount * price,
        Decimal(10) ** currency_decimals,
        (Decimal(10) ** share_decimals) * rate,
    )


def calculate_shares_for_value(
    value: Decimal,
    price: Decimal,
    rate: Decimal,
    share_decimals: int,
    currency_decimals: int,
) -> Decimal:
    """
    Shares (base units) purchasable with value (currency base units), truncated.

        shares = floor(value * rate * 10**share_decimals / (10**currency_decimals * price))
    """
    value, price, rate = to_decimal(value), to_decimal(price), to_decimal(rate)
    if price <= ZERO:
        raise InvalidAmount(f"price must be positive, got {price}")
    return mul_div_down(
        value * rate,
        Decimal(10) ** share_decimals,
        (Decimal(10) ** currency_decimals) * price,
    )


def calculate_reward_delta(
    blocks: int,
    reward_per_block: Decimal,
    balance: Decimal,
    total_supply: Decimal,
) -> Decimal:
    """
    Reward accrued by one holder over a block range.

        delta = floor(blocks * reward_per_block * balance / total_supply)

    reward_per_block is the currency (base units) distributed per block
    across the whole supply.
    """
    if blocks < 0:
        raise InvalidAmount(f"block range cannot be negative, got {blocks}")
    balance = to_decimal(balance)
    if blocks == 0 or balance <= ZERO:
        return ZERO
    return mul_div_down(Decimal(blocks) * to_decimal(reward_per_block), balance, total_supply)


def calculate_required_reserve(outstanding: Decimal, reserve_ratio: Decimal) -> Decimal:
    """Liquid reserve to keep for an outstanding amount: ceil(outstanding * ratio / WAD)."""
    return mul_div_up(outstanding, reserve_ratio, WAD)


def calculate_reserve_value(amount: Decimal, rate: Decimal, currency_decimals: int) -> Decimal:
    """Value of a currency amount in WAD-scaled reference units, truncated."""
    return mul_div_down(amount, rate, Decimal(10) ** currency_decimals)
