"""
Platform commission math. Amounts are TRY; Stripe wants integer kuruş.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Optional, Union

from magaza.config import settings

Number = Union[int, float, str, Decimal]

_CENT = Decimal("0.01")


class FeeSplit(NamedTuple):
    amount: Decimal
    platform_fee: Decimal
    developer_earnings: Decimal


def to_decimal(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def to_kurus(amount: Number) -> int:
    """1 TRY = 100 kuruş, rounded half up"""
    return int((to_decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def money(amount: Number) -> float:
    return float(to_decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP))


def money_str(amount: Number) -> str:
    return str(to_decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP))


def split_fee(amount: Number, percentage: Optional[Number] = None) -> FeeSplit:
    if percentage is None:
        percentage = settings.platform_fee_percentage
    total = to_decimal(amount)
    fee = total * to_decimal(percentage) / 100
    return FeeSplit(total, fee, total - fee)
