from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[int, float, Decimal, str]


class MoneyUtils:
    """Integer-cent arithmetic. All rounding is half-up to the nearest cent."""

    @staticmethod
    def round_cents(value: Number) -> int:
        return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @classmethod
    def percentage_of(cls, amount_cents: int, percent: Number) -> int:
        """percentage_of(12345, 10) -> 1235"""
        return cls.round_cents(Decimal(amount_cents) * Decimal(str(percent)) / 100)

    @classmethod
    def apply_rate(cls, amount_cents: int, rate: Number) -> int:
        """apply_rate(109900, Decimal("0.08")) -> 8792"""
        return cls.round_cents(Decimal(amount_cents) * Decimal(str(rate)))

    @staticmethod
    def to_dollars(amount_cents: int) -> float:
        return amount_cents / 100.0

    @classmethod
    def to_cents(cls, dollars: Number) -> int:
        return cls.round_cents(Decimal(str(dollars)) * 100)
