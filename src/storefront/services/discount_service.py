from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import logging

from storefront.core.config import PricingConfig, config
from storefront.models.cart import Cart
from storefront.utils.formatting_utils import FormattingUtils
from storefront.utils.money_utils import MoneyUtils

logger = logging.getLogger(__name__)

DEFAULT_TIERS: Tuple[Tuple[int, int], ...] = ((10000, 5), (20000, 10), (50000, 15))


@dataclass
class Discount:
    """A single reduction applied to a cart subtotal"""
    label: str
    amount_cents: int
    source: str  # code, quantity, buy_x_get_y, bulk, tiered
    code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "source": self.source,
            "code": self.code,
            "amount_cents": self.amount_cents,
            "amount": FormattingUtils.format_money(self.amount_cents),
        }


class DiscountCalculator:
    """
    Pure discount arithmetic on integer cents.

    Every result is rounded half-up and capped at the amount it discounts,
    so a discount never drives a price below zero.
    """

    @staticmethod
    def percentage(amount_cents: int, percent) -> int:
        if amount_cents <= 0 or Decimal(str(percent)) <= 0:
            return 0
        return min(MoneyUtils.percentage_of(amount_cents, percent), amount_cents)

    @staticmethod
    def fixed(amount_cents: int, discount_cents: int) -> int:
        if amount_cents <= 0 or discount_cents <= 0:
            return 0
        return min(discount_cents, amount_cents)

    @classmethod
    def quantity(cls, quantity: int, unit_price_cents: int, min_quantity: int, percent) -> int:
        """percent off the whole line once quantity reaches min_quantity"""
        if quantity < min_quantity:
            return 0
        return cls.percentage(quantity * unit_price_cents, percent)

    @staticmethod
    def buy_x_get_y_free(quantity: int, unit_price_cents: int, buy_quantity: int, free_quantity: int) -> int:
        """
        Buy 3 get 1 free on 10 units -> 3 free units; the 10th unit earns nothing.
        """
        if buy_quantity <= 0 or quantity < buy_quantity:
            return 0
        free_items = (quantity // buy_quantity) * free_quantity
        return min(free_items, quantity) * unit_price_cents

    @classmethod
    def tiered(cls, amount_cents: int, tiers: Sequence[Tuple[int, int]]) -> int:
        """Highest percentage among the (min_amount_cents, percent) tiers reached"""
        reached = [percent for min_amount, percent in tiers if amount_cents >= min_amount]
        if not reached:
            return 0
        return cls.percentage(amount_cents, max(reached))

    @staticmethod
    def bulk(quantity: int, unit_price_cents: int, bulk_tiers: Sequence[Tuple[int, int]]) -> int:
        """Cheapest (min_quantity, unit_price_cents) tier reached, as savings over list price"""
        reached = [price for min_quantity, price in bulk_tiers if quantity >= min_quantity]
        if not reached:
            return 0
        best_price = min(reached)
        return max(0, (unit_price_cents - best_price) * quantity)

    @staticmethod
    def best(candidates: Iterable[int]) -> int:
        return max(candidates, default=0)


class DiscountPolicy(ABC):
    """
    Pluggable discount rules evaluated against a cart.

    evaluate returns every discount that applies; callers sum and cap them.
    accepts_code tells the cart service whether a customer-entered code is
    recognised before it is remembered on the cart.
    """

    @abstractmethod
    def evaluate(self, cart: Cart, subtotal_cents: int, codes: Sequence[str] = ()) -> List[Discount]:
        pass

    def accepts_code(self, code: str) -> bool:
        return False


class CodeDiscountPolicy(DiscountPolicy):
    """
    Customer-entered codes looked up in a fixed table, case-insensitively.

    The table maps CODE -> {"type": "percentage"|"fixed", "value": n}.
    """

    def __init__(self, codes: Mapping[str, Mapping[str, Any]]):
        self.codes = {code.upper(): rule for code, rule in codes.items()}

    @staticmethod
    def normalize(code: str) -> str:
        return (code or "").strip().upper()

    def accepts_code(self, code: str) -> bool:
        return self.normalize(code) in self.codes

    def evaluate(self, cart, subtotal_cents, codes=()):
        discounts = []
        seen = set()
        for raw in codes:
            code = self.normalize(raw)
            if code in seen or code not in self.codes:
                continue
            seen.add(code)

            rule = self.codes[code]
            if rule["type"] == "percentage":
                amount = DiscountCalculator.percentage(subtotal_cents, rule["value"])
                label = f"{code}: {rule['value']}% off"
            else:
                amount = DiscountCalculator.fixed(subtotal_cents, rule["value"])
                label = f"{code}: {FormattingUtils.format_money(rule['value'])} off"

            if amount > 0:
                discounts.append(Discount(label, amount, "code", code))
        return discounts


class QuantityDiscountPolicy(DiscountPolicy):
    """percent off any cart line holding min_quantity or more units"""

    def __init__(self, min_quantity: int = 5, percent: int = 10):
        self.min_quantity = min_quantity
        self.percent = percent

    def evaluate(self, cart, subtotal_cents, codes=()):
        discounts = []
        for item in cart.items:
            amount = DiscountCalculator.quantity(
                item.quantity, item.unit_price_cents, self.min_quantity, self.percent
            )
            if amount > 0:
                discounts.append(Discount(
                    f"{self.percent}% off {item.product_variant.sku} ({item.quantity} units)",
                    amount,
                    "quantity",
                ))
        return discounts


class BuyXGetYPolicy(DiscountPolicy):
    """Buy X get Y free on listed SKUs; promotions maps SKU -> (buy, free)"""

    def __init__(self, promotions: Mapping[str, Sequence[int]]):
        self.promotions = {sku.upper(): tuple(rule) for sku, rule in promotions.items()}

    def evaluate(self, cart, subtotal_cents, codes=()):
        discounts = []
        for item in cart.items:
            sku = item.product_variant.sku
            if sku not in self.promotions:
                continue
            buy, free = self.promotions[sku]
            amount = DiscountCalculator.buy_x_get_y_free(item.quantity, item.unit_price_cents, buy, free)
            if amount > 0:
                discounts.append(Discount(f"Buy {buy} get {free} free on {sku}", amount, "buy_x_get_y"))
        return discounts


class BulkPricingPolicy(DiscountPolicy):
    """
    Lower unit prices for larger quantities of listed SKUs.

    tiers maps SKU -> [(min_quantity, unit_price_cents), ...]; the discount
    is the saving over the list price at the cheapest tier reached.
    """

    def __init__(self, tiers: Mapping[str, Sequence[Tuple[int, int]]]):
        self.tiers = {sku.upper(): tuple(rule) for sku, rule in tiers.items()}

    def evaluate(self, cart, subtotal_cents, codes=()):
        discounts = []
        for item in cart.items:
            sku = item.product_variant.sku
            if sku not in self.tiers:
                continue
            amount = DiscountCalculator.bulk(item.quantity, item.unit_price_cents, self.tiers[sku])
            if amount > 0:
                discounts.append(Discount(f"Bulk price on {sku} ({item.quantity} units)", amount, "bulk"))
        return discounts


class TieredDiscountPolicy(DiscountPolicy):
    """Percent off the whole subtotal by spend tier, e.g. 5% over $100"""

    def __init__(self, tiers: Sequence[Tuple[int, int]] = DEFAULT_TIERS):
        self.tiers = tuple(tiers)

    def evaluate(self, cart, subtotal_cents, codes=()):
        reached = [tier for tier in self.tiers if subtotal_cents >= tier[0]]
        if not reached:
            return []
        min_amount, percent = max(reached, key=lambda tier: tier[1])
        amount = DiscountCalculator.percentage(subtotal_cents, percent)
        label = f"{percent}% off orders over {FormattingUtils.format_money(min_amount)}"
        return [Discount(label, amount, "tiered")]


class CompositeDiscountPolicy(DiscountPolicy):
    def __init__(self, policies: Iterable[DiscountPolicy]):
        self.policies = list(policies)

    def accepts_code(self, code):
        return any(p.accepts_code(code) for p in self.policies)

    def evaluate(self, cart, subtotal_cents, codes=()):
        discounts: List[Discount] = []
        for policy in self.policies:
            discounts.extend(policy.evaluate(cart, subtotal_cents, codes))
        return discounts


class BestOfDiscountPolicy(DiscountPolicy):
    """Only the child policy worth the most applies; the others are dropped"""

    def __init__(self, policies: Iterable[DiscountPolicy]):
        self.policies = list(policies)

    def accepts_code(self, code):
        return any(p.accepts_code(code) for p in self.policies)

    def evaluate(self, cart, subtotal_cents, codes=()):
        candidates = [policy.evaluate(cart, subtotal_cents, codes) for policy in self.policies]
        totals = [sum(d.amount_cents for d in discounts) for discounts in candidates]
        best = DiscountCalculator.best(totals)
        if best <= 0:
            return []
        return candidates[totals.index(best)]


def default_discount_policy(pricing: Optional[PricingConfig] = None) -> DiscountPolicy:
    """
    Code table from config, plus the automatic promotions when enabled.

    Line promotions (quantity, buy X get Y, bulk) do not stack with each
    other; the best of them applies alongside the spend tier.
    """
    pricing = pricing or config.pricing
    policies: List[DiscountPolicy] = [CodeDiscountPolicy(pricing.discount_codes)]
    if pricing.auto_promotions:
        policies.append(BestOfDiscountPolicy([
            QuantityDiscountPolicy(),
            BuyXGetYPolicy(pricing.buy_x_get_y),
            BulkPricingPolicy(pricing.bulk_pricing),
        ]))
        policies.append(TieredDiscountPolicy())
    return CompositeDiscountPolicy(policies)


def total_discount(discounts: Iterable[Discount], subtotal_cents: int) -> int:
    """Sum of discounts, never more than the subtotal"""
    return min(sum(d.amount_cents for d in discounts), max(subtotal_cents, 0))
