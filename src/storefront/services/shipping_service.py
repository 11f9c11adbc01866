from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional

from storefront.core.config import PricingConfig, config
from storefront.models.cart import Cart
from storefront.models.order import ShippingMethod
from storefront.utils.formatting_utils import FormattingUtils
from storefront.utils.money_utils import MoneyUtils


@dataclass
class ShippingQuote:
    """What shipping a cart costs under one method or policy"""
    name: str
    cost_cents: int
    method_id: Optional[int] = None
    base_fee_cents: int = 0
    weight_fee_cents: int = 0
    distance_fee_cents: int = 0
    estimated_days: Optional[int] = None

    @property
    def is_free(self) -> bool:
        return self.cost_cents == 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["cost"] = FormattingUtils.format_money(self.cost_cents)
        data["is_free"] = self.is_free
        return data


@dataclass
class FreeShippingEligibility:
    qualifies: bool
    threshold_cents: int
    cart_total_cents: int
    amount_needed_cents: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "qualifies": self.qualifies,
            "threshold_cents": self.threshold_cents,
            "cart_total_cents": self.cart_total_cents,
            "amount_needed_cents": self.amount_needed_cents,
            "threshold": FormattingUtils.format_money(self.threshold_cents),
            "amount_needed": FormattingUtils.format_money(self.amount_needed_cents),
        }


class ShippingCalculator:
    """
    Per-method shipping quotes.

    cost = base fee
         + total weight (kg) * per-kg fee
         + base fee * 10% per 100 km * distance multiplier

    Variants without a recorded weight count as 0.5 kg per unit.
    """

    DEFAULT_WEIGHT_KG = 0.5

    def total_weight(self, cart: Cart) -> float:
        return sum(
            (item.product_variant.weight_kg or self.DEFAULT_WEIGHT_KG) * item.quantity
            for item in cart.items
        )

    def weight_fee(self, cart: Cart, method: ShippingMethod) -> int:
        weight = self.total_weight(cart)
        if weight <= 0:
            return 0
        return MoneyUtils.round_cents(weight * method.per_kg_fee_cents)

    def distance_fee(self, method: ShippingMethod, distance_km: Optional[float]) -> int:
        if not distance_km:
            return 0
        per_100km = method.base_fee_cents * 0.1
        return MoneyUtils.round_cents(per_100km * (distance_km / 100.0) * method.distance_multiplier)

    def calculate(self, cart: Cart, method: ShippingMethod, distance_km: Optional[float] = None) -> ShippingQuote:
        if cart.is_empty:
            return ShippingQuote(method.name, 0, method.id, estimated_days=method.estimated_days)

        base_fee = method.base_fee_cents
        weight_fee = self.weight_fee(cart, method)
        distance_fee = self.distance_fee(method, distance_km)
        return ShippingQuote(
            name=method.name,
            cost_cents=base_fee + weight_fee + distance_fee,
            method_id=method.id,
            base_fee_cents=base_fee,
            weight_fee_cents=weight_fee,
            distance_fee_cents=distance_fee,
            estimated_days=method.estimated_days,
        )

    def shipping_options(
        self, cart: Cart, methods: Iterable[ShippingMethod], distance_km: Optional[float] = None
    ) -> List[ShippingQuote]:
        """One quote per method, cheapest first"""
        quotes = [self.calculate(cart, method, distance_km) for method in methods]
        return sorted(quotes, key=lambda q: q.cost_cents)

    @staticmethod
    def free_shipping_eligibility(
        cart_total_cents: int, threshold_cents: int, strict: bool = False
    ) -> FreeShippingEligibility:
        """
        strict=True means the total must exceed the threshold, so a cart
        sitting exactly on it still needs one more cent.
        """
        minimum = threshold_cents + 1 if strict else threshold_cents
        qualifies = cart_total_cents >= minimum
        return FreeShippingEligibility(
            qualifies=qualifies,
            threshold_cents=threshold_cents,
            cart_total_cents=cart_total_cents,
            amount_needed_cents=0 if qualifies else minimum - cart_total_cents,
        )


class ShippingPolicy(ABC):
    """Decides what a cart pays for shipping at checkout"""

    @abstractmethod
    def quote(self, cart: Cart, subtotal_cents: int) -> ShippingQuote:
        pass

    def free_shipping_eligibility(self, subtotal_cents: int) -> Optional[FreeShippingEligibility]:
        return None


class FlatRateShippingPolicy(ShippingPolicy):
    """
    $9.99 flat, free once the subtotal is strictly above $50.00.
    An empty cart ships nothing and pays nothing.
    """

    def __init__(self, flat_cents: int = 999, free_threshold_cents: int = 5000):
        self.flat_cents = flat_cents
        self.free_threshold_cents = free_threshold_cents

    @classmethod
    def from_config(cls, pricing: Optional[PricingConfig] = None) -> "FlatRateShippingPolicy":
        pricing = pricing or config.pricing
        return cls(pricing.flat_shipping_cents, pricing.free_shipping_threshold_cents)

    def cost_cents(self, subtotal_cents: int, empty: bool = False) -> int:
        if empty or subtotal_cents > self.free_threshold_cents:
            return 0
        return self.flat_cents

    def quote(self, cart, subtotal_cents):
        return ShippingQuote("Flat Rate", self.cost_cents(subtotal_cents, cart.is_empty))

    def free_shipping_eligibility(self, subtotal_cents):
        return ShippingCalculator.free_shipping_eligibility(
            subtotal_cents, self.free_threshold_cents, strict=True
        )


class MethodShippingPolicy(ShippingPolicy):
    """Quote through a ShippingMethod's fee model"""

    def __init__(
        self,
        method: ShippingMethod,
        calculator: Optional[ShippingCalculator] = None,
        distance_km: Optional[float] = None,
    ):
        self.method = method
        self.calculator = calculator or ShippingCalculator()
        self.distance_km = distance_km

    def quote(self, cart, subtotal_cents):
        return self.calculator.calculate(cart, self.method, self.distance_km)
