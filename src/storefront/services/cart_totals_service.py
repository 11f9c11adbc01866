from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
import logging

from storefront.core.config import config
from storefront.core.exceptions import NotFoundError
from storefront.models.cart import Cart
from storefront.repositories.order_repository import OrderRepository
from storefront.services.discount_service import Discount, DiscountPolicy, default_discount_policy, total_discount
from storefront.services.shipping_service import (
    FlatRateShippingPolicy,
    FreeShippingEligibility,
    MethodShippingPolicy,
    ShippingPolicy,
    ShippingQuote,
)
from storefront.utils.formatting_utils import FormattingUtils
from storefront.utils.money_utils import MoneyUtils

logger = logging.getLogger(__name__)


@dataclass
class CartTotals:
    """
    Checkout-ready money for a cart, all integer cents.

    total = subtotal - discount + tax + shipping, never below zero.
    """
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    shipping_cents: int
    total_cents: int
    item_count: int
    tax_rate: Decimal
    currency: str = "USD"
    discounts: List[Discount] = field(default_factory=list)
    shipping_quote: Optional[ShippingQuote] = None
    free_shipping: Optional[FreeShippingEligibility] = None

    def _money(self, cents: int) -> str:
        return FormattingUtils.format_money(cents, self.currency)

    @property
    def subtotal(self) -> str:
        return self._money(self.subtotal_cents)

    @property
    def discount(self) -> str:
        return self._money(self.discount_cents)

    @property
    def tax(self) -> str:
        return self._money(self.tax_cents)

    @property
    def shipping(self) -> str:
        return self._money(self.shipping_cents)

    @property
    def total(self) -> str:
        return self._money(self.total_cents)

    def breakdown(self) -> List[Dict[str, Any]]:
        """Display lines for every non-zero component"""
        lines = [
            ("Subtotal", self.subtotal_cents),
            ("Discount", -self.discount_cents),
            (f"Tax ({FormattingUtils.format_percentage(self.tax_rate)})", self.tax_cents),
            ("Shipping", self.shipping_cents),
        ]
        result = []
        for label, cents in lines:
            if cents == 0:
                continue
            formatted = self._money(abs(cents))
            result.append({
                "label": label,
                "amount_cents": cents,
                "amount": f"-{formatted}" if cents < 0 else formatted,
            })
        return result

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "item_count": self.item_count,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "shipping_cents": self.shipping_cents,
            "total_cents": self.total_cents,
            "subtotal": self.subtotal,
            "discount": self.discount,
            "tax": self.tax,
            "shipping": self.shipping,
            "total": self.total,
            "discounts": [d.to_dict() for d in self.discounts],
            "shipping_quote": self.shipping_quote.to_dict() if self.shipping_quote else None,
            "free_shipping": self.free_shipping.to_dict() if self.free_shipping else None,
            "breakdown": self.breakdown(),
        }


class CartTotalsService:
    """
    Combine subtotal, discount, tax and shipping for a cart.

    Tax is charged on the pre-discount subtotal at a flat rate, rounded
    half-up to the cent. Shipping is decided by the injected ShippingPolicy,
    also from the subtotal.
    """

    def __init__(
        self,
        discount_policy: Optional[DiscountPolicy] = None,
        shipping_policy: Optional[ShippingPolicy] = None,
        tax_rate: Optional[Decimal] = None,
        currency: Optional[str] = None,
    ):
        self.discount_policy = discount_policy or default_discount_policy()
        self.shipping_policy = shipping_policy or FlatRateShippingPolicy.from_config()
        self.tax_rate = config.pricing.tax_rate if tax_rate is None else Decimal(str(tax_rate))
        self.currency = currency or config.pricing.currency

    def tax_for(self, subtotal_cents: int) -> int:
        return MoneyUtils.apply_rate(subtotal_cents, self.tax_rate)

    def calculate(self, cart: Cart, codes: Sequence[str] = ()) -> CartTotals:
        subtotal = cart.total_price_cents
        discounts = self.discount_policy.evaluate(cart, subtotal, codes)
        discount = total_discount(discounts, subtotal)
        tax = self.tax_for(subtotal)
        quote = self.shipping_policy.quote(cart, subtotal)
        total = max(0, subtotal - discount + tax + quote.cost_cents)

        return CartTotals(
            subtotal_cents=subtotal,
            discount_cents=discount,
            tax_cents=tax,
            shipping_cents=quote.cost_cents,
            total_cents=total,
            item_count=cart.total_items,
            tax_rate=self.tax_rate,
            currency=self.currency,
            discounts=discounts,
            shipping_quote=quote,
            free_shipping=self.shipping_policy.free_shipping_eligibility(subtotal),
        )


def resolve_shipping_policy(
    order_repo: OrderRepository, shipping_method_id: Optional[int] = None
) -> ShippingPolicy:
    """
    Flat-rate shipping unless a method is requested or SHIPPING_POLICY=method,
    in which case the requested (or default) ShippingMethod is quoted.
    """
    if shipping_method_id is None and config.pricing.shipping_policy != "method":
        return FlatRateShippingPolicy.from_config()

    if shipping_method_id is not None:
        method = order_repo.get_shipping_method(shipping_method_id)
        if method is None or not method.active:
            raise NotFoundError("Shipping method", str(shipping_method_id))
    else:
        method = order_repo.default_shipping_method()
        if method is None:
            logger.warning("No shipping methods configured; falling back to flat-rate shipping")
            return FlatRateShippingPolicy.from_config()

    return MethodShippingPolicy(method)
