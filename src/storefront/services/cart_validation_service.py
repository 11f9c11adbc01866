from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from storefront.core.config import config
from storefront.models.cart import Cart, CartItem
from storefront.models.product import ProductVariant
from storefront.schemas.common_schemas import ErrorDetail
from storefront.services.inventory_service import InventoryChecker


@dataclass
class CheckoutReadiness:
    ready: bool
    errors: List[ErrorDetail] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"ready": self.ready, "errors": [e.model_dump() for e in self.errors]}


@dataclass
class CartWarning:
    code: str  # LOW_STOCK, HIGH_QUANTITY
    sku: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code, "sku": self.sku, "message": self.message}


def _name(variant: ProductVariant) -> str:
    return variant.display_name


class CartValidator:
    """
    Stock and state rules for carts.

    Business Rules:
    - A cart is ready for checkout iff it is active, non-empty, and every
      line's quantity is covered by the variant's current stock
    - Each line short on stock yields exactly one error, keyed by SKU
    - Additions count the quantity already in the cart
    - Inactive carts accept no new items
    """

    def __init__(self, low_stock_threshold: Optional[int] = None, high_quantity: Optional[int] = None):
        self.low_stock_threshold = (
            config.pricing.low_stock_threshold if low_stock_threshold is None else low_stock_threshold
        )
        self.high_quantity = config.pricing.high_quantity_warning if high_quantity is None else high_quantity

    def validate_item(self, item: CartItem) -> Optional[ErrorDetail]:
        variant = item.product_variant
        if item.in_stock:
            return None
        available = variant.stock_quantity
        if available <= 0:
            message = f"{_name(variant)} is out of stock"
        else:
            message = f"Only {available} of {_name(variant)} available, {item.quantity} requested"
        return ErrorDetail(field=variant.sku, message=message, code="INSUFFICIENT_STOCK")

    def check_readiness(self, cart: Cart) -> CheckoutReadiness:
        errors: List[ErrorDetail] = []

        if cart.is_empty:
            errors.append(ErrorDetail(field="cart", message="Cart is empty", code="EMPTY_CART"))
        if not cart.is_active:
            errors.append(ErrorDetail(field="cart", message="Cart is not active", code="INACTIVE_CART"))

        for item in cart.items:
            error = self.validate_item(item)
            if error is not None:
                errors.append(error)

        return CheckoutReadiness(ready=not errors, errors=errors)

    def validate_item_addition(self, cart: Cart, variant: ProductVariant, quantity: int) -> List[ErrorDetail]:
        if quantity is None or quantity <= 0:
            return [ErrorDetail(field="quantity", message="Quantity must be positive", code="INVALID_QUANTITY")]

        errors: List[ErrorDetail] = []
        checker = InventoryChecker(variant, self.low_stock_threshold)
        existing = cart.find_item(variant)
        current = existing.quantity if existing else 0

        if not variant.in_stock:
            errors.append(ErrorDetail(field=variant.sku, message=f"{_name(variant)} is out of stock",
                                      code="OUT_OF_STOCK"))
        elif not checker.is_available(current + quantity):
            max_additional = checker.available_quantity - current
            if max_additional <= 0:
                message = f"{_name(variant)} is already at maximum quantity in cart"
            else:
                message = f"Can only add {max_additional} more {_name(variant)} to cart"
            errors.append(ErrorDetail(field=variant.sku, message=message, code="INSUFFICIENT_STOCK"))

        if not cart.is_active:
            errors.append(ErrorDetail(field="cart", message="Cannot add items to inactive cart",
                                      code="INACTIVE_CART"))
        return errors

    def validate_quantity_update(self, item: CartItem, quantity: int) -> List[ErrorDetail]:
        """Quantities of 0 or less remove the line and are always allowed"""
        if quantity is None:
            return [ErrorDetail(field="quantity", message="Quantity is required", code="INVALID_QUANTITY")]
        if quantity <= 0:
            return []

        variant = item.product_variant
        if not InventoryChecker(variant, self.low_stock_threshold).is_available(quantity):
            return [ErrorDetail(
                field=variant.sku,
                message=f"Only {variant.stock_quantity} of {_name(variant)} available",
                code="INSUFFICIENT_STOCK",
            )]
        return []

    def warnings(self, cart: Cart) -> List[CartWarning]:
        warnings: List[CartWarning] = []
        for item in cart.items:
            variant = item.product_variant
            if InventoryChecker(variant, self.low_stock_threshold).is_low_stock:
                warnings.append(CartWarning(
                    "LOW_STOCK", variant.sku, f"Only {variant.stock_quantity} left of {_name(variant)}"
                ))
            if item.quantity > self.high_quantity:
                warnings.append(CartWarning(
                    "HIGH_QUANTITY", variant.sku, f"{item.quantity} units of {_name(variant)} in cart"
                ))
        return warnings
