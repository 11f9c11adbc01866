from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.cart import Cart, CartItem, CartStatus
from storefront.schemas.common_schemas import ErrorDetail, MoneyField


class CartItemResponse(BaseModel):
    """Cart line in API responses"""
    cart_item_id: Optional[int] = Field(default=None, description="Cart line identifier")
    variant_id: int = Field(description="Product variant identifier")
    sku: str = Field(description="Variant SKU")
    product_id: int = Field(description="Product identifier")
    product_name: str = Field(description="Product name")
    options: Dict[str, str] = Field(default_factory=dict, description="Variant options")
    unit_price: MoneyField = Field(description="Current variant price")
    quantity: int = Field(description="Quantity in cart")
    line_total: MoneyField = Field(description="unit price * quantity")
    available_quantity: int = Field(description="Units currently in stock")
    in_stock: bool = Field(description="Whether stock covers the quantity")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "cart_item_id": 789,
            "variant_id": 1,
            "sku": "MBP-16-SLV-512",
            "product_id": 1,
            "product_name": "MacBook Pro 16",
            "options": {"color": "Silver", "storage": "512GB"},
            "unit_price": {"cents": 99900, "currency": "USD", "formatted": "$999.00"},
            "quantity": 2,
            "line_total": {"cents": 199800, "currency": "USD", "formatted": "$1998.00"},
            "available_quantity": 10,
            "in_stock": True
        }
    })

    @classmethod
    def from_item(cls, item: CartItem) -> "CartItemResponse":
        variant = item.product_variant
        currency = variant.currency or "USD"
        return cls(
            cart_item_id=item.id,
            variant_id=variant.id,
            sku=variant.sku,
            product_id=variant.product_id,
            product_name=variant.product.name,
            options=variant.options,
            unit_price=MoneyField.from_cents(item.unit_price_cents, currency),
            quantity=item.quantity,
            line_total=MoneyField.from_cents(item.total_price_cents, currency),
            available_quantity=item.available_quantity,
            in_stock=item.in_stock,
        )


class CartResponse(BaseModel):
    """Cart contents with priced totals"""
    cart_id: Optional[int] = Field(default=None, description="None until the first item is added")
    user_id: Optional[int] = None
    session_id: Optional[str] = None
    status: str = CartStatus.ACTIVE.value
    items: List[CartItemResponse] = Field(default_factory=list)
    total_items: int = Field(ge=0, description="Sum of line quantities")
    is_empty: bool
    discount_codes: List[str] = Field(default_factory=list)
    totals: Dict[str, Any] = Field(description="Subtotal, discount, tax, shipping and total")
    warnings: List[Dict[str, str]] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary) -> "CartResponse":
        cart: Cart = summary.cart
        return cls(
            cart_id=cart.id,
            user_id=cart.user_id,
            session_id=cart.session_id,
            status=CartStatus(cart.status or CartStatus.ACTIVE).value,
            items=[CartItemResponse.from_item(item) for item in cart.items],
            total_items=cart.total_items,
            is_empty=cart.is_empty,
            discount_codes=cart.discount_codes,
            totals=summary.totals.to_dict(),
            warnings=[w.to_dict() for w in summary.warnings],
        )


class CheckoutPreviewResponse(BaseModel):
    cart: CartResponse
    ready: bool
    errors: List[ErrorDetail] = Field(default_factory=list)
    shipping_options: List[Dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_preview(cls, preview) -> "CheckoutPreviewResponse":
        cart = CartResponse.from_summary(preview)
        return cls(
            cart=cart,
            ready=preview.readiness.ready,
            errors=preview.readiness.errors,
            shipping_options=[q.to_dict() for q in preview.shipping_options],
        )
