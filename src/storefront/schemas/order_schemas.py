from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.order import Address, Order, OrderItem, OrderStatus, Payment, PaymentStatus
from storefront.schemas.common_schemas import MoneyField, PaginationResponse


class AddressResponse(BaseModel):
    street: str
    city: str
    state: str
    zip_code: str
    country: str
    formatted: str

    @classmethod
    def from_address(cls, address: Optional[Address]) -> Optional["AddressResponse"]:
        if address is None:
            return None
        return cls(**address.to_dict(), formatted=str(address))


class OrderItemResponse(BaseModel):
    """Order line with the price captured at checkout"""
    id: int
    variant_id: int
    sku: Optional[str] = None
    product_name: Optional[str] = None
    quantity: int
    unit_price: MoneyField
    line_total: MoneyField

    @classmethod
    def from_item(cls, item: OrderItem, currency: str = "USD") -> "OrderItemResponse":
        return cls(
            id=item.id,
            variant_id=item.product_variant_id,
            sku=item.sku,
            product_name=item.product_name,
            quantity=item.quantity,
            unit_price=MoneyField.from_cents(item.unit_price_cents, currency),
            line_total=MoneyField.from_cents(item.total_price_cents, currency),
        )


class PaymentResponse(BaseModel):
    id: int
    status: PaymentStatus
    amount: MoneyField
    payment_method: str
    transaction_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_payment(cls, payment: Payment) -> "PaymentResponse":
        return cls(
            id=payment.id,
            status=payment.status,
            amount=MoneyField.from_cents(payment.amount_cents, payment.currency or "USD"),
            payment_method=payment.payment_method,
            transaction_id=payment.transaction_id,
            created_at=payment.created_at,
        )


class OrderResponse(BaseModel):
    """Complete order information"""
    id: int
    user_id: int
    status: OrderStatus
    can_cancel: bool
    subtotal: MoneyField
    discount: MoneyField
    tax: MoneyField
    shipping: MoneyField
    total: MoneyField
    discount_codes: List[str] = Field(default_factory=list)
    total_items: int
    shipping_method: Optional[str] = None
    items: List[OrderItemResponse] = Field(default_factory=list)
    payments: List[PaymentResponse] = Field(default_factory=list)
    shipping_address: Optional[AddressResponse] = None
    billing_address: Optional[AddressResponse] = None
    created_at: datetime

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": 1001,
            "user_id": 42,
            "status": "pending_payment",
            "can_cancel": True,
            "subtotal": {"cents": 99900, "currency": "USD", "formatted": "$999.00"},
            "discount": {"cents": 9990, "currency": "USD", "formatted": "$99.90"},
            "tax": {"cents": 7992, "currency": "USD", "formatted": "$79.92"},
            "shipping": {"cents": 0, "currency": "USD", "formatted": "$0.00"},
            "total": {"cents": 97902, "currency": "USD", "formatted": "$979.02"},
            "discount_codes": ["SAVE10"],
            "total_items": 1
        }
    })

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        currency = order.currency or "USD"
        return cls(
            id=order.id,
            user_id=order.user_id,
            status=order.status,
            can_cancel=order.can_cancel,
            subtotal=MoneyField.from_cents(order.subtotal_cents, currency),
            discount=MoneyField.from_cents(order.discount_cents, currency),
            tax=MoneyField.from_cents(order.tax_cents, currency),
            shipping=MoneyField.from_cents(order.shipping_cents, currency),
            total=MoneyField.from_cents(order.total_cents, currency),
            discount_codes=[c for c in (order.discount_codes or "").split(",") if c],
            total_items=order.total_items,
            shipping_method=order.shipping_method.name if order.shipping_method else None,
            items=[OrderItemResponse.from_item(i, currency) for i in order.items],
            payments=[PaymentResponse.from_payment(p) for p in order.payments],
            shipping_address=AddressResponse.from_address(order.shipping_address),
            billing_address=AddressResponse.from_address(order.billing_address),
            created_at=order.created_at,
        )


class OrderSummaryResponse(BaseModel):
    id: int
    status: OrderStatus
    total: MoneyField
    total_items: int
    created_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderSummaryResponse":
        return cls(
            id=order.id,
            status=order.status,
            total=MoneyField.from_cents(order.total_cents, order.currency or "USD"),
            total_items=order.total_items,
            created_at=order.created_at,
        )


class OrderListResponse(BaseModel):
    orders: List[OrderSummaryResponse]
    pagination: PaginationResponse
