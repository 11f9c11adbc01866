from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, Text
from sqlalchemy import Boolean
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship, validates

from storefront.db import Base, IdType, utcnow
from storefront.utils.formatting_utils import FormattingUtils
from storefront.utils.money_utils import MoneyUtils
from storefront.utils.validators import ValidationUtils


class OrderStatus(str, Enum):
    """Order lifecycle, in forward order. Only can_cancel gates transitions."""
    CART = "cart"
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    @property
    def ordinal(self) -> int:
        return list(OrderStatus).index(self)

    @property
    def is_cancellable(self) -> bool:
        return self in CANCELLABLE_STATUSES


CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING_PAYMENT, OrderStatus.PAID, OrderStatus.PROCESSING})


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class AddressKind(str, Enum):
    SHIPPING = "shipping"
    BILLING = "billing"


def _enum_column(enum_cls, name: str, default):
    return Column(
        SAEnum(enum_cls, name=name, native_enum=False, length=32,
               values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=default,
    )


class ShippingMethod(Base):
    """
    A carrier option with a per-kilogram fee model.

    Quote = base fee + weight fee + distance fee; see ShippingCalculator.
    """

    __tablename__ = "shipping_methods"

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    base_fee_cents = Column(BigInteger, nullable=False, default=0)
    per_kg_fee_cents = Column(BigInteger, nullable=False, default=0)
    distance_multiplier = Column(Float, nullable=False, default=1.0)
    estimated_days = Column(Integer, nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("base_fee_cents >= 0", name="ck_shipping_base_fee"),
        CheckConstraint("per_kg_fee_cents >= 0", name="ck_shipping_per_kg_fee"),
    )

    @validates("base_fee_cents", "per_kg_fee_cents")
    def _validate_fees(self, key, value):
        return ValidationUtils.require_non_negative_int(value, key)

    @validates("name")
    def _validate_name(self, key, value):
        return ValidationUtils.require_text(value, key)

    @property
    def base_fee(self) -> float:
        return MoneyUtils.to_dollars(self.base_fee_cents)

    def __repr__(self) -> str:
        return f"<ShippingMethod id={self.id} name={self.name!r}>"


class Address(Base):
    """
    A postal address attached to either a User or an Order.

    addressable_type/addressable_id form a polymorphic owner reference, so
    there is no database-level foreign key on addressable_id. kind tells an
    order's shipping and billing addresses apart.
    """

    __tablename__ = "addresses"

    id = Column(IdType, primary_key=True, autoincrement=True)
    addressable_type = Column(Text, nullable=False)
    addressable_id = Column(IdType, nullable=True)
    kind = Column(Text, nullable=True)
    street = Column(Text, nullable=False)
    city = Column(Text, nullable=False)
    state = Column(Text, nullable=False)
    zip_code = Column("zip", Text, nullable=False)
    country = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @validates("street", "city", "state", "zip_code", "country")
    def _validate_required(self, key, value):
        return ValidationUtils.require_text(value, key)

    def to_dict(self):
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
        }

    def __str__(self) -> str:
        return FormattingUtils.format_address_line(
            self.street, self.city, self.state, self.zip_code, self.country
        )

    def __repr__(self) -> str:
        return f"<Address id={self.id} owner={self.addressable_type}:{self.addressable_id}>"


class Order(Base):
    """
    A purchase snapshot taken from a cart at checkout.

    Monetary columns are integer cents frozen at checkout time; later catalog
    price changes never touch them. The float accessors divide by 100.0 on
    read.
    """

    __tablename__ = "orders"

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(IdType, ForeignKey("users.id"), nullable=False)
    shipping_method_id = Column(IdType, ForeignKey("shipping_methods.id"), nullable=True)
    status = _enum_column(OrderStatus, "order_status", OrderStatus.PENDING_PAYMENT)
    currency = Column(Text, nullable=False, default="USD")
    subtotal_cents = Column(BigInteger, nullable=False, default=0)
    discount_cents = Column(BigInteger, nullable=False, default=0)
    shipping_cents = Column(BigInteger, nullable=False, default=0)
    tax_cents = Column(BigInteger, nullable=False, default=0)
    total_cents = Column(BigInteger, nullable=False, default=0)
    discount_codes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("subtotal_cents >= 0", name="ck_order_subtotal"),
        CheckConstraint("discount_cents >= 0", name="ck_order_discount"),
        CheckConstraint("shipping_cents >= 0", name="ck_order_shipping"),
        CheckConstraint("tax_cents >= 0", name="ck_order_tax"),
        CheckConstraint("total_cents >= 0", name="ck_order_total"),
    )

    user = relationship("User", back_populates="orders")
    shipping_method = relationship("ShippingMethod")
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    payments = relationship(
        "Payment", back_populates="order", cascade="all, delete-orphan", order_by="Payment.id"
    )
    shipping_address = relationship(
        "Address",
        primaryjoin="and_(Order.id == foreign(Address.addressable_id), "
                    "Address.addressable_type == 'Order', Address.kind == 'shipping')",
        uselist=False,
        cascade="all",
        overlaps="billing_address, addresses",
    )
    billing_address = relationship(
        "Address",
        primaryjoin="and_(Order.id == foreign(Address.addressable_id), "
                    "Address.addressable_type == 'Order', Address.kind == 'billing')",
        uselist=False,
        cascade="all",
        overlaps="shipping_address, addresses",
    )

    @validates("subtotal_cents", "discount_cents", "shipping_cents", "tax_cents", "total_cents")
    def _validate_amounts(self, key, value):
        return ValidationUtils.require_non_negative_int(value, key)

    @staticmethod
    def build_address(kind: AddressKind, **fields) -> Address:
        return Address(addressable_type="Order", kind=kind.value, **fields)

    @property
    def subtotal(self) -> float:
        return MoneyUtils.to_dollars(self.subtotal_cents)

    @property
    def discount(self) -> float:
        return MoneyUtils.to_dollars(self.discount_cents)

    @property
    def shipping(self) -> float:
        return MoneyUtils.to_dollars(self.shipping_cents)

    @property
    def tax(self) -> float:
        return MoneyUtils.to_dollars(self.tax_cents)

    @property
    def total(self) -> float:
        return MoneyUtils.to_dollars(self.total_cents)

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def can_cancel(self) -> bool:
        return OrderStatus(self.status).is_cancellable

    @property
    def latest_payment(self) -> Optional["Payment"]:
        return self.payments[-1] if self.payments else None

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status} total_cents={self.total_cents}>"


class OrderItem(Base):
    """
    One purchased line. unit_price_cents, sku and product_name are copied
    from the variant at checkout.
    """

    __tablename__ = "order_items"

    id = Column(IdType, primary_key=True, autoincrement=True)
    order_id = Column(IdType, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_variant_id = Column(IdType, ForeignKey("product_variants.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price_cents = Column(BigInteger, nullable=False)
    sku = Column(Text, nullable=True)
    product_name = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_quantity"),
        CheckConstraint("unit_price_cents >= 0", name="ck_order_item_price"),
    )

    order = relationship("Order", back_populates="items")
    product_variant = relationship("ProductVariant")

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return ValidationUtils.require_positive_int(value, key)

    @validates("unit_price_cents")
    def _validate_price(self, key, value):
        return ValidationUtils.require_non_negative_int(value, key)

    @property
    def unit_price(self) -> float:
        return MoneyUtils.to_dollars(self.unit_price_cents)

    @property
    def total_price_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    @property
    def total_price(self) -> float:
        return MoneyUtils.to_dollars(self.total_price_cents)

    def __repr__(self) -> str:
        return f"<OrderItem id={self.id} sku={self.sku!r} qty={self.quantity}>"


class Payment(Base):
    """A charge against an order. amount_cents must be strictly positive."""

    __tablename__ = "payments"

    id = Column(IdType, primary_key=True, autoincrement=True)
    order_id = Column(IdType, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    status = _enum_column(PaymentStatus, "payment_status", PaymentStatus.PENDING)
    amount_cents = Column(BigInteger, nullable=False)
    currency = Column(Text, nullable=False, default="USD")
    payment_method = Column(Text, nullable=False, default="card")
    transaction_id = Column(Text, nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_payment_amount"),
    )

    order = relationship("Order", back_populates="payments")

    @validates("amount_cents")
    def _validate_amount(self, key, value):
        return ValidationUtils.require_positive_int(value, key)

    @property
    def amount(self) -> float:
        return MoneyUtils.to_dollars(self.amount_cents)

    def __repr__(self) -> str:
        return f"<Payment id={self.id} status={self.status} amount_cents={self.amount_cents}>"
