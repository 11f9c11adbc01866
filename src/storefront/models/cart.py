from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship, validates

from storefront.core.exceptions import ValidationError
from storefront.db import Base, IdType, utcnow
from storefront.utils.money_utils import MoneyUtils
from storefront.utils.validators import ValidationUtils


class CartStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class CartIdentity:
    """
    Who a cart belongs to: a signed-in user or an anonymous session,
    never both and never neither.
    """
    user_id: Optional[int] = None
    session_id: Optional[str] = None

    def __post_init__(self):
        if self.session_id is not None and not str(self.session_id).strip():
            object.__setattr__(self, "session_id", None)
        if (self.user_id is None) == (self.session_id is None):
            raise ValidationError(
                "A cart belongs to exactly one of a user or a session",
                [{"field": "identity", "message": "Provide a user id or a session id", "code": "INVALID_IDENTITY"}],
            )

    @classmethod
    def for_user(cls, user_id: int) -> "CartIdentity":
        return cls(user_id=user_id)

    @classmethod
    def for_session(cls, session_id: str) -> "CartIdentity":
        return cls(session_id=session_id)

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    def __str__(self) -> str:
        return f"user {self.user_id}" if self.user_id is not None else f"session {self.session_id}"


class Cart(Base):
    """
    A shopping cart owned by a user or by an anonymous session.

    Each owner has at most one active cart; the partial unique indexes below
    only cover rows whose status is 'active', so completed and abandoned
    carts are kept as history.

    Totals are never stored. They are recomputed from live variant prices on
    every read.
    """

    __tablename__ = "carts"

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    session_id = Column(Text, nullable=True)
    discount_codes_text = Column("discount_codes", Text, nullable=True)
    status = Column(
        SAEnum(CartStatus, name="cart_status", native_enum=False, length=20,
               values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CartStatus.ACTIVE,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (session_id IS NULL)", name="ck_cart_single_owner"
        ),
        Index(
            "uq_active_cart_user", "user_id", unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
        Index(
            "uq_active_cart_session", "session_id", unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    user = relationship("User", back_populates="carts")
    items = relationship(
        "CartItem", back_populates="cart", cascade="all, delete-orphan", order_by="CartItem.id"
    )

    @classmethod
    def for_identity(cls, identity: CartIdentity) -> "Cart":
        return cls(user_id=identity.user_id, session_id=identity.session_id, status=CartStatus.ACTIVE)

    @property
    def identity(self) -> CartIdentity:
        return CartIdentity(user_id=self.user_id, session_id=self.session_id)

    @property
    def is_active(self) -> bool:
        return self.status == CartStatus.ACTIVE

    @property
    def discount_codes(self) -> List[str]:
        return [c for c in (self.discount_codes_text or "").split(",") if c]

    def apply_discount_code(self, code: str) -> None:
        codes = self.discount_codes
        if code not in codes:
            codes.append(code)
        self.discount_codes_text = ",".join(codes)

    def clear_discount_codes(self) -> None:
        self.discount_codes_text = None

    def find_item(self, variant) -> Optional["CartItem"]:
        for item in self.items:
            if item.product_variant is variant:
                return item
            if variant.id is not None and item.product_variant_id == variant.id:
                return item
        return None

    def add_item(self, variant, quantity: int = 1) -> "CartItem":
        """Increment the existing line for variant, or append a new one. No stock check here."""
        ValidationUtils.require_positive_int(quantity, "quantity")

        item = self.find_item(variant)
        if item is not None:
            item.quantity = item.quantity + quantity
        else:
            item = CartItem(product_variant=variant, quantity=quantity)
            self.items.append(item)
        return item

    def remove_item(self, variant) -> Optional["CartItem"]:
        item = self.find_item(variant)
        if item is not None:
            self.items.remove(item)
        return item

    def update_item_quantity(self, variant, quantity: int) -> Optional["CartItem"]:
        """quantity <= 0 removes the line. Missing lines are left alone."""
        item = self.find_item(variant)
        if item is None:
            return None
        if quantity <= 0:
            self.items.remove(item)
            return None
        item.quantity = quantity
        return item

    def clear(self) -> None:
        self.items.clear()

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_price_cents(self) -> int:
        return sum(item.total_price_cents for item in self.items)

    @property
    def total_price(self) -> float:
        return MoneyUtils.to_dollars(self.total_price_cents)

    @property
    def is_empty(self) -> bool:
        return len(self.items) == 0

    def __repr__(self) -> str:
        return f"<Cart id={self.id} owner={self.identity} status={self.status}>"


class CartItem(Base):
    """
    A single variant + quantity pair inside a cart.

    quantity must be > 0: removing an item means deleting the row, not
    setting quantity to 0.
    """

    __tablename__ = "cart_items"

    id = Column(IdType, primary_key=True, autoincrement=True)
    cart_id = Column(IdType, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_variant_id = Column(IdType, ForeignKey("product_variants.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("cart_id", "product_variant_id", name="uq_cart_item_variant"),
        CheckConstraint("quantity > 0", name="ck_cart_item_quantity"),
    )

    cart = relationship("Cart", back_populates="items")
    product_variant = relationship("ProductVariant")

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return ValidationUtils.require_positive_int(value, key)

    @property
    def unit_price_cents(self) -> int:
        return self.product_variant.price_cents

    @property
    def unit_price(self) -> float:
        return MoneyUtils.to_dollars(self.unit_price_cents)

    @property
    def total_price_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    @property
    def total_price(self) -> float:
        return MoneyUtils.to_dollars(self.total_price_cents)

    @property
    def available_quantity(self) -> int:
        return self.product_variant.stock_quantity

    @property
    def in_stock(self) -> bool:
        return self.available_quantity >= self.quantity

    def __repr__(self) -> str:
        return f"<CartItem id={self.id} variant_id={self.product_variant_id} qty={self.quantity}>"
