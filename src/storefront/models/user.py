from sqlalchemy import Column, DateTime, Text
from sqlalchemy.orm import relationship, validates

from storefront.db import Base, IdType, utcnow
from storefront.models.order import Address
from storefront.utils.formatting_utils import FormattingUtils
from storefront.utils.validators import ValidationUtils


class User(Base):
    """
    A registered shopper. Owns carts, orders, reviews and saved addresses.

    email is normalized (lower-cased) through email-validator before it is
    stored, so the unique constraint is effectively case-insensitive.
    """

    __tablename__ = "users"

    id = Column(IdType, primary_key=True, autoincrement=True)
    email = Column(Text, nullable=False, unique=True)
    first_name = Column(Text, nullable=True)
    last_name = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    carts = relationship("Cart", back_populates="user", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="user", order_by="Order.id")
    reviews = relationship("Review", back_populates="user", cascade="all, delete-orphan")
    addresses = relationship(
        "Address",
        primaryjoin="and_(User.id == foreign(Address.addressable_id), Address.addressable_type == 'User')",
        cascade="all",
        order_by="Address.id",
        overlaps="shipping_address, billing_address",
    )

    @validates("email")
    def _validate_email(self, key, value):
        return ValidationUtils.normalize_email(value)

    @property
    def full_name(self) -> str:
        return FormattingUtils.format_name(self.first_name, self.last_name)

    def add_address(self, **fields) -> Address:
        address = Address(addressable_type="User", **fields)
        self.addresses.append(address)
        return address

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"
