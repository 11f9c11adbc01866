from enum import Enum
from typing import Dict, List, Mapping, Optional

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship, validates

from storefront.core.exceptions import ValidationError
from storefront.db import Base, IdType, utcnow
from storefront.utils.formatting_utils import FormattingUtils
from storefront.utils.money_utils import MoneyUtils
from storefront.utils.validators import ValidationUtils

DEFAULT_LOW_STOCK_THRESHOLD = 5


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"

    @property
    def label(self) -> str:
        return _STOCK_LABELS[self]


_STOCK_LABELS = {
    StockStatus.IN_STOCK: "In Stock",
    StockStatus.LOW_STOCK: "Low Stock",
    StockStatus.OUT_OF_STOCK: "Out of Stock",
}


class Category(Base):
    """
    Grouping for products (e.g. Laptops, inside Electronics).

    slug is derived from name when not given explicitly.
    """

    __tablename__ = "categories"

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    parent_id = Column(IdType, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent")
    products = relationship("Product", back_populates="category")

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.slug and self.name:
            self.slug = FormattingUtils.slugify(self.name)

    @validates("name")
    def _validate_name(self, key, value):
        return ValidationUtils.require_text(value, key)

    @property
    def lineage(self) -> List["Category"]:
        """Categories from the root down to this one"""
        nodes = []
        node = self
        while node is not None:
            nodes.append(node)
            node = node.parent
        return list(reversed(nodes))

    @property
    def path(self) -> List[str]:
        """Names from the root category down to this one"""
        return [node.name for node in self.lineage]

    @property
    def level(self) -> int:
        return len(self.lineage) - 1

    def descendants(self) -> List["Category"]:
        """Every category below this one, depth first"""
        found = []
        for child in sorted(self.children, key=lambda c: c.name):
            found.append(child)
            found.extend(child.descendants())
        return found

    def total_product_count(self) -> int:
        """Products in this category and all of its subcategories"""
        return len(self.products) + sum(len(c.products) for c in self.descendants())

    def __repr__(self) -> str:
        return f"<Category id={self.id} slug={self.slug!r}>"


class Product(Base):
    """
    The top-level catalog entry (e.g. 'MacBook Pro 16').
    Concrete purchasable options (colour, storage) live in ProductVariant.
    """

    __tablename__ = "products"

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    category_id = Column(IdType, ForeignKey("categories.id"), nullable=True)
    featured = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    category = relationship("Category", back_populates="products")
    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.id",
    )
    reviews = relationship(
        "Review", back_populates="product", cascade="all, delete-orphan", order_by="Review.id"
    )

    @validates("name", "description")
    def _validate_text(self, key, value):
        return ValidationUtils.require_text(value, key)

    @property
    def min_price_cents(self) -> Optional[int]:
        return min((v.price_cents for v in self.variants), default=None)

    @property
    def max_price_cents(self) -> Optional[int]:
        return max((v.price_cents for v in self.variants), default=None)

    @property
    def price_range(self) -> Optional[str]:
        """'$999.00 - $1099.00', a single price when all variants agree, None without variants."""
        return FormattingUtils.format_price_range(self.min_price_cents, self.max_price_cents)

    @property
    def average_rating(self) -> Optional[float]:
        if not self.reviews:
            return None
        return sum(r.rating for r in self.reviews) / len(self.reviews)

    @property
    def review_count(self) -> int:
        return len(self.reviews)

    @property
    def in_stock(self) -> bool:
        return any(v.in_stock for v in self.variants)

    @property
    def total_stock(self) -> int:
        return sum(v.stock_quantity for v in self.variants)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"


class ProductVariant(Base):
    """
    A specific, purchasable version of a product.

    options holds the ordered name/value pairs that distinguish this variant
    ({"color": "Silver", "storage": "512GB"}). It is stored as JSON text and
    always decodes to a str -> str dict; anything else is rejected on write
    and raises on read.

    price_cents stores the price as an integer number of cents.
    $19.99 -> 1999.
    """

    __tablename__ = "product_variants"

    id = Column(IdType, primary_key=True, autoincrement=True)
    product_id = Column(IdType, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    sku = Column(Text, nullable=False, unique=True)
    price_cents = Column(BigInteger, nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    currency = Column(Text, nullable=False, default="USD")
    weight_kg = Column(Float, nullable=True)
    options_json = Column("options", Text, nullable=False, default="{}")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("price_cents >= 0", name="ck_variant_price"),
        CheckConstraint("stock_quantity >= 0", name="ck_variant_stock"),
    )

    product = relationship("Product", back_populates="variants")

    @validates("sku")
    def _validate_sku(self, key, value):
        return ValidationUtils.normalize_sku(value)

    @validates("price_cents", "stock_quantity")
    def _validate_amounts(self, key, value):
        return ValidationUtils.require_non_negative_int(value, key)

    @validates("options_json")
    def _validate_options_json(self, key, value):
        # round-trip so only well-formed maps reach the column
        return ValidationUtils.encode_options(ValidationUtils.decode_options(value))

    @property
    def options(self) -> Dict[str, str]:
        return ValidationUtils.decode_options(self.options_json)

    @options.setter
    def options(self, value: Optional[Mapping[str, str]]) -> None:
        self.options_json = ValidationUtils.encode_options(value)

    @property
    def price(self) -> float:
        return MoneyUtils.to_dollars(self.price_cents)

    @property
    def formatted_price(self) -> str:
        return FormattingUtils.format_money(self.price_cents, self.currency or "USD")

    @property
    def in_stock(self) -> bool:
        return (self.stock_quantity or 0) > 0

    def is_low_stock(self, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> bool:
        return self.in_stock and self.stock_quantity <= threshold

    def stock_status(self, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> StockStatus:
        if not self.in_stock:
            return StockStatus.OUT_OF_STOCK
        if self.is_low_stock(threshold):
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK

    def matches_options(self, selected: Mapping[str, object]) -> bool:
        """Every selected pair must be present with an equal string value."""
        options = self.options
        return all(options.get(str(name)) == str(value) for name, value in selected.items())

    @property
    def option_summary(self) -> str:
        """'Silver / 512GB'"""
        return " / ".join(self.options.values())

    @property
    def display_name(self) -> str:
        name = self.product.name if self.product else self.sku
        summary = self.option_summary
        return f"{name} ({summary})" if summary else name

    def __repr__(self) -> str:
        return f"<ProductVariant id={self.id} sku={self.sku!r} stock={self.stock_quantity}>"


class Review(Base):
    """A 1-5 star review left by a user on a product."""

    __tablename__ = "reviews"

    id = Column(IdType, primary_key=True, autoincrement=True)
    product_id = Column(IdType, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating"),
    )

    product = relationship("Product", back_populates="reviews")
    user = relationship("User", back_populates="reviews")

    @validates("rating")
    def _validate_rating(self, key, value):
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
            raise ValidationError.for_field("rating", f"Rating must be between 1 and 5, got {value!r}", "OUT_OF_RANGE")
        return value

    @validates("title", "content")
    def _validate_text(self, key, value):
        return ValidationUtils.require_text(value, key)

    def __repr__(self) -> str:
        return f"<Review id={self.id} product_id={self.product_id} rating={self.rating}>"


def rating_breakdown(reviews: List[Review]) -> Dict[int, int]:
    """Count of reviews per star value, 5 down to 1."""
    counts = {stars: 0 for stars in range(5, 0, -1)}
    for review in reviews:
        counts[review.rating] += 1
    return counts
