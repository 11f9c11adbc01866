from datetime import datetime
from math import floor
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.core.config import config
from storefront.models.product import Category, Product, ProductVariant, Review, rating_breakdown
from storefront.schemas.common_schemas import MoneyField, PaginationResponse
from storefront.utils.formatting_utils import FormattingUtils


class VariantResponse(BaseModel):
    """A purchasable variant with its stock state"""
    id: int
    sku: str
    price: MoneyField
    stock_quantity: int
    in_stock: bool
    stock_status: str = Field(description="in_stock, low_stock or out_of_stock")
    stock_label: str = Field(description="In Stock, Low Stock or Out of Stock")
    options: Dict[str, str] = Field(default_factory=dict)
    option_summary: str = ""

    @classmethod
    def from_variant(cls, variant: ProductVariant, low_stock_threshold: Optional[int] = None) -> "VariantResponse":
        threshold = config.pricing.low_stock_threshold if low_stock_threshold is None else low_stock_threshold
        status = variant.stock_status(threshold)
        return cls(
            id=variant.id,
            sku=variant.sku,
            price=MoneyField.from_cents(variant.price_cents, variant.currency or "USD"),
            stock_quantity=variant.stock_quantity,
            in_stock=variant.in_stock,
            stock_status=status.value,
            stock_label=status.label,
            options=variant.options,
            option_summary=variant.option_summary,
        )


class RatingSummary(BaseModel):
    """
    Review aggregate for star rendering.

    4.5 -> 4 full stars, a half star and 0 empty stars.
    """
    average: Optional[float] = Field(default=None, description="Mean rating rounded to 1 decimal")
    formatted: str = "0.0"
    count: int = 0
    full_stars: int = 0
    half_star: bool = False
    empty_stars: int = 5
    breakdown: Dict[int, int] = Field(default_factory=dict)

    @classmethod
    def from_reviews(cls, reviews: Iterable[Review], max_rating: int = 5) -> "RatingSummary":
        reviews = list(reviews)
        ratings = [r.rating for r in reviews]
        breakdown = rating_breakdown(reviews)
        if not ratings:
            return cls(breakdown=breakdown, empty_stars=max_rating)

        average = sum(ratings) / len(ratings)
        full = floor(average)
        half = (average - full) >= 0.5
        return cls(
            average=round(average, 1),
            formatted=FormattingUtils.format_rating(average),
            count=len(ratings),
            full_stars=full,
            half_star=half,
            empty_stars=max_rating - full - (1 if half else 0),
            breakdown=breakdown,
        )


class ReviewResponse(BaseModel):
    id: int
    rating: int
    title: str
    content: str
    author: str
    created_at: datetime

    @classmethod
    def from_review(cls, review: Review) -> "ReviewResponse":
        author = review.user.full_name if review.user and review.user.full_name else "Anonymous"
        return cls(
            id=review.id,
            rating=review.rating,
            title=review.title,
            content=review.content,
            author=author,
            created_at=review.created_at,
        )


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    path: List[str] = Field(default_factory=list, description="Category names from the root down")


class CategoryNodeResponse(BaseModel):
    """A category link with its product counts"""
    id: int
    name: str
    slug: str
    level: int = 0
    product_count: int = 0
    total_product_count: int = Field(default=0, description="Including all subcategories")
    has_children: bool = False

    @classmethod
    def from_category(cls, category: Category) -> "CategoryNodeResponse":
        return cls(
            id=category.id,
            name=category.name,
            slug=category.slug,
            level=category.level,
            product_count=len(category.products),
            total_product_count=category.total_product_count(),
            has_children=bool(category.children),
        )


class ProductSummaryResponse(BaseModel):
    """Product card data for listings"""
    id: int
    name: str
    short_description: str
    price_range: Optional[str] = None
    in_stock: bool
    featured: bool = False
    average_rating: Optional[float] = None
    review_count: int = 0
    category: Optional[str] = Field(default=None, description="Category slug")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": 1,
            "name": "MacBook Pro 16",
            "short_description": "Apple M3 Pro laptop...",
            "price_range": "$999.00 - $1099.00",
            "in_stock": True,
            "featured": True,
            "average_rating": 4.5,
            "review_count": 2,
            "category": "laptops"
        }
    })

    @classmethod
    def from_product(cls, product: Product) -> "ProductSummaryResponse":
        average = product.average_rating
        return cls(
            id=product.id,
            name=product.name,
            short_description=FormattingUtils.truncate_text(product.description, 120),
            price_range=product.price_range,
            in_stock=product.in_stock,
            featured=bool(product.featured),
            average_rating=round(average, 1) if average is not None else None,
            review_count=product.review_count,
            category=product.category.slug if product.category else None,
        )


class ProductListResponse(BaseModel):
    products: List[ProductSummaryResponse]
    pagination: PaginationResponse
    sort: Optional[str] = None
    sort_options: Dict[str, str] = Field(default_factory=dict, description="Sort value -> label")


class CategoryNavigationResponse(BaseModel):
    category: Optional[CategoryNodeResponse] = None
    description: Optional[str] = None
    path: List[str] = Field(default_factory=list)
    breadcrumb: List[CategoryNodeResponse] = Field(default_factory=list)
    parent: Optional[CategoryNodeResponse] = None
    subcategories: List[CategoryNodeResponse] = Field(default_factory=list)
    siblings: List[CategoryNodeResponse] = Field(default_factory=list)
    products: List[ProductSummaryResponse] = Field(default_factory=list)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "category": {"id": 2, "name": "Laptops", "slug": "laptops", "level": 1,
                         "product_count": 2, "total_product_count": 2, "has_children": False},
            "path": ["Electronics", "Laptops"],
        }
    })


class ProductDetailResponse(BaseModel):
    """Everything a product page needs, including the resolved variant"""
    id: int
    name: str
    description: str
    price_range: Optional[str] = None
    in_stock: bool
    category: Optional[CategoryResponse] = None
    variants: List[VariantResponse] = Field(default_factory=list)
    available_options: Dict[str, List[str]] = Field(default_factory=dict)
    rating: RatingSummary
    reviews: List[ReviewResponse] = Field(default_factory=list)
    related_products: List[ProductSummaryResponse] = Field(default_factory=list)
    selected_options: Dict[str, str] = Field(default_factory=dict)
    selected_variant: Optional[VariantResponse] = None
    selection_available: bool = True
    selection_message: Optional[str] = None


class VariantSelectionResponse(BaseModel):
    product_id: int
    selected_options: Dict[str, str]
    variant: VariantResponse
    available_options: Dict[str, List[str]]
