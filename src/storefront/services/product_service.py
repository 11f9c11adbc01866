from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional
import logging

from sqlalchemy.orm import Session

from storefront.core.config import config
from storefront.core.exceptions import ValidationError
from storefront.core.result import Failure, Result, Success, returns_result
from storefront.models.product import Category, Product, ProductVariant
from storefront.repositories.category_repository import CategoryRepository
from storefront.repositories.product_repository import ProductRepository
from storefront.schemas.product_schemas import (
    CategoryResponse,
    ProductDetailResponse,
    ProductSummaryResponse,
    RatingSummary,
    ReviewResponse,
    VariantResponse,
)
from storefront.services.variant_service import VariantFinder

logger = logging.getLogger(__name__)


@dataclass
class ProductDetails:
    product: Product
    variants: List[ProductVariant]
    available_options: Dict[str, List[str]]
    rating: RatingSummary
    related_products: List[Product] = field(default_factory=list)

    @property
    def variant_count(self) -> int:
        return len(self.variants)


@dataclass
class ProductDetailPage:
    """
    A product page with the variant resolved for the selected options.

    When nothing matches, variant is None and selection_available is False;
    the page still renders with the full option set so the shopper can pick
    again.
    """
    details: ProductDetails
    selected_options: Dict[str, str]
    variant: Optional[ProductVariant] = None

    @property
    def selection_available(self) -> bool:
        return self.variant is not None

    @property
    def selection_message(self) -> Optional[str]:
        if self.variant is None:
            return "This combination is not available"
        if not self.variant.in_stock:
            return "Out of stock"
        return None

    def to_response(self) -> ProductDetailResponse:
        product = self.details.product
        threshold = config.pricing.low_stock_threshold
        category = None
        if product.category is not None:
            category = CategoryResponse(
                id=product.category.id,
                name=product.category.name,
                slug=product.category.slug,
                path=product.category.path,
            )
        return ProductDetailResponse(
            id=product.id,
            name=product.name,
            description=product.description,
            price_range=product.price_range,
            in_stock=product.in_stock,
            category=category,
            variants=[VariantResponse.from_variant(v, threshold) for v in self.details.variants],
            available_options=self.details.available_options,
            rating=self.details.rating,
            reviews=[ReviewResponse.from_review(r) for r in product.reviews],
            related_products=[ProductSummaryResponse.from_product(p) for p in self.details.related_products],
            selected_options=self.selected_options,
            selected_variant=VariantResponse.from_variant(self.variant, threshold) if self.variant else None,
            selection_available=self.selection_available,
            selection_message=self.selection_message,
        )


PRODUCT_SORTS = {
    "name": "Name A-Z",
    "price_low_to_high": "Price: Low to High",
    "price_high_to_low": "Price: High to Low",
    "newest": "Newest First",
    "featured": "Featured First",
}

MIN_SEARCH_LENGTH = 2
MAX_SEARCH_LENGTH = 100


@dataclass
class ProductPage:
    """
    One page of a listing. Unsorted listings page by cursor (next_cursor),
    sorted ones by offset (next_offset).
    """
    products: List[Product]
    limit: int
    next_cursor: Optional[int] = None
    next_offset: Optional[int] = None
    sort: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None or self.next_offset is not None


class ProductDetailsService:
    """Assemble pricing, variants, ratings and related products for one product"""

    def __init__(self, session: Session):
        self.session = session
        self.product_repo = ProductRepository(session)

    @returns_result
    def get_details(self, product_id: int) -> Result[ProductDetails]:
        product = self.product_repo.get_by_id(product_id)
        if product is None:
            return Failure.not_found("Product", product_id)

        finder = VariantFinder.for_product(product)
        related = self.product_repo.related_products(product, config.api.related_products_limit)
        return Success(ProductDetails(
            product=product,
            variants=finder.variants,
            available_options=finder.available_options(),
            rating=RatingSummary.from_reviews(product.reviews),
            related_products=list(related),
        ))


class ProductDetailPageService:
    """
    Product page with variant selection.

    A selection that matches nothing is not an error here: the page comes
    back with no selected variant so the client can show the combination
    as unavailable.
    """

    def __init__(self, session: Session):
        self.session = session
        self.details_service = ProductDetailsService(session)

    def execute(self, product_id: int, options: Optional[Mapping[str, object]] = None) -> Result[ProductDetailPage]:
        result = self.details_service.get_details(product_id)
        if not result.ok:
            return result

        details = result.data
        selected = {str(k): str(v) for k, v in (options or {}).items()}
        variant = VariantFinder(details.variants).resolve(selected)
        if variant is None:
            logger.info(f"Product {product_id} has no variant for {selected}")
        return Success(ProductDetailPage(details, selected, variant))


class ProductListingService:
    def __init__(self, session: Session):
        self.session = session
        self.product_repo = ProductRepository(session)
        self.category_repo = CategoryRepository(session)

    @staticmethod
    def _check_filters(search, min_price_cents, max_price_cents, sort) -> None:
        if search is not None and not MIN_SEARCH_LENGTH <= len(search) <= MAX_SEARCH_LENGTH:
            raise ValidationError.for_field(
                "q", f"Search must be {MIN_SEARCH_LENGTH} to {MAX_SEARCH_LENGTH} characters", "INVALID_LENGTH"
            )
        if min_price_cents is not None and max_price_cents is not None and min_price_cents > max_price_cents:
            raise ValidationError.for_field(
                "min_price_cents", "min_price_cents cannot exceed max_price_cents", "INVALID_RANGE"
            )
        if sort is not None and sort not in PRODUCT_SORTS:
            raise ValidationError.for_field(
                "sort", f"sort must be one of: {', '.join(PRODUCT_SORTS)}", "INVALID_CHOICE"
            )

    @returns_result
    def list_products(
        self,
        limit: Optional[int] = None,
        after: Optional[int] = None,
        category_slug: Optional[str] = None,
        featured: Optional[bool] = None,
        in_stock: Optional[bool] = None,
        search: Optional[str] = None,
        min_price_cents: Optional[int] = None,
        max_price_cents: Optional[int] = None,
        sort: Optional[str] = None,
        offset: int = 0,
    ) -> Result[ProductPage]:
        """
        Filtered product listing.

        Without sort, pages by id cursor (after). With sort, pages by
        offset, since the cursor only follows id order.
        """
        limit = min(limit or config.api.default_page_size, config.api.max_page_size)
        search = search.strip() if search else None
        self._check_filters(search, min_price_cents, max_price_cents, sort)

        category_id = None
        if category_slug:
            category = self.category_repo.get_by_slug(category_slug)
            if category is None:
                return Failure.not_found("Category", category_slug)
            category_id = category.id

        filters = dict(
            category_id=category_id,
            featured=featured,
            in_stock=in_stock,
            search=search,
            min_price_cents=min_price_cents,
            max_price_cents=max_price_cents,
        )
        if sort is None:
            products, next_cursor = self.product_repo.list_products(limit, after, **filters)
            return Success(ProductPage(list(products), limit, next_cursor=next_cursor))

        products, next_offset = self.product_repo.sorted_products(sort, limit, offset or 0, **filters)
        return Success(ProductPage(list(products), limit, next_offset=next_offset, sort=sort))


@dataclass
class CategoryNavigation:
    """
    Where a shopper is in the category tree.

    At the top level current is None and subcategories holds the roots.
    """
    current: Optional[Category]
    subcategories: List[Category]
    breadcrumb: List[Category] = field(default_factory=list)
    siblings: List[Category] = field(default_factory=list)
    products: List[Product] = field(default_factory=list)

    @property
    def parent(self) -> Optional[Category]:
        return self.current.parent if self.current is not None else None

    @property
    def level(self) -> int:
        return self.current.level if self.current is not None else -1


class CategoryNavigationService:
    """Breadcrumb, children, siblings and products for a category page"""

    def __init__(self, session: Session):
        self.session = session
        self.category_repo = CategoryRepository(session)
        self.product_repo = ProductRepository(session)

    @returns_result
    def execute(self, slug: Optional[str] = None, product_limit: Optional[int] = None) -> Result[CategoryNavigation]:
        if not slug:
            return Success(CategoryNavigation(current=None, subcategories=self.category_repo.roots()))

        category = self.category_repo.get_by_slug(slug)
        if category is None:
            return Failure.not_found("Category", slug)

        limit = product_limit or config.api.default_page_size
        return Success(CategoryNavigation(
            current=category,
            subcategories=sorted(category.children, key=lambda c: c.name),
            breadcrumb=category.lineage,
            siblings=self.category_repo.siblings(category),
            products=self.product_repo.in_category(category.id, limit),
        ))
