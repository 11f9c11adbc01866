from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.sql import Select

from storefront.models.product import Product, ProductVariant
from storefront.repositories.base import BaseRepository


def _min_price():
    return (
        select(func.min(ProductVariant.price_cents))
        .where(ProductVariant.product_id == Product.id)
        .correlate(Product)
        .scalar_subquery()
    )


class ProductRepository(BaseRepository[Product]):
    """Catalog reads: products and variants"""

    @property
    def model(self):
        return Product

    def get_variant(self, variant_id: int) -> Optional[ProductVariant]:
        return self.session.get(ProductVariant, variant_id)

    def get_variant_by_sku(self, sku: str) -> Optional[ProductVariant]:
        return self.scalar(select(ProductVariant).where(ProductVariant.sku == sku.strip().upper()))

    def _filtered(
        self,
        category_id: Optional[int] = None,
        featured: Optional[bool] = None,
        in_stock: Optional[bool] = None,
        search: Optional[str] = None,
        min_price_cents: Optional[int] = None,
        max_price_cents: Optional[int] = None,
    ) -> Select:
        """
        in_stock keeps products with at least one variant in stock; the price
        bounds keep products with at least one variant priced inside them.
        search matches name or description, case-insensitively.
        """
        statement = select(Product)
        if category_id is not None:
            statement = statement.where(Product.category_id == category_id)
        if featured is not None:
            statement = statement.where(Product.featured.is_(featured))
        if in_stock:
            statement = statement.where(
                Product.variants.any(ProductVariant.stock_quantity > 0)
            )
        if search:
            statement = statement.where(or_(
                Product.name.icontains(search, autoescape=True),
                Product.description.icontains(search, autoescape=True),
            ))

        price_bounds = []
        if min_price_cents is not None:
            price_bounds.append(ProductVariant.price_cents >= min_price_cents)
        if max_price_cents is not None:
            price_bounds.append(ProductVariant.price_cents <= max_price_cents)
        if price_bounds:
            statement = statement.where(Product.variants.any(and_(*price_bounds)))
        return statement

    def list_products(self, limit: int, after: Optional[int] = None, **filters: Any) -> Tuple[Sequence[Product], Optional[int]]:
        """Cursor-paginated listing in id order; filters as in _filtered"""
        return self.paginate(self._filtered(**filters), limit, after)

    def sorted_products(
        self, sort: str, limit: int, offset: int = 0, **filters: Any
    ) -> Tuple[Sequence[Product], Optional[int]]:
        """
        Offset-paginated listing in the given sort order.
        Returns the page and the offset of the next page, if any.
        """
        min_price = _min_price()
        orders = {
            "name": (Product.name, Product.id),
            "price_low_to_high": (min_price.asc(), Product.id),
            "price_high_to_low": (min_price.desc(), Product.id),
            "newest": (Product.created_at.desc(), Product.id.desc()),
            "featured": (Product.featured.desc(), Product.name, Product.id),
        }
        if sort not in orders:
            raise ValueError(f"Unknown product sort: {sort}")
        statement = self._filtered(**filters).order_by(*orders[sort])
        return self.paginate_offset(statement, limit, offset)

    def related_products(self, product: Product, limit: int = 4) -> List[Product]:
        """Other products from the same category"""
        if product.category_id is None:
            return []
        statement = (
            select(Product)
            .where(Product.category_id == product.category_id, Product.id != product.id)
            .order_by(Product.id)
            .limit(limit)
        )
        return self.scalars(statement)

    def in_category(self, category_id: int, limit: int) -> List[Product]:
        statement = select(Product).where(Product.category_id == category_id).order_by(Product.name).limit(limit)
        return self.scalars(statement)
