from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional
import logging

from sqlalchemy.orm import Session

from storefront.core.result import Failure, FailureKind, Result, Success, returns_result
from storefront.models.product import Product, ProductVariant
from storefront.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class VariantFinder:
    """
    Option bookkeeping for one product's variants.

    Never raises on a miss; lookups return None.
    """

    def __init__(self, variants: Iterable[ProductVariant]):
        self.variants = list(variants)

    @classmethod
    def for_product(cls, product: Product) -> "VariantFinder":
        return cls(product.variants)

    def available_options(self) -> Dict[str, List[str]]:
        """
        Option name -> distinct values, both in first-seen order across variants.

        {"color": ["Silver", "Space Gray"], "storage": ["512GB", "1TB"]}
        """
        options: Dict[str, List[str]] = {}
        for variant in self.variants:
            for name, value in variant.options.items():
                values = options.setdefault(name, [])
                if value not in values:
                    values.append(value)
        return options

    def find_by_options(self, selected: Optional[Mapping[str, object]]) -> Optional[ProductVariant]:
        """First variant matching every selected pair by string comparison."""
        selected = selected or {}
        return next((v for v in self.variants if v.matches_options(selected)), None)

    def resolve(self, selected: Optional[Mapping[str, object]] = None) -> Optional[ProductVariant]:
        """The variant for a selection; nothing selected means the first variant."""
        if not selected:
            return self.variants[0] if self.variants else None
        return self.find_by_options(selected)


@dataclass
class VariantSelection:
    product: Product
    variant: ProductVariant
    selected_options: Dict[str, str]
    available_options: Dict[str, List[str]] = field(default_factory=dict)


class VariantSelectionService:
    """Resolve a product's variant from user-selected options"""

    def __init__(self, session: Session):
        self.session = session
        self.product_repo = ProductRepository(session)

    @returns_result
    def select(self, product_id: int, options: Optional[Mapping[str, object]] = None) -> Result[VariantSelection]:
        product = self.product_repo.get_by_id(product_id)
        if product is None:
            return Failure.not_found("Product", product_id)

        finder = VariantFinder.for_product(product)
        available = finder.available_options()
        selected = {str(k): str(v) for k, v in (options or {}).items()}
        variant = finder.resolve(selected)

        if variant is None:
            logger.info(f"No variant of product {product_id} matches {selected}")
            return Failure(
                "No variant matches the selected options",
                FailureKind.NOT_FOUND,
                data={"selected_options": selected, "available_options": available},
            )

        return Success(VariantSelection(product, variant, selected, available))
