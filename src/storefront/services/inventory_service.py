from typing import Optional

from storefront.core.config import config
from storefront.models.product import ProductVariant, StockStatus


class InventoryChecker:
    """
    Stock questions about a single variant.

    All answers are read straight from variant.stock_quantity; nothing is
    reserved or cached.
    """

    def __init__(self, variant: ProductVariant, low_stock_threshold: Optional[int] = None):
        self.variant = variant
        self.low_stock_threshold = (
            config.pricing.low_stock_threshold if low_stock_threshold is None else low_stock_threshold
        )

    @property
    def available_quantity(self) -> int:
        return self.variant.stock_quantity

    def is_available(self, quantity: int = 1) -> bool:
        return self.available_quantity >= quantity

    def shortage(self, quantity: int) -> int:
        """Units missing to satisfy quantity (0 when there is enough)"""
        return max(0, quantity - self.available_quantity)

    @property
    def is_low_stock(self) -> bool:
        return self.variant.is_low_stock(self.low_stock_threshold)

    @property
    def stock_status(self) -> StockStatus:
        return self.variant.stock_status(self.low_stock_threshold)
