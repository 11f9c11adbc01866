from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select

from storefront.models.order import Order, ShippingMethod
from storefront.repositories.base import BaseRepository

DEFAULT_SHIPPING_METHOD_NAME = "Standard Shipping"


class OrderRepository(BaseRepository[Order]):
    """Orders and the shipping methods they reference"""

    @property
    def model(self):
        return Order

    def get_for_user(self, order_id: int, user_id: int) -> Optional[Order]:
        return self.scalar(select(Order).where(Order.id == order_id, Order.user_id == user_id))

    def list_for_user(
        self, user_id: int, limit: int, after: Optional[int] = None
    ) -> Tuple[Sequence[Order], Optional[int]]:
        return self.paginate(select(Order).where(Order.user_id == user_id), limit, after)

    def shipping_methods(self) -> List[ShippingMethod]:
        statement = select(ShippingMethod).where(ShippingMethod.active.is_(True)).order_by(ShippingMethod.id)
        return self.scalars(statement)

    def get_shipping_method(self, method_id: int) -> Optional[ShippingMethod]:
        return self.session.get(ShippingMethod, method_id)

    def default_shipping_method(self) -> Optional[ShippingMethod]:
        """'Standard Shipping' when present, otherwise the first active method"""
        methods = self.shipping_methods()
        preferred = next((m for m in methods if m.name == DEFAULT_SHIPPING_METHOD_NAME), None)
        return preferred or (methods[0] if methods else None)
