from datetime import datetime
from typing import Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from storefront.core.exceptions import DatabaseError
from storefront.models.cart import Cart, CartIdentity, CartItem, CartStatus
from storefront.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class CartRepository(BaseRepository[Cart]):
    """Repository for shopping carts and their items"""

    @property
    def model(self):
        return Cart

    def get_active_cart(self, identity: CartIdentity) -> Optional[Cart]:
        """The owner's single active cart, if one exists"""
        statement = select(Cart).where(Cart.status == CartStatus.ACTIVE)
        if identity.user_id is not None:
            statement = statement.where(Cart.user_id == identity.user_id)
        else:
            statement = statement.where(Cart.session_id == identity.session_id)
        return self.scalar(statement)

    def find_or_create(self, identity: CartIdentity) -> Cart:
        """
        Carts are created lazily, the first time an owner needs one.
        """
        cart = self.get_active_cart(identity)
        if cart is None:
            cart = self.add(Cart.for_identity(identity))
            logger.info(f"Created cart {cart.id} for {identity}")
        return cart

    def find_item(self, cart: Cart, variant_id: int) -> Optional[CartItem]:
        return next((item for item in cart.items if item.product_variant_id == variant_id), None)

    def mark_completed(self, cart: Cart) -> Cart:
        with self.write_operation(f"complete cart {cart.id}"):
            cart.status = CartStatus.COMPLETED
        return cart

    def mark_abandoned(self, older_than: datetime) -> int:
        """
        Flip active carts untouched since older_than to abandoned.
        Returns the number of carts updated.
        """
        statement = (
            update(Cart)
            .where(Cart.status == CartStatus.ACTIVE, Cart.updated_at < older_than)
            .values(status=CartStatus.ABANDONED)
            .execution_options(synchronize_session="fetch")
        )
        try:
            result = self.session.execute(statement)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Abandoned cart sweep failed: {e}")
            raise DatabaseError(f"Abandoned cart sweep failed: {e}", "UPDATE")
        logger.info(f"Marked {result.rowcount} carts abandoned (idle since {older_than.isoformat()})")
        return result.rowcount
