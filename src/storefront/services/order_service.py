from dataclasses import dataclass
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from storefront.core.config import config
from storefront.core.exceptions import BusinessLogicError, ConflictError
from storefront.core.result import Failure, Result, Success, returns_result
from storefront.models.order import Order, OrderStatus, PaymentStatus
from storefront.repositories.order_repository import OrderRepository

logger = logging.getLogger(__name__)


@dataclass
class OrderPage:
    orders: List[Order]
    limit: int
    next_cursor: Optional[int] = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


class OrderService:
    """
    Order reads and post-checkout transitions

    Business Rules:
    - Users only ever see their own orders
    - Only pending_payment, paid and processing orders can be cancelled;
      cancelling puts the stock back
    - Confirming payment moves a pending_payment order to paid
    """

    def __init__(self, session: Session):
        self.session = session
        self.order_repo = OrderRepository(session)

    def _find(self, user_id: int, order_id: int) -> Optional[Order]:
        return self.order_repo.get_for_user(order_id, user_id)

    @returns_result
    def get_order(self, user_id: int, order_id: int) -> Result[Order]:
        order = self._find(user_id, order_id)
        if order is None:
            return Failure.not_found("Order", order_id)
        return Success(order)

    @returns_result
    def list_orders(self, user_id: int, limit: Optional[int] = None, after: Optional[int] = None) -> Result[OrderPage]:
        limit = min(limit or config.api.default_page_size, config.api.max_page_size)
        orders, next_cursor = self.order_repo.list_for_user(user_id, limit, after)
        return Success(OrderPage(list(orders), limit, next_cursor))

    @returns_result
    def cancel_order(self, user_id: int, order_id: int) -> Result[Order]:
        order = self._find(user_id, order_id)
        if order is None:
            return Failure.not_found("Order", order_id)

        if not order.can_cancel:
            status = OrderStatus(order.status).value
            logger.warning(f"Refused to cancel order {order_id} in status {status}")
            raise BusinessLogicError(f"Order cannot be cancelled once {status}", rule="not_cancellable")

        with self.order_repo.write_operation(f"cancel order {order_id}"):
            for item in order.items:
                item.product_variant.stock_quantity = item.product_variant.stock_quantity + item.quantity
            for payment in order.payments:
                if payment.status == PaymentStatus.PENDING:
                    payment.status = PaymentStatus.FAILED
                elif payment.status == PaymentStatus.COMPLETED:
                    payment.status = PaymentStatus.REFUNDED
            order.status = OrderStatus.CANCELLED
        self.order_repo.commit(f"cancel order {order_id}")

        logger.info(f"Cancelled order {order_id} and restocked {order.total_items} units")
        return Success(order, "Order cancelled")

    @returns_result
    def confirm_payment(self, user_id: int, order_id: int, transaction_id: Optional[str] = None) -> Result[Order]:
        order = self._find(user_id, order_id)
        if order is None:
            return Failure.not_found("Order", order_id)

        payment = order.latest_payment
        if order.status != OrderStatus.PENDING_PAYMENT or payment is None or payment.status != PaymentStatus.PENDING:
            raise ConflictError(f"Order {order_id} is not awaiting payment", conflict_field="status")

        with self.order_repo.write_operation(f"confirm payment for order {order_id}"):
            payment.status = PaymentStatus.COMPLETED
            if transaction_id:
                payment.transaction_id = transaction_id
            order.status = OrderStatus.PAID
        self.order_repo.commit(f"confirm payment for order {order_id}")

        logger.info(f"Payment {payment.transaction_id} completed for order {order_id}")
        return Success(order, "Payment confirmed")
