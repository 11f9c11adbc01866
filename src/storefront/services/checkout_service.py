from typing import Any, Dict, Optional
import logging
import uuid

from sqlalchemy.orm import Session

from storefront.core.config import config
from storefront.core.exceptions import UnauthorizedError
from storefront.core.result import Failure, FailureKind, Result, Success, returns_result
from storefront.models.cart import CartIdentity
from storefront.models.order import AddressKind, Order, OrderItem, OrderStatus, Payment, PaymentStatus
from storefront.repositories.cart_repository import CartRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.user_repository import UserRepository
from storefront.schemas.common_schemas import ErrorDetail
from storefront.services.cart_totals_service import CartTotalsService, resolve_shipping_policy
from storefront.services.cart_validation_service import CartValidator
from storefront.services.discount_service import DiscountPolicy, default_discount_policy
from storefront.services.shipping_service import MethodShippingPolicy

logger = logging.getLogger(__name__)


def new_transaction_id() -> str:
    return f"txn_{uuid.uuid4().hex}"


class CartCheckoutService:
    """
    Turn a ready cart into an order.

    Checkout flow, all inside one transaction:
      1. Require a signed-in user and a cart that passes the readiness check
      2. Re-validate any discount codes remembered on the cart
      3. Price the cart (subtotal, discount, tax, shipping)
      4. Decrement stock for every line
      5. Create the order with snapshotted line prices and totals, its
         addresses and a pending payment for the total
      6. Mark the cart completed
    Any failure rolls everything back.
    """

    def __init__(
        self,
        session: Session,
        discount_policy: Optional[DiscountPolicy] = None,
        validator: Optional[CartValidator] = None,
    ):
        self.session = session
        self.cart_repo = CartRepository(session)
        self.order_repo = OrderRepository(session)
        self.user_repo = UserRepository(session)
        self.discount_policy = discount_policy or default_discount_policy()
        self.validator = validator or CartValidator()

    @returns_result
    def process_checkout(
        self,
        identity: CartIdentity,
        shipping_address: Optional[Dict[str, Any]] = None,
        billing_address: Optional[Dict[str, Any]] = None,
        shipping_method_id: Optional[int] = None,
        payment_method: str = "card",
    ) -> Result[Order]:
        if identity.user_id is None:
            raise UnauthorizedError("Sign in to check out")

        user = self.user_repo.get_by_id(identity.user_id)
        if user is None:
            return Failure.not_found("User", identity.user_id)

        if not shipping_address:
            return Failure(
                "Shipping address is required",
                FailureKind.VALIDATION,
                [ErrorDetail(field="shipping_address", message="Shipping address is required", code="REQUIRED")],
            )

        cart = self.cart_repo.get_active_cart(identity)
        if cart is None:
            return Failure.business_rule(
                "Cart is empty", [ErrorDetail(field="cart", message="Cart is empty", code="EMPTY_CART")]
            )

        readiness = self.validator.check_readiness(cart)
        if not readiness.ready:
            logger.warning(f"Checkout blocked for cart {cart.id}: {len(readiness.errors)} problem(s)")
            return Failure.business_rule("Cart is not ready for checkout", readiness.errors)

        rejected = [code for code in cart.discount_codes if not self.discount_policy.accepts_code(code)]
        if rejected:
            return Failure.business_rule(
                "Invalid discount code",
                [ErrorDetail(field="code", message=f"'{code}' is not a valid discount code",
                             code="INVALID_DISCOUNT_CODE") for code in rejected],
            )

        shipping_policy = resolve_shipping_policy(self.order_repo, shipping_method_id)
        totals = CartTotalsService(self.discount_policy, shipping_policy).calculate(cart, cart.discount_codes)

        logger.info(f"Checking out cart {cart.id} for user {user.id}: total {totals.total}")

        with self.order_repo.write_operation(f"checkout cart {cart.id}"):
            with self.session.no_autoflush:
                order = Order(
                    user=user,
                    shipping_method=shipping_policy.method if isinstance(shipping_policy, MethodShippingPolicy) else None,
                    status=OrderStatus.PENDING_PAYMENT if totals.total_cents > 0 else OrderStatus.PAID,
                    currency=totals.currency,
                    subtotal_cents=totals.subtotal_cents,
                    discount_cents=totals.discount_cents,
                    shipping_cents=totals.shipping_cents,
                    tax_cents=totals.tax_cents,
                    total_cents=totals.total_cents,
                    discount_codes=",".join(cart.discount_codes) or None,
                )
                self.session.add(order)
            order.shipping_address = Order.build_address(AddressKind.SHIPPING, **shipping_address)
            order.billing_address = Order.build_address(AddressKind.BILLING, **(billing_address or shipping_address))

            for item in cart.items:
                variant = item.product_variant
                variant.stock_quantity = variant.stock_quantity - item.quantity
                order.items.append(OrderItem(
                    product_variant=variant,
                    quantity=item.quantity,
                    unit_price_cents=variant.price_cents,
                    sku=variant.sku,
                    product_name=variant.display_name,
                ))

            if totals.total_cents > 0:
                order.payments.append(Payment(
                    amount_cents=totals.total_cents,
                    currency=totals.currency or config.pricing.currency,
                    payment_method=payment_method,
                    status=PaymentStatus.PENDING,
                    transaction_id=new_transaction_id(),
                ))

        self.cart_repo.mark_completed(cart)
        self.order_repo.commit(f"checkout cart {cart.id}")

        logger.info(f"Created order {order.id} ({order.total_items} items) from cart {cart.id}")
        return Success(order, "Order placed")
