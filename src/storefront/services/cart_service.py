from dataclasses import dataclass, field
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from storefront.core.result import Failure, FailureKind, Result, Success, returns_result
from storefront.models.cart import Cart, CartIdentity
from storefront.repositories.cart_repository import CartRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.product_repository import ProductRepository
from storefront.schemas.common_schemas import ErrorDetail
from storefront.services.cart_totals_service import CartTotals, CartTotalsService, resolve_shipping_policy
from storefront.services.cart_validation_service import CartValidator, CartWarning, CheckoutReadiness
from storefront.services.discount_service import CodeDiscountPolicy, DiscountPolicy, default_discount_policy
from storefront.services.shipping_service import ShippingCalculator, ShippingQuote

logger = logging.getLogger(__name__)


@dataclass
class CartSummary:
    cart: Cart
    totals: CartTotals
    warnings: List[CartWarning] = field(default_factory=list)


@dataclass
class CheckoutPreview:
    cart: Cart
    totals: CartTotals
    readiness: CheckoutReadiness
    warnings: List[CartWarning] = field(default_factory=list)
    shipping_options: List[ShippingQuote] = field(default_factory=list)


class ShoppingCartService:
    """
    Shopping cart workflows

    Every operation takes the owner explicitly as a CartIdentity and returns
    a Result; nothing here raises for a business condition.

    Business Rules:
    - A cart is created the first time its owner adds an item
    - Additions and quantity changes must fit current stock, counting what
      is already in the cart
    - A quantity of 0 removes the line
    - Discount codes must be accepted by the discount policy before they are
      remembered on the cart
    """

    def __init__(
        self,
        session: Session,
        discount_policy: Optional[DiscountPolicy] = None,
        validator: Optional[CartValidator] = None,
    ):
        self.session = session
        self.cart_repo = CartRepository(session)
        self.product_repo = ProductRepository(session)
        self.order_repo = OrderRepository(session)
        self.discount_policy = discount_policy or default_discount_policy()
        self.validator = validator or CartValidator()

    def _summary(self, cart: Cart, shipping_method_id: Optional[int] = None) -> CartSummary:
        totals_service = CartTotalsService(
            discount_policy=self.discount_policy,
            shipping_policy=resolve_shipping_policy(self.order_repo, shipping_method_id),
        )
        totals = totals_service.calculate(cart, cart.discount_codes)
        return CartSummary(cart, totals, self.validator.warnings(cart))

    @returns_result
    def get_cart(self, identity: CartIdentity) -> Result[CartSummary]:
        """The owner's active cart, or an unsaved empty one when none exists yet"""
        cart = self.cart_repo.get_active_cart(identity) or Cart.for_identity(identity)
        return Success(self._summary(cart))

    @returns_result
    def add_to_cart(self, identity: CartIdentity, variant_id: int, quantity: int = 1) -> Result[CartSummary]:
        logger.info(f"Adding variant {variant_id} x{quantity} to cart of {identity}")

        if quantity is None or quantity <= 0:
            return Failure(
                "Quantity must be positive",
                FailureKind.VALIDATION,
                [ErrorDetail(field="quantity", message="Quantity must be positive", code="INVALID_QUANTITY")],
            )

        variant = self.product_repo.get_variant(variant_id)
        if variant is None:
            return Failure.not_found("Product variant", variant_id)

        # validated against an unsaved cart first so a rejected add persists nothing
        cart = self.cart_repo.get_active_cart(identity) or Cart.for_identity(identity)
        errors = self.validator.validate_item_addition(cart, variant, quantity)
        if errors:
            logger.warning(f"Rejected add of variant {variant_id} for {identity}: {errors[0].message}")
            return Failure.business_rule("Cannot add item to cart", errors)

        if cart.id is None:
            cart = self.cart_repo.find_or_create(identity)
        with self.cart_repo.write_operation("add cart item"):
            cart.add_item(variant, quantity)
        self.cart_repo.commit("add cart item")

        logger.info(f"Cart {cart.id} now holds {cart.total_items} items")
        return Success(self._summary(cart), "Item added to cart")

    @returns_result
    def update_cart_item(self, identity: CartIdentity, variant_id: int, quantity: int) -> Result[CartSummary]:
        logger.info(f"Setting variant {variant_id} to quantity {quantity} in cart of {identity}")

        cart = self.cart_repo.get_active_cart(identity)
        if cart is None:
            return Failure.not_found("Cart")
        item = self.cart_repo.find_item(cart, variant_id)
        if item is None:
            return Failure.not_found("Cart item", variant_id)

        errors = self.validator.validate_quantity_update(item, quantity)
        if errors:
            logger.warning(f"Rejected quantity update of variant {variant_id} for {identity}: {errors[0].message}")
            return Failure.business_rule("Cannot update quantity", errors)

        with self.cart_repo.write_operation("update cart item"):
            cart.update_item_quantity(item.product_variant, quantity)
        self.cart_repo.commit("update cart item")

        message = "Item removed from cart" if quantity <= 0 else "Cart updated"
        return Success(self._summary(cart), message)

    @returns_result
    def remove_from_cart(self, identity: CartIdentity, variant_id: int) -> Result[CartSummary]:
        cart = self.cart_repo.get_active_cart(identity)
        if cart is None:
            return Failure.not_found("Cart")
        item = self.cart_repo.find_item(cart, variant_id)
        if item is None:
            return Failure.not_found("Cart item", variant_id)

        with self.cart_repo.write_operation("remove cart item"):
            cart.remove_item(item.product_variant)
        self.cart_repo.commit("remove cart item")

        logger.info(f"Removed variant {variant_id} from cart {cart.id}")
        return Success(self._summary(cart), "Item removed from cart")

    @returns_result
    def clear_cart(self, identity: CartIdentity) -> Result[CartSummary]:
        cart = self.cart_repo.get_active_cart(identity)
        if cart is None:
            return Success(self._summary(Cart.for_identity(identity)), "Cart is already empty")

        with self.cart_repo.write_operation("clear cart"):
            cart.clear()
            cart.clear_discount_codes()
        self.cart_repo.commit("clear cart")

        logger.info(f"Cleared cart {cart.id}")
        return Success(self._summary(cart), "Cart cleared")

    @returns_result
    def apply_discount_code(self, identity: CartIdentity, code: str) -> Result[CartSummary]:
        normalized = CodeDiscountPolicy.normalize(code)
        cart = self.cart_repo.get_active_cart(identity)
        if cart is None or cart.is_empty:
            return Failure.business_rule(
                "Cannot apply a discount to an empty cart",
                [ErrorDetail(field="cart", message="Cart is empty", code="EMPTY_CART")],
            )

        if not self.discount_policy.accepts_code(normalized):
            logger.warning(f"Rejected discount code {normalized!r} for {identity}")
            return Failure.business_rule(
                "Invalid discount code",
                [ErrorDetail(field="code", message=f"'{code}' is not a valid discount code",
                             code="INVALID_DISCOUNT_CODE")],
            )

        with self.cart_repo.write_operation("apply discount code"):
            cart.apply_discount_code(normalized)
        self.cart_repo.commit("apply discount code")

        logger.info(f"Applied discount code {normalized} to cart {cart.id}")
        return Success(self._summary(cart), f"Discount code {normalized} applied")

    @returns_result
    def prepare_for_checkout(
        self, identity: CartIdentity, shipping_method_id: Optional[int] = None
    ) -> Result[CheckoutPreview]:
        """
        Readiness, totals and shipping options for a cart about to check out.
        A cart that is not ready yields a failure listing every problem.
        """
        cart = self.cart_repo.get_active_cart(identity)
        if cart is None:
            return Failure.business_rule(
                "Cart is empty", [ErrorDetail(field="cart", message="Cart is empty", code="EMPTY_CART")]
            )

        readiness = self.validator.check_readiness(cart)
        if not readiness.ready:
            logger.warning(f"Cart {cart.id} not ready for checkout: {len(readiness.errors)} problem(s)")
            return Failure.business_rule("Cart is not ready for checkout", readiness.errors)

        summary = self._summary(cart, shipping_method_id)
        options = ShippingCalculator().shipping_options(cart, self.order_repo.shipping_methods())
        return Success(CheckoutPreview(cart, summary.totals, readiness, summary.warnings, options))
