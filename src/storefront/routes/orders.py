import logging

from flask import Blueprint, request

from storefront.core.config import config
from storefront.routes.schemas import CheckoutSchema, ConfirmPaymentSchema
from storefront.routes.utils import (
    failure_response,
    get_cart_identity,
    get_current_user_id,
    get_session,
    load_json,
    parse_int,
    success_response,
)
from storefront.schemas.common_schemas import PaginationResponse
from storefront.schemas.order_schemas import OrderListResponse, OrderResponse, OrderSummaryResponse
from storefront.services.checkout_service import CartCheckoutService
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)

orders_bp = Blueprint("orders", __name__)

_checkout_schema = CheckoutSchema()
_payment_schema = ConfirmPaymentSchema()


def _order_response(result, status: int = 200):
    if not result.ok:
        return failure_response(result)
    return success_response(OrderResponse.from_order(result.data).model_dump(mode="json"), result.message, status)


@orders_bp.route("/checkout", methods=["POST"])
def checkout():
    """
    Place an order from the caller's active cart.

    Stock is decremented, the order and its pending payment are created and
    the cart is completed in one transaction. Guests get a 401.
    """
    identity = get_cart_identity()
    body = load_json(_checkout_schema)

    result = CartCheckoutService(get_session()).process_checkout(
        identity,
        shipping_address=body["shipping_address"],
        billing_address=body.get("billing_address"),
        shipping_method_id=body.get("shipping_method_id"),
        payment_method=body.get("payment_method", "card"),
    )
    return _order_response(result, 201)


@orders_bp.route("", methods=["GET"])
def list_orders():
    user_id = get_current_user_id()
    limit = parse_int(request.args.get("limit"), default=config.api.default_page_size,
                      min_val=1, max_val=config.api.max_page_size, field_name="limit")
    after = parse_int(request.args.get("after"), default=None, min_val=1, field_name="after")

    result = OrderService(get_session()).list_orders(user_id, limit, after)
    if not result.ok:
        return failure_response(result)

    page = result.data
    body = OrderListResponse(
        orders=[OrderSummaryResponse.from_order(o) for o in page.orders],
        pagination=PaginationResponse(
            limit=page.limit,
            count=len(page.orders),
            has_more=page.has_more,
            next_cursor=page.next_cursor,
        ),
    )
    return success_response(body.model_dump(mode="json"))


@orders_bp.route("/<int:order_id>", methods=["GET"])
def get_order(order_id: int):
    user_id = get_current_user_id()
    return _order_response(OrderService(get_session()).get_order(user_id, order_id))


@orders_bp.route("/<int:order_id>/cancel", methods=["POST"])
def cancel_order(order_id: int):
    user_id = get_current_user_id()
    return _order_response(OrderService(get_session()).cancel_order(user_id, order_id))


@orders_bp.route("/<int:order_id>/payment", methods=["POST"])
def confirm_payment(order_id: int):
    user_id = get_current_user_id()
    body = load_json(_payment_schema, allow_empty=True)
    result = OrderService(get_session()).confirm_payment(user_id, order_id, body.get("transaction_id"))
    return _order_response(result)
