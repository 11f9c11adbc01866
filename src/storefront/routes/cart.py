import logging

from flask import Blueprint, request

from storefront.routes.schemas import AddCartItemSchema, ApplyDiscountSchema, UpdateCartItemSchema
from storefront.routes.utils import (
    failure_response,
    get_cart_identity,
    get_session,
    load_json,
    parse_int,
    success_response,
)
from storefront.schemas.cart_schemas import CartResponse, CheckoutPreviewResponse
from storefront.services.cart_service import ShoppingCartService

logger = logging.getLogger(__name__)

cart_bp = Blueprint("cart", __name__)

_add_schema = AddCartItemSchema()
_update_schema = UpdateCartItemSchema()
_discount_schema = ApplyDiscountSchema()


def _cart_response(result, status: int = 200):
    if not result.ok:
        return failure_response(result)
    body = CartResponse.from_summary(result.data).model_dump(mode="json")
    return success_response(body, result.message, status)


@cart_bp.route("", methods=["GET"])
def get_cart():
    """The caller's active cart with totals; empty when none exists yet."""
    identity = get_cart_identity()
    return _cart_response(ShoppingCartService(get_session()).get_cart(identity))


@cart_bp.route("/items", methods=["POST"])
def add_cart_item():
    """Add a variant to the cart, or increment quantity if already present."""
    identity = get_cart_identity()
    data = load_json(_add_schema)
    result = ShoppingCartService(get_session()).add_to_cart(identity, data["variant_id"], data["quantity"])
    return _cart_response(result, 201)


@cart_bp.route("/items/<int:variant_id>", methods=["PATCH"])
def update_cart_item(variant_id: int):
    """Set a line's quantity; 0 removes the line."""
    identity = get_cart_identity()
    data = load_json(_update_schema)
    result = ShoppingCartService(get_session()).update_cart_item(identity, variant_id, data["quantity"])
    return _cart_response(result)


@cart_bp.route("/items/<int:variant_id>", methods=["DELETE"])
def remove_cart_item(variant_id: int):
    identity = get_cart_identity()
    return _cart_response(ShoppingCartService(get_session()).remove_from_cart(identity, variant_id))


@cart_bp.route("", methods=["DELETE"])
def clear_cart():
    identity = get_cart_identity()
    return _cart_response(ShoppingCartService(get_session()).clear_cart(identity))


@cart_bp.route("/discount", methods=["POST"])
def apply_discount():
    identity = get_cart_identity()
    data = load_json(_discount_schema)
    return _cart_response(ShoppingCartService(get_session()).apply_discount_code(identity, data["code"]))


@cart_bp.route("/checkout", methods=["GET"])
def checkout_preview():
    """Readiness, totals and shipping options before placing the order."""
    identity = get_cart_identity()
    shipping_method_id = parse_int(request.args.get("shipping_method_id"), default=None,
                                   min_val=1, field_name="shipping_method_id")
    result = ShoppingCartService(get_session()).prepare_for_checkout(identity, shipping_method_id)
    if not result.ok:
        return failure_response(result)
    return success_response(CheckoutPreviewResponse.from_preview(result.data).model_dump(mode="json"))
