import pytest

from storefront.core.result import FailureKind
from storefront.models import CartIdentity
from storefront.repositories.cart_repository import CartRepository
from storefront.services.cart_service import ShoppingCartService


@pytest.fixture
def service(session):
    return ShoppingCartService(session)


def test_get_cart_without_cart_is_empty_and_unsaved(service, user_identity):
    result = service.get_cart(user_identity)
    assert result.ok
    assert result.data.cart.id is None
    assert result.data.cart.is_empty
    assert result.data.totals.total_cents == 0


def test_add_to_cart_creates_cart_lazily(service, catalog, user_identity):
    result = service.add_to_cart(user_identity, catalog.silver_512.id, 2)

    assert result.ok
    assert result.message == "Item added to cart"
    cart = result.data.cart
    assert cart.id is not None
    assert cart.total_items == 2
    assert result.data.totals.subtotal_cents == 199800


def test_adding_twice_merges_into_one_line(service, catalog, guest_identity):
    service.add_to_cart(guest_identity, catalog.cable_variant.id, 1)
    result = service.add_to_cart(guest_identity, catalog.cable_variant.id, 2)

    assert len(result.data.cart.items) == 1
    assert result.data.cart.items[0].quantity == 3
    assert result.data.cart.session_id == "guest-session-1"


def test_guest_and_user_carts_are_separate(service, catalog, user_identity, guest_identity):
    service.add_to_cart(user_identity, catalog.silver_512.id, 1)
    service.add_to_cart(guest_identity, catalog.cable_variant.id, 1)

    user_cart = service.get_cart(user_identity).data.cart
    guest_cart = service.get_cart(guest_identity).data.cart
    assert user_cart.id != guest_cart.id
    assert [i.product_variant.sku for i in user_cart.items] == ["MBP-16-SLV-512"]


def test_add_to_cart_failures(service, catalog, user_identity):
    missing = service.add_to_cart(user_identity, 9999, 1)
    assert missing.kind is FailureKind.NOT_FOUND

    invalid = service.add_to_cart(user_identity, catalog.silver_512.id, 0)
    assert invalid.kind is FailureKind.VALIDATION

    too_many = service.add_to_cart(user_identity, catalog.silver_1tb.id, 4)
    assert too_many.kind is FailureKind.BUSINESS_RULE
    assert too_many.errors[0].code == "INSUFFICIENT_STOCK"

    out_of_stock = service.add_to_cart(user_identity, catalog.gray_512.id, 1)
    assert out_of_stock.errors[0].code == "OUT_OF_STOCK"


def test_rejected_first_add_leaves_no_cart_behind(service, session, catalog, user_identity):
    result = service.add_to_cart(user_identity, catalog.gray_512.id, 1)
    assert not result.ok
    assert not session.new

    session.commit()
    assert CartRepository(session).get_active_cart(user_identity) is None


def test_update_cart_item(service, catalog, user_identity):
    service.add_to_cart(user_identity, catalog.silver_512.id, 1)

    result = service.update_cart_item(user_identity, catalog.silver_512.id, 4)
    assert result.ok
    assert result.data.cart.items[0].quantity == 4

    too_many = service.update_cart_item(user_identity, catalog.silver_512.id, 11)
    assert too_many.kind is FailureKind.BUSINESS_RULE

    removed = service.update_cart_item(user_identity, catalog.silver_512.id, 0)
    assert removed.ok
    assert removed.message == "Item removed from cart"
    assert removed.data.cart.is_empty


def test_update_or_remove_without_cart_or_line(service, catalog, user_identity):
    assert service.update_cart_item(user_identity, catalog.silver_512.id, 1).kind is FailureKind.NOT_FOUND

    service.add_to_cart(user_identity, catalog.silver_512.id, 1)
    assert service.remove_from_cart(user_identity, catalog.cable_variant.id).kind is FailureKind.NOT_FOUND


def test_remove_and_clear(service, catalog, user_identity):
    service.add_to_cart(user_identity, catalog.silver_512.id, 1)
    service.add_to_cart(user_identity, catalog.cable_variant.id, 1)
    service.apply_discount_code(user_identity, "SAVE10")

    result = service.remove_from_cart(user_identity, catalog.silver_512.id)
    assert [i.product_variant.sku for i in result.data.cart.items] == ["USB-C-CABLE"]

    cleared = service.clear_cart(user_identity)
    assert cleared.data.cart.is_empty
    assert cleared.data.cart.discount_codes == []


def test_clear_without_cart_succeeds(service):
    result = service.clear_cart(CartIdentity.for_session("nobody"))
    assert result.ok
    assert result.message == "Cart is already empty"


def test_apply_discount_code(service, catalog, user_identity):
    service.add_to_cart(user_identity, catalog.silver_512.id, 1)

    result = service.apply_discount_code(user_identity, "save10")
    assert result.ok
    assert result.data.cart.discount_codes == ["SAVE10"]
    assert result.data.totals.discount_cents == 9990

    invalid = service.apply_discount_code(user_identity, "FREESTUFF")
    assert invalid.kind is FailureKind.BUSINESS_RULE
    assert invalid.errors[0].code == "INVALID_DISCOUNT_CODE"


def test_discount_on_empty_cart_is_rejected(service, user_identity):
    result = service.apply_discount_code(user_identity, "SAVE10")
    assert result.errors[0].code == "EMPTY_CART"


def test_prepare_for_checkout(service, session, catalog, user_identity, shipping_methods):
    service.add_to_cart(user_identity, catalog.cable_variant.id, 1)

    result = service.prepare_for_checkout(user_identity)
    assert result.ok
    preview = result.data
    assert preview.readiness.ready
    assert preview.totals.total_cents == 3158
    assert [q.name for q in preview.shipping_options] == ["Standard Shipping", "Express Shipping"]

    catalog.cable_variant.stock_quantity = 0
    session.commit()
    blocked = service.prepare_for_checkout(user_identity)
    assert not blocked.ok
    assert [e.field for e in blocked.errors] == ["USB-C-CABLE"]


def test_prepare_for_checkout_with_shipping_method(service, catalog, user_identity, shipping_methods):
    service.add_to_cart(user_identity, catalog.cable_variant.id, 1)
    result = service.prepare_for_checkout(user_identity, shipping_methods.express.id)
    assert result.data.totals.shipping_cents == 1499 + 100

    missing = service.prepare_for_checkout(user_identity, 9999)
    assert missing.kind is FailureKind.NOT_FOUND


def test_prepare_for_checkout_without_cart(service, user_identity):
    result = service.prepare_for_checkout(user_identity)
    assert result.errors[0].code == "EMPTY_CART"
