from storefront.models import Cart, CartIdentity, CartStatus
from storefront.services.cart_validation_service import CartValidator
from storefront.services.inventory_service import InventoryChecker


def cart_with(*lines):
    cart = Cart.for_identity(CartIdentity.for_session("validation"))
    for variant, quantity in lines:
        cart.add_item(variant, quantity)
    return cart


def test_inventory_checker(catalog):
    checker = InventoryChecker(catalog.silver_1tb, low_stock_threshold=5)
    assert checker.available_quantity == 3
    assert checker.is_available(3)
    assert not checker.is_available(4)
    assert checker.shortage(5) == 2
    assert checker.is_low_stock


def test_ready_cart(catalog):
    readiness = CartValidator().check_readiness(cart_with((catalog.silver_512, 2)))
    assert readiness.ready
    assert readiness.errors == []


def test_empty_cart_is_not_ready():
    readiness = CartValidator().check_readiness(cart_with())
    assert not readiness.ready
    assert [e.code for e in readiness.errors] == ["EMPTY_CART"]


def test_zero_stock_line_yields_exactly_one_error(catalog):
    cart = cart_with((catalog.gray_512, 1), (catalog.silver_512, 1))
    readiness = CartValidator().check_readiness(cart)

    assert not readiness.ready
    assert len(readiness.errors) == 1
    error = readiness.errors[0]
    assert error.field == "MBP-16-GRY-512"
    assert error.code == "INSUFFICIENT_STOCK"
    assert "out of stock" in error.message


def test_each_short_line_reported_once(catalog):
    cart = cart_with((catalog.gray_512, 1), (catalog.silver_1tb, 4))
    readiness = CartValidator().check_readiness(cart)
    assert sorted(e.field for e in readiness.errors) == ["MBP-16-GRY-512", "MBP-16-SLV-1TB"]


def test_inactive_cart_is_not_ready(catalog):
    cart = cart_with((catalog.silver_512, 1))
    cart.status = CartStatus.COMPLETED
    assert [e.code for e in CartValidator().check_readiness(cart).errors] == ["INACTIVE_CART"]


def test_addition_counts_quantity_already_in_cart(catalog):
    cart = cart_with((catalog.silver_1tb, 2))
    validator = CartValidator()

    assert validator.validate_item_addition(cart, catalog.silver_1tb, 1) == []

    errors = validator.validate_item_addition(cart, catalog.silver_1tb, 2)
    assert errors[0].message == "Can only add 1 more MacBook Pro 16 (Silver / 1TB) to cart"

    cart.add_item(catalog.silver_1tb, 1)
    errors = validator.validate_item_addition(cart, catalog.silver_1tb, 1)
    assert "already at maximum quantity" in errors[0].message


def test_addition_of_out_of_stock_variant(catalog):
    errors = CartValidator().validate_item_addition(cart_with(), catalog.gray_512, 1)
    assert [e.code for e in errors] == ["OUT_OF_STOCK"]


def test_quantity_update(catalog):
    cart = cart_with((catalog.silver_1tb, 1))
    item = cart.items[0]
    validator = CartValidator()
    assert validator.validate_quantity_update(item, 3) == []
    assert validator.validate_quantity_update(item, 0) == []
    assert validator.validate_quantity_update(item, 4)[0].code == "INSUFFICIENT_STOCK"


def test_warnings_flag_low_stock_and_large_quantities(catalog):
    cart = cart_with((catalog.silver_1tb, 1), (catalog.cable_variant, 11))
    codes = [(w.code, w.sku) for w in CartValidator().warnings(cart)]
    assert ("LOW_STOCK", "MBP-16-SLV-1TB") in codes
    assert ("HIGH_QUANTITY", "USB-C-CABLE") in codes
