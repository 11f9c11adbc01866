from datetime import timedelta

import pytest

from storefront.core.exceptions import ValidationError
from storefront.db import utcnow
from storefront.models import Cart, CartIdentity, CartStatus, Category, Product, ProductVariant
from storefront.repositories.cart_repository import CartRepository
from storefront.repositories.category_repository import CategoryRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.product_repository import ProductRepository
from storefront.repositories.user_repository import UserRepository


def test_duplicate_sku_becomes_validation_error(session, catalog):
    repo = ProductRepository(session)
    product = Product(name="Clone", description="Same SKU as the cable")
    product.variants.append(ProductVariant(sku="usb-c-cable", price_cents=100, stock_quantity=1))

    with pytest.raises(ValidationError) as exc:
        repo.add(product)
    assert exc.value.field_errors[0]["code"] == "INTEGRITY_ERROR"


def test_variant_lookups(session, catalog):
    repo = ProductRepository(session)
    assert repo.get_variant(catalog.silver_512.id) is catalog.silver_512
    assert repo.get_variant_by_sku(" usb-c-cable ") is catalog.cable_variant


def test_list_products_filters(session, catalog):
    repo = ProductRepository(session)
    products, cursor = repo.list_products(limit=1)
    assert products == [catalog.macbook]
    assert cursor == catalog.macbook.id

    products, cursor = repo.list_products(limit=10, after=cursor)
    assert products == [catalog.cable]
    assert cursor is None

    catalog.cable_variant.stock_quantity = 0
    session.commit()
    in_stock, _ = repo.list_products(limit=10, in_stock=True)
    assert in_stock == [catalog.macbook]

    assert repo.list_products(limit=10, category_id=catalog.electronics.id)[0] == []


def test_related_products_share_category(session, catalog):
    repo = ProductRepository(session)
    assert repo.related_products(catalog.macbook) == [catalog.cable]
    assert repo.related_products(catalog.macbook, limit=0) == []


def test_search_matches_name_or_description(session, catalog):
    repo = ProductRepository(session)
    assert repo.list_products(limit=10, search="MACBOOK")[0] == [catalog.macbook]
    assert repo.list_products(limit=10, search="braided")[0] == [catalog.cable]
    assert repo.list_products(limit=10, search="%")[0] == []


def test_price_range_matches_any_variant(session, catalog):
    repo = ProductRepository(session)
    assert repo.list_products(limit=10, min_price_cents=100000)[0] == [catalog.macbook]
    assert repo.list_products(limit=10, max_price_cents=5000)[0] == [catalog.cable]
    assert repo.list_products(limit=10, min_price_cents=2000, max_price_cents=99000)[0] == []


def test_sorted_products(session, catalog):
    repo = ProductRepository(session)
    assert repo.sorted_products("price_low_to_high", 10)[0] == [catalog.cable, catalog.macbook]
    assert repo.sorted_products("price_high_to_low", 10)[0] == [catalog.macbook, catalog.cable]

    catalog.cable.featured = True
    catalog.macbook.created_at = utcnow() - timedelta(days=30)
    session.commit()
    assert repo.sorted_products("featured", 10)[0] == [catalog.cable, catalog.macbook]
    assert repo.sorted_products("newest", 10)[0] == [catalog.cable, catalog.macbook]

    with pytest.raises(ValueError):
        repo.sorted_products("random", 10)


def test_sorted_products_pages_by_offset(session, catalog):
    repo = ProductRepository(session)
    page, next_offset = repo.sorted_products("name", limit=1)
    assert page == [catalog.macbook]
    assert next_offset == 1

    page, next_offset = repo.sorted_products("name", limit=1, offset=next_offset)
    assert page == [catalog.cable]
    assert next_offset is None


def test_category_lookups(session, catalog):
    repo = CategoryRepository(session)
    audio = Category(name="Audio", parent=catalog.electronics)
    session.add(audio)
    session.commit()

    assert repo.get_by_slug("laptops") is catalog.laptops
    assert repo.get_by_slug("garden") is None
    assert repo.roots() == [catalog.electronics]
    assert repo.siblings(catalog.laptops) == [audio]
    assert repo.siblings(catalog.electronics) == []


def test_find_or_create_cart(session, user_identity):
    repo = CartRepository(session)
    cart = repo.find_or_create(user_identity)
    assert cart.id is not None
    assert repo.find_or_create(user_identity) is cart


def test_mark_abandoned_only_touches_idle_active_carts(session, user_identity, guest_identity):
    repo = CartRepository(session)
    idle = Cart.for_identity(guest_identity)
    idle.updated_at = utcnow() - timedelta(days=10)
    fresh = Cart.for_identity(user_identity)
    session.add_all([idle, fresh])
    session.commit()

    assert repo.mark_abandoned(utcnow() - timedelta(days=7)) == 1
    session.commit()
    session.expire_all()

    assert idle.status is CartStatus.ABANDONED
    assert fresh.status is CartStatus.ACTIVE
    assert repo.get_active_cart(guest_identity) is None
    assert repo.get_active_cart(CartIdentity.for_user(fresh.user_id)) is fresh


def test_default_shipping_method(session, shipping_methods):
    repo = OrderRepository(session)
    assert repo.default_shipping_method() is shipping_methods.standard

    shipping_methods.standard.active = False
    session.commit()
    assert repo.shipping_methods() == [shipping_methods.express]
    assert repo.default_shipping_method() is shipping_methods.express


def test_user_lookup_by_normalized_email(session, user):
    repo = UserRepository(session)
    assert user.email == "jane.doe@gmail.com"
    assert repo.get_by_email("JANE.DOE@gmail.com") is user
