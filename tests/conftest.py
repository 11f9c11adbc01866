from types import SimpleNamespace

import pytest

from storefront import db
from storefront.app import create_app
from storefront.models import (
    Cart,
    CartIdentity,
    Category,
    Product,
    ProductVariant,
    Review,
    ShippingMethod,
    User,
)

TEST_DATABASE_URL = "sqlite://"


@pytest.fixture
def engine():
    engine = db.init_engine(TEST_DATABASE_URL)
    db.create_all()
    yield engine
    db.Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    session = db.SessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def app(engine):
    return create_app({"DATABASE_URL": TEST_DATABASE_URL, "CREATE_TABLES": False, "TESTING": True})


@pytest.fixture
def client(app):
    return app.test_client()


def make_variant(sku, price_cents, stock, **options):
    return ProductVariant(sku=sku, price_cents=price_cents, stock_quantity=stock, options=options)


@pytest.fixture
def catalog(session):
    """
    Laptops category with a three-variant MacBook and a cheap cable.

    MBP-16-SLV-512  $999.00   10 in stock
    MBP-16-SLV-1TB  $1099.00   3 in stock (low)
    MBP-16-GRY-512  $999.00    0 in stock
    USB-C-CABLE     $19.99    50 in stock
    """
    electronics = Category(name="Electronics")
    laptops = Category(name="Laptops", parent=electronics)

    macbook = Product(name="MacBook Pro 16", description="Apple laptop with a 16-inch display", category=laptops)
    silver_512 = make_variant("MBP-16-SLV-512", 99900, 10, color="Silver", storage="512GB")
    silver_1tb = make_variant("MBP-16-SLV-1TB", 109900, 3, color="Silver", storage="1TB")
    gray_512 = make_variant("MBP-16-GRY-512", 99900, 0, color="Space Gray", storage="512GB")
    macbook.variants.extend([silver_512, silver_1tb, gray_512])

    cable = Product(name="USB-C Cable", description="Two metre braided charging cable", category=laptops)
    cable_variant = make_variant("USB-C-CABLE", 1999, 50, length="2m")
    cable.variants.append(cable_variant)

    session.add_all([electronics, laptops, macbook, cable])
    session.commit()

    return SimpleNamespace(
        electronics=electronics,
        laptops=laptops,
        macbook=macbook,
        cable=cable,
        silver_512=silver_512,
        silver_1tb=silver_1tb,
        gray_512=gray_512,
        cable_variant=cable_variant,
    )


@pytest.fixture
def user(session):
    user = User(email="Jane.Doe@gmail.com", first_name="Jane", last_name="Doe")
    session.add(user)
    session.commit()
    return user


@pytest.fixture
def other_user(session):
    user = User(email="sam.lee@gmail.com", first_name="Sam", last_name="Lee")
    session.add(user)
    session.commit()
    return user


@pytest.fixture
def user_identity(user):
    return CartIdentity.for_user(user.id)


@pytest.fixture
def guest_identity():
    return CartIdentity.for_session("guest-session-1")


@pytest.fixture
def reviews(session, catalog, user, other_user):
    catalog.macbook.reviews.extend([
        Review(user=user, rating=5, title="Fantastic", content="Fast and quiet"),
        Review(user=other_user, rating=4, title="Great", content="A bit pricey"),
    ])
    session.commit()
    return catalog.macbook.reviews


@pytest.fixture
def shipping_methods(session):
    standard = ShippingMethod(name="Standard Shipping", base_fee_cents=599, per_kg_fee_cents=100,
                              distance_multiplier=1.0, estimated_days=5)
    express = ShippingMethod(name="Express Shipping", base_fee_cents=1499, per_kg_fee_cents=200,
                             distance_multiplier=1.5, estimated_days=2)
    session.add_all([standard, express])
    session.commit()
    return SimpleNamespace(standard=standard, express=express)


@pytest.fixture
def address():
    return {"street": "1 Main St", "city": "Springfield", "state": "IL", "zip_code": "62701", "country": "US"}


@pytest.fixture
def filled_cart(session, catalog, user):
    """User cart: one $999.00 MacBook and two $19.99 cables"""
    cart = Cart.for_identity(CartIdentity.for_user(user.id))
    cart.add_item(catalog.silver_512, 1)
    cart.add_item(catalog.cable_variant, 2)
    session.add(cart)
    session.commit()
    return cart
