"""
Seed script -- populates the database with realistic development data.

Run with:
    python -m storefront.seed

Categories, products, shipping methods and users are looked up before they
are inserted, so the script can be re-run safely. Reviews are only added to
products that have none yet.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.db import create_all, session_scope
from storefront.models import Category, Product, ProductVariant, Review, ShippingMethod, User

logger = logging.getLogger(__name__)

CATEGORIES = [
    {"name": "Electronics", "parent": None},
    {"name": "Laptops", "parent": "Electronics"},
    {"name": "Phones", "parent": "Electronics"},
    {"name": "Books", "parent": None},
]

PRODUCTS = [
    {
        "name": "MacBook Pro 16",
        "description": "16-inch laptop with an M3 Pro chip and a Liquid Retina XDR display.",
        "category": "Laptops",
        "featured": True,
        "variants": [
            {"sku": "MBP-16-SLV-512", "price_cents": 99900, "stock": 12, "weight_kg": 2.1,
             "options": {"color": "Silver", "storage": "512GB"}},
            {"sku": "MBP-16-SLV-1TB", "price_cents": 109900, "stock": 4, "weight_kg": 2.1,
             "options": {"color": "Silver", "storage": "1TB"}},
            {"sku": "MBP-16-GRY-512", "price_cents": 99900, "stock": 0, "weight_kg": 2.1,
             "options": {"color": "Space Gray", "storage": "512GB"}},
        ],
    },
    {
        "name": "ProBook Laptop 15",
        "description": "15-inch laptop, 16 GB RAM, 512 GB SSD.",
        "category": "Laptops",
        "featured": False,
        "variants": [
            {"sku": "PROBOOK-15-SLV", "price_cents": 129999, "stock": 25, "weight_kg": 1.8,
             "options": {"color": "Silver"}},
            {"sku": "PROBOOK-15-BLK", "price_cents": 134999, "stock": 10, "weight_kg": 1.8,
             "options": {"color": "Black"}},
        ],
    },
    {
        "name": "SmartPhone X12",
        "description": "Flagship smartphone with 6.7-inch display.",
        "category": "Phones",
        "featured": True,
        "variants": [
            {"sku": "PHONE-X12-128", "price_cents": 79999, "stock": 50, "weight_kg": 0.2,
             "options": {"color": "Midnight", "storage": "128GB"}},
            {"sku": "PHONE-X12-256", "price_cents": 89999, "stock": 3, "weight_kg": 0.2,
             "options": {"color": "Midnight", "storage": "256GB"}},
        ],
    },
    {
        "name": "Flask Web Development",
        "description": "Developing web applications with Python, paperback edition.",
        "category": "Books",
        "featured": False,
        "variants": [
            {"sku": "BOOK-FLASK-PBK", "price_cents": 3999, "stock": 100, "weight_kg": 0.6,
             "options": {"format": "Paperback"}},
            {"sku": "BOOK-FLASK-EBK", "price_cents": 2499, "stock": 999, "weight_kg": 0.0,
             "options": {"format": "eBook"}},
        ],
    },
]

SHIPPING_METHODS = [
    {"name": "Standard Shipping", "base_fee_cents": 599, "per_kg_fee_cents": 100,
     "distance_multiplier": 1.0, "estimated_days": 5},
    {"name": "Express Shipping", "base_fee_cents": 1499, "per_kg_fee_cents": 200,
     "distance_multiplier": 1.5, "estimated_days": 2},
    {"name": "Overnight", "base_fee_cents": 2999, "per_kg_fee_cents": 300,
     "distance_multiplier": 2.0, "estimated_days": 1},
]

USERS = [
    {"email": "alice@example.com", "first_name": "Alice", "last_name": "Walker"},
    {"email": "bob@example.com", "first_name": "Bob", "last_name": "Stone"},
]

REVIEWS = {
    "MacBook Pro 16": [
        ("alice@example.com", 5, "Fantastic machine", "Fast, quiet and the screen is gorgeous."),
        ("bob@example.com", 4, "Great but pricey", "Does everything I need, wish it were cheaper."),
    ],
    "SmartPhone X12": [
        ("alice@example.com", 4, "Solid phone", "Battery lasts all day."),
    ],
}


def _seed_categories(session: Session) -> dict:
    by_name = {}
    for data in CATEGORIES:
        category = session.scalar(select(Category).where(Category.name == data["name"]))
        if category is None:
            category = Category(name=data["name"], parent=by_name.get(data["parent"]))
            session.add(category)
        by_name[data["name"]] = category
    session.flush()
    logger.info(f"Categories seeded ({len(by_name)})")
    return by_name


def _seed_products(session: Session, categories: dict) -> dict:
    by_name = {}
    for data in PRODUCTS:
        product = session.scalar(select(Product).where(Product.name == data["name"]))
        if product is None:
            product = Product(
                name=data["name"],
                description=data["description"],
                category=categories[data["category"]],
                featured=data["featured"],
            )
            session.add(product)

        existing = {v.sku for v in product.variants}
        for variant in data["variants"]:
            if variant["sku"] in existing:
                continue
            product.variants.append(ProductVariant(
                sku=variant["sku"],
                price_cents=variant["price_cents"],
                stock_quantity=variant["stock"],
                weight_kg=variant["weight_kg"],
                options=variant["options"],
            ))
        by_name[data["name"]] = product
    session.flush()
    logger.info(f"Products seeded ({len(by_name)})")
    return by_name


def _seed_shipping_methods(session: Session) -> None:
    for data in SHIPPING_METHODS:
        if session.scalar(select(ShippingMethod).where(ShippingMethod.name == data["name"])) is None:
            session.add(ShippingMethod(**data))
    logger.info(f"Shipping methods seeded ({len(SHIPPING_METHODS)})")


def _seed_users(session: Session) -> dict:
    by_email = {}
    for data in USERS:
        user = session.scalar(select(User).where(User.email == data["email"]))
        if user is None:
            user = User(**data)
            session.add(user)
        by_email[data["email"]] = user
    session.flush()
    logger.info(f"Users seeded ({', '.join(by_email)})")
    return by_email


def _seed_reviews(session: Session, products: dict, users: dict) -> None:
    for product_name, reviews in REVIEWS.items():
        product = products[product_name]
        if product.reviews:
            continue
        for email, rating, title, content in reviews:
            product.reviews.append(Review(user=users[email], rating=rating, title=title, content=content))
    logger.info("Reviews seeded")


def seed() -> None:
    create_all()
    with session_scope() as session:
        categories = _seed_categories(session)
        products = _seed_products(session, categories)
        _seed_shipping_methods(session)
        users = _seed_users(session)
        _seed_reviews(session, products, users)
    logger.info("Seed completed successfully.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s")
    seed()
