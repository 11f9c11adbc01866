# Re-export all models from a single entry point so the rest of the app
# can import cleanly:
#   from storefront.models import Cart, Order, ProductVariant
#
# Importing all models here also registers them with Base.metadata before
# any call to Base.metadata.create_all().

from storefront.models.cart import Cart, CartIdentity, CartItem, CartStatus
from storefront.models.order import (
    Address,
    AddressKind,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentStatus,
    ShippingMethod,
)
from storefront.models.product import Category, Product, ProductVariant, Review, StockStatus
from storefront.models.user import User

__all__ = [
    "User",
    "Category",
    "Product",
    "ProductVariant",
    "Review",
    "StockStatus",
    "Cart",
    "CartItem",
    "CartIdentity",
    "CartStatus",
    "Address",
    "AddressKind",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Payment",
    "PaymentStatus",
    "ShippingMethod",
]
