import pytest

from storefront.core.exceptions import ValidationError
from storefront.models import AddressKind, Order, OrderItem, OrderStatus, Payment, PaymentStatus


def make_order(status=OrderStatus.PENDING_PAYMENT, **amounts):
    values = {"subtotal_cents": 0, "discount_cents": 0, "shipping_cents": 0, "tax_cents": 0, "total_cents": 0}
    values.update(amounts)
    return Order(status=status, **values)


@pytest.mark.parametrize("status, expected", [
    (OrderStatus.PENDING_PAYMENT, True),
    (OrderStatus.PAID, True),
    (OrderStatus.PROCESSING, True),
    (OrderStatus.SHIPPED, False),
    (OrderStatus.DELIVERED, False),
    (OrderStatus.CANCELLED, False),
    (OrderStatus.REFUNDED, False),
    (OrderStatus.CART, False),
])
def test_can_cancel_depends_only_on_status(status, expected):
    assert make_order(status).can_cancel is expected


def test_status_ordinals_follow_lifecycle():
    assert OrderStatus.CART.ordinal == 0
    assert OrderStatus.PROCESSING.ordinal == 3
    assert OrderStatus.REFUNDED.ordinal == 7
    assert OrderStatus.SHIPPED.ordinal > OrderStatus.PAID.ordinal


def test_amount_accessors_are_dollars():
    order = make_order(subtotal_cents=109900, discount_cents=10990, shipping_cents=0,
                       tax_cents=8792, total_cents=107702)
    assert order.subtotal == 1099.0
    assert order.discount == 109.9
    assert order.shipping == 0.0
    assert order.tax == 87.92
    assert order.total == 1077.02


def test_negative_amounts_are_rejected():
    with pytest.raises(ValidationError):
        make_order(total_cents=-1)


def test_total_items_sums_quantities(catalog):
    order = make_order()
    order.items.append(OrderItem(product_variant=catalog.silver_512, quantity=2, unit_price_cents=99900))
    order.items.append(OrderItem(product_variant=catalog.cable_variant, quantity=3, unit_price_cents=1999))
    assert order.total_items == 5
    assert order.items[0].total_price_cents == 199800


def test_order_item_quantity_must_be_positive(catalog):
    with pytest.raises(ValidationError):
        OrderItem(product_variant=catalog.silver_512, quantity=0, unit_price_cents=99900)


def test_latest_payment(catalog):
    order = make_order()
    assert order.latest_payment is None
    order.payments.append(Payment(amount_cents=100, status=PaymentStatus.FAILED))
    order.payments.append(Payment(amount_cents=100, status=PaymentStatus.PENDING))
    assert order.latest_payment.status is PaymentStatus.PENDING


def test_addresses_persist_by_kind(session, user, address):
    order = make_order()
    order.user = user
    order.shipping_address = Order.build_address(AddressKind.SHIPPING, **address)
    order.billing_address = Order.build_address(AddressKind.BILLING, **dict(address, street="9 Elm St"))
    session.add(order)
    session.commit()

    session.expire_all()
    reloaded = session.get(Order, order.id)
    assert reloaded.shipping_address.street == "1 Main St"
    assert reloaded.billing_address.street == "9 Elm St"
    assert str(reloaded.shipping_address) == "1 Main St, Springfield, IL 62701, US"


def test_address_fields_are_required(address):
    with pytest.raises(ValidationError):
        Order.build_address(AddressKind.SHIPPING, **dict(address, city=""))
