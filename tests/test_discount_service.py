from storefront.core.config import PricingConfig
from storefront.models import Cart, CartIdentity
from storefront.services.discount_service import (
    BestOfDiscountPolicy,
    BulkPricingPolicy,
    BuyXGetYPolicy,
    CodeDiscountPolicy,
    CompositeDiscountPolicy,
    DiscountCalculator,
    QuantityDiscountPolicy,
    TieredDiscountPolicy,
    default_discount_policy,
    total_discount,
)


def cart_with(*lines):
    cart = Cart.for_identity(CartIdentity.for_session("discounts"))
    for variant, quantity in lines:
        cart.add_item(variant, quantity)
    return cart


def test_calculator_primitives_are_capped():
    assert DiscountCalculator.percentage(10000, 10) == 1000
    assert DiscountCalculator.percentage(0, 10) == 0
    assert DiscountCalculator.fixed(1500, 2000) == 1500
    assert DiscountCalculator.fixed(5000, 2000) == 2000
    assert DiscountCalculator.quantity(4, 1000, 5, 10) == 0
    assert DiscountCalculator.quantity(5, 1000, 5, 10) == 500
    assert DiscountCalculator.best([100, 700, 300]) == 700
    assert DiscountCalculator.best([]) == 0


def test_buy_x_get_y_free():
    assert DiscountCalculator.buy_x_get_y_free(10, 500, 3, 1) == 1500
    assert DiscountCalculator.buy_x_get_y_free(2, 500, 3, 1) == 0


def test_tiered_and_bulk():
    tiers = ((10000, 5), (20000, 10), (50000, 15))
    assert DiscountCalculator.tiered(9999, tiers) == 0
    assert DiscountCalculator.tiered(25000, tiers) == 2500
    assert DiscountCalculator.bulk(12, 1000, ((10, 900), (50, 800))) == 1200


def test_codes_are_case_insensitive(catalog):
    policy = CodeDiscountPolicy(PricingConfig().discount_codes)
    cart = cart_with((catalog.silver_512, 1))

    assert policy.accepts_code(" save10 ")
    assert not policy.accepts_code("BOGUS")

    discounts = policy.evaluate(cart, 99900, ["save10"])
    assert [(d.code, d.amount_cents) for d in discounts] == [("SAVE10", 9990)]


def test_repeated_and_unknown_codes_are_ignored(catalog):
    policy = CodeDiscountPolicy(PricingConfig().discount_codes)
    cart = cart_with((catalog.silver_512, 1))
    discounts = policy.evaluate(cart, 99900, ["WELCOME20", "welcome20", "NOPE"])
    assert [d.amount_cents for d in discounts] == [2000]


def test_quantity_policy_discounts_each_large_line(catalog):
    cart = cart_with((catalog.cable_variant, 5), (catalog.silver_512, 1))
    discounts = QuantityDiscountPolicy(5, 10).evaluate(cart, cart.total_price_cents)
    assert len(discounts) == 1
    assert discounts[0].amount_cents == 1000  # 10% of 9995, half-up
    assert discounts[0].source == "quantity"


def test_tiered_policy_uses_highest_tier(catalog):
    cart = cart_with((catalog.silver_512, 1))
    discounts = TieredDiscountPolicy().evaluate(cart, 99900)
    assert discounts[0].amount_cents == 14985


def test_composite_combines_and_total_is_capped(catalog):
    cart = cart_with((catalog.cable_variant, 1))
    policy = CompositeDiscountPolicy([CodeDiscountPolicy(PricingConfig().discount_codes)])
    discounts = policy.evaluate(cart, 1999, ["WELCOME20", "SAVE10"])
    assert sum(d.amount_cents for d in discounts) > 1999
    assert total_discount(discounts, 1999) == 1999


def test_default_policy_has_promotions_only_when_enabled(catalog):
    cart = cart_with((catalog.cable_variant, 6))
    assert default_discount_policy(PricingConfig()).evaluate(cart, cart.total_price_cents) == []

    promotions = default_discount_policy(PricingConfig(auto_promotions=True))
    assert [d.source for d in promotions.evaluate(cart, cart.total_price_cents)] == ["quantity", "tiered"]


def test_buy_x_get_y_policy_only_touches_listed_skus(catalog):
    cart = cart_with((catalog.cable_variant, 7), (catalog.silver_512, 1))
    discounts = BuyXGetYPolicy({"usb-c-cable": (3, 1)}).evaluate(cart, cart.total_price_cents)
    assert [(d.source, d.amount_cents) for d in discounts] == [("buy_x_get_y", 2 * 1999)]


def test_bulk_pricing_policy_uses_cheapest_tier_reached(catalog):
    cart = cart_with((catalog.cable_variant, 12))
    policy = BulkPricingPolicy({"USB-C-CABLE": [(10, 1799), (50, 1499)]})
    discounts = policy.evaluate(cart, cart.total_price_cents)
    assert [(d.source, d.amount_cents) for d in discounts] == [("bulk", 12 * 200)]

    assert policy.evaluate(cart_with((catalog.cable_variant, 9)), 9 * 1999) == []


def test_best_of_keeps_only_the_largest_promotion(catalog):
    cart = cart_with((catalog.cable_variant, 6))
    policy = BestOfDiscountPolicy([
        QuantityDiscountPolicy(5, 10),
        BuyXGetYPolicy({"USB-C-CABLE": (3, 1)}),
    ])
    discounts = policy.evaluate(cart, cart.total_price_cents)
    assert [d.source for d in discounts] == ["buy_x_get_y"]
    assert discounts[0].amount_cents == 2 * 1999

    assert BestOfDiscountPolicy([BuyXGetYPolicy({})]).evaluate(cart, cart.total_price_cents) == []


def test_default_policy_picks_configured_line_promotion(catalog):
    cart = cart_with((catalog.cable_variant, 6))
    pricing = PricingConfig(auto_promotions=True, buy_x_get_y={"USB-C-CABLE": (3, 1)})
    discounts = default_discount_policy(pricing).evaluate(cart, cart.total_price_cents)
    assert [d.source for d in discounts] == ["buy_x_get_y", "tiered"]
