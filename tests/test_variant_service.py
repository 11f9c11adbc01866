from sqlalchemy import text

from storefront.core.result import FailureKind
from storefront.services.variant_service import VariantFinder, VariantSelectionService


def test_available_options_keep_first_seen_order(catalog):
    finder = VariantFinder.for_product(catalog.macbook)
    assert finder.available_options() == {
        "color": ["Silver", "Space Gray"],
        "storage": ["512GB", "1TB"],
    }


def test_find_by_options_matches_every_pair(catalog):
    finder = VariantFinder.for_product(catalog.macbook)
    assert finder.find_by_options({"color": "Silver", "storage": "1TB"}) is catalog.silver_1tb
    assert finder.find_by_options({"storage": "512GB"}) is catalog.silver_512
    assert finder.find_by_options({"color": "Gold"}) is None
    assert finder.find_by_options({"colour": "Silver"}) is None


def test_resolve_defaults_to_first_variant(catalog):
    finder = VariantFinder.for_product(catalog.macbook)
    assert finder.resolve({}) is catalog.silver_512
    assert finder.resolve(None) is catalog.silver_512
    assert VariantFinder([]).resolve({}) is None


def test_select_returns_variant_and_options(session, catalog):
    result = VariantSelectionService(session).select(
        catalog.macbook.id, {"color": "Space Gray", "storage": "512GB"}
    )
    assert result.ok
    assert result.data.variant is catalog.gray_512
    assert not result.data.variant.in_stock
    assert result.data.available_options["color"] == ["Silver", "Space Gray"]


def test_select_without_match_reports_available_options(session, catalog):
    result = VariantSelectionService(session).select(catalog.macbook.id, {"color": "Gold"})
    assert not result.ok
    assert result.kind is FailureKind.NOT_FOUND
    assert result.data["selected_options"] == {"color": "Gold"}
    assert result.data["available_options"]["storage"] == ["512GB", "1TB"]


def test_select_unknown_product(session, catalog):
    result = VariantSelectionService(session).select(9999, {})
    assert not result.ok
    assert result.kind is FailureKind.NOT_FOUND
    assert "Product not found" in result.message


def test_select_with_corrupt_stored_options_is_a_failure(session, catalog):
    session.execute(
        text("UPDATE product_variants SET options = 'not json' WHERE id = :id"),
        {"id": catalog.silver_1tb.id},
    )
    session.commit()
    session.expire_all()

    result = VariantSelectionService(session).select(catalog.macbook.id, {"storage": "1TB"})
    assert not result.ok
    assert result.kind is FailureKind.VALIDATION
