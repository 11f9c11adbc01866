import logging

from flask import Blueprint, request

from storefront.core.config import config
from storefront.routes.utils import failure_response, get_session, parse_int, success_response
from storefront.schemas.product_schemas import (
    CategoryNavigationResponse,
    CategoryNodeResponse,
    ProductSummaryResponse,
)
from storefront.services.product_service import CategoryNavigation, CategoryNavigationService

logger = logging.getLogger(__name__)

categories_bp = Blueprint("categories", __name__)


def _navigation_body(navigation: CategoryNavigation) -> dict:
    current = navigation.current
    nodes = CategoryNodeResponse.from_category
    body = CategoryNavigationResponse(
        category=nodes(current) if current is not None else None,
        description=current.description if current is not None else None,
        path=current.path if current is not None else [],
        breadcrumb=[nodes(c) for c in navigation.breadcrumb],
        parent=nodes(navigation.parent) if navigation.parent is not None else None,
        subcategories=[nodes(c) for c in navigation.subcategories],
        siblings=[nodes(c) for c in navigation.siblings],
        products=[ProductSummaryResponse.from_product(p) for p in navigation.products],
    )
    return body.model_dump(mode="json")


@categories_bp.route("", methods=["GET"])
def list_root_categories():
    """Top-level categories"""
    result = CategoryNavigationService(get_session()).execute()
    if not result.ok:
        return failure_response(result)
    return success_response(_navigation_body(result.data))


@categories_bp.route("/<slug>", methods=["GET"])
def get_category(slug: str):
    """Category page: breadcrumb, subcategories, siblings and its products."""
    limit = parse_int(request.args.get("limit"), default=None, min_val=1,
                      max_val=config.api.max_page_size, field_name="limit")
    result = CategoryNavigationService(get_session()).execute(slug, product_limit=limit)
    if not result.ok:
        return failure_response(result)
    return success_response(_navigation_body(result.data))
