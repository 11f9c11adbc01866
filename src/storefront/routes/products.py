import logging

from flask import Blueprint, request

from storefront.core.config import config
from storefront.routes.utils import (
    failure_response,
    get_session,
    parse_bool,
    parse_int,
    parse_options,
    success_response,
)
from storefront.schemas.common_schemas import PaginationResponse
from storefront.schemas.product_schemas import (
    ProductListResponse,
    ProductSummaryResponse,
    VariantResponse,
    VariantSelectionResponse,
)
from storefront.services.product_service import PRODUCT_SORTS, ProductDetailPageService, ProductListingService
from storefront.services.variant_service import VariantSelectionService

logger = logging.getLogger(__name__)

products_bp = Blueprint("products", __name__)


@products_bp.route("", methods=["GET"])
def list_products():
    """
    List products with filtering.

    Pages by cursor (after) in id order; with sort, pages by offset instead.
    q searches name and description; min/max_price_cents keep products with
    a variant priced in range.
    """
    limit = parse_int(request.args.get("limit"), default=config.api.default_page_size,
                      min_val=1, max_val=config.api.max_page_size, field_name="limit")
    after = parse_int(request.args.get("after"), default=None, min_val=1, field_name="after")
    offset = parse_int(request.args.get("offset"), default=0, min_val=0, field_name="offset")
    category = (request.args.get("category") or "").strip() or None
    featured = parse_bool(request.args.get("featured"), default=None)
    in_stock = parse_bool(request.args.get("in_stock"), default=None)
    search = (request.args.get("q") or "").strip() or None
    min_price = parse_int(request.args.get("min_price_cents"), default=None, min_val=0, field_name="min_price_cents")
    max_price = parse_int(request.args.get("max_price_cents"), default=None, min_val=0, field_name="max_price_cents")
    sort = (request.args.get("sort") or "").strip() or None

    result = ProductListingService(get_session()).list_products(
        limit, after,
        category_slug=category, featured=featured, in_stock=in_stock,
        search=search, min_price_cents=min_price, max_price_cents=max_price,
        sort=sort, offset=offset,
    )
    if not result.ok:
        return failure_response(result)

    page = result.data
    body = ProductListResponse(
        products=[ProductSummaryResponse.from_product(p) for p in page.products],
        pagination=PaginationResponse(
            limit=page.limit,
            count=len(page.products),
            has_more=page.has_more,
            next_cursor=page.next_cursor,
            next_offset=page.next_offset,
        ),
        sort=page.sort,
        sort_options=PRODUCT_SORTS,
    )
    return success_response(body.model_dump(mode="json"))


@products_bp.route("/<int:product_id>", methods=["GET"])
def get_product(product_id: int):
    """Product page; options[name]=value query args pick the variant."""
    result = ProductDetailPageService(get_session()).execute(product_id, parse_options())
    if not result.ok:
        return failure_response(result)
    return success_response(result.data.to_response().model_dump(mode="json"))


@products_bp.route("/<int:product_id>/variant", methods=["GET"])
def select_variant(product_id: int):
    """Resolve exactly one variant for the selected options, 404 when none matches."""
    options = parse_options()
    result = VariantSelectionService(get_session()).select(product_id, options)
    if not result.ok:
        return failure_response(result)

    selection = result.data
    body = VariantSelectionResponse(
        product_id=selection.product.id,
        selected_options=selection.selected_options,
        variant=VariantResponse.from_variant(selection.variant),
        available_options=selection.available_options,
    )
    return success_response(body.model_dump(mode="json"))
