import pytest


@pytest.fixture
def user_headers(user):
    return {"X-User-Id": str(user.id)}


@pytest.fixture
def guest_headers():
    return {"X-Session-Id": "browser-abc"}


def add_item(client, headers, variant, quantity=1):
    return client.post("/api/v1/cart/items", json={"variant_id": variant.id, "quantity": quantity}, headers=headers)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["database"] == "reachable"


def test_list_products(client, catalog):
    response = client.get("/api/v1/products?limit=1")
    body = response.get_json()

    assert response.status_code == 200
    assert body["success"] is True
    assert [p["name"] for p in body["data"]["products"]] == ["MacBook Pro 16"]
    assert body["data"]["products"][0]["price_range"] == "$999.00 - $1099.00"
    assert body["data"]["pagination"]["has_more"] is True


def test_list_products_rejects_bad_limit(client, catalog):
    response = client.get("/api/v1/products?limit=abc")
    assert response.status_code == 400
    assert response.get_json()["error"]["code"] == "BAD_REQUEST"


def test_list_products_search_and_sort(client, catalog):
    response = client.get("/api/v1/products?q=laptop&max_price_cents=100000")
    assert [p["name"] for p in response.get_json()["data"]["products"]] == ["MacBook Pro 16"]

    response = client.get("/api/v1/products?sort=price_low_to_high&limit=1")
    data = response.get_json()["data"]
    assert response.status_code == 200
    assert [p["name"] for p in data["products"]] == ["USB-C Cable"]
    assert data["pagination"]["next_offset"] == 1
    assert data["sort"] == "price_low_to_high"
    assert data["sort_options"]["newest"] == "Newest First"


def test_list_products_rejects_bad_sort(client, catalog):
    response = client.get("/api/v1/products?sort=random")
    error = response.get_json()["error"]
    assert response.status_code == 400
    assert error["code"] == "VALIDATION"
    assert error["details"][0]["field"] == "sort"


def test_category_navigation(client, catalog):
    response = client.get("/api/v1/categories/laptops")
    data = response.get_json()["data"]

    assert response.status_code == 200
    assert data["path"] == ["Electronics", "Laptops"]
    assert [c["slug"] for c in data["breadcrumb"]] == ["electronics", "laptops"]
    assert data["parent"]["slug"] == "electronics"
    assert data["category"]["level"] == 1
    assert data["category"]["product_count"] == 2
    assert [p["name"] for p in data["products"]] == ["MacBook Pro 16", "USB-C Cable"]

    roots = client.get("/api/v1/categories").get_json()["data"]
    assert roots["category"] is None
    assert roots["subcategories"][0]["total_product_count"] == 2
    assert roots["subcategories"][0]["has_children"] is True

    assert client.get("/api/v1/categories/garden").status_code == 404


def test_product_detail_with_options(client, catalog, reviews):
    response = client.get(f"/api/v1/products/{catalog.macbook.id}?options[color]=Silver&options[storage]=1TB")
    data = response.get_json()["data"]

    assert response.status_code == 200
    assert data["selected_variant"]["sku"] == "MBP-16-SLV-1TB"
    assert data["selected_variant"]["price"]["formatted"] == "$1099.00"
    assert data["selected_variant"]["stock_status"] == "low_stock"
    assert data["available_options"]["color"] == ["Silver", "Space Gray"]
    assert data["rating"]["formatted"] == "4.5"
    assert data["rating"]["half_star"] is True
    assert [p["name"] for p in data["related_products"]] == ["USB-C Cable"]


def test_product_detail_with_unavailable_selection(client, catalog):
    response = client.get(f"/api/v1/products/{catalog.macbook.id}?options[color]=Gold")
    data = response.get_json()["data"]
    assert response.status_code == 200
    assert data["selection_available"] is False
    assert data["selected_variant"] is None


def test_unknown_product_is_404(client, catalog):
    response = client.get("/api/v1/products/9999")
    body = response.get_json()
    assert response.status_code == 404
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"


def test_variant_selection_endpoint(client, catalog):
    ok = client.get(f"/api/v1/products/{catalog.macbook.id}/variant?options[color]=Space%20Gray")
    assert ok.status_code == 200
    assert ok.get_json()["data"]["variant"]["stock_label"] == "Out of Stock"

    missing = client.get(f"/api/v1/products/{catalog.macbook.id}/variant?options[color]=Gold")
    assert missing.status_code == 404
    assert missing.get_json()["error"]["data"]["available_options"]["color"] == ["Silver", "Space Gray"]


def test_cart_requires_identity(client):
    response = client.get("/api/v1/cart")
    assert response.status_code == 401


def test_guest_cart_flow(client, catalog, guest_headers):
    response = add_item(client, guest_headers, catalog.cable_variant, 2)
    assert response.status_code == 201
    cart = response.get_json()["data"]
    assert cart["session_id"] == "browser-abc"
    assert cart["total_items"] == 2
    assert cart["totals"]["subtotal"] == "$39.98"
    assert cart["totals"]["shipping"] == "$9.99"

    response = client.patch(f"/api/v1/cart/items/{catalog.cable_variant.id}", json={"quantity": 3},
                            headers=guest_headers)
    assert response.get_json()["data"]["items"][0]["quantity"] == 3

    response = client.delete(f"/api/v1/cart/items/{catalog.cable_variant.id}", headers=guest_headers)
    assert response.get_json()["data"]["is_empty"] is True


def test_add_item_validation(client, catalog, guest_headers):
    response = add_item(client, guest_headers, catalog.cable_variant, 0)
    assert response.status_code == 400

    response = client.post("/api/v1/cart/items", data="nope", headers=guest_headers)
    assert response.status_code == 400


def test_add_beyond_stock_is_422(client, catalog, guest_headers):
    response = add_item(client, guest_headers, catalog.silver_1tb, 4)
    body = response.get_json()
    assert response.status_code == 422
    assert body["error"]["code"] == "BUSINESS_RULE"
    assert body["error"]["details"][0]["field"] == "MBP-16-SLV-1TB"
    assert body["error"]["details"][0]["code"] == "INSUFFICIENT_STOCK"


def test_discount_and_checkout_preview(client, catalog, user_headers, shipping_methods):
    add_item(client, user_headers, catalog.silver_512)

    response = client.post("/api/v1/cart/discount", json={"code": "welcome20"}, headers=user_headers)
    assert response.status_code == 200
    assert response.get_json()["data"]["totals"]["discount_cents"] == 2000

    bad = client.post("/api/v1/cart/discount", json={"code": "NOPE"}, headers=user_headers)
    assert bad.status_code == 422

    preview = client.get("/api/v1/cart/checkout", headers=user_headers).get_json()["data"]
    assert preview["ready"] is True
    assert preview["cart"]["totals"]["total_cents"] == 99900 - 2000 + 7992
    assert [o["name"] for o in preview["shipping_options"]] == ["Standard Shipping", "Express Shipping"]


def test_clear_cart(client, catalog, user_headers):
    add_item(client, user_headers, catalog.silver_512)
    response = client.delete("/api/v1/cart", headers=user_headers)
    assert response.get_json()["data"]["is_empty"] is True


def test_checkout_and_order_lifecycle(client, catalog, user_headers, address):
    add_item(client, user_headers, catalog.silver_512)

    response = client.post("/api/v1/orders/checkout", json={"shipping_address": address}, headers=user_headers)
    assert response.status_code == 201
    order = response.get_json()["data"]
    assert order["status"] == "pending_payment"
    assert order["total"]["formatted"] == "$1078.92"
    assert order["shipping_address"]["formatted"] == "1 Main St, Springfield, IL 62701, US"
    assert order["payments"][0]["status"] == "pending"

    listed = client.get("/api/v1/orders", headers=user_headers).get_json()["data"]
    assert [o["id"] for o in listed["orders"]] == [order["id"]]

    paid = client.post(f"/api/v1/orders/{order['id']}/payment", headers=user_headers)
    assert paid.status_code == 200
    assert paid.get_json()["data"]["status"] == "paid"

    again = client.post(f"/api/v1/orders/{order['id']}/payment", headers=user_headers)
    assert again.status_code == 409

    cancelled = client.post(f"/api/v1/orders/{order['id']}/cancel", headers=user_headers)
    assert cancelled.status_code == 200
    assert cancelled.get_json()["data"]["status"] == "cancelled"
    assert cancelled.get_json()["data"]["can_cancel"] is False


def test_guest_checkout_is_401(client, catalog, guest_headers, address):
    add_item(client, guest_headers, catalog.silver_512)
    response = client.post("/api/v1/orders/checkout", json={"shipping_address": address}, headers=guest_headers)
    assert response.status_code == 401


def test_checkout_requires_address(client, catalog, user_headers):
    add_item(client, user_headers, catalog.silver_512)
    response = client.post("/api/v1/orders/checkout", json={}, headers=user_headers)
    assert response.status_code == 400


def test_orders_are_private(client, catalog, user_headers, other_user, address):
    add_item(client, user_headers, catalog.silver_512)
    order = client.post("/api/v1/orders/checkout", json={"shipping_address": address},
                        headers=user_headers).get_json()["data"]

    response = client.get(f"/api/v1/orders/{order['id']}", headers={"X-User-Id": str(other_user.id)})
    assert response.status_code == 404


def test_method_not_allowed(client):
    response = client.put("/api/v1/cart")
    assert response.status_code == 405
    assert response.get_json()["error"]["code"] == "METHOD_NOT_ALLOWED"
