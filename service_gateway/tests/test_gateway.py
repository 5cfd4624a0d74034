"""
Route tests for the storefront Gateway service.
"""

import json

import httpx
import pytest

from service_gateway.app.domain.cart import UPSELL_PROSPECT_PREFIX


CLIENT_A = {"x-forwarded-for": "203.0.113.10"}
CLIENT_B = {"x-forwarded-for": "203.0.113.11"}

CART_BODY = {"venueId": "venue-1", "items": [{"productId": "p1", "quantity": 1}]}


class TestCartRoutes:
    """Test cases for cart create, fetch and upsell routes."""

    def test_create_cart_returns_cart_id(self, client, upstream):
        route = upstream.post("/carts").mock(return_value=httpx.Response(201, json={"id": "c1", "items": []}))

        response = client.post("/api/cart", json=CART_BODY, headers=CLIENT_A)

        assert response.status_code == 200
        assert response.json() == {"cartId": "c1", "id": "c1", "items": []}
        assert response.headers["cache-control"] == "private, max-age=0, no-store"
        assert response.headers["X-RateLimit-Limit"] == "120"
        sent = route.calls.last.request
        assert sent.headers["x-dispense-api-key"] == "org-key"
        assert json.loads(sent.content) == CART_BODY

    @pytest.mark.parametrize(
        "body",
        [
            {"venueId": "venue-1"},
            {"venueId": "venue-1", "items": []},
            {"items": [{"productId": "p1"}]},
        ],
    )
    def test_invalid_cart_is_rejected_before_upstream(self, client, upstream, body):
        response = client.post("/api/cart", json=body, headers=CLIENT_A)

        assert response.status_code == 400
        assert response.json()["error"] == "venueId and items are required"
        assert upstream.calls.call_count == 0

    def test_malformed_json_is_rejected(self, client, upstream):
        response = client.post(
            "/api/cart",
            content=b"{not json",
            headers={**CLIENT_A, "content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON"
        assert upstream.calls.call_count == 0

    def test_cart_rate_limit(self, client, upstream):
        route = upstream.post("/carts").mock(return_value=httpx.Response(201, json={"id": "c1"}))

        statuses = [client.post("/api/cart", json=CART_BODY, headers=CLIENT_A).status_code for _ in range(120)]
        rejected = client.post("/api/cart", json=CART_BODY, headers=CLIENT_A)

        assert statuses == [200] * 120
        assert rejected.status_code == 429
        assert rejected.headers["retry-after"] == "2"
        assert rejected.json()["code"] == "RATE_LIMIT_ERROR"
        assert route.call_count == 120

        assert client.post("/api/cart", json=CART_BODY, headers=CLIENT_B).status_code == 200

    def test_cart_window_resets(self, client, upstream, clock):
        upstream.post("/carts").mock(return_value=httpx.Response(201, json={"id": "c1"}))
        for _ in range(121):
            client.post("/api/cart", json=CART_BODY, headers=CLIENT_A)

        clock.advance(60_001)

        assert client.post("/api/cart", json=CART_BODY, headers=CLIENT_A).status_code == 200

    def test_upstream_error_status_is_preserved(self, client, upstream):
        upstream.post("/carts").mock(return_value=httpx.Response(422, text="item out of stock"))

        response = client.post("/api/cart", json=CART_BODY, headers=CLIENT_A)

        assert response.status_code == 422
        assert response.json()["error"] == "Cart request failed"
        assert response.json()["details"] == "item out of stock"

    def test_unreachable_upstream_is_502(self, client, upstream):
        upstream.post("/carts").mock(side_effect=httpx.ConnectError("connection refused"))

        response = client.post("/api/cart", json=CART_BODY, headers=CLIENT_A)

        assert response.status_code == 502
        assert response.json()["code"] == "UPSTREAM_UNAVAILABLE"

    def test_missing_org_key_is_configuration_error(self, config_factory, client_factory, upstream):
        client = client_factory(config_factory(dispense_org_api_key=None))

        response = client.post("/api/cart", json=CART_BODY, headers=CLIENT_A)

        assert response.status_code == 500
        assert response.json()["details"] == {"setting": "DISPENSE_ORG_API_KEY"}
        assert "org-key" not in response.text
        assert upstream.calls.call_count == 0

    def test_fetch_cart(self, client, upstream):
        route = upstream.get("/carts/c1").mock(return_value=httpx.Response(200, json={"id": "c1", "total": 10}))

        response = client.get("/api/cart/c1", headers=CLIENT_A)

        assert response.status_code == 200
        assert response.json() == {"id": "c1", "total": 10}
        assert response.headers["cache-control"] == "private, max-age=0, no-store"
        assert response.headers["X-RateLimit-Limit"] == "240"
        assert route.calls.last.request.headers["x-dispense-api-key"] == "org-key"

    def test_fetch_cart_not_found(self, client, upstream):
        upstream.get("/carts/missing").mock(return_value=httpx.Response(404, text="no such cart"))

        response = client.get("/api/cart/missing", headers=CLIENT_A)

        assert response.status_code == 404
        assert response.json()["error"] == "Failed to fetch cart"

    def test_fetch_cart_blank_id(self, client, upstream):
        response = client.get("/api/cart/%20", headers=CLIENT_A)

        assert response.status_code == 400
        assert response.json()["error"] == "id is required"
        assert upstream.calls.call_count == 0

    def test_upsell_starts_prospect_cart(self, client, upstream):
        route = upstream.post("/carts").mock(return_value=httpx.Response(201, json={"id": "c2"}))

        response = client.post("/api/add-upsell", json={"items": [{"productId": "p9"}]}, headers=CLIENT_A)

        assert response.status_code == 200
        assert response.json()["cartId"] == "c2"
        sent = json.loads(route.calls.last.request.content)
        assert sent["venueId"] == "venue-1"
        assert sent["prospectId"].startswith(UPSELL_PROSPECT_PREFIX)
        assert "cartId" not in sent

    def test_upsell_updates_existing_cart(self, client, upstream):
        route = upstream.post("/carts").mock(return_value=httpx.Response(200, json={"id": "c3"}))

        client.post("/api/add-upsell", json={"items": [{"productId": "p9"}], "cartId": "c3"}, headers=CLIENT_A)

        sent = json.loads(route.calls.last.request.content)
        assert sent["cartId"] == "c3"
        assert "prospectId" not in sent

    def test_upsell_forwards_scalar_items(self, client, upstream):
        route = upstream.post("/carts").mock(return_value=httpx.Response(201, json={"id": "c4"}))

        response = client.post("/api/add-upsell", json={"items": ["p1", "p2"]}, headers=CLIENT_A)

        assert response.status_code == 200
        assert response.json()["cartId"] == "c4"
        assert json.loads(route.calls.last.request.content)["items"] == ["p1", "p2"]

    def test_upsell_without_items(self, client, upstream):
        response = client.post("/api/add-upsell", json={"items": []}, headers=CLIENT_A)

        assert response.status_code == 400
        assert response.json()["error"] == "No items selected"
        assert upstream.calls.call_count == 0


class TestAccountRoutes:
    """Test cases for registration and order history."""

    def test_register_is_passed_through(self, client, upstream):
        route = upstream.post("/auth/register").mock(
            return_value=httpx.Response(
                409,
                content=b'{"message":"email taken"}',
                headers={"content-type": "application/json"},
            )
        )
        body = b'{"email":"shopper@example.com","password":"hunter22"}'

        response = client.post("/api/dispense/auth/register", content=body, headers=CLIENT_A)

        assert response.status_code == 409
        assert response.content == b'{"message":"email taken"}'
        assert response.headers["content-type"] == "application/json"
        sent = route.calls.last.request
        assert sent.content == body
        assert sent.headers["x-dispense-api-key"] == "storefront-key"

    def test_register_rate_limit_retry_after(self, client, upstream):
        upstream.post("/auth/register").mock(return_value=httpx.Response(201, json={"id": "u1"}))

        for _ in range(20):
            client.post("/api/dispense/auth/register", content=b"{}", headers=CLIENT_A)
        response = client.post("/api/dispense/auth/register", content=b"{}", headers=CLIENT_A)

        assert response.status_code == 429
        assert response.headers["retry-after"] == "3"

    def test_orders_require_authorization(self, client, upstream):
        response = client.get("/api/dispense/orders", headers=CLIENT_A)

        assert response.status_code == 401
        assert response.json()["error"] == "Authorization required"
        assert upstream.calls.call_count == 0

    def test_orders_forward_bearer_token(self, client, upstream):
        route = upstream.get("/orders").mock(return_value=httpx.Response(200, json=[{"id": "o1"}]))

        response = client.get("/api/dispense/orders", headers={**CLIENT_A, "authorization": "Bearer abc"})

        assert response.status_code == 200
        assert response.json() == [{"id": "o1"}]
        sent = route.calls.last.request
        assert sent.headers["authorization"] == "Bearer abc"
        assert sent.headers["x-dispense-api-key"] == "storefront-key"

    def test_orders_upstream_unauthorized_is_relayed(self, client, upstream):
        upstream.get("/orders").mock(return_value=httpx.Response(401, json={"message": "expired"}))

        response = client.get("/api/dispense/orders", headers={**CLIENT_A, "authorization": "Bearer old"})

        assert response.status_code == 401
        assert response.json() == {"message": "expired"}


class TestCatalogRoutes:
    """Test cases for product detail, product list and upsell product routes."""

    def test_product_detail(self, client, upstream):
        route = upstream.get("/products/p1", params={"venueId": "venue-1"}).mock(
            return_value=httpx.Response(200, json={"id": "p1", "name": "Mints"})
        )

        response = client.get("/api/dispense/products/p1", headers=CLIENT_A)

        assert response.status_code == 200
        assert response.json() == {"id": "p1", "name": "Mints"}
        assert response.headers["cache-control"] == "public, s-maxage=30, stale-while-revalidate=60"
        assert response.headers["Cache-Tag"] == "dispense:product"
        assert route.called

    def test_product_detail_without_venue(self, config_factory, client_factory, upstream):
        client = client_factory(config_factory(dispense_venue_id=None))

        response = client.get("/api/dispense/products/p1", headers=CLIENT_A)

        assert response.status_code == 500
        assert response.json()["error"] == "DISPENSE_VENUE_ID is not configured"
        assert upstream.calls.call_count == 0

    def test_public_venue_id_is_used_as_fallback(self, config_factory, client_factory, upstream):
        route = upstream.get("/products/p1", params={"venueId": "public-venue"}).mock(
            return_value=httpx.Response(200, json={"id": "p1"})
        )
        client = client_factory(config_factory(dispense_venue_id=None, public_dispense_venue_id="public-venue"))

        assert client.get("/api/dispense/products/p1", headers=CLIENT_A).status_code == 200
        assert route.called

    def test_product_list_normalises_params(self, client, upstream):
        route = upstream.get("/products").mock(
            return_value=httpx.Response(200, json={"data": [{"id": "p1"}], "pagination": {"nextCursor": "n2"}})
        )

        response = client.get(
            "/api/dispense/products",
            params={"limit": "500", "q": "gummies", "category": "1af917cd40ce027b", "discounted": "true", "sort": ""},
            headers=CLIENT_A,
        )

        assert response.status_code == 200
        assert response.json() == {"data": [{"id": "p1"}], "nextCursor": "n2"}
        assert response.headers["cache-control"] == "public, s-maxage=15, stale-while-revalidate=30"
        assert response.headers["Cache-Tag"] == "dispense:products"
        assert dict(route.calls.last.request.url.params) == {
            "venueId": "venue-1",
            "limit": "200",
            "search": "gummies",
            "category": "1af917cd40ce027b",
            "categoryId": "1af917cd40ce027b",
            "discounted": "true",
        }

    def test_product_list_is_cached(self, client, upstream):
        route = upstream.get("/products").mock(return_value=httpx.Response(200, json={"data": []}))

        first = client.get("/api/dispense/products", params={"brand": "Acme"}, headers=CLIENT_A)
        second = client.get("/api/dispense/products", params={"brand": "Acme"}, headers=CLIENT_B)
        other = client.get("/api/dispense/products", params={"brand": "Other"}, headers=CLIENT_A)

        assert first.json() == second.json() == other.json() == {"data": [], "nextCursor": None}
        assert route.call_count == 2

    def test_product_list_error_is_not_cached(self, client, upstream):
        route = upstream.get("/products").mock(
            side_effect=[
                httpx.Response(503, text="maintenance"),
                httpx.Response(200, json={"data": [{"id": "p1"}]}),
            ]
        )

        failed = client.get("/api/dispense/products", headers=CLIENT_A)
        recovered = client.get("/api/dispense/products", headers=CLIENT_A)

        assert failed.status_code == 503
        assert failed.json()["error"] == "Failed to fetch products"
        assert recovered.status_code == 200
        assert route.call_count == 2

    def test_upsell_products(self, client, upstream):
        route = upstream.get("/products").mock(
            return_value=httpx.Response(
                200,
                json={"data": [{"id": "p1", "name": "Mints", "price": 10, "tiers": [{"id": "t1"}], "extra": 1}]},
            )
        )

        response = client.get("/api/products", params={"discounted": "true", "limit": "2"}, headers=CLIENT_A)

        assert response.status_code == 200
        assert response.json() == [{
            "id": "p1",
            "name": "Mints",
            "price": 10,
            "discountAmountFinal": None,
            "brand": None,
            "strain": None,
            "labs": None,
            "image": None,
            "tierId": "t1",
        }]
        params = route.calls.last.request.url.params
        assert params["discounted"] == "true"
        assert params["limit"] == "2"

    def test_upsell_products_default_limit(self, client, upstream):
        route = upstream.get("/products").mock(return_value=httpx.Response(200, json={"data": []}))

        response = client.get("/api/products", headers=CLIENT_A)

        assert response.json() == []
        params = route.calls.last.request.url.params
        assert params["limit"] == "3"
        assert params["discounted"] == "false"

    @pytest.mark.parametrize("path", ["/api/products", "/api/dispense/products"])
    def test_non_json_catalog_body_is_502(self, client, upstream, path):
        upstream.get("/products").mock(
            return_value=httpx.Response(200, text="<html>maintenance</html>", headers={"content-type": "text/html"})
        )

        response = client.get(path, headers=CLIENT_A)

        assert response.status_code == 502
        assert response.json()["error"] == "Failed to fetch products"
        assert response.json()["details"] == "<html>maintenance</html>"

    def test_upsell_products_upstream_error_is_preserved(self, client, upstream):
        upstream.get("/products").mock(return_value=httpx.Response(403, text="venue disabled"))

        response = client.get("/api/products", headers=CLIENT_A)

        assert response.status_code == 403
        assert response.json()["code"] == "UPSTREAM_ERROR"
        assert response.json()["details"] == "venue disabled"


class TestCategoryRoutes:
    """Test cases for the category landing route."""

    def test_alias_resolves(self, client):
        response = client.get("/api/categories/vapes")

        assert response.status_code == 200
        body = response.json()
        assert body["slug"] == "vaporizers"
        assert body["hero_title"] == "Find your next vape"
        assert len(body["banners"]) == 3

    def test_unknown_category(self, client):
        response = client.get("/api/categories/mystery")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"


class TestServiceRoutes:
    """Test cases for health, metrics and request correlation."""

    def test_health_reports_settings(self, config_factory, client_factory):
        client = client_factory(config_factory(dispense_org_api_key=None))

        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["dependencies"] == {
            "dispense_api_key": "ok",
            "dispense_org_api_key": "missing",
            "dispense_venue_id": "ok",
        }

    def test_metrics_endpoint(self, client):
        client.get("/api/categories/flower")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text
        assert "rate_limit_rejections_total" in response.text

    def test_request_id_is_echoed(self, client):
        response = client.get("/api/categories/mystery", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert response.json()["request_id"] == "req-123"

    def test_service_key_never_reaches_the_caller(self, client, upstream):
        upstream.get("/products/p1").mock(return_value=httpx.Response(500, text="internal"))

        response = client.get("/api/dispense/products/p1", headers=CLIENT_A)

        assert response.status_code == 500
        assert "storefront-key" not in response.text
        assert "x-dispense-api-key" not in response.headers
