"""
Commerce gateway service for the storefront.
"""

import dataclasses
import json
from typing import Any, Callable, Dict, Optional

import httpx
from fastapi import Query, Request, Response
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import GatewayConfig
from shared.errors import AuthenticationError, ConfigurationError, NotFoundError, UpstreamError, ValidationError
from service_gateway.app.adapters import ORG_CREDENTIAL, STOREFRONT_CREDENTIAL, DispenseClient, encode_path_segment
from service_gateway.app.caching import ProductListCache
from service_gateway.app.categories import canonicalize, resolve
from service_gateway.app.domain import NO_STORE, PRODUCT_CACHE, PRODUCT_LIST_CACHE, ResponseTranslator
from service_gateway.app.domain.cart import (
    build_cart_envelope,
    build_upsell_envelope,
    parse_cart_request,
    parse_upsell_request,
    with_cart_id,
)
from service_gateway.app.domain.catalog import (
    DEFAULT_UPSELL_LIMIT,
    MAX_LIST_LIMIT,
    MIN_LIST_LIMIT,
    cache_key,
    extract_next_cursor,
    extract_products,
    normalize_list_params,
    parse_number,
    to_query_params,
    to_upsell_product,
)
from service_gateway.app.domain.responses import read_error_details
from service_gateway.app.ratelimit import RATE_LIMIT_POLICIES, RateDecision, RateLimitMiddleware


# Gateway route -> rate limit policy. Each route gets its own window map.
ROUTE_POLICIES = {
    "cart_create": RATE_LIMIT_POLICIES["cart_mutation"],
    "upsell_cart": RATE_LIMIT_POLICIES["cart_mutation"],
    "cart_fetch": RATE_LIMIT_POLICIES["cart_read"],
    "register": RATE_LIMIT_POLICIES["account_register"],
    "orders": RATE_LIMIT_POLICIES["account_orders"],
    "product_detail": RATE_LIMIT_POLICIES["catalog_product"],
    "product_list": RATE_LIMIT_POLICIES["catalog_list"],
    "upsell_products": RATE_LIMIT_POLICIES["catalog_list"],
}


class GatewayService(BaseService):
    """Storefront gateway in front of the Dispense commerce backend."""

    def __init__(self, config: Optional[GatewayConfig] = None, *, clock: Optional[Callable[[], float]] = None):
        super().__init__("gateway", config)
        self.cart_client = DispenseClient(self.config, ORG_CREDENTIAL, metrics=self.metrics)
        self.storefront_client = DispenseClient(self.config, STOREFRONT_CREDENTIAL, metrics=self.metrics)
        self.translator = ResponseTranslator()
        self.rate_limit_middleware = RateLimitMiddleware(
            ROUTE_POLICIES,
            max_clients=self.config.rate_limit_max_clients,
            stale_after_windows=self.config.rate_limit_stale_windows,
            metrics=self.metrics,
            clock=clock,
        )
        self.product_cache = ProductListCache(
            ttl_seconds=self.config.product_list_cache_ttl_seconds,
            max_entries=self.config.product_list_cache_max_entries,
            metrics=self.metrics,
        )

        self._warn_on_shadowed_settings()

        self._setup_cart_routes()
        self._setup_account_routes()
        self._setup_catalog_routes()
        self._setup_category_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    def _warn_on_shadowed_settings(self) -> None:
        for setting, (private_name, public_name) in self.config.shadowed_settings().items():
            self.logger.warning(
                "Conflicting values for duplicated setting, private variant wins",
                setting=setting,
                used=private_name,
                ignored=public_name,
            )

    def _require_venue_id(self) -> str:
        venue_id = self.config.venue_id
        if not venue_id:
            raise ConfigurationError("DISPENSE_VENUE_ID")
        return venue_id

    async def _read_json(self, request: Request) -> Any:
        raw = await request.body()
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise ValidationError("Invalid JSON") from exc

    def _guard(self, request: Request, route: str) -> RateDecision:
        return self.rate_limit_middleware.check_request(request, route)

    def _finish(self, response: Response, decision: RateDecision) -> Response:
        return self.rate_limit_middleware.set_rate_limit_headers(response, decision)

    async def _check_dependencies(self) -> Dict[str, str]:
        """Report which required settings are present; the upstream itself is not probed."""
        return {
            "dispense_api_key": "ok" if self.config.api_key else "missing",
            "dispense_org_api_key": "ok" if self.config.org_api_key else "missing",
            "dispense_venue_id": "ok" if self.config.venue_id else "missing",
        }

    def _setup_cart_routes(self):
        """Set up cart routes."""

        @self.app.post("/api/cart")
        async def create_cart(request: Request):
            """Create a cart, or update it when ``cartId`` is given."""
            decision = self._guard(request, "cart_create")
            cart_request = parse_cart_request(await self._read_json(request))

            upstream = await self.cart_client.send(
                "POST",
                "/carts",
                json=build_cart_envelope(cart_request),
                operation="cart_create",
            )
            response = self.translator.translate(
                upstream,
                error_summary="Cart request failed",
                cache_policy=NO_STORE,
                transform=with_cart_id,
            )
            return self._finish(response, decision)

        @self.app.get("/api/cart/{cart_id}")
        async def get_cart(cart_id: str, request: Request):
            """Fetch a cart by id."""
            decision = self._guard(request, "cart_fetch")
            if not cart_id.strip():
                raise ValidationError("id is required")

            upstream = await self.cart_client.send(
                "GET",
                f"/carts/{encode_path_segment(cart_id)}",
                operation="cart_fetch",
            )
            response = self.translator.translate(
                upstream,
                error_summary="Failed to fetch cart",
                cache_policy=NO_STORE,
            )
            return self._finish(response, decision)

        @self.app.post("/api/add-upsell")
        async def add_upsell(request: Request):
            """Add upsell items to the given cart, or start a new one."""
            decision = self._guard(request, "upsell_cart")
            upsell_request = parse_upsell_request(await self._read_json(request))
            venue_id = self._require_venue_id()

            upstream = await self.cart_client.send(
                "POST",
                "/carts",
                json=build_upsell_envelope(upsell_request, venue_id),
                operation="upsell_cart",
            )
            response = self.translator.translate(
                upstream,
                error_summary="Dispense API request failed",
                cache_policy=NO_STORE,
                transform=with_cart_id,
            )
            return self._finish(response, decision)

    def _setup_account_routes(self):
        """Set up registration and order history routes."""

        @self.app.post("/api/dispense/auth/register")
        async def register(request: Request):
            """Forward a registration body upstream unchanged."""
            decision = self._guard(request, "register")
            body = await request.body()

            upstream = await self.storefront_client.send(
                "POST",
                "/auth/register",
                content=body,
                operation="register",
            )
            return self._finish(self.translator.passthrough(upstream), decision)

        @self.app.get("/api/dispense/orders")
        async def list_orders(request: Request):
            """List the caller's orders using their own bearer token."""
            decision = self._guard(request, "orders")
            authorization = request.headers.get("authorization")
            if not authorization:
                raise AuthenticationError("Authorization required")

            upstream = await self.storefront_client.send(
                "GET",
                "/orders",
                headers={"authorization": authorization},
                operation="orders_list",
            )
            return self._finish(self.translator.passthrough(upstream), decision)

    def _setup_catalog_routes(self):
        """Set up product routes."""

        @self.app.get("/api/dispense/products/{product_id}")
        async def get_product(product_id: str, request: Request):
            """Fetch a single product for the configured venue."""
            decision = self._guard(request, "product_detail")
            venue_id = self._require_venue_id()
            if not product_id.strip():
                raise ValidationError("id is required")

            upstream = await self.storefront_client.send(
                "GET",
                f"/products/{encode_path_segment(product_id)}",
                params={"venueId": venue_id},
                operation="product_detail",
            )
            response = self.translator.translate(
                upstream,
                error_summary="Failed to fetch product",
                cache_policy=PRODUCT_CACHE,
            )
            return self._finish(response, decision)

        @self.app.get("/api/dispense/products")
        async def list_products(request: Request):
            """List products with storefront filters, cached briefly per process."""
            decision = self._guard(request, "product_list")
            venue_id = self._require_venue_id()
            params = normalize_list_params(request.query_params)

            payload = await self.product_cache.get_or_load(
                cache_key(venue_id, params),
                lambda: self._load_product_page(venue_id, params),
            )
            response = PRODUCT_LIST_CACHE.apply(JSONResponse(content=payload))
            return self._finish(response, decision)

        @self.app.get("/api/products")
        async def upsell_products(
            request: Request,
            discounted: Optional[str] = Query(None),
            limit: Optional[str] = Query(None),
        ):
            """Short product summaries for the upsell picker."""
            decision = self._guard(request, "upsell_products")
            venue_id = self._require_venue_id()
            page_limit = parse_number(limit) or DEFAULT_UPSELL_LIMIT

            upstream = await self.storefront_client.send(
                "GET",
                "/products",
                params=to_query_params({
                    "venueId": venue_id,
                    "discounted": discounted == "true",
                    "limit": int(min(max(page_limit, MIN_LIST_LIMIT), MAX_LIST_LIMIT)),
                }),
                operation="upsell_products",
            )
            products = extract_products(self._read_catalog_body(upstream))
            response = JSONResponse(
                content=[to_upsell_product(product) for product in products if isinstance(product, dict)]
            )
            return self._finish(response, decision)

    async def _load_product_page(self, venue_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        upstream = await self.storefront_client.send(
            "GET",
            "/products",
            params=to_query_params({"venueId": venue_id, **params}),
            operation="product_list",
        )
        body = self._read_catalog_body(upstream)
        return {"data": extract_products(body), "nextCursor": extract_next_cursor(body)}

    def _read_catalog_body(self, upstream: httpx.Response) -> Any:
        """Parsed product payload; a success body that is not JSON is a 502."""
        self.translator.raise_for_status(upstream, "Failed to fetch products")
        try:
            return upstream.json()
        except ValueError as exc:
            raise UpstreamError(
                status_code=502,
                message="Failed to fetch products",
                details=read_error_details(upstream),
            ) from exc

    def _setup_category_routes(self):
        """Set up category landing routes."""

        @self.app.get("/api/categories/{slug}")
        async def category_landing(slug: str):
            """Landing configuration for a category slug or one of its aliases."""
            canonical_slug = canonicalize(slug)
            landing = resolve(canonical_slug)
            if landing is None:
                raise NotFoundError("Category not found", details={"slug": canonical_slug})
            return dataclasses.asdict(landing)


def create_app(config: Optional[GatewayConfig] = None):
    """Create FastAPI application."""
    service = GatewayService(config)
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
