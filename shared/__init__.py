"""
Shared utilities for the storefront commerce gateway.

Common building blocks consumed by the gateway service:

- config: Settings via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Gateway error types and the JSON error envelope
- base_service: FastAPI app scaffolding, health and metrics routes

Do not import from service_gateway into shared/.
"""
