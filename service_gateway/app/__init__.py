"""
Commerce gateway service package for the storefront.

The gateway fronts storefront requests to the Dispense commerce backend,
enforcing:
- Rate limiting: process-local fixed windows per client and route
- Input validation before any upstream call
- Service credential injection, never echoed back to callers
- Error normalization and cache policy on the way out

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.adapters: HTTP client for the Dispense API.
- app.caching: In-process product list cache.
- app.ratelimit: Fixed-window limiter, policies and client keys.
- app.domain: Request validation, catalog shaping, response translation.
- app.categories: Category landing configuration resolver.
"""
