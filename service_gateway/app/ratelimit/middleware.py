"""
Per-route rate limiting for Gateway handlers.
"""

from typing import Dict, Mapping, Optional

from fastapi import Request, Response

from shared.errors import RateLimitError
from shared.logging import get_logger, set_client_key
from shared.metrics import MetricsCollector

from .client_identity import get_client_key
from .fixed_window import FixedWindowRateLimiter, RateDecision, RateLimitPolicy


class RateLimitMiddleware:
    """Owns one fixed-window limiter per route and applies it to requests.

    Routes sharing a policy still get separate limiters, so a client's cart
    creations and upsell updates are counted independently.
    """

    def __init__(
        self,
        route_policies: Mapping[str, RateLimitPolicy],
        *,
        max_clients: int = 10000,
        stale_after_windows: int = 2,
        metrics: Optional[MetricsCollector] = None,
        clock=None,
    ):
        self.logger = get_logger("gateway.rate_limit_middleware")
        self.metrics = metrics
        self.limiters: Dict[str, FixedWindowRateLimiter] = {
            route: FixedWindowRateLimiter(
                policy,
                max_clients=max_clients,
                stale_after_windows=stale_after_windows,
                clock=clock,
            )
            for route, policy in route_policies.items()
        }

    def check_request(self, request: Request, route: str) -> RateDecision:
        """Admit the request or raise ``RateLimitError``."""
        limiter = self.limiters[route]
        client_key = get_client_key(request.headers)
        set_client_key(client_key)

        decision = limiter.admit(client_key)
        if not decision.ok:
            if self.metrics:
                self.metrics.record_rate_limit_rejection(limiter.policy.name)
            raise RateLimitError(
                retry_after_seconds=decision.retry_after_seconds,
                limit=decision.limit,
                details={"policy": limiter.policy.name},
            )
        return decision

    @staticmethod
    def set_rate_limit_headers(response: Response, decision: RateDecision) -> Response:
        """Propagate rate limiting metadata via standard headers."""
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response
