"""
Rate limiting package for the Gateway.

Holds the process-local fixed-window limiter, the per-route-family
policies it enforces, and client key extraction from proxy headers.
"""

from .client_identity import UNKNOWN_CLIENT, get_client_key
from .middleware import RateLimitMiddleware
from .fixed_window import (
    RATE_LIMIT_POLICIES,
    FixedWindowRateLimiter,
    RateDecision,
    RateLimitPolicy,
    RateWindow,
)

__all__ = [
    "UNKNOWN_CLIENT",
    "get_client_key",
    "RATE_LIMIT_POLICIES",
    "FixedWindowRateLimiter",
    "RateDecision",
    "RateLimitPolicy",
    "RateWindow",
    "RateLimitMiddleware",
]
