"""
Client key extraction for rate limiting.
"""

from typing import Mapping

UNKNOWN_CLIENT = "unknown"


def get_client_key(headers: Mapping[str, str]) -> str:
    """Derive the rate-limit bucket for a request from its proxy headers.

    Best effort only: the first ``X-Forwarded-For`` hop wins, then
    ``X-Real-IP``, then the ``"unknown"`` sentinel. A forwarded-for header
    whose first hop is blank yields the sentinel directly. IP syntax is not
    validated and this must not be treated as an authentication signal.
    """
    forwarded_for = headers.get("x-forwarded-for")
    if isinstance(forwarded_for, str) and forwarded_for:
        return forwarded_for.split(",")[0].strip() or UNKNOWN_CLIENT

    real_ip = headers.get("x-real-ip")
    if isinstance(real_ip, str) and real_ip.strip():
        return real_ip.strip()

    return UNKNOWN_CLIENT
