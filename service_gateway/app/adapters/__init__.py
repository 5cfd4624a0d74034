"""
Adapters package for the Gateway Service.

Contains the HTTP client wrapper for the Dispense commerce backend. The
adapter encapsulates:

- Base URL and service credential resolution
- Header injection (service key, forwarded bearer token)
- Mapping of transport failures to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .dispense_client import (
    API_KEY_HEADER,
    ORG_CREDENTIAL,
    STOREFRONT_CREDENTIAL,
    DispenseClient,
    UpstreamCredentials,
    encode_path_segment,
)

__all__ = [
    "API_KEY_HEADER",
    "ORG_CREDENTIAL",
    "STOREFRONT_CREDENTIAL",
    "DispenseClient",
    "UpstreamCredentials",
    "encode_path_segment",
]
