"""
Domain utilities for the Gateway Service.

Request validation, upstream envelopes, catalog query shaping and the
translation of upstream responses into the gateway response contract.
"""

from .responses import NO_STORE, PRODUCT_CACHE, PRODUCT_LIST_CACHE, CachePolicy, ResponseTranslator

__all__ = [
    "NO_STORE",
    "PRODUCT_CACHE",
    "PRODUCT_LIST_CACHE",
    "CachePolicy",
    "ResponseTranslator",
]
