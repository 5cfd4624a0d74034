"""
Caching package for the Gateway: the in-process product list cache.
"""

from .product_cache import ProductListCache

__all__ = ["ProductListCache"]
