"""
Category landing configuration for storefront category pages.
"""

from .landing import (
    CATEGORY_DEFINITIONS,
    SLUG_ALIASES,
    CategoryLandingConfig,
    canonicalize,
    resolve,
    resolve_slug,
)

__all__ = [
    "CATEGORY_DEFINITIONS",
    "SLUG_ALIASES",
    "CategoryLandingConfig",
    "canonicalize",
    "resolve",
    "resolve_slug",
]
