"""
Catalog query normalisation and product shaping.
"""

import json
import math
from typing import Any, Dict, List, Mapping, Optional


MIN_LIST_LIMIT = 1
MAX_LIST_LIMIT = 200
DEFAULT_UPSELL_LIMIT = 3

_STRING_FILTERS = (
    "cursor",
    "sort",
    "search",
    "category",
    "categoryId",
    "strain",
    "cannabisType",
    "weight",
    "brand",
    "productType",
)
_NUMBER_FILTERS = ("priceMin", "priceMax", "quantityMin", "quantityMax", "thcMax")
_BOOLEAN_FILTERS = ("discounted", "enable")

# Category ids are opaque hex strings; slugs are short words.
_CATEGORY_ID_MIN_LENGTH = 8

UPSELL_FIELDS = ("id", "name", "price", "discountAmountFinal", "brand", "strain", "labs", "image")


def parse_number(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def parse_boolean(value: Optional[str]) -> Optional[bool]:
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def normalize_list_params(query: Mapping[str, str]) -> Dict[str, Any]:
    """Pick the product list filters the upstream understands.

    Empty and unparseable values are dropped, ``limit`` is clamped to
    1..200, ``q`` is accepted as an alias for ``search``, and a
    ``category`` that looks like an id is mirrored into ``categoryId``.
    """
    params: Dict[str, Any] = {}

    limit = parse_number(query.get("limit"))
    if limit:
        params["limit"] = int(min(max(limit, MIN_LIST_LIMIT), MAX_LIST_LIMIT))

    for name in _STRING_FILTERS:
        value = query.get(name)
        if value:
            params[name] = value

    if query.get("q"):
        params["search"] = query["q"]

    for name in _NUMBER_FILTERS:
        number = parse_number(query.get(name))
        if number is not None:
            params[name] = number

    for name in _BOOLEAN_FILTERS:
        flag = parse_boolean(query.get(name))
        if flag is not None:
            params[name] = flag

    category = params.get("category")
    if category and "categoryId" not in params and len(category) >= _CATEGORY_ID_MIN_LENGTH:
        params["categoryId"] = category

    return params


def to_query_params(params: Mapping[str, Any]) -> Dict[str, str]:
    """Render normalised params the way the upstream expects them on the wire."""
    rendered = {}
    for key, value in params.items():
        if isinstance(value, bool):
            rendered[key] = "true" if value else "false"
        else:
            rendered[key] = str(value)
    return rendered


def cache_key(venue_id: str, params: Mapping[str, Any]) -> str:
    return json.dumps({"venueId": venue_id, **params}, sort_keys=True)


def extract_next_cursor(payload: Any) -> Optional[Any]:
    if not isinstance(payload, dict):
        return None
    pagination = payload.get("pagination")
    return (
        payload.get("nextCursor")
        or payload.get("next_cursor")
        or (pagination.get("nextCursor") if isinstance(pagination, dict) else None)
        or None
    )


def extract_products(payload: Any) -> List[Any]:
    if isinstance(payload, dict):
        data = payload.get("data")
        return data if isinstance(data, list) else []
    if isinstance(payload, list):
        return payload
    return []


def to_upsell_product(product: Dict[str, Any]) -> Dict[str, Any]:
    """Trim a catalog product to the fields the upsell picker renders."""
    summary = {field: product.get(field) for field in UPSELL_FIELDS}
    tiers = product.get("tiers")
    first_tier = tiers[0] if isinstance(tiers, list) and tiers else None
    summary["tierId"] = first_tier.get("id") if isinstance(first_tier, dict) else None
    return summary
