"""
Category landing configuration.

Storefront category pages accept loose slugs ("vapes", "Pre Rolls",
"pre_rolls"). ``canonicalize`` folds them onto one canonical slug and
``resolve`` looks that slug up in a fixed table. An unknown slug resolves
to ``None`` so callers can render a 404 instead of raising.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class CategoryDefinition:
    slug: str
    name: str
    category_id: str


@dataclass(frozen=True)
class LandingBanner:
    title: str
    href: str
    image: str
    badge: str


@dataclass(frozen=True)
class CategoryLandingConfig:
    slug: str
    name: str
    category_id: str
    hero_title: str
    hero_image: str
    banners: Tuple[LandingBanner, ...] = field(default_factory=tuple)
    intent_order: Tuple[str, ...] = field(default_factory=tuple)


CATEGORY_DEFINITIONS: Tuple[CategoryDefinition, ...] = (
    CategoryDefinition("flower", "Flower", "1af917cd40ce027b"),
    CategoryDefinition("vaporizers", "Vaporizers", "ba607fa13287b679"),
    CategoryDefinition("pre-rolls", "Pre Rolls", "873e1156bc94041e"),
    CategoryDefinition("concentrates", "Concentrates", "dd753723f6875d2e"),
    CategoryDefinition("edibles", "Edibles", "2f2c05a9bbb5fd43"),
    CategoryDefinition("beverages", "Beverages", "45d32b3453f51209"),
    CategoryDefinition("tinctures", "Tinctures", "4b9c5820c59418fa"),
)

# Keys are already in normalized form.
SLUG_ALIASES: Dict[str, str] = {
    "vapes": "vaporizers",
    "vape": "vaporizers",
    "carts": "vaporizers",
    "prerolls": "pre-rolls",
    "preroll": "pre-rolls",
    "pre-roll": "pre-rolls",
    "edible": "edibles",
    "concentrate": "concentrates",
    "dabs": "concentrates",
    "beverage": "beverages",
    "drinks": "beverages",
    "tincture": "tinctures",
}

INTENT_ORDER: Tuple[str, ...] = (
    "bestSellers",
    "bestDeals",
    "indica",
    "sativa",
    "hybrid",
    "highThc",
    "budgetPicks",
)

DEFAULT_HERO_IMAGE = "/images/deal-slider-1.jpg"

_HERO_TITLES = {
    "pre-rolls": "Find your next pre-roll",
    "vaporizers": "Find your next vape",
    "edibles": "Find your next edible",
    "concentrates": "Find your next concentrate",
    "beverages": "Find your next beverage",
    "flower": "Find your next flower",
}

_HERO_IMAGES = {
    "flower": "/images/deal-slider-2.jpg",
    "vaporizers": "/images/deal-slider-4.jpg",
    "pre-rolls": "/images/deal-slider-3.jpg",
    "concentrates": "/images/deal-slider-1.jpg",
    "edibles": "/images/post-thumb-05.jpg",
    "beverages": "/images/post-thumb-06.jpg",
}

# slug -> (title, image, badge) triples; each category uses its own combination.
_BANNERS = {
    "flower": (
        ("Fresh drops", "/images/deal-slider-2.jpg", "New"),
        ("Top shelf picks", "/images/deal-slider-1.jpg", "Top"),
        ("Best value flower", "/images/deal-slider-5.jpg", "Value"),
    ),
    "pre-rolls": (
        ("Grab & go classics", "/images/deal-slider-3.jpg", "Popular"),
        ("Party pack picks", "/images/deal-slider-4.jpg", "Bundle"),
        ("Under $25", "/images/post-thumb-05.jpg", "Deal"),
    ),
    "vaporizers": (
        ("Smooth hits", "/images/deal-slider-4.jpg", "Trending"),
        ("Best value carts", "/images/deal-slider-1.jpg", "Value"),
        ("Beginner friendly", "/images/post-thumb-03.jpg", "Easy"),
    ),
    "edibles": (
        ("Low dose favorites", "/images/post-thumb-05.jpg", "Low dose"),
        ("Sleep support picks", "/images/deal-slider-5.jpg", "Night"),
        ("Tasty best sellers", "/images/deal-slider-2.jpg", "Top"),
    ),
    "concentrates": (
        ("Flavor chasers", "/images/deal-slider-1.jpg", "Terps"),
        ("Live resin / rosin", "/images/deal-slider-3.jpg", "Premium"),
        ("Best value grams", "/images/deal-slider-4.jpg", "Value"),
    ),
    "beverages": (
        ("Sip & chill", "/images/post-thumb-06.jpg", "Popular"),
        ("Best value drinks", "/images/deal-slider-2.jpg", "Value"),
        ("New drinkables", "/images/deal-slider-5.jpg", "New"),
    ),
}

_DEFAULT_BANNERS = (
    ("Featured picks", "/images/deal-slider-1.jpg", "Featured"),
    ("New arrivals", "/images/deal-slider-2.jpg", "New"),
    ("Best value", "/images/deal-slider-5.jpg", "Value"),
)

_SEPARATORS = re.compile(r"[\s_]+")


def _build_config(definition: CategoryDefinition) -> CategoryLandingConfig:
    slug = definition.slug
    see_all = f"/shop/{slug}/all"
    banners = tuple(
        LandingBanner(title=title, href=see_all, image=image, badge=badge)
        for title, image, badge in _BANNERS.get(slug, _DEFAULT_BANNERS)
    )
    return CategoryLandingConfig(
        slug=slug,
        name=definition.name,
        category_id=definition.category_id,
        hero_title=_HERO_TITLES.get(slug, f"Find your next {' '.join(definition.name.split())}"),
        hero_image=_HERO_IMAGES.get(slug, DEFAULT_HERO_IMAGE),
        banners=banners,
        intent_order=INTENT_ORDER,
    )


LANDING_CONFIGS: Dict[str, CategoryLandingConfig] = {
    definition.slug: _build_config(definition) for definition in CATEGORY_DEFINITIONS
}


def normalize_slug(raw_slug: str) -> str:
    return _SEPARATORS.sub("-", raw_slug.strip().lower())


def canonicalize(raw_slug: Optional[str]) -> str:
    """Fold a user-supplied slug onto its canonical form. Total and idempotent."""
    slug = normalize_slug(raw_slug or "")
    return SLUG_ALIASES.get(slug, slug)


def resolve(canonical_slug: str) -> Optional[CategoryLandingConfig]:
    """Landing config for a canonical slug, or ``None`` when there is no such category."""
    return LANDING_CONFIGS.get(canonical_slug)


def resolve_slug(raw_slug: Optional[str]) -> Optional[CategoryLandingConfig]:
    return resolve(canonicalize(raw_slug))
