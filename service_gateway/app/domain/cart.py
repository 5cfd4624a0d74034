"""
Cart request validation and upstream envelopes.
"""

import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from shared.errors import ValidationError


UPSELL_PROSPECT_PREFIX = "upsell-session-"


class CartRequest(BaseModel):
    """Body accepted by the cart create/update route."""

    model_config = ConfigDict(extra="ignore")

    venueId: str = Field(min_length=1)
    items: List[Dict[str, Any]] = Field(min_length=1)
    cartId: Optional[str] = None
    prospectId: Optional[str] = None

    @field_validator("venueId")
    @classmethod
    def _venue_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("venueId must not be blank")
        return value


class UpsellRequest(BaseModel):
    """Body accepted by the upsell helper route."""

    model_config = ConfigDict(extra="ignore")

    items: List[Any] = Field(min_length=1)
    cartId: Optional[str] = None


def parse_cart_request(body: Any) -> CartRequest:
    try:
        return CartRequest.model_validate(body)
    except PydanticValidationError as exc:
        raise ValidationError(
            "venueId and items are required",
            details=[error["msg"] for error in exc.errors()],
        ) from exc


def parse_upsell_request(body: Any) -> UpsellRequest:
    try:
        return UpsellRequest.model_validate(body)
    except PydanticValidationError as exc:
        raise ValidationError(
            "No items selected",
            details=[error["msg"] for error in exc.errors()],
        ) from exc


def new_prospect_id() -> str:
    """Random prospect id for carts started from the upsell flow."""
    return f"{UPSELL_PROSPECT_PREFIX}{uuid.uuid4().hex}"


def build_cart_envelope(request: CartRequest) -> Dict[str, Any]:
    """Minimal body forwarded to ``POST /carts``."""
    return request.model_dump(exclude_none=True)


def build_upsell_envelope(request: UpsellRequest, venue_id: str) -> Dict[str, Any]:
    """Update the given cart, or start a fresh one under a new prospect id."""
    envelope: Dict[str, Any] = {"venueId": venue_id, "items": request.items}
    if request.cartId:
        envelope["cartId"] = request.cartId
    else:
        envelope["prospectId"] = new_prospect_id()
    return envelope


def with_cart_id(cart: Any) -> Any:
    """Expose the upstream cart id under an explicit ``cartId`` key."""
    if isinstance(cart, dict):
        return {"cartId": cart.get("id"), **cart}
    return cart
