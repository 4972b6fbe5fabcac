"""
Schemas for the checkout notification endpoint.
"""

from typing import Any, List, Optional
from pydantic import Field, field_validator

from marketplace.schemas.base import BaseSchema


class CartLineRequest(BaseSchema):
    """
    One cart line as submitted by the client.

    product_id is taken as sent, whatever its JSON type: a malformed id
    fails only its own line, never the whole request.
    """
    product_id: Any = None
    quantity: int = Field(..., ge=1)


class CheckoutRequest(BaseSchema):
    cart_items: List[CartLineRequest] = Field(..., min_length=1)
    buyer_id: str = Field(..., min_length=1)
    attempt_id: Optional[str] = Field(default=None, max_length=64)

    @field_validator('attempt_id', mode='before')
    @classmethod
    def blank_attempt_id_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class NotifiedSeller(BaseSchema):
    seller_id: str
    seller_display_name: str
    product_title: str
    quantity: int
    price: str


class FailedItem(BaseSchema):
    product_id: Any = None
    product: Optional[str] = None
    reason: str
    code: str


class CheckoutOutcome(BaseSchema):
    """What CheckoutNotifier.checkout hands back to its caller"""
    notified_sellers: List[NotifiedSeller] = []
    failed_items: List[FailedItem] = []
    attempt_id: str


class CheckoutResponse(BaseSchema):
    success: bool = True
    sellers: List[NotifiedSeller]
    failed_items: Optional[List[FailedItem]] = None
    attempt_id: str

    @classmethod
    def from_outcome(cls, outcome: CheckoutOutcome) -> "CheckoutResponse":
        return cls(
            success=True,
            sellers=outcome.notified_sellers,
            failed_items=outcome.failed_items or None,
            attempt_id=outcome.attempt_id,
        )
