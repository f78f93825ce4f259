"""Order DTOs for the Service Layer.

Pydantic v2, immutable (``frozen=True``).

- ``OrderDraft``: a fully validated order handed to the ledger by either
  producer (direct placement or gateway confirmation).
- ``UpdateFulfillmentDTO``: admin console update payload.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.orders.constants import (
    MAX_FULFILLMENT_NOTE_LENGTH,
    FulfillmentStatus,
    PaymentStatus,
)


class OrderDraft(BaseModel):
    """Input for ``IOrderRepository.create_or_reuse``."""

    model_config = ConfigDict(frozen=True)

    owner_id: int
    lines: List[Dict[str, Any]]
    total_amount: int = Field(ge=0)
    delivery_method: str
    payment_status: PaymentStatus
    address_snapshot: Dict[str, str] = Field(default_factory=dict)
    idempotency_key: Optional[str] = None
    gateway_session_id: Optional[str] = None


class UpdateFulfillmentDTO(BaseModel):
    """Admin update: any subset of status, date and note.

    Only fields present in the payload are applied (``model_fields_set``).
    A blank date is treated as "not supplied".
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    fulfillment_status: Optional[FulfillmentStatus] = None
    fulfillment_date: Optional[date] = None
    fulfillment_note: Optional[str] = Field(
        default=None, max_length=MAX_FULFILLMENT_NOTE_LENGTH
    )

    @field_validator("fulfillment_status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower() or None
        return v

    @field_validator("fulfillment_date", mode="before")
    @classmethod
    def blank_date_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("fulfillment_note", mode="before")
    @classmethod
    def note_is_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v


class OrderListingDTO(BaseModel):
    """Admin listing partitioned by age."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    active: List[Any]
    archived: List[Any]


class PlacementResult(BaseModel):
    """Outcome of a direct placement."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    order: Any
    deduped: bool


class CheckoutSessionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    session_id: str
