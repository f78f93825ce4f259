"""Cart validation and normalisation.

Everything a client (or a gateway event) claims about a cart passes
through here before it reaches the ledger.  Output is a ``ValidatedCart``:
normalised lines plus a sanitised total, which is the only form that is
ever persisted.

Line rules:
- ``item_id`` (alias ``id``): positive integer.
- ``quantity`` (alias ``qty``): integer in ``[1, 99]``.
- ``unit_price`` (alias ``price_cents``): minor units, rounded; absent,
  non-numeric, negative or above 100,000,000 becomes ``0``.  Client prices
  are informational only and are never used for gateway checkout.
- ``name``: trimmed, truncated to 160 characters; non-strings become ``""``.

A total that is missing, non-numeric or out of range rejects the cart.
"""

from __future__ import annotations

import hashlib
import json
import math
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from modules.orders.constants import (
    DELIVERY_MINIMUM,
    MAX_CART_LINES,
    MAX_ITEM_NAME_LENGTH,
    MAX_LINE_QUANTITY,
    MAX_PRICE,
    MIN_LINE_QUANTITY,
    DeliveryMethod,
)
from modules.orders.exceptions import BelowDeliveryMinimum, InvalidPayload

_GENERIC_ITEMS_ERROR = "Invalid order items."


def sanitize_price(value: Any) -> Optional[int]:
    """Coerce *value* to whole minor units within ``[0, MAX_PRICE]``.

    Numeric strings are accepted.  Returns ``None`` when the value cannot
    be used.  Halves round up (``12.5`` → ``13``).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    elif isinstance(value, (int, float)):
        number = float(value)
    else:
        return None

    if not math.isfinite(number) or number < 0 or number > MAX_PRICE:
        return None
    return int(math.floor(number + 0.5))


def _whole_number(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


class CartLine(BaseModel):
    """One normalised cart line."""

    model_config = ConfigDict(frozen=True)

    item_id: int = Field(validation_alias=AliasChoices("item_id", "id"))
    name: str = ""
    unit_price: int = Field(
        default=0, validation_alias=AliasChoices("unit_price", "price_cents")
    )
    quantity: int = Field(validation_alias=AliasChoices("quantity", "qty"))

    @field_validator("item_id", mode="before")
    @classmethod
    def positive_item_id(cls, v: Any) -> int:
        number = _whole_number(v)
        if number is None or number <= 0:
            raise ValueError("Each item needs a positive integer id.")
        return number

    @field_validator("quantity", mode="before")
    @classmethod
    def bounded_quantity(cls, v: Any) -> int:
        number = _whole_number(v)
        if number is None or not MIN_LINE_QUANTITY <= number <= MAX_LINE_QUANTITY:
            raise ValueError(
                f"Item quantity must be between {MIN_LINE_QUANTITY} "
                f"and {MAX_LINE_QUANTITY}."
            )
        return number

    @field_validator("unit_price", mode="before")
    @classmethod
    def sanitized_price(cls, v: Any) -> int:
        price = sanitize_price(v)
        return 0 if price is None else price

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v: Any) -> str:
        if not isinstance(v, str):
            return ""
        return v.strip()[:MAX_ITEM_NAME_LENGTH]


class _CartItems(BaseModel):
    items: List[CartLine]

    @field_validator("items", mode="before")
    @classmethod
    def bounded_items(cls, v: Any) -> Any:
        if not isinstance(v, (list, tuple)):
            raise ValueError("Items must be a list.")
        if not 1 <= len(v) <= MAX_CART_LINES:
            raise ValueError(
                f"An order must contain between 1 and {MAX_CART_LINES} items."
            )
        return v


class ValidatedCart(BaseModel):
    model_config = ConfigDict(frozen=True)

    lines: Tuple[CartLine, ...]
    total: int

    def lines_as_dicts(self) -> List[dict]:
        return [line.model_dump() for line in self.lines]


def _describe(exc: ValidationError) -> str:
    for error in exc.errors():
        if error.get("type") == "value_error":
            return str(error.get("msg", "")).removeprefix("Value error, ")
    return _GENERIC_ITEMS_ERROR


def validate_lines(raw_items: Any) -> Tuple[CartLine, ...]:
    """Validate and normalise cart lines.

    Raises:
        InvalidPayload: on any shape or bound violation.  Nothing is written.
    """
    try:
        cart = _CartItems(items=raw_items)
    except ValidationError as exc:
        raise InvalidPayload(_describe(exc)) from exc
    return tuple(cart.items)


def validate_cart(raw_items: Any, raw_total: Any) -> ValidatedCart:
    """Validate lines and the claimed total.

    Raises:
        InvalidPayload: on any shape or bound violation, or an unusable total.
    """
    lines = validate_lines(raw_items)
    total = sanitize_price(raw_total)
    if total is None:
        raise InvalidPayload("Invalid order total.")
    return ValidatedCart(lines=lines, total=total)


def parse_delivery_method(value: Any) -> str:
    """Return ``collect`` or ``deliver``; blank defaults to ``collect``."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return DeliveryMethod.COLLECT
    if isinstance(value, str) and value.strip().lower() in DeliveryMethod.values:
        return DeliveryMethod(value.strip().lower())
    raise InvalidPayload("Delivery method must be 'collect' or 'deliver'.")


def enforce_delivery_minimum(delivery_method: str, total: int) -> None:
    if delivery_method == DeliveryMethod.DELIVER and total < DELIVERY_MINIMUM:
        raise BelowDeliveryMinimum()


def serialize_lines(lines: Sequence[Mapping[str, Any]]) -> str:
    """Canonical JSON for a list of normalised lines."""
    return json.dumps(
        [dict(line) for line in lines],
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_dedup_key(
    owner_id: Any,
    total_amount: int,
    delivery_method: str,
    lines: Sequence[Mapping[str, Any]],
) -> str:
    """SHA-256 over ``(owner, total, delivery method, serialised lines)``."""
    material = json.dumps(
        [str(owner_id), int(total_amount), str(delivery_method), serialize_lines(lines)],
        separators=(",", ":"),
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()
