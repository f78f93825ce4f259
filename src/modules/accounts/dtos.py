"""Account DTOs for the Service Layer.

Pydantic v2 models, immutable (``frozen=True``).

- ``RegisterAccountDTO``: input for self-registration.
- ``UpdateAddressDTO``: partial address update.
"""

from __future__ import annotations

import re
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator, model_validator

MAX_ADDRESS_FIELD_LENGTH = 200


def clean_text(value: Any, max_length: int = MAX_ADDRESS_FIELD_LENGTH) -> str:
    """Trim, collapse internal whitespace and truncate.  Non-strings become ``""``."""
    if not isinstance(value, str):
        return ""
    return re.sub(r"\s+", " ", value.strip())[:max_length]


class RegisterAccountDTO(BaseModel):
    """Immutable DTO for registration requests.

    Validates:
    - ``email`` is a well-formed address (Pydantic ``EmailStr``).
    - ``password`` has at least 6 characters.
    - ``postcode`` is present; the service-area check happens in the service.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    email: EmailStr
    password: str
    postcode: str

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v: Any) -> str:
        return clean_text(v, 120)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("password")
    @classmethod
    def password_min_length(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters.")
        return v

    @field_validator("postcode", mode="before")
    @classmethod
    def require_postcode(cls, v: Any) -> str:
        postcode = clean_text(v, 20).upper()
        if not postcode:
            raise ValueError("Postcode required to register.")
        return postcode


class UpdateAddressDTO(BaseModel):
    """Immutable DTO for address updates.

    Every field is optional; blank or non-string values are dropped.  At
    least one usable field must remain.
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    postcode: str | None = None
    country: str | None = None

    @field_validator(
        "name",
        "address_line1",
        "address_line2",
        "city",
        "postcode",
        "country",
        mode="before",
    )
    @classmethod
    def clean_field(cls, v: Any) -> str | None:
        cleaned = clean_text(v)
        return cleaned or None

    @model_validator(mode="after")
    def require_any_field(self) -> Self:
        if not self.changes():
            raise ValueError("No valid fields")
        return self

    def changes(self) -> dict[str, str]:
        return {k: v for k, v in self.model_dump().items() if v is not None}
