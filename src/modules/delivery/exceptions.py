"""Delivery-area exceptions.

Raised by services that gate an operation on the service radius.
The API layer translates them into HTTP responses.
"""

from __future__ import annotations


class OutOfServiceArea(Exception):
    """The postcode is outside the service radius, or could not be confirmed."""

    code = "out_of_service_area"
    default_message = "Your address is outside our service area."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
