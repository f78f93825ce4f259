"""Payment gateway exceptions."""

from __future__ import annotations


class PaymentGatewayError(Exception):
    """The gateway could not be reached, timed out, or rejected the request."""


class InvalidSignature(Exception):
    """A webhook payload failed signature verification."""

    code = "invalid_signature"
    default_message = "Webhook signature verification failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
