"""Order domain exceptions.

Every error carries a stable machine ``code`` and a stable human message.
The API layer (Views) catches these and translates them into HTTP
responses of the form ``{"detail": ..., "code": ...}``.

Catalog, delivery-area and payment errors live in their own modules
(``ItemNotFound``, ``OutOfServiceArea``, ``InvalidSignature``).
"""

from __future__ import annotations


class OrderError(Exception):
    """Base class for order lifecycle errors."""

    code = "order_error"
    default_message = "The order could not be processed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class Unauthenticated(OrderError):
    code = "unauthenticated"
    default_message = "Authentication credentials were not provided."


class InvalidPayload(OrderError):
    """Cart, total, delivery method or update fields are malformed."""

    code = "invalid_payload"
    default_message = "Invalid order payload."


class BelowDeliveryMinimum(InvalidPayload):
    code = "below_delivery_minimum"
    default_message = "Delivery orders must total at least £5.00."


class MissingAddress(OrderError):
    code = "missing_address"
    default_message = "Please add your address before checking out."


class OrderNotFound(OrderError):
    code = "order_not_found"
    default_message = "Order not found."


class DateAlreadySet(OrderError):
    """The fulfillment date is write-once."""

    code = "date_already_set"
    default_message = "The fulfillment date has already been set and cannot be changed."


class MissingDate(OrderError):
    code = "missing_date"
    default_message = "Set a fulfillment date before changing the fulfillment status."


class ServerFault(OrderError):
    code = "server_fault"
    default_message = "Something went wrong. Please try again."


class PaymentGatewayUnavailable(ServerFault):
    code = "payment_gateway_unavailable"
    default_message = "The payment provider is unavailable. Please try again shortly."


class OwnerNotFound(OrderError):
    """The user an order should belong to does not exist."""

    code = "owner_not_found"
    default_message = "The order owner could not be found."
