"""Order domain constants.

Status choices for payment and fulfillment, delivery methods, the
checkout-session state machine and the numeric bounds of the order
lifecycle.
"""

from datetime import timedelta

from django.db import models


class PaymentStatus(models.TextChoices):
    PLACED = "placed", "Placed"
    PAID = "paid", "Paid"
    CANCELLED = "cancelled", "Cancelled"


class FulfillmentStatus(models.TextChoices):
    AWAITING = "awaiting", "Awaiting"
    PREPARING = "preparing", "Preparing"
    DISPATCHED = "dispatched", "Dispatched"
    DELIVERED = "delivered", "Delivered"


class DeliveryMethod(models.TextChoices):
    COLLECT = "collect", "Collect"
    DELIVER = "deliver", "Deliver"


class CheckoutSessionStatus(models.TextChoices):
    CREATED = "created", "Created"
    CONFIRMED = "confirmed", "Confirmed"
    RECORDED = "recorded", "Recorded"
    ABANDONED = "abandoned", "Abandoned"


# created -> confirmed -> recorded, created -> abandoned.  A late webhook
# may still confirm an abandoned session.
CHECKOUT_TRANSITIONS: dict[str, set[str]] = {
    CheckoutSessionStatus.CREATED: {
        CheckoutSessionStatus.CONFIRMED,
        CheckoutSessionStatus.ABANDONED,
    },
    CheckoutSessionStatus.ABANDONED: {CheckoutSessionStatus.CONFIRMED},
    CheckoutSessionStatus.CONFIRMED: {CheckoutSessionStatus.RECORDED},
    CheckoutSessionStatus.RECORDED: set(),
}

# Cart bounds
MAX_CART_LINES = 50
MIN_LINE_QUANTITY = 1
MAX_LINE_QUANTITY = 99
MAX_PRICE = 100_000_000  # minor units
MAX_ITEM_NAME_LENGTH = 160

# Business rules
DELIVERY_MINIMUM = 500  # pence
MAX_FULFILLMENT_NOTE_LENGTH = 1000

# Ledger windows
DEDUP_WINDOW = timedelta(hours=24)
ACTIVE_WINDOW = timedelta(days=5)
ARCHIVE_LIMIT = 200
STALE_CHECKOUT_AGE = timedelta(hours=24)

ORDER_NUMBER_MAX_RETRIES = 5
MAX_IDEMPOTENCY_KEY_LENGTH = 200
