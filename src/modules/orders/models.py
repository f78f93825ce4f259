"""Order, OrderStatusHistory and CheckoutSession models.

Business rules implemented:
- Orders are never deleted; the archive is a read filter on ``created_at``.
- ``lines`` and ``address_snapshot`` are immutable snapshots taken at
  creation time.
- ``fulfillment_date`` is write-once (enforced at service layer).
- Each fulfillment status change generates a history record.
- ``dedup_key`` supports the 24 hour duplicate-submission window.
- ``gateway_session_id`` links a gateway-confirmed order to its payment
  session and makes webhook redelivery idempotent.
- Owner FK uses PROTECT to preserve financial history.
"""

from __future__ import annotations

import secrets
from typing import Any

import structlog
from django.conf import settings
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    CHECKOUT_TRANSITIONS,
    MAX_FULFILLMENT_NOTE_LENGTH,
    ORDER_NUMBER_MAX_RETRIES,
    CheckoutSessionStatus,
    DeliveryMethod,
    FulfillmentStatus,
    PaymentStatus,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for
    all internal references and API lookups.

    ``idempotency_key`` is nullable: only direct placements that carry an
    ``Idempotency-Key`` header store one.  It is namespaced by owner.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    owner: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    lines: models.JSONField = models.JSONField(default=list)
    delivery_method: models.CharField = models.CharField(
        max_length=10,
        choices=DeliveryMethod.choices,
        default=DeliveryMethod.COLLECT,
    )
    total_amount: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    payment_status: models.CharField = models.CharField(
        max_length=10,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PLACED,
    )
    fulfillment_status: models.CharField = models.CharField(
        max_length=12,
        choices=FulfillmentStatus.choices,
        default=FulfillmentStatus.AWAITING,
    )
    fulfillment_date: models.DateField = models.DateField(null=True, blank=True)
    fulfillment_note: models.TextField = models.TextField(
        blank=True, default="", max_length=MAX_FULFILLMENT_NOTE_LENGTH
    )
    address_snapshot: models.JSONField = models.JSONField(default=dict)
    dedup_key: models.CharField = models.CharField(max_length=64, db_index=True)
    idempotency_key: models.CharField = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )
    gateway_session_id: models.CharField = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(
                fields=["owner", "-created_at"], name="orders_owner_created_idx"
            ),
            models.Index(fields=["payment_status"], name="orders_payment_idx"),
        ]

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    @property
    def item_count(self) -> int:
        return sum(int(line.get("quantity", 0)) for line in self.lines or [])

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.payment_status}/{self.fulfillment_status})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for fulfillment status changes.

    ``user`` is nullable: ``None`` means the change was performed by the
    system (e.g. order creation from a gateway event).
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=12,
        choices=FulfillmentStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=12,
        choices=FulfillmentStatus.choices,
    )
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"


class CheckoutSession(BaseModel):
    """Local record of a hosted payment session.

    ``created`` when the gateway session is opened, ``confirmed`` when the
    completion webhook verifies, ``recorded`` once the paid order exists.
    A session left ``confirmed`` means the customer paid but the order
    could not be recorded.
    """

    gateway_session_id: models.CharField = models.CharField(
        max_length=255, unique=True
    )
    owner: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="checkout_sessions",
    )
    lines: models.JSONField = models.JSONField(default=list)
    total_amount: models.PositiveIntegerField = models.PositiveIntegerField()
    delivery_method: models.CharField = models.CharField(
        max_length=10, choices=DeliveryMethod.choices
    )
    status: models.CharField = models.CharField(
        max_length=10,
        choices=CheckoutSessionStatus.choices,
        default=CheckoutSessionStatus.CREATED,
    )
    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="checkout_sessions",
    )

    class Meta:
        db_table = "checkout_sessions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["status", "created_at"], name="cs_status_created_idx"
            ),
        ]

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in CHECKOUT_TRANSITIONS.get(self.status, set())

    def __str__(self) -> str:
        return f"{self.gateway_session_id} ({self.status})"
