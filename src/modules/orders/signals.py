"""Signals for automatic fulfillment status history tracking.

Services may set two transient attributes on the instance before saving:
``_status_changed_by`` (acting user) and ``_status_change_notes``.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, cast

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from modules.orders.models import Order, OrderStatusHistory


class _OrderStatusAware(Protocol):
    _previous_status: str | None
    _status_change_notes: str | None
    _status_changed_by: Any


@receiver(pre_save, sender=Order)
def _capture_previous_status(sender, instance: Order, **kwargs) -> None:
    status_instance = cast(_OrderStatusAware, instance)
    if instance._state.adding:
        status_instance._previous_status = None
        return
    update_fields = kwargs.get("update_fields")
    if update_fields is not None and "fulfillment_status" not in update_fields:
        status_instance._previous_status = instance.fulfillment_status
        return
    previous_status = (
        sender.objects.filter(pk=instance.pk)
        .values_list("fulfillment_status", flat=True)
        .first()
    )
    status_instance._previous_status = previous_status


@receiver(post_save, sender=Order)
def _create_status_history(sender, instance: Order, created: bool, **kwargs) -> None:
    status_instance = cast(_OrderStatusAware, instance)
    previous_status: Optional[str] = getattr(status_instance, "_previous_status", None)
    notes = getattr(status_instance, "_status_change_notes", None)
    user = getattr(status_instance, "_status_changed_by", None)

    should_create = created or previous_status != instance.fulfillment_status
    if not should_create:
        _clear_transient_status_attrs(instance)
        return

    if created and notes is None:
        notes = "Order created"

    OrderStatusHistory.objects.create(
        order=instance,
        old_status=previous_status,
        new_status=instance.fulfillment_status,
        user=user if getattr(user, "pk", None) else None,
        notes=notes or "",
    )

    _clear_transient_status_attrs(instance)


def _clear_transient_status_attrs(instance: Order) -> None:
    for attr in ("_previous_status", "_status_change_notes", "_status_changed_by"):
        if hasattr(instance, attr):
            delattr(instance, attr)
