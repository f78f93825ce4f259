"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import OrderPlaced
from modules.orders.models import Order
from modules.orders.notifications import send_order_notification
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderPlacedNotificationHandler(IEventHandler[OrderPlaced]):
    """E-mails the shop about a new or newly paid order.

    Best-effort: a delivery failure is logged and never reaches the
    caller, because the order is already committed.
    """

    def handle(self, event: OrderPlaced) -> None:
        order = Order.objects.filter(id=event.aggregate_id).first()
        if order is None:
            logger.warning("notification.order_missing", order_id=str(event.aggregate_id))
            return
        try:
            send_order_notification(order)
        except Exception as exc:
            logger.error(
                "notification.failed",
                order_id=str(order.id),
                source=event.source,
                error_type=type(exc).__name__,
                error=str(exc),
            )


order_placed_notification_handler = OrderPlacedNotificationHandler()
