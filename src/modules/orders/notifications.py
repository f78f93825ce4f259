"""Order notification e-mail (shop owner).

Rendering is kept separate from delivery so the message can be checked
without an SMTP server.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import structlog
from django.conf import settings
from django.core.mail import get_connection, send_mail

from modules.orders.constants import PaymentStatus

logger = structlog.get_logger(__name__)


def format_pence(amount: int) -> str:
    return f"£{amount / 100:.2f}"


def render_order_email(order: Any) -> Tuple[str, str]:
    """Return ``(subject, body)`` for a newly recorded order."""
    label = "Paid Order" if order.payment_status == PaymentStatus.PAID else "Order"
    subject = f"New {label} {order.order_number}"

    address: Dict[str, Any] = order.address_snapshot or {}
    item_lines = []
    for line in order.lines or []:
        name = line.get("name") or f"Item #{line.get('item_id')}"
        price = format_pence(int(line.get("unit_price", 0)))
        item_lines.append(f"  {line.get('quantity', 0)} x {name} - {price}")
    body = "\n".join(
        [
            f"{subject}",
            "",
            f"Customer: {address.get('name', '')} ({address.get('email', '')})",
            f"Delivery: {order.delivery_method}",
            "Address:",
            f"  {address.get('address_line1', '')}",
            f"  {address.get('address_line2', '')}",
            f"  {address.get('city', '')}, {address.get('postcode', '')}",
            f"  {address.get('country', '')}",
            "",
            "Items:",
            *item_lines,
            "",
            f"Total: {format_pence(order.total_amount)}",
        ]
    )
    return subject, body


def send_order_notification(order: Any, recipient: Optional[str] = None) -> bool:
    """Send the shop notification.  Returns ``False`` when no recipient is set.

    SMTP errors propagate; callers decide whether they are fatal.
    """
    recipient = recipient or settings.ORDER_NOTIFICATION_EMAIL
    if not recipient:
        logger.info("notification.skipped", order_id=str(order.id), reason="no_recipient")
        return False

    subject, body = render_order_email(order)
    connection = get_connection(timeout=settings.EMAIL_TIMEOUT)
    send_mail(
        subject,
        body,
        settings.DEFAULT_FROM_EMAIL,
        [recipient],
        connection=connection,
    )
    logger.info("notification.sent", order_id=str(order.id))
    return True
