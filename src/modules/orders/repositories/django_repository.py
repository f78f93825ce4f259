"""Django ORM implementation of the order ledger.

``create_or_reuse`` runs in a transaction that first locks the owner's
user row (``SELECT FOR UPDATE``).  Concurrent submissions for the same
owner therefore serialise, and the dedup look-up plus insert behave as one
compare-and-insert.  Admin updates lock the order row.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import structlog
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from modules.orders.constants import (
    ACTIVE_WINDOW,
    ARCHIVE_LIMIT,
    DEDUP_WINDOW,
    CheckoutSessionStatus,
    PaymentStatus,
)
from modules.orders.dtos import OrderDraft
from modules.orders.events import OrderPaid, OrderPlaced
from modules.orders.exceptions import OwnerNotFound
from modules.orders.models import CheckoutSession, Order
from modules.orders.repositories.interfaces import (
    ICheckoutSessionRepository,
    IOrderRepository,
)
from modules.orders.validation import compute_dedup_key

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete order ledger backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[Order]:
        try:
            return (
                Order.objects.select_related("owner")
                .prefetch_related("status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        queryset = Order.objects.select_related("owner")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_for_update(self, id: Any) -> Optional[Order]:
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        entity.save()
        logger.info("order.saved", order_id=str(entity.id))
        return entity

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_or_reuse(self, draft: OrderDraft) -> Tuple[Order, bool]:
        """Insert or return the equivalent existing order.

        A gateway-confirmed draft that matches a ``placed`` order with no
        session promotes that order to ``paid`` (raising ``OrderPaid``)
        instead of inserting a second row.  A different session for the
        same cart is a second payment and always inserts.

        Raises:
            OwnerNotFound: if ``draft.owner_id`` is unknown.
        """
        User = get_user_model()
        owner = User.objects.select_for_update().filter(pk=draft.owner_id).first()
        if owner is None:
            raise OwnerNotFound(f"User {draft.owner_id} not found.")

        log = logger.bind(owner_id=draft.owner_id, payment_status=draft.payment_status)

        if draft.gateway_session_id:
            existing = Order.objects.filter(
                gateway_session_id=draft.gateway_session_id
            ).first()
            if existing:
                log.info("order.gateway_redelivery", order_id=str(existing.id))
                return existing, False

        idempotency_key = (
            f"{draft.owner_id}:{draft.idempotency_key}" if draft.idempotency_key else None
        )
        if idempotency_key:
            existing = Order.objects.filter(idempotency_key=idempotency_key).first()
            if existing:
                log.info("order.idempotency_hit", order_id=str(existing.id))
                return existing, False

        dedup_key = compute_dedup_key(
            draft.owner_id, draft.total_amount, draft.delivery_method, draft.lines
        )
        candidates = Order.objects.filter(
            owner_id=draft.owner_id,
            dedup_key=dedup_key,
            created_at__gte=timezone.now() - DEDUP_WINDOW,
        )
        if draft.gateway_session_id:
            # Each confirmed gateway session is a real payment: it may only
            # adopt a placed order that no session has claimed yet.
            candidates = candidates.filter(
                payment_status=PaymentStatus.PLACED, gateway_session_id__isnull=True
            )
        existing = candidates.order_by("-created_at").first()
        if existing:
            if draft.gateway_session_id:
                existing.payment_status = PaymentStatus.PAID
                existing.gateway_session_id = draft.gateway_session_id
                existing.save(update_fields=["payment_status", "gateway_session_id"])
                existing.add_domain_event(OrderPaid(aggregate_id=existing.id))
                log.info("order.promoted_to_paid", order_id=str(existing.id))
            else:
                log.info("order.deduplicated", order_id=str(existing.id))
            return existing, False

        order = Order(
            owner=owner,
            lines=draft.lines,
            total_amount=draft.total_amount,
            delivery_method=draft.delivery_method,
            payment_status=draft.payment_status,
            address_snapshot=draft.address_snapshot,
            dedup_key=dedup_key,
            idempotency_key=idempotency_key,
            gateway_session_id=draft.gateway_session_id,
        )
        order.save()
        order.add_domain_event(
            OrderPlaced(
                aggregate_id=order.id,
                source="gateway" if draft.gateway_session_id else "direct",
            )
        )
        log.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            total_amount=order.total_amount,
            line_count=len(order.lines),
        )
        return order, True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_for_owner(self, owner_id: Any) -> List[Order]:
        return list(Order.objects.filter(owner_id=owner_id).order_by("-created_at", "-id"))

    def admin_queryset(self) -> QuerySet:
        return Order.objects.select_related("owner", "owner__account").prefetch_related(
            "status_history"
        )

    def list_for_admin(
        self,
        queryset: Optional[QuerySet] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[List[Order], List[Order]]:
        """Partition into active (younger than five days) and archived.

        The archive is capped at the 200 most recent rows.
        """
        base = queryset if queryset is not None else self.admin_queryset()
        cutoff = (now or timezone.now()) - ACTIVE_WINDOW
        ordered = base.order_by("-created_at", "-id")
        active = list(ordered.filter(created_at__gte=cutoff))
        archived = list(ordered.filter(created_at__lt=cutoff)[:ARCHIVE_LIMIT])
        return active, archived


class CheckoutSessionDjangoRepository(ICheckoutSessionRepository):
    """Concrete checkout-session repository backed by Django ORM."""

    @transaction.atomic
    def create(
        self,
        *,
        gateway_session_id: str,
        owner_id: Any,
        lines: List[Dict[str, Any]],
        total_amount: int,
        delivery_method: str,
    ) -> CheckoutSession:
        session = CheckoutSession.objects.create(
            gateway_session_id=gateway_session_id,
            owner_id=owner_id,
            lines=lines,
            total_amount=total_amount,
            delivery_method=delivery_method,
        )
        logger.info(
            "checkout.session_recorded",
            session_id=gateway_session_id,
            owner_id=owner_id,
        )
        return session

    def get_by_gateway_id(self, gateway_session_id: str) -> Optional[CheckoutSession]:
        if not gateway_session_id:
            return None
        return CheckoutSession.objects.filter(
            gateway_session_id=gateway_session_id
        ).first()

    @transaction.atomic
    def mark_confirmed(self, session: CheckoutSession) -> CheckoutSession:
        if session.can_transition_to(CheckoutSessionStatus.CONFIRMED):
            session.status = CheckoutSessionStatus.CONFIRMED
            session.save(update_fields=["status"])
            logger.info("checkout.session_confirmed", session_id=session.gateway_session_id)
        return session

    @transaction.atomic
    def mark_recorded(self, session: CheckoutSession, order: Order) -> CheckoutSession:
        session.order = order
        if session.can_transition_to(CheckoutSessionStatus.RECORDED):
            session.status = CheckoutSessionStatus.RECORDED
        session.save(update_fields=["status", "order"])
        return session

    @transaction.atomic
    def abandon_stale(self, older_than: datetime) -> int:
        count = CheckoutSession.objects.filter(
            status=CheckoutSessionStatus.CREATED, created_at__lt=older_than
        ).update(status=CheckoutSessionStatus.ABANDONED, updated_at=timezone.now())
        if count:
            logger.info("checkout.sessions_abandoned", count=count)
        return count
