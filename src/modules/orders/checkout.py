"""Gateway checkout orchestration.

Two halves of one payment:

1. ``create_payment_session``: gate on address and service area, price
   every line from the catalog, open a hosted session at the gateway and
   remember it locally.  No order exists yet.
2. ``process_gateway_event``: a verified ``checkout.session.completed``
   event records the paid order through the ledger.

Gateway calls never happen inside a database transaction.
"""

from __future__ import annotations

import enum
import json
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.contrib.auth import get_user_model
from django.db import transaction

from modules.catalog.exceptions import ItemNotFound
from modules.delivery.exceptions import OutOfServiceArea
from modules.orders.constants import MAX_ITEM_NAME_LENGTH, PaymentStatus
from modules.orders.dtos import CheckoutSessionResult, OrderDraft
from modules.orders.exceptions import (
    InvalidPayload,
    MissingAddress,
    PaymentGatewayUnavailable,
    Unauthenticated,
)
from modules.orders.services import snapshot_address
from modules.orders.validation import (
    enforce_delivery_minimum,
    parse_delivery_method,
    sanitize_price,
    validate_lines,
)
from modules.payments.exceptions import InvalidSignature, PaymentGatewayError
from modules.payments.gateway import CHECKOUT_COMPLETED, GatewayLineItem
from shared.infrastructure.bus import publish_after_commit

if TYPE_CHECKING:
    from modules.accounts.repositories.interfaces import IAccountRepository
    from modules.catalog.repositories.interfaces import IItemRepository
    from modules.delivery.services import DeliveryAreaService
    from modules.orders.repositories.interfaces import (
        ICheckoutSessionRepository,
        IOrderRepository,
    )
    from modules.payments.gateway import PaymentGateway

logger = structlog.get_logger(__name__)

# Gateway metadata values are limited to 500 characters.
METADATA_VALUE_LIMIT = 500


class WebhookOutcome(str, enum.Enum):
    RECORDED = "recorded"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    REJECTED = "rejected"
    USER_MISSING = "user_missing"
    FAILED = "failed"


def encode_items_metadata(lines: List[Dict[str, Any]]) -> Optional[str]:
    """Compact JSON of the line snapshot, or ``None`` if it would not fit."""
    encoded = json.dumps(lines, separators=(",", ":"), ensure_ascii=False)
    if len(encoded) > METADATA_VALUE_LIMIT:
        return None
    return encoded


class CheckoutService:
    """Application service for gateway checkout.

    Receives repositories and external capabilities via constructor
    injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        session_repository: ICheckoutSessionRepository,
        account_repository: IAccountRepository,
        item_repository: IItemRepository,
        delivery_area: DeliveryAreaService,
        gateway: PaymentGateway,
    ) -> None:
        self._order_repo = order_repository
        self._session_repo = session_repository
        self._account_repo = account_repository
        self._item_repo = item_repository
        self._delivery_area = delivery_area
        self._gateway = gateway

    # ------------------------------------------------------------------
    # Session creation
    # ------------------------------------------------------------------

    def create_payment_session(
        self,
        user: Any,
        raw_items: Any,
        delivery_method: Any = None,
    ) -> CheckoutSessionResult:
        """Open a hosted payment session priced from the catalog.

        Raises:
            Unauthenticated: no authenticated user.
            MissingAddress: the account has no postcode.
            OutOfServiceArea: the postcode is outside the service radius.
            InvalidPayload: malformed lines or delivery method.
            ItemNotFound: a line references an unknown item.
            BelowDeliveryMinimum: delivery order under the minimum.
            PaymentGatewayUnavailable: gateway timeout or error.
        """
        if user is None or not getattr(user, "is_authenticated", False):
            raise Unauthenticated()

        log = logger.bind(user_id=user.pk)
        method = parse_delivery_method(delivery_method)

        account = self._account_repo.get_by_user_id(user.pk)
        if account is None or not account.has_postcode:
            log.info("checkout.missing_address")
            raise MissingAddress()

        if not self._delivery_area.is_within_service_radius(account.postcode):
            log.info("checkout.out_of_service_area")
            raise OutOfServiceArea()

        lines = validate_lines(raw_items)
        priced: List[Dict[str, Any]] = []
        for line in lines:
            item = self._item_repo.get_by_id(line.item_id)
            if item is None:
                log.warning("checkout.item_not_found", item_id=line.item_id)
                raise ItemNotFound(line.item_id)
            priced.append(
                {
                    "item_id": item.id,
                    "name": item.name.strip()[:MAX_ITEM_NAME_LENGTH],
                    "unit_price": item.price_cents,
                    "quantity": line.quantity,
                }
            )

        total = sum(line["unit_price"] * line["quantity"] for line in priced)
        enforce_delivery_minimum(method, total)

        metadata = {"user_id": str(user.pk), "delivery_method": str(method)}
        items_json = encode_items_metadata(priced)
        if items_json is not None:
            metadata["items_json"] = items_json

        try:
            session = self._gateway.create_session(
                [
                    GatewayLineItem(
                        name=line["name"] or f"Item #{line['item_id']}",
                        unit_amount=line["unit_price"],
                        quantity=line["quantity"],
                    )
                    for line in priced
                ],
                metadata,
                customer_email=user.email or None,
            )
        except PaymentGatewayError as exc:
            log.error("checkout.gateway_unavailable", error=str(exc))
            raise PaymentGatewayUnavailable() from exc

        self._session_repo.create(
            gateway_session_id=session.id,
            owner_id=user.pk,
            lines=priced,
            total_amount=total,
            delivery_method=str(method),
        )
        log.info(
            "checkout.session_created",
            session_id=session.id,
            total_amount=total,
            line_count=len(priced),
        )
        return CheckoutSessionResult(url=session.url, session_id=session.id)

    # ------------------------------------------------------------------
    # Webhook
    # ------------------------------------------------------------------

    def process_gateway_event(self, payload: bytes, signature: str) -> WebhookOutcome:
        """Handle one webhook delivery.  Never raises.

        Unverifiable deliveries are dropped.  Failures after verification
        are logged; the local session then stays ``confirmed``.
        """
        try:
            event = self._gateway.verify_event(payload, signature)
        except InvalidSignature:
            logger.warning("webhook.signature_invalid")
            return WebhookOutcome.REJECTED

        event_type = event.get("type") if isinstance(event, dict) else None
        log = logger.bind(event_id=event.get("id") if isinstance(event, dict) else None)
        if event_type != CHECKOUT_COMPLETED:
            log.info("webhook.event_ignored", event_type=event_type)
            return WebhookOutcome.IGNORED

        try:
            return self._record_paid_order(event)
        except Exception as exc:
            log.exception("webhook.processing_failed", error_type=type(exc).__name__)
            return WebhookOutcome.FAILED

    def _record_paid_order(self, event: Dict[str, Any]) -> WebhookOutcome:
        session_obj = (event.get("data") or {}).get("object") or {}
        session_id = session_obj.get("id") or ""
        metadata = session_obj.get("metadata") or {}
        log = logger.bind(session_id=session_id)

        local = self._session_repo.get_by_gateway_id(session_id)
        if local is not None:
            self._session_repo.mark_confirmed(local)

        owner = self._resolve_owner(metadata.get("user_id"), local)
        if owner is None:
            log.error("webhook.user_missing", user_id=metadata.get("user_id"))
            return WebhookOutcome.USER_MISSING

        lines = self._resolve_lines(metadata.get("items_json"), local)
        method = parse_delivery_method(
            metadata.get("delivery_method") or (local.delivery_method if local else None)
        )
        total = sanitize_price(session_obj.get("amount_total"))
        if total is None:
            if local is None:
                raise InvalidPayload("Gateway event carries no usable amount.")
            total = local.total_amount

        draft = OrderDraft(
            owner_id=owner.pk,
            lines=lines,
            total_amount=total,
            delivery_method=str(method),
            payment_status=PaymentStatus.PAID,
            address_snapshot=snapshot_address(self._account_repo, owner),
            gateway_session_id=session_id or None,
        )

        with transaction.atomic():
            order, created = self._order_repo.create_or_reuse(draft)
            if local is not None:
                self._session_repo.mark_recorded(local, order)
            publish_after_commit(order)

        log.info(
            "webhook.order_recorded" if created else "webhook.order_reused",
            order_id=str(order.id),
            total_amount=order.total_amount,
        )
        return WebhookOutcome.RECORDED if created else WebhookOutcome.DUPLICATE

    @staticmethod
    def _resolve_owner(raw_user_id: Any, local: Any) -> Any:
        User = get_user_model()
        candidate = raw_user_id if raw_user_id not in (None, "") else None
        if candidate is None and local is not None:
            candidate = local.owner_id
        if candidate is None:
            return None
        try:
            return User.objects.filter(pk=int(candidate)).first()
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _resolve_lines(items_json: Any, local: Any) -> List[Dict[str, Any]]:
        raw: Any = None
        if isinstance(items_json, str) and items_json:
            try:
                raw = json.loads(items_json)
            except ValueError:
                raw = None
        if raw is None and local is not None:
            raw = local.lines
        if raw is None:
            raise InvalidPayload("Gateway event carries no line snapshot.")
        return [line.model_dump() for line in validate_lines(raw)]
