"""Order service layer (Use Cases).

Direct order placement, the customer order list, and the admin
console's listing and fulfillment updates.

Business rules enforced:
- Carts are validated and normalised before anything is written.
- Delivery orders must total at least 500 pence.
- Identical submissions within 24 hours return the existing order.
- ``fulfillment_date`` is write-once; any status other than ``awaiting``
  requires a date.
- History is recorded on every fulfillment status change (signals).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import transaction
from pydantic import ValidationError as PydanticValidationError

from modules.orders.constants import (
    MAX_IDEMPOTENCY_KEY_LENGTH,
    FulfillmentStatus,
    PaymentStatus,
)
from modules.orders.dtos import (
    OrderDraft,
    OrderListingDTO,
    PlacementResult,
    UpdateFulfillmentDTO,
)
from modules.orders.exceptions import (
    DateAlreadySet,
    InvalidPayload,
    MissingDate,
    OrderNotFound,
    Unauthenticated,
)
from modules.orders.validation import (
    enforce_delivery_minimum,
    parse_delivery_method,
    validate_cart,
)
from shared.infrastructure.bus import publish_after_commit

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.accounts.repositories.interfaces import IAccountRepository
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


def snapshot_address(account_repository: IAccountRepository, user: Any) -> Dict[str, str]:
    """Contact details frozen onto a new order.

    Users without an account profile get an e-mail-only snapshot.
    """
    account = account_repository.get_by_user_id(user.pk)
    if account is not None:
        return account.address_snapshot()
    return {
        "name": "",
        "email": user.email,
        "address_line1": "",
        "address_line2": "",
        "city": "",
        "postcode": "",
        "country": "",
    }


def _clean_idempotency_key(value: Optional[str]) -> Optional[str]:
    if not value or not value.strip():
        return None
    return value.strip()[:MAX_IDEMPOTENCY_KEY_LENGTH]


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        account_repository: IAccountRepository,
    ) -> None:
        self._order_repo = order_repository
        self._account_repo = account_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_direct_order(
        self,
        user: Any,
        raw_items: Any,
        raw_total: Any,
        delivery_method: Any = None,
        idempotency_key: Optional[str] = None,
    ) -> PlacementResult:
        """Record a client-submitted order with ``payment_status=placed``.

        Raises:
            Unauthenticated: no authenticated user.
            InvalidPayload: malformed cart, total or delivery method.
            BelowDeliveryMinimum: delivery order under the minimum.
        """
        if user is None or not getattr(user, "is_authenticated", False):
            raise Unauthenticated()

        cart = validate_cart(raw_items, raw_total)
        method = parse_delivery_method(delivery_method)
        enforce_delivery_minimum(method, cart.total)

        log = logger.bind(user_id=user.pk, delivery_method=str(method))
        draft = OrderDraft(
            owner_id=user.pk,
            lines=cart.lines_as_dicts(),
            total_amount=cart.total,
            delivery_method=str(method),
            payment_status=PaymentStatus.PLACED,
            address_snapshot=snapshot_address(self._account_repo, user),
            idempotency_key=_clean_idempotency_key(idempotency_key),
        )

        with transaction.atomic():
            order, created = self._order_repo.create_or_reuse(draft)
            publish_after_commit(order)

        if created:
            log.info("order.placed", order_id=str(order.id), total_amount=order.total_amount)
        else:
            log.info("order.placement_deduplicated", order_id=str(order.id))
        return PlacementResult(order=order, deduped=not created)

    @transaction.atomic
    def update_fulfillment(
        self,
        order_id: Any,
        payload: Dict[str, Any],
        acting_user: Any = None,
    ) -> Order:
        """Apply an admin update under a row lock.

        Raises:
            InvalidPayload: unknown status, malformed date, note too long.
            OrderNotFound: unknown id.
            DateAlreadySet: a different date is already stored.
            MissingDate: non-``awaiting`` status without a date.
        """
        try:
            dto = UpdateFulfillmentDTO(**payload)
        except (PydanticValidationError, TypeError) as exc:
            raise InvalidPayload("Invalid fulfillment update.") from exc

        supplied = dto.model_fields_set
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound()

        log = logger.bind(order_id=str(order.id))

        if "fulfillment_date" in supplied and dto.fulfillment_date is not None:
            if order.fulfillment_date and order.fulfillment_date != dto.fulfillment_date:
                log.warning(
                    "order.date_already_set",
                    stored=order.fulfillment_date.isoformat(),
                    supplied=dto.fulfillment_date.isoformat(),
                )
                raise DateAlreadySet()
            order.fulfillment_date = dto.fulfillment_date

        if "fulfillment_status" in supplied and dto.fulfillment_status is not None:
            new_status = dto.fulfillment_status
            if new_status != FulfillmentStatus.AWAITING and not order.fulfillment_date:
                log.warning("order.missing_date", new_status=str(new_status))
                raise MissingDate()
            order.fulfillment_status = new_status

        if "fulfillment_note" in supplied and dto.fulfillment_note is not None:
            order.fulfillment_note = dto.fulfillment_note

        order._status_changed_by = acting_user
        order = self._order_repo.save(order)
        log.info(
            "order.fulfillment_updated",
            fulfillment_status=order.fulfillment_status,
            fields=sorted(supplied),
        )
        return self._order_repo.get_by_id(order.id) or order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_for_user(self, user: Any) -> List[Order]:
        if user is None or not getattr(user, "is_authenticated", False):
            raise Unauthenticated()
        return self._order_repo.list_for_owner(user.pk)

    def list_for_admin(self, queryset: Optional[QuerySet] = None) -> OrderListingDTO:
        active, archived = self._order_repo.list_for_admin(queryset)
        logger.info(
            "order.admin_listing", active_count=len(active), archived_count=len(archived)
        )
        return OrderListingDTO(active=active, archived=archived)
