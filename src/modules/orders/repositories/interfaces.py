"""Order ledger and checkout-session repository interfaces.

The ledger is the only writer of ``Order`` rows.  Both producers (direct
placement and gateway confirmation) go through ``create_or_reuse``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.dtos import OrderDraft
    from modules.orders.models import CheckoutSession, Order


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def get_by_id(self, id: Any) -> Optional[Order]:
        """Retrieve an order; ``None`` for unknown or malformed ids."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters."""

    @abstractmethod
    def get_for_update(self, id: Any) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def create_or_reuse(self, draft: OrderDraft) -> Tuple[Order, bool]:
        """Insert *draft* unless an equivalent order already exists.

        Returns ``(order, created)``.  Equivalence, in order of precedence:
        same gateway session, same owner idempotency key, same dedup key
        for the owner within the dedup window.
        """

    @abstractmethod
    def list_for_owner(self, owner_id: Any) -> List[Order]:
        """An owner's orders, newest first."""

    @abstractmethod
    def list_for_admin(
        self,
        queryset: Optional[QuerySet] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[List[Order], List[Order]]:
        """``(active, archived)`` partition, both newest first."""


class ICheckoutSessionRepository(ABC):
    """Repository contract for local checkout-session records."""

    @abstractmethod
    def create(
        self,
        *,
        gateway_session_id: str,
        owner_id: Any,
        lines: List[Dict[str, Any]],
        total_amount: int,
        delivery_method: str,
    ) -> CheckoutSession:
        """Persist a ``created`` session."""

    @abstractmethod
    def get_by_gateway_id(self, gateway_session_id: str) -> Optional[CheckoutSession]:
        """Look up a session by the gateway's id."""

    @abstractmethod
    def mark_confirmed(self, session: CheckoutSession) -> CheckoutSession:
        """Record that the gateway confirmed payment."""

    @abstractmethod
    def mark_recorded(self, session: CheckoutSession, order: Order) -> CheckoutSession:
        """Link the paid order and close the session."""

    @abstractmethod
    def abandon_stale(self, older_than: datetime) -> int:
        """Move ``created`` sessions older than *older_than* to ``abandoned``."""
