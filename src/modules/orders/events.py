"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """Raised when a new order row is recorded (never for a deduplicated one)."""

    source: str = "direct"


@dataclass(frozen=True)
class OrderPaid(OrderPlaced):
    """Raised when an existing ``placed`` order is confirmed by the gateway."""

    source: str = "gateway"
