"""Domain event primitives.

Aggregates record events while a use case runs; the events are published
only after the surrounding transaction commits, so a handler never sees a
row that is later rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List
from uuid import UUID

import uuid6


@dataclass(frozen=True)
class DomainEvent:
    """Base domain event (immutable)."""

    aggregate_id: UUID
    event_id: UUID = field(default_factory=uuid6.uuid7)
    occurred_on: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_name: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "event_name", self.__class__.__name__)


class DomainEventMixin:
    """Mixin for aggregate roots that collect domain events in memory."""

    _domain_events: List[DomainEvent]

    def add_domain_event(self, event: DomainEvent) -> None:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        self._domain_events.append(event)

    def pull_domain_events(self) -> List[DomainEvent]:
        """Return the recorded events and forget them."""
        events = list(getattr(self, "_domain_events", []))
        self._domain_events = []
        return events

    @property
    def domain_events(self) -> List[DomainEvent]:
        return list(getattr(self, "_domain_events", []))
