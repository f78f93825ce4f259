"""In-process event bus and commit-time dispatch."""

from __future__ import annotations

from functools import partial
from typing import Dict, Iterable, List, Type

import structlog
from django.db import transaction

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent, DomainEventMixin

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """Synchronous in-process bus; handlers run in subscription order."""

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def publish(self, event: DomainEvent) -> None:
        handlers = self._handlers.get(type(event), [])
        logger.debug(
            "event.published",
            event_name=event.event_name,
            aggregate_id=str(event.aggregate_id),
            handler_count=len(handlers),
        )
        for handler in handlers:
            handler.handle(event)

    def publish_all(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            self.publish(event)


event_bus = InMemoryEventBus()


def publish_after_commit(aggregate: DomainEventMixin, bus: IEventBus = event_bus) -> None:
    """Publish the aggregate's pending events once the current transaction commits.

    Outside a transaction the events are published immediately.  A failing
    handler is logged by Django and does not affect the committed data.
    """
    events = aggregate.pull_domain_events()
    if not events:
        return
    transaction.on_commit(partial(bus.publish_all, events), robust=True)
