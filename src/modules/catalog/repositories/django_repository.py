"""Django ORM implementation of the catalog repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.db import transaction

from modules.catalog.models import Item
from modules.catalog.repositories.interfaces import IItemRepository

logger = structlog.get_logger(__name__)


class ItemDjangoRepository(IItemRepository):
    """Concrete catalog repository backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[Item]:
        """Return the item with primary key *id*, or ``None``.

        Non-integer or non-positive ids resolve to ``None`` rather than
        raising, so callers can treat them as "not in the catalog".
        """
        if isinstance(id, bool):
            return None
        try:
            pk = int(id)
        except (TypeError, ValueError):
            return None
        if pk <= 0:
            return None
        return Item.objects.filter(pk=pk).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Item]:
        queryset = Item.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Item) -> Item:
        is_new = entity._state.adding
        entity.save()
        logger.info("catalog.item_saved", item_id=entity.id, is_new=is_new)
        return entity
