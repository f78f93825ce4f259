"""Catalog repository interface (read-only lookup)."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.models import Item


class IItemRepository(IRepository["Item"]):
    """Repository contract for catalog items."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List["Item"]:
        """List items with optional filters."""
