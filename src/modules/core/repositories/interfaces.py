"""Repository contract shared by every module.

Services receive repositories through their constructors and only talk to
these abstractions; the Django ORM stays behind the ``*DjangoRepository``
implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Lookup and persistence for one aggregate type ``T``."""

    @abstractmethod
    def get_by_id(self, id: Any) -> Optional[T]:
        """Return the entity with primary key *id*, or ``None``."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[T]:
        """Return entities matching the optional equality *filters*."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Insert or update *entity* and return it."""
