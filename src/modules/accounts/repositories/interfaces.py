"""Account repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.accounts.models import Account


class IAccountRepository(IRepository["Account"]):
    """Repository contract for the Account aggregate."""

    @abstractmethod
    def get_by_user_id(self, user_id: Any) -> Optional[Account]:
        """Retrieve the account that belongs to an auth user."""

    @abstractmethod
    def email_taken(self, email: str) -> bool:
        """Whether any auth user already uses *email*."""

    @abstractmethod
    def create_with_user(
        self, *, email: str, password: str, name: str, postcode: str
    ) -> Account:
        """Create the auth user and its account in one transaction."""

    @abstractmethod
    def get_or_create_for_user(self, user: Any) -> Account:
        """Return the user's account, creating an empty one if missing."""
