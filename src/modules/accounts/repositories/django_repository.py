"""Django ORM implementation of the Account repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from modules.accounts.exceptions import AccountAlreadyExists
from modules.accounts.models import Account
from modules.accounts.repositories.interfaces import IAccountRepository

logger = structlog.get_logger(__name__)


class AccountDjangoRepository(IAccountRepository):
    """Concrete Account repository backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[Account]:
        try:
            return Account.objects.select_related("user").filter(id=id).first()
        except (ValueError, TypeError):
            return None

    def get_by_user_id(self, user_id: Any) -> Optional[Account]:
        return Account.objects.select_related("user").filter(user_id=user_id).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Account]:
        queryset = Account.objects.select_related("user")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Account) -> Account:
        entity.save()
        logger.info("account.saved", account_id=str(entity.id))
        return entity

    def email_taken(self, email: str) -> bool:
        User = get_user_model()
        return User.objects.filter(email__iexact=email).exists()

    def create_with_user(
        self, *, email: str, password: str, name: str, postcode: str
    ) -> Account:
        """Create user + account atomically.

        Raises:
            AccountAlreadyExists: if a concurrent registration won the race
                for the same e-mail (username is unique).
        """
        User = get_user_model()
        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    username=email, email=email, password=password
                )
                account = Account.objects.create(
                    user=user, name=name, postcode=postcode
                )
        except IntegrityError as exc:
            raise AccountAlreadyExists("Email already exists") from exc
        return account

    def get_or_create_for_user(self, user: Any) -> Account:
        account, _ = Account.objects.select_related("user").get_or_create(user=user)
        return account
