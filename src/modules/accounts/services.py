"""Account service layer (registration and address maintenance).

Registration is gated by the delivery area: a postcode outside the service
radius is refused before any row is written.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from modules.accounts.exceptions import AccountAlreadyExists
from modules.delivery.exceptions import OutOfServiceArea

if TYPE_CHECKING:
    from modules.accounts.dtos import RegisterAccountDTO, UpdateAddressDTO
    from modules.accounts.models import Account
    from modules.accounts.repositories.interfaces import IAccountRepository
    from modules.delivery.services import DeliveryAreaService

logger = structlog.get_logger(__name__)


class AccountService:
    """Application service for Account use-cases.

    Receives the repository and the delivery-area check via constructor
    injection.
    """

    def __init__(
        self,
        repository: IAccountRepository,
        delivery_area: DeliveryAreaService,
    ) -> None:
        self._repo = repository
        self._delivery_area = delivery_area

    def register(self, dto: RegisterAccountDTO) -> Account:
        """Create a user and its account.

        Raises:
            AccountAlreadyExists: the e-mail is already registered.
            OutOfServiceArea: the postcode is outside the service radius
                or cannot be resolved.
        """
        if self._repo.email_taken(dto.email):
            logger.warning("account.duplicate_email")
            raise AccountAlreadyExists("Email already exists")

        # Outbound lookup happens before any write transaction is opened.
        if not self._delivery_area.is_within_service_radius(dto.postcode):
            logger.info("account.registration_out_of_area")
            raise OutOfServiceArea()

        account = self._repo.create_with_user(
            email=dto.email,
            password=dto.password,
            name=dto.name,
            postcode=dto.postcode,
        )
        logger.info(
            "account.registered",
            account_id=str(account.id),
            user_id=account.user_id,
        )
        return account

    def get_account(self, user: Any) -> Account:
        return self._repo.get_or_create_for_user(user)

    def update_address(self, user: Any, dto: UpdateAddressDTO) -> Account:
        """Overwrite the supplied address fields; omitted fields are kept."""
        account = self._repo.get_or_create_for_user(user)
        changes = dto.changes()
        for field, value in changes.items():
            setattr(account, field, value)
        account = self._repo.save(account)
        logger.info(
            "account.address_updated",
            account_id=str(account.id),
            fields=sorted(changes),
        )
        return account
