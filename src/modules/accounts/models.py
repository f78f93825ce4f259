"""Customer account profile.

The auth ``User`` carries credentials and the e-mail address; ``Account``
carries the postal address used for delivery and for the order address
snapshot.
"""

from __future__ import annotations

from typing import Dict

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel

ADDRESS_FIELDS = (
    "name",
    "address_line1",
    "address_line2",
    "city",
    "postcode",
    "country",
)


class Account(BaseModel):
    """One-to-one profile for an auth user."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="account",
    )
    name = models.CharField(max_length=200, blank=True, default="")
    address_line1 = models.CharField(max_length=200, blank=True, default="")
    address_line2 = models.CharField(max_length=200, blank=True, default="")
    city = models.CharField(max_length=200, blank=True, default="")
    postcode = models.CharField(max_length=20, blank=True, default="")
    country = models.CharField(max_length=200, blank=True, default="")

    class Meta:
        db_table = "accounts"
        ordering = ["-created_at"]

    @property
    def email(self) -> str:
        return self.user.email

    @property
    def has_postcode(self) -> bool:
        return bool(self.postcode and self.postcode.strip())

    def address_snapshot(self) -> Dict[str, str]:
        """Copy of the contact details frozen onto an order.

        Never includes credentials.
        """
        snapshot = {field: getattr(self, field) for field in ADDRESS_FIELDS}
        snapshot["email"] = self.user.email
        return snapshot

    def __str__(self) -> str:
        return f"{self.name or self.user.email} ({self.postcode or 'no postcode'})"
