"""Account DRF serializers (output rendering only).

Input is validated by the Pydantic DTOs in ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.accounts.models import Account


class AccountSerializer(serializers.ModelSerializer):
    """Read serializer for the current user's account."""

    email = serializers.EmailField(source="user.email", read_only=True)
    user_id = serializers.IntegerField(source="user.id", read_only=True)
    is_staff = serializers.BooleanField(source="user.is_staff", read_only=True)

    class Meta:
        model = Account
        fields = [
            "id",
            "user_id",
            "name",
            "email",
            "address_line1",
            "address_line2",
            "city",
            "postcode",
            "country",
            "is_staff",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
