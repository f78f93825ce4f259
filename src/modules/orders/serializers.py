"""Order DRF serializers for API output.

Input payloads are validated in ``validation.py`` / ``dtos.py``; the
serializers here only render.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.models import Order, OrderStatusHistory


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "user_id",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Customer-facing order representation."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "lines",
            "delivery_method",
            "total_amount",
            "payment_status",
            "fulfillment_status",
            "fulfillment_date",
            "fulfillment_note",
            "address_snapshot",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AdminOrderSerializer(OrderSerializer):
    """Admin console representation with owner details and history."""

    owner_id = serializers.IntegerField(read_only=True)
    owner_email = serializers.EmailField(source="owner.email", read_only=True)
    owner_name = serializers.SerializerMethodField()
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + [
            "owner_id",
            "owner_email",
            "owner_name",
            "gateway_session_id",
            "status_history",
        ]
        read_only_fields = fields

    def get_owner_name(self, obj: Order) -> str:
        account = getattr(obj.owner, "account", None)
        if account is not None and account.name:
            return account.name
        return obj.address_snapshot.get("name", "") if obj.address_snapshot else ""
