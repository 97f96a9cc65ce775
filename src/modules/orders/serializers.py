"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.orders.models import Order
from modules.workflow.constants import EntityKind, OrderStatus
from modules.workflow.models import TransitionRecord

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderSerializer(serializers.Serializer):
    """Validates the checkout request payload."""

    total_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0.01")
    )
    shipping_address = serializers.CharField(max_length=500)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class OrderStatusSerializer(serializers.Serializer):
    """Fulfillment step; cancellations use the dedicated endpoint."""

    to_status = serializers.ChoiceField(
        choices=[
            (OrderStatus.CONFIRMED, OrderStatus.CONFIRMED.label),
            (OrderStatus.SHIPPING, OrderStatus.SHIPPING.label),
            (OrderStatus.COMPLETED, OrderStatus.COMPLETED.label),
        ]
    )
    expected_version = serializers.IntegerField(min_value=0)
    note = serializers.CharField(required=False, default="", allow_blank=True)


class CancelOrderSerializer(serializers.Serializer):
    expected_version = serializers.IntegerField(min_value=0)
    note = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class TransitionRecordSerializer(serializers.ModelSerializer):
    """Read serializer for the order's audit trail (both axes)."""

    class Meta:
        model = TransitionRecord
        fields = [
            "entity_kind",
            "from_status",
            "to_status",
            "version",
            "actor_role",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with their transition history."""

    history = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user_id",
            "status",
            "payment_status",
            "version",
            "total_amount",
            "shipping_address",
            "notes",
            "payment_resolved_at",
            "created_at",
            "updated_at",
            "history",
        ]
        read_only_fields = fields

    def get_history(self, order: Order) -> list[dict]:
        records = TransitionRecord.objects.filter(
            entity_kind__in=[EntityKind.ORDER, EntityKind.ORDER_PAYMENT],
            entity_id=order.id,
        ).order_by("version", "created_at")
        return TransitionRecordSerializer(records, many=True).data


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no history)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user_id",
            "status",
            "payment_status",
            "version",
            "total_amount",
            "created_at",
        ]
        read_only_fields = fields
