"""Reconciliation DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.reconciliation.models import PaymentDeadLetter
from modules.workflow.constants import PaymentStatus


class PaymentCallbackSerializer(serializers.Serializer):
    """Outcome reported by the gateway redirect handler."""

    outcome = serializers.ChoiceField(
        choices=[
            (PaymentStatus.PAID, PaymentStatus.PAID.label),
            (PaymentStatus.FAILED, PaymentStatus.FAILED.label),
        ]
    )


class PaymentDeadLetterSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentDeadLetter
        fields = [
            "id",
            "order_id",
            "attempted_outcome",
            "attempts",
            "reason",
            "error_type",
            "last_error",
            "created_at",
        ]
        read_only_fields = fields
