"""Adoption DRF serializers for API input/output."""

from __future__ import annotations

from rest_framework import serializers

from modules.adoptions.models import AdoptionCase
from modules.workflow.constants import AdoptionStatus

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class OpenCaseSerializer(serializers.Serializer):
    listing_id = serializers.UUIDField()
    message = serializers.CharField(
        max_length=2000, required=False, default="", allow_blank=True
    )


class DecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(
        choices=[
            (AdoptionStatus.APPROVED, AdoptionStatus.APPROVED.label),
            (AdoptionStatus.REJECTED, AdoptionStatus.REJECTED.label),
        ]
    )
    expected_version = serializers.IntegerField(min_value=0)
    note = serializers.CharField(required=False, default="", allow_blank=True)


class CancelSerializer(serializers.Serializer):
    expected_version = serializers.IntegerField(min_value=0)
    note = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class AdoptionCaseSerializer(serializers.ModelSerializer):
    listing_id = serializers.UUIDField(read_only=True)
    listing_name = serializers.CharField(source="listing.name", read_only=True)

    class Meta:
        model = AdoptionCase
        fields = [
            "id",
            "listing_id",
            "listing_name",
            "requester_id",
            "shelter_id",
            "status",
            "version",
            "message",
            "submitted_at",
            "decided_at",
            "updated_at",
        ]
        read_only_fields = fields
