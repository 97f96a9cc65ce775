"""Listing DRF serializers for API input/output."""

from __future__ import annotations

from rest_framework import serializers

from modules.listings.constants import AnimalCategory, AnimalGender
from modules.listings.models import Listing
from modules.workflow.constants import ListingStatus

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateListingSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    category = serializers.ChoiceField(
        choices=AnimalCategory.choices, required=False, default=AnimalCategory.OTHER
    )
    breed = serializers.CharField(max_length=80, required=False, default="", allow_blank=True)
    age = serializers.IntegerField(min_value=0, max_value=60, required=False, allow_null=True)
    gender = serializers.ChoiceField(
        choices=AnimalGender.choices, required=False, allow_null=True
    )
    description = serializers.CharField(required=False, default="", allow_blank=True)
    image_url = serializers.URLField(
        max_length=500, required=False, default="", allow_blank=True
    )


class ListingStatusSerializer(serializers.Serializer):
    to_status = serializers.ChoiceField(choices=ListingStatus.choices)
    expected_version = serializers.IntegerField(min_value=0)
    from_status = serializers.ChoiceField(choices=ListingStatus.choices, required=False)
    note = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class ListingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Listing
        fields = [
            "id",
            "shelter_id",
            "name",
            "category",
            "breed",
            "age",
            "gender",
            "description",
            "image_url",
            "status",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
