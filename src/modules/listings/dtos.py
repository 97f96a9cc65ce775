"""Listing DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from modules.listings.constants import AnimalCategory, AnimalGender
from modules.workflow.constants import ListingStatus


class CreateListingDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    category: AnimalCategory = AnimalCategory.OTHER
    breed: str = ""
    age: Optional[int] = None
    gender: Optional[AnimalGender] = None
    description: str = ""
    image_url: str = ""

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name must not be blank.")
        return v.strip()


class ChangeListingStatusDTO(BaseModel):
    """Moderation request.

    ``from_status`` is what the caller last saw; when omitted the service
    uses the single state the target is reachable from.
    """

    model_config = ConfigDict(frozen=True)

    to_status: ListingStatus
    expected_version: int
    from_status: Optional[ListingStatus] = None
    note: str = ""
