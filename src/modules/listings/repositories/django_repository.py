"""Django ORM implementation of the Listing repository."""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models

from modules.listings.models import Listing
from modules.listings.repositories.interfaces import IListingRepository

logger = structlog.get_logger(__name__)


class ListingDjangoRepository(IListingRepository):
    """Concrete Listing repository backed by Django ORM."""

    def create(self, data: Dict[str, Any]) -> Listing:
        listing = Listing.objects.create(**data)
        logger.info(
            "listing.persisted",
            listing_id=str(listing.id),
            shelter_id=str(listing.shelter_id),
        )
        return listing

    def get_by_id(self, id: str) -> Optional[Listing]:
        """Returns ``None`` for non-existent or invalid IDs."""
        try:
            return Listing.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Listing]:
        try:
            return Listing.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        queryset = Listing.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset
