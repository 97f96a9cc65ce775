"""Django ORM implementation of the AdoptionCase repository."""

from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import models

from modules.adoptions.models import AdoptionCase
from modules.adoptions.repositories.interfaces import IAdoptionCaseRepository
from modules.core.identity import Actor, Role
from modules.workflow.constants import AdoptionStatus

logger = structlog.get_logger(__name__)


class AdoptionCaseDjangoRepository(IAdoptionCaseRepository):
    """Concrete AdoptionCase repository backed by Django ORM."""

    def create(self, data: Dict[str, Any]) -> AdoptionCase:
        case = AdoptionCase.objects.create(**data)
        logger.info(
            "adoption_case.persisted",
            case_id=str(case.id),
            listing_id=str(case.listing_id),
        )
        return case

    def get_by_id(self, id: str) -> Optional[AdoptionCase]:
        """Returns ``None`` for non-existent or invalid IDs."""
        try:
            return AdoptionCase.objects.select_related("listing").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        queryset = AdoptionCase.objects.select_related("listing")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def has_pending_case(self, listing_id: UUID) -> bool:
        return AdoptionCase.objects.filter(
            listing_id=listing_id, status=AdoptionStatus.PENDING
        ).exists()

    def visible_to(self, actor: Actor) -> models.QuerySet:
        queryset = self.list()
        if actor.role in (Role.ADMIN, Role.STAFF):
            return queryset
        if actor.role == Role.SHELTER:
            return queryset.filter(shelter_id=actor.id)
        return queryset.filter(requester_id=actor.id)
