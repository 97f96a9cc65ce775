"""Adoption case repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING
from uuid import UUID

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.adoptions.models import AdoptionCase
    from modules.core.identity import Actor


class IAdoptionCaseRepository(IRepository["AdoptionCase"]):
    @abstractmethod
    def has_pending_case(self, listing_id: UUID) -> bool:
        """Return ``True`` if the listing already has a PENDING case."""

    @abstractmethod
    def visible_to(self, actor: Actor) -> models.QuerySet:
        """Cases the actor may read: own requests, own listings, or all for back office."""
