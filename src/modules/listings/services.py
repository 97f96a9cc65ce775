"""Listing service layer (Use Cases).

Creation is done here; every status change goes through the
``TransitionEngine``.  Responses are always built from a fresh read so
callers see the stored state, never an optimistic guess.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.db import models, transaction

from modules.workflow import policy
from modules.workflow.constants import EntityKind, ListingStatus, predecessors
from modules.workflow.exceptions import Forbidden, NotFound

if TYPE_CHECKING:
    from uuid import UUID

    from modules.core.identity import Actor
    from modules.listings.dtos import ChangeListingStatusDTO, CreateListingDTO
    from modules.listings.models import Listing
    from modules.listings.repositories.interfaces import IListingRepository
    from modules.workflow.engine import TransitionEngine
    from modules.workflow.repositories.interfaces import IStateStore

logger = structlog.get_logger(__name__)


class ListingService:
    """Application service for Listing use-cases.

    Receives its collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        listing_repository: IListingRepository,
        engine: TransitionEngine,
        state_store: IStateStore,
    ) -> None:
        self._listing_repo = listing_repository
        self._engine = engine
        self._store = state_store

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_listing(self, dto: CreateListingDTO, actor: Actor) -> Listing:
        """Create a listing in PENDING owned by the calling shelter.

        Raises:
            Forbidden: the actor's role may not create listings.
        """
        log = logger.bind(actor_id=str(actor.id), actor_role=actor.role)
        if not policy.can_create(actor.role, EntityKind.LISTING):
            log.warning("listing.creation_forbidden")
            raise Forbidden("Only shelters can create listings.")

        listing = self._listing_repo.create(
            {
                "shelter_id": actor.id,
                "name": dto.name,
                "category": dto.category,
                "breed": dto.breed,
                "age": dto.age,
                "gender": dto.gender or "",
                "description": dto.description,
                "image_url": dto.image_url,
            }
        )
        self._store.record_creation(
            EntityKind.LISTING, listing.id, ListingStatus.PENDING, actor
        )
        log.info("listing.created", listing_id=str(listing.id))
        return listing

    def change_status(
        self, listing_id: UUID, dto: ChangeListingStatusDTO, actor: Actor
    ) -> Listing:
        """Moderate a listing (ADMIN: PENDING → AVAILABLE | REJECTED).

        Raises:
            NotFound, Forbidden, IllegalTransition, StaleState:
                see ``TransitionEngine.apply``.
        """
        from_status = dto.from_status or self._infer_from_status(listing_id, dto.to_status)
        self._engine.apply(
            EntityKind.LISTING,
            listing_id,
            dto.expected_version,
            from_status,
            dto.to_status,
            actor,
            notes=dto.note,
        )
        return self.get_listing(str(listing_id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_listing(self, listing_id: str) -> Listing:
        """Raises ``NotFound`` if the listing does not exist."""
        listing = self._listing_repo.get_by_id(listing_id)
        if not listing:
            raise NotFound(f"Listing {listing_id} not found.")
        return listing

    def list_listings(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        return self._listing_repo.list(filters)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _infer_from_status(self, listing_id: UUID, to_status: str) -> str:
        """The unique predecessor of *to_status*, else the stored status.

        Targets with no single way in (RESCUED, PENDING) are handed to the
        engine as a move from where the listing is now, so the gate rules
        on them.
        """
        sources = predecessors(EntityKind.LISTING, to_status)
        if len(sources) == 1:
            return sources.pop()
        snapshot = self._store.get_snapshot(EntityKind.LISTING, listing_id)
        if snapshot is None:
            raise NotFound(f"Listing {listing_id} not found.")
        return snapshot.status
