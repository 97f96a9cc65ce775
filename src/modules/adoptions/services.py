"""Adoption service layer (Use Cases).

Orchestrates opening, deciding and withdrawing adoption requests.

Business rules enforced:
- Only a USER may open a case, and only against an AVAILABLE listing.
- At most one PENDING case per listing: the listing row is locked
  (``SELECT FOR UPDATE``) while the check and the insert run.
- Decisions and cancellations go through the ``TransitionEngine``;
  approval adopts the listing atomically (compound transition).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from django.db import models, transaction

from modules.workflow import policy
from modules.workflow.constants import AdoptionStatus, EntityKind, ListingStatus
from modules.workflow.exceptions import (
    DuplicateOpenCase,
    Forbidden,
    NotFound,
    PreconditionFailed,
)

if TYPE_CHECKING:
    from uuid import UUID

    from modules.adoptions.dtos import CancelCaseDTO, DecideCaseDTO, OpenCaseDTO
    from modules.adoptions.models import AdoptionCase
    from modules.adoptions.repositories.interfaces import IAdoptionCaseRepository
    from modules.core.identity import Actor
    from modules.listings.repositories.interfaces import IListingRepository
    from modules.workflow.engine import TransitionEngine
    from modules.workflow.repositories.interfaces import IStateStore

logger = structlog.get_logger(__name__)


class AdoptionService:
    """Application service for AdoptionCase use-cases.

    Receives its collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        case_repository: IAdoptionCaseRepository,
        listing_repository: IListingRepository,
        engine: TransitionEngine,
        state_store: IStateStore,
    ) -> None:
        self._case_repo = case_repository
        self._listing_repo = listing_repository
        self._engine = engine
        self._store = state_store

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def open_case(self, dto: OpenCaseDTO, actor: Actor) -> AdoptionCase:
        """Open a PENDING adoption case for a listing.

        Raises:
            Forbidden: the actor's role may not request adoptions.
            NotFound: the listing does not exist.
            PreconditionFailed: the listing is not AVAILABLE.
            DuplicateOpenCase: the listing already has a PENDING case.
        """
        log = logger.bind(
            listing_id=str(dto.listing_id),
            actor_id=str(actor.id),
            actor_role=actor.role,
        )
        if not policy.can_create(actor.role, EntityKind.ADOPTION_CASE):
            log.warning("adoption_case.creation_forbidden")
            raise Forbidden("Only users can request an adoption.")

        listing = self._listing_repo.get_for_update(str(dto.listing_id))
        if not listing:
            raise NotFound(f"Listing {dto.listing_id} not found.")
        if listing.status != ListingStatus.AVAILABLE:
            log.warning("adoption_case.listing_unavailable", listing_status=listing.status)
            raise PreconditionFailed(
                f"Listing {listing.id} is {listing.status}, not open for adoption."
            )
        if self._case_repo.has_pending_case(listing.id):
            log.warning("adoption_case.duplicate_open_case")
            raise DuplicateOpenCase()

        case = self._case_repo.create(
            {
                "listing": listing,
                "requester_id": actor.id,
                "shelter_id": listing.shelter_id,
                "message": dto.message,
            }
        )
        self._store.record_creation(
            EntityKind.ADOPTION_CASE,
            case.id,
            AdoptionStatus.PENDING,
            actor,
            notes=dto.message,
        )
        log.info("adoption_case.opened", case_id=str(case.id))
        return case

    def decide(self, case_id: UUID, dto: DecideCaseDTO, actor: Actor) -> AdoptionCase:
        """Approve or reject a PENDING case (owning SHELTER only).

        Approval also moves the listing AVAILABLE → ADOPTED in the same
        transaction; if the listing is gone the case stays PENDING and
        ``PreconditionFailed`` is raised.

        Cases the actor may not read are reported as ``NotFound``.
        """
        self.get_case_for(str(case_id), actor)
        self._engine.apply(
            EntityKind.ADOPTION_CASE,
            case_id,
            dto.expected_version,
            AdoptionStatus.PENDING,
            dto.decision,
            actor,
            notes=dto.note,
        )
        return self.get_case(str(case_id))

    def cancel(self, case_id: UUID, dto: CancelCaseDTO, actor: Actor) -> AdoptionCase:
        """Withdraw a PENDING case (requesting USER only)."""
        self.get_case_for(str(case_id), actor)
        self._engine.apply(
            EntityKind.ADOPTION_CASE,
            case_id,
            dto.expected_version,
            AdoptionStatus.PENDING,
            AdoptionStatus.CANCELLED,
            actor,
            notes=dto.note,
        )
        return self.get_case(str(case_id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_case(self, case_id: str) -> AdoptionCase:
        """Raises ``NotFound`` if the case does not exist."""
        case = self._case_repo.get_by_id(case_id)
        if not case:
            raise NotFound(f"Adoption case {case_id} not found.")
        return case

    def get_case_for(self, case_id: str, actor: Actor) -> AdoptionCase:
        """Like ``get_case`` but hides cases the actor may not read."""
        case = self.get_case(case_id)
        if not self._case_repo.visible_to(actor).filter(pk=case.pk).exists():
            raise NotFound(f"Adoption case {case_id} not found.")
        return case

    def list_cases(self, actor: Actor) -> models.QuerySet:
        return self._case_repo.visible_to(actor)
