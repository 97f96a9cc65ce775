"""Transition Engine.

The only component allowed to change the status of a listing, adoption
case or order.  Every call is one unit of work (``transaction.atomic``):

1. Load the current snapshot (``NotFound``).
2. Already in the requested status → permitted actors get an idempotent
   success, no write.
3. Terminal status → ``IllegalTransition``.
4. Status or version differs from what the caller saw → ``StaleState``.
5. Authorization Gate, ownership included → ``Forbidden``.
6. State machine → ``IllegalTransition``.
7. Conditional write of the new status and ``version + 1``; zero rows
   matched means a concurrent writer won → ``StaleState``.
8. Compound side effects (case approval adopts the listing); a failed
   precondition rolls the whole unit back → ``PreconditionFailed``.
9. Audit record and outbox event per applied transition.

Database connectivity errors surface as ``TransientError``.  The engine
never retries; that is the caller's decision.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List
from uuid import UUID

import structlog
from django.db import InterfaceError, OperationalError, transaction

from modules.core.identity import Actor
from modules.workflow import policy
from modules.workflow.constants import (
    AdoptionStatus,
    EntityKind,
    ListingStatus,
    is_legal_transition,
    is_terminal,
)
from modules.workflow.dtos import AppliedTransitionDTO, EntitySnapshot, TransitionResult
from modules.workflow.exceptions import (
    Forbidden,
    IllegalTransition,
    NotFound,
    PreconditionFailed,
    StaleState,
    TransientError,
    WorkflowError,
)

if TYPE_CHECKING:
    from modules.workflow.repositories.interfaces import IStateStore

logger = structlog.get_logger(__name__)


class TransitionEngine:
    """Applies status transitions through an injected ``IStateStore``."""

    def __init__(self, state_store: IStateStore) -> None:
        self._store = state_store

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def apply(
        self,
        kind: str,
        entity_id: UUID,
        expected_version: int,
        from_status: str,
        to_status: str,
        actor: Actor,
        notes: str = "",
    ) -> TransitionResult:
        """Move an entity from *from_status* to *to_status* on behalf of *actor*.

        Raises:
            NotFound: the entity does not exist.
            Forbidden: the gate denies the actor.
            IllegalTransition: terminal status or not a state-machine move.
            StaleState: status/version changed since the caller read it.
            PreconditionFailed: a compound side effect cannot be applied.
            TransientError: the state store is unreachable.
        """
        log = logger.bind(
            kind=kind,
            entity_id=str(entity_id),
            from_status=from_status,
            to_status=to_status,
            expected_version=expected_version,
            actor_id=str(actor.id),
            actor_role=actor.role,
        )
        try:
            with transaction.atomic():
                result = self._apply(
                    kind, entity_id, expected_version, from_status, to_status, actor, notes
                )
        except (OperationalError, InterfaceError) as exc:
            log.error("transition.store_unavailable", error=str(exc))
            raise TransientError() from exc
        except WorkflowError as exc:
            log.warning(
                "transition.rejected",
                error_type=type(exc).__name__,
                detail=exc.detail,
            )
            raise

        if result.already_in_target_state:
            log.info("transition.already_applied", version=result.version)
        else:
            log.info(
                "transition.applied",
                version=result.version,
                writes=len(result.applied),
            )
        return result

    # ------------------------------------------------------------------
    # Internal steps
    # ------------------------------------------------------------------

    def _apply(
        self,
        kind: str,
        entity_id: UUID,
        expected_version: int,
        from_status: str,
        to_status: str,
        actor: Actor,
        notes: str,
    ) -> TransitionResult:
        snapshot = self._load(kind, entity_id)

        if snapshot.status == to_status and from_status != to_status:
            self._authorize(actor, kind, from_status, to_status, snapshot)
            return TransitionResult(
                kind=kind,
                entity_id=snapshot.id,
                status=snapshot.status,
                version=snapshot.version,
                already_in_target_state=True,
            )

        if is_terminal(kind, snapshot.status):
            raise IllegalTransition(
                f"{kind} {entity_id} is in terminal status {snapshot.status}."
            )

        if snapshot.status != from_status or snapshot.version != expected_version:
            raise StaleState(
                f"{kind} {entity_id} is {snapshot.status} at version "
                f"{snapshot.version}, expected {from_status} at version "
                f"{expected_version}."
            )

        self._authorize(actor, kind, from_status, to_status, snapshot)

        if not is_legal_transition(kind, from_status, to_status):
            raise IllegalTransition(
                f"Cannot move {kind} from {from_status} to {to_status}."
            )

        applied: List[AppliedTransitionDTO] = [
            self._write(snapshot, to_status, actor, notes)
        ]
        applied.extend(self._apply_side_effects(snapshot, to_status, notes))

        fresh = self._load(kind, entity_id)
        return TransitionResult(
            kind=kind,
            entity_id=fresh.id,
            status=fresh.status,
            version=fresh.version,
            applied=tuple(applied),
        )

    def _load(self, kind: str, entity_id: UUID) -> EntitySnapshot:
        snapshot = self._store.get_snapshot(kind, entity_id)
        if snapshot is None:
            raise NotFound(f"{kind} {entity_id} not found.")
        return snapshot

    @staticmethod
    def _authorize(
        actor: Actor,
        kind: str,
        from_status: str,
        to_status: str,
        snapshot: EntitySnapshot,
    ) -> None:
        if not policy.is_permitted(actor, kind, from_status, to_status, snapshot):
            raise Forbidden(
                f"{actor.role} may not move {kind} from {from_status} to {to_status}."
            )

    def _write(
        self,
        snapshot: EntitySnapshot,
        to_status: str,
        actor: Actor,
        notes: str,
    ) -> AppliedTransitionDTO:
        written = self._store.compare_and_set(
            snapshot.kind, snapshot.id, snapshot.version, snapshot.status, to_status
        )
        if not written:
            raise StaleState(
                f"{snapshot.kind} {snapshot.id} was modified concurrently."
            )
        version = snapshot.version + 1
        self._store.record_transition(
            snapshot.kind, snapshot.id, snapshot.status, to_status, version, actor, notes
        )
        return AppliedTransitionDTO(
            kind=snapshot.kind,
            entity_id=snapshot.id,
            from_status=snapshot.status,
            to_status=to_status,
            version=version,
        )

    # ------------------------------------------------------------------
    # Compound transitions
    # ------------------------------------------------------------------

    def _apply_side_effects(
        self, snapshot: EntitySnapshot, to_status: str, notes: str
    ) -> List[AppliedTransitionDTO]:
        if (
            snapshot.kind == EntityKind.ADOPTION_CASE
            and to_status == AdoptionStatus.APPROVED
        ):
            return [self._adopt_listing(snapshot, notes)]
        return []

    def _adopt_listing(
        self, case: EntitySnapshot, notes: str
    ) -> AppliedTransitionDTO:
        """Approving a case moves its listing AVAILABLE → ADOPTED as SYSTEM."""
        listing_id = case.attribute("listing_id")
        listing = self._store.get_snapshot(EntityKind.LISTING, listing_id)
        if listing is None or listing.status != ListingStatus.AVAILABLE:
            raise PreconditionFailed(
                f"Listing {listing_id} is no longer available for adoption."
            )

        system = Actor.system()
        self._authorize(
            system,
            EntityKind.LISTING,
            ListingStatus.AVAILABLE,
            ListingStatus.ADOPTED,
            listing,
        )
        written = self._store.compare_and_set(
            EntityKind.LISTING,
            listing.id,
            listing.version,
            ListingStatus.AVAILABLE,
            ListingStatus.ADOPTED,
        )
        if not written:
            raise PreconditionFailed(
                f"Listing {listing_id} was adopted by another request."
            )

        version = listing.version + 1
        self._store.record_transition(
            EntityKind.LISTING,
            listing.id,
            ListingStatus.AVAILABLE,
            ListingStatus.ADOPTED,
            version,
            system,
            notes or f"Adopted through case {case.id}",
        )
        return AppliedTransitionDTO(
            kind=EntityKind.LISTING,
            entity_id=listing.id,
            from_status=ListingStatus.AVAILABLE,
            to_status=ListingStatus.ADOPTED,
            version=version,
        )
