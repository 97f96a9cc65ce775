"""Django ORM implementation of the workflow state store.

Each entity kind is bound to a model, a status column and the reference
columns the Authorization Gate needs.  ``ORDER`` and ``ORDER_PAYMENT`` are
two axes of the same ``orders.Order`` row and share its ``version``.

Concurrency control is optimistic: ``compare_and_set`` issues a single
``UPDATE ... WHERE id = ? AND version = ? AND <status> = ?`` and reports
whether it matched.  No row locks are held.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple
from uuid import UUID

import structlog
from django.apps import apps
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F
from django.utils import timezone

from modules.core.identity import Actor
from modules.core.models import OutboxEvent
from modules.workflow.constants import EntityKind, is_terminal
from modules.workflow.dtos import EntitySnapshot
from modules.workflow.events import EntityCreated, EntityTransitioned
from modules.workflow.models import TransitionRecord
from modules.workflow.repositories.interfaces import IStateStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class KindBinding:
    model_label: str
    status_field: str
    reference_fields: Tuple[str, ...] = ()
    # Stamped with the write time when the status becomes terminal.
    resolved_at_field: Optional[str] = None

    @property
    def model(self) -> type[models.Model]:
        return apps.get_model(self.model_label)


KIND_BINDINGS: dict[str, KindBinding] = {
    EntityKind.LISTING: KindBinding(
        model_label="listings.Listing",
        status_field="status",
        reference_fields=("shelter_id",),
    ),
    EntityKind.ADOPTION_CASE: KindBinding(
        model_label="adoptions.AdoptionCase",
        status_field="status",
        reference_fields=("listing_id", "requester_id", "shelter_id"),
        resolved_at_field="decided_at",
    ),
    EntityKind.ORDER: KindBinding(
        model_label="orders.Order",
        status_field="status",
        reference_fields=("user_id", "payment_status"),
    ),
    EntityKind.ORDER_PAYMENT: KindBinding(
        model_label="orders.Order",
        status_field="payment_status",
        reference_fields=("user_id", "status"),
        resolved_at_field="payment_resolved_at",
    ),
}


class DjangoStateStore(IStateStore):
    """Concrete state store backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_snapshot(self, kind: str, entity_id: UUID) -> Optional[EntitySnapshot]:
        """Return ``None`` for non-existent or invalid IDs."""
        binding = KIND_BINDINGS[kind]
        try:
            row = (
                binding.model.objects.filter(pk=entity_id)
                .values("id", "version", binding.status_field, *binding.reference_fields)
                .first()
            )
        except (ValueError, ValidationError):
            return None
        if row is None:
            return None
        return EntitySnapshot(
            kind=kind,
            id=row["id"],
            status=row[binding.status_field],
            version=row["version"],
            attributes={field: row[field] for field in binding.reference_fields},
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def compare_and_set(
        self,
        kind: str,
        entity_id: UUID,
        expected_version: int,
        from_status: str,
        to_status: str,
    ) -> bool:
        binding = KIND_BINDINGS[kind]
        now = timezone.now()
        values = {
            binding.status_field: to_status,
            "version": F("version") + 1,
            "updated_at": now,
        }
        if binding.resolved_at_field and is_terminal(kind, to_status):
            values[binding.resolved_at_field] = now

        updated = binding.model.objects.filter(
            pk=entity_id,
            version=expected_version,
            **{binding.status_field: from_status},
        ).update(**values)

        if not updated:
            logger.info(
                "state_store.compare_and_set_missed",
                kind=kind,
                entity_id=str(entity_id),
                expected_version=expected_version,
                from_status=from_status,
            )
        return updated == 1

    def record_transition(
        self,
        kind: str,
        entity_id: UUID,
        from_status: str,
        to_status: str,
        version: int,
        actor: Actor,
        notes: str = "",
    ) -> None:
        TransitionRecord.objects.create(
            entity_kind=kind,
            entity_id=entity_id,
            from_status=from_status,
            to_status=to_status,
            version=version,
            actor_id=actor.id,
            actor_role=actor.role,
            notes=notes,
        )
        OutboxEvent.record(
            EntityTransitioned(
                aggregate_id=entity_id,
                kind=kind,
                from_status=from_status,
                to_status=to_status,
                version=version,
                actor_id=str(actor.id),
                actor_role=actor.role,
            )
        )

    def record_creation(
        self,
        kind: str,
        entity_id: UUID,
        status: str,
        actor: Actor,
        notes: str = "",
    ) -> None:
        TransitionRecord.objects.create(
            entity_kind=kind,
            entity_id=entity_id,
            from_status=None,
            to_status=status,
            version=0,
            actor_id=actor.id,
            actor_role=actor.role,
            notes=notes,
        )
        OutboxEvent.record(
            EntityCreated(
                aggregate_id=entity_id,
                kind=kind,
                status=status,
                actor_id=str(actor.id),
                actor_role=actor.role,
            )
        )
