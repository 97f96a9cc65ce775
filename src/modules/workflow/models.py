"""Append-only audit trail of accepted transitions.

One ``TransitionRecord`` per status change written by the Transition
Engine (side effects included), plus one per entity creation with
``from_status`` left null.  Rows are never updated.
"""

from __future__ import annotations

from django.db import models

from modules.core.identity import Role
from modules.core.models import BaseModel
from modules.workflow.constants import EntityKind


class TransitionRecord(BaseModel):
    entity_kind: models.CharField = models.CharField(
        max_length=20, choices=EntityKind.choices
    )
    entity_id: models.UUIDField = models.UUIDField()
    from_status: models.CharField = models.CharField(
        max_length=20, null=True, blank=True
    )
    to_status: models.CharField = models.CharField(max_length=20)
    version: models.PositiveIntegerField = models.PositiveIntegerField()
    actor_id: models.UUIDField = models.UUIDField()
    actor_role: models.CharField = models.CharField(
        max_length=20, choices=Role.choices
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "workflow_transition_records"
        ordering = ["created_at"]
        indexes = [
            models.Index(
                fields=["entity_kind", "entity_id", "version"],
                name="transition_entity_idx",
            ),
        ]

    def __str__(self) -> str:
        return (
            f"{self.entity_kind}:{self.entity_id} "
            f"{self.from_status} -> {self.to_status} (v{self.version})"
        )
