"""State store contract used by the Transition Engine.

The engine never touches models directly: it reads snapshots and issues
compare-and-set writes through ``IStateStore``.  All writes must run in the
caller's transaction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional
from uuid import UUID

if TYPE_CHECKING:
    from modules.core.identity import Actor
    from modules.workflow.dtos import EntitySnapshot


class IStateStore(ABC):
    @abstractmethod
    def get_snapshot(self, kind: str, entity_id: UUID) -> Optional[EntitySnapshot]:
        """Read the current status, version and reference ids of an entity."""

    @abstractmethod
    def compare_and_set(
        self,
        kind: str,
        entity_id: UUID,
        expected_version: int,
        from_status: str,
        to_status: str,
    ) -> bool:
        """Write ``to_status`` and ``version + 1`` only if nothing moved.

        Returns ``False`` when the row no longer has ``from_status`` at
        ``expected_version`` (a concurrent writer got there first).
        """

    @abstractmethod
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
        """Append the audit record and outbox event for an applied transition."""

    @abstractmethod
    def record_creation(
        self,
        kind: str,
        entity_id: UUID,
        status: str,
        actor: Actor,
        notes: str = "",
    ) -> None:
        """Append the audit record and outbox event for a new entity."""
