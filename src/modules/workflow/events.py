"""Domain events for workflow-managed entities.

Written to the transactional outbox in the same transaction as the state
change they describe.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class EntityCreated(DomainEvent):
    """Raised when a listing, adoption case or order is created."""

    kind: str = ""
    status: str = ""
    actor_id: str = ""
    actor_role: str = ""

    topic = "workflow"


@dataclass(frozen=True)
class EntityTransitioned(DomainEvent):
    """Raised for every accepted status change, side effects included."""

    kind: str = ""
    from_status: Optional[str] = None
    to_status: str = ""
    version: int = 0
    actor_id: str = ""
    actor_role: str = ""

    topic = "workflow"
