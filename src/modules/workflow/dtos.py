"""Workflow DTOs.

Immutable (``frozen=True``) Pydantic v2 contracts between the Transition
Engine, the state store and the entity services.

- ``EntitySnapshot``: what the store read for one entity kind.
- ``AppliedTransitionDTO``: one status change actually written.
- ``TransitionResult``: outcome of ``TransitionEngine.apply``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class EntitySnapshot(BaseModel):
    """Current status/version of one entity kind plus its reference ids.

    ``attributes`` holds the owner / relation ids the Authorization Gate
    and compound transitions need (``shelter_id``, ``requester_id``,
    ``user_id``, ``listing_id``).
    """

    model_config = ConfigDict(frozen=True)

    kind: str
    id: UUID
    status: str
    version: int
    attributes: Dict[str, Any] = Field(default_factory=dict)

    def attribute(self, name: str) -> Optional[Any]:
        return self.attributes.get(name)


class AppliedTransitionDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    entity_id: UUID
    from_status: str
    to_status: str
    version: int


class TransitionResult(BaseModel):
    """Outcome of a successful ``apply`` call.

    ``status``/``version`` are the freshly re-read values of the target
    entity.  ``applied`` lists every write made in the unit of work, the
    compound side effect included; it is empty when the entity was already
    in the requested state.
    """

    model_config = ConfigDict(frozen=True)

    kind: str
    entity_id: UUID
    status: str
    version: int
    already_in_target_state: bool = False
    applied: Tuple[AppliedTransitionDTO, ...] = ()
