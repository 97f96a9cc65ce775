"""Actor identity supplied by the external Identity Context.

The service never issues credentials.  It only turns a verified token into
an ``Actor`` that is passed explicitly to every gate and engine call.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from django.db import models


class Role(models.TextChoices):
    USER = "USER", "User"
    SHELTER = "SHELTER", "Shelter"
    ADMIN = "ADMIN", "Admin"
    SPONSOR = "SPONSOR", "Sponsor"
    STAFF = "STAFF", "Staff"
    # Internal only: compound side effects and payment reconciliation.
    SYSTEM = "SYSTEM", "System"


EXTERNAL_ROLES: frozenset[str] = frozenset(
    {Role.USER, Role.SHELTER, Role.ADMIN, Role.SPONSOR, Role.STAFF}
)

SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000000")


@dataclass(frozen=True)
class Actor:
    """Who is asking: an ``(id, role)`` pair."""

    id: UUID
    role: str

    @classmethod
    def system(cls) -> Actor:
        return cls(id=SYSTEM_ACTOR_ID, role=Role.SYSTEM)

    @property
    def is_system(self) -> bool:
        return self.role == Role.SYSTEM

    def __str__(self) -> str:
        return f"{self.role}:{self.id}"
