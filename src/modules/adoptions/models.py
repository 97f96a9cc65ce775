"""Adoption case model.

Business rules implemented:
- Opened by a USER against an AVAILABLE listing only.
- At most one PENDING case per listing (checked at creation under a
  row lock on the listing).
- ``shelter_id`` is copied from the listing so ownership checks need no join.
- Decided by the owning SHELTER or withdrawn by the requester; approval
  adopts the listing in the same transaction.
- ``decided_at`` is stamped by the state store when the case turns terminal.
- Listing FK uses PROTECT: listings are never deleted.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from modules.core.models import VersionedModel
from modules.workflow.constants import TERMINAL_STATES, AdoptionStatus, EntityKind


class AdoptionCase(VersionedModel):
    listing: models.ForeignKey = models.ForeignKey(
        "listings.Listing",
        on_delete=models.PROTECT,
        related_name="adoption_cases",
    )
    requester_id: models.UUIDField = models.UUIDField(db_index=True)
    shelter_id: models.UUIDField = models.UUIDField(db_index=True)
    status: models.CharField = models.CharField(
        max_length=20,
        choices=AdoptionStatus.choices,
        default=AdoptionStatus.PENDING,
    )
    message: models.TextField = models.TextField(blank=True, default="")
    submitted_at: models.DateTimeField = models.DateTimeField(default=timezone.now)
    decided_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "adoption_cases"
        ordering = ["-submitted_at"]
        indexes = [
            models.Index(
                fields=["listing", "status"], name="adoption_listing_status_idx"
            ),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES[EntityKind.ADOPTION_CASE]

    def __str__(self) -> str:
        return f"Case {self.id} for listing {self.listing_id} ({self.status})"
