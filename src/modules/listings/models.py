"""Animal listing model.

Business rules implemented:
- Created in PENDING by a SHELTER; the creator becomes ``shelter_id``.
- Moderated by ADMIN (PENDING → AVAILABLE | REJECTED).
- Adopted only as a side effect of an approved adoption case.
- Never deleted; ``status`` and ``version`` are written only by the
  Transition Engine.
"""

from __future__ import annotations

from django.core.validators import MaxValueValidator
from django.db import models

from modules.core.models import VersionedModel
from modules.listings.constants import AnimalCategory, AnimalGender
from modules.workflow.constants import TERMINAL_STATES, EntityKind, ListingStatus


class Listing(VersionedModel):
    shelter_id: models.UUIDField = models.UUIDField(db_index=True)
    name: models.CharField = models.CharField(max_length=120)
    category: models.CharField = models.CharField(
        max_length=10,
        choices=AnimalCategory.choices,
        default=AnimalCategory.OTHER,
    )
    breed: models.CharField = models.CharField(max_length=80, blank=True, default="")
    age: models.PositiveSmallIntegerField = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MaxValueValidator(60)],
    )
    gender: models.CharField = models.CharField(
        max_length=10, choices=AnimalGender.choices, blank=True, default=""
    )
    description: models.TextField = models.TextField(blank=True, default="")
    image_url: models.URLField = models.URLField(max_length=500, blank=True, default="")
    status: models.CharField = models.CharField(
        max_length=20,
        choices=ListingStatus.choices,
        default=ListingStatus.PENDING,
    )

    class Meta:
        db_table = "listings"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="listings_status_idx"),
            models.Index(fields=["-created_at"], name="listings_created_idx"),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES[EntityKind.LISTING]

    def __str__(self) -> str:
        return f"{self.name} ({self.status})"
