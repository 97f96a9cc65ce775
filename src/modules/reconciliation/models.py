"""Payment reconciliation dead letters.

Append-only: one row per reconciliation run that gave up, keyed by
``order_id``.  Rows are never updated; a requeue starts a fresh run.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel
from modules.reconciliation.constants import DeadLetterReason


class PaymentDeadLetter(BaseModel):
    order_id: models.UUIDField = models.UUIDField(db_index=True)
    attempted_outcome: models.CharField = models.CharField(max_length=20)
    attempts: models.PositiveIntegerField = models.PositiveIntegerField()
    reason: models.CharField = models.CharField(
        max_length=20, choices=DeadLetterReason.choices
    )
    error_type: models.CharField = models.CharField(max_length=100)
    last_error: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "payment_dead_letters"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order_id", "-created_at"], name="dead_letter_order_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} {self.attempted_outcome} [{self.reason}]"
