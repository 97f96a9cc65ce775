"""Payment reconciliation constants."""

from django.db import models

from modules.workflow.constants import PaymentStatus

# Outcomes a gateway redirect can report.
GATEWAY_OUTCOMES: frozenset[str] = frozenset({PaymentStatus.PAID, PaymentStatus.FAILED})

SIGNATURE_HEADER = "X-Payment-Signature"


class ReconciliationStatus(models.TextChoices):
    APPLIED = "APPLIED", "Applied"
    ALREADY_APPLIED = "ALREADY_APPLIED", "Already applied"
    RETRY_SCHEDULED = "RETRY_SCHEDULED", "Retry scheduled"
    DEAD_LETTERED = "DEAD_LETTERED", "Dead-lettered"
    DEAD_LETTER_PENDING = "DEAD_LETTER_PENDING", "Dead-letter write rescheduled"


class DeadLetterReason(models.TextChoices):
    RETRIES_EXHAUSTED = "RETRIES_EXHAUSTED", "Retries exhausted"
    REJECTED = "REJECTED", "Rejected by the state machine"
