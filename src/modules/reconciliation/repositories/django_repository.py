"""Django ORM implementation of the dead-letter repository."""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction

from modules.core.models import OutboxEvent
from modules.reconciliation.events import PaymentReconciliationDeadLettered
from modules.reconciliation.models import PaymentDeadLetter
from modules.reconciliation.repositories.interfaces import IDeadLetterRepository

logger = structlog.get_logger(__name__)


class PaymentDeadLetterDjangoRepository(IDeadLetterRepository):
    """Concrete dead-letter repository backed by Django ORM."""

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> PaymentDeadLetter:
        letter = PaymentDeadLetter.objects.create(**data)
        OutboxEvent.record(
            PaymentReconciliationDeadLettered(
                aggregate_id=letter.order_id,
                outcome=letter.attempted_outcome,
                reason=letter.reason,
                attempts=letter.attempts,
                error_type=letter.error_type,
            )
        )
        logger.info(
            "dead_letter.persisted",
            dead_letter_id=str(letter.id),
            order_id=str(letter.order_id),
        )
        return letter

    def get_by_id(self, id: str) -> Optional[PaymentDeadLetter]:
        """Returns ``None`` for non-existent or invalid IDs."""
        try:
            return PaymentDeadLetter.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        queryset = PaymentDeadLetter.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset
