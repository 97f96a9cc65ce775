"""Celery tasks for payment reconciliation.

Each attempt is its own task run; retries are scheduled with
``apply_async(countdown=...)`` so no worker thread ever sleeps.  Tasks are
acknowledged late: a worker that dies mid-attempt has the message
redelivered, which is safe because reconciliation is idempotent.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from celery import shared_task
from django.conf import settings

from modules.reconciliation.repositories.django_repository import (
    PaymentDeadLetterDjangoRepository,
)
from modules.reconciliation.services import PaymentReconciler
from modules.workflow.engine import TransitionEngine
from modules.workflow.repositories.django_repository import DjangoStateStore

logger = structlog.get_logger(__name__)


def build_reconciler() -> PaymentReconciler:
    """Wire a reconciler from settings with Django-backed collaborators."""
    store = DjangoStateStore()
    return PaymentReconciler(
        engine=TransitionEngine(store),
        state_store=store,
        dead_letter_repository=PaymentDeadLetterDjangoRepository(),
        schedule_retry=schedule_reconciliation,
        max_attempts=settings.RECONCILIATION_MAX_ATTEMPTS,
        base_delay=settings.RECONCILIATION_BACKOFF_BASE_SECONDS,
        factor=settings.RECONCILIATION_BACKOFF_FACTOR,
        max_delay=settings.RECONCILIATION_BACKOFF_MAX_SECONDS,
    )


def schedule_reconciliation(
    order_id: UUID | str, outcome: str, attempt: int, delay_seconds: float = 0.0
) -> None:
    """Enqueue one reconciliation attempt, optionally delayed.

    Raises ``kombu.exceptions.OperationalError`` if the broker is down.
    """
    reconcile_order_payment.apply_async(
        kwargs={"order_id": str(order_id), "outcome": outcome, "attempt": attempt},
        countdown=delay_seconds or None,
    )
    logger.info(
        "reconciliation.enqueued",
        order_id=str(order_id),
        outcome=outcome,
        attempt=attempt,
        countdown=delay_seconds,
    )


@shared_task(name="reconciliation.reconcile_order_payment", acks_late=True)
def reconcile_order_payment(order_id: str, outcome: str, attempt: int = 1) -> dict:
    """Run one reconciliation attempt and return its report as JSON."""
    report = build_reconciler().reconcile(order_id, outcome, attempt)
    return report.model_dump(mode="json")
