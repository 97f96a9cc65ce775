"""Payment reconciliation worker.

Applies a payment outcome observed on the gateway redirect to the order's
payment axis, with bounded exponential backoff:

- ``TransientError`` / ``StaleState`` → schedule another attempt after
  ``min(base * factor ** (attempt - 1), max)`` seconds, up to
  ``max_attempts`` attempts in total, then dead-letter
  (``RETRIES_EXHAUSTED``).
- Any other rejection (illegal transition, unknown order, ...) →
  dead-letter immediately (``REJECTED``).  A gateway outcome that
  contradicts the stored state is flagged, never dropped.
- A dead-letter write that hits a database outage is not lost: the same
  attempt is scheduled again after ``max_delay`` seconds.
- Success or "already in that state" → done.

Waiting is never done in-process: the next attempt is handed to the
injected ``schedule_retry`` callable (a delayed Celery task in production).
Repeated runs for the same redirect are safe because the engine treats
"already PAID → PAID" as an idempotent success.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable
from uuid import UUID

import structlog
from django.db import InterfaceError, OperationalError
from kombu.exceptions import OperationalError as KombuOperationalError

from modules.core.identity import Actor
from modules.reconciliation.constants import DeadLetterReason, ReconciliationStatus
from modules.reconciliation.dtos import ReconciliationReport
from modules.workflow.constants import EntityKind, PaymentStatus
from modules.workflow.exceptions import NotFound, TransientError, WorkflowError

if TYPE_CHECKING:
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.reconciliation.repositories.interfaces import IDeadLetterRepository
    from modules.workflow.dtos import EntitySnapshot
    from modules.workflow.engine import TransitionEngine
    from modules.workflow.repositories.interfaces import IStateStore

logger = structlog.get_logger(__name__)

# (order_id, outcome, next_attempt, delay_seconds)
RetryScheduler = Callable[[UUID, str, int, float], None]


class PaymentReconciler:
    """Reconciles gateway payment outcomes into ``Order.payment_status``.

    Receives its collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        engine: TransitionEngine,
        state_store: IStateStore,
        dead_letter_repository: IDeadLetterRepository,
        schedule_retry: RetryScheduler,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        factor: float = 2.0,
        max_delay: float = 60.0,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self._engine = engine
        self._store = state_store
        self._dead_letters = dead_letter_repository
        self._schedule_retry = schedule_retry
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._factor = factor
        self._max_delay = max_delay

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def backoff_delay(self, attempt: int) -> float:
        """Delay before the attempt that follows *attempt* (1-based)."""
        return min(self._base_delay * self._factor ** (attempt - 1), self._max_delay)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def reconcile(
        self, order_id: UUID | str, outcome: str, attempt: int = 1
    ) -> ReconciliationReport:
        """Run one reconciliation attempt for *order_id*."""
        order_id = UUID(str(order_id))
        log = logger.bind(
            order_id=str(order_id),
            outcome=outcome,
            attempt=attempt,
            max_attempts=self._max_attempts,
        )
        log.info("reconciliation.attempt_started")

        try:
            snapshot = self._read_payment(order_id)
            result = self._engine.apply(
                EntityKind.ORDER_PAYMENT,
                order_id,
                snapshot.version,
                PaymentStatus.PENDING,
                outcome,
                Actor.system(),
                notes=f"Gateway reported {outcome} (attempt {attempt})",
            )
        except WorkflowError as exc:
            if exc.retryable:
                return self._retry_or_give_up(order_id, outcome, attempt, exc, log)
            return self._dead_letter(
                order_id, outcome, attempt, exc, DeadLetterReason.REJECTED, log
            )

        status = (
            ReconciliationStatus.ALREADY_APPLIED
            if result.already_in_target_state
            else ReconciliationStatus.APPLIED
        )
        log.info(
            "reconciliation.completed",
            status=status,
            payment_status=result.status,
            version=result.version,
        )
        return ReconciliationReport(
            order_id=order_id,
            outcome=outcome,
            attempt=attempt,
            status=status,
            payment_status=result.status,
            version=result.version,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_payment(self, order_id: UUID) -> EntitySnapshot:
        try:
            snapshot = self._store.get_snapshot(EntityKind.ORDER_PAYMENT, order_id)
        except (OperationalError, InterfaceError) as exc:
            raise TransientError() from exc
        if snapshot is None:
            raise NotFound(f"Order {order_id} not found.")
        return snapshot

    def _retry_or_give_up(
        self,
        order_id: UUID,
        outcome: str,
        attempt: int,
        exc: WorkflowError,
        log,
    ) -> ReconciliationReport:
        if attempt >= self._max_attempts:
            return self._dead_letter(
                order_id, outcome, attempt, exc, DeadLetterReason.RETRIES_EXHAUSTED, log
            )

        delay = self.backoff_delay(attempt)
        log.warning(
            "reconciliation.retry_scheduled",
            error_type=type(exc).__name__,
            error=exc.detail,
            next_attempt=attempt + 1,
            delay_seconds=delay,
        )
        self._schedule_retry(order_id, outcome, attempt + 1, delay)
        return ReconciliationReport(
            order_id=order_id,
            outcome=outcome,
            attempt=attempt,
            status=ReconciliationStatus.RETRY_SCHEDULED,
            delay_seconds=delay,
            error=exc.detail,
        )

    def _dead_letter(
        self,
        order_id: UUID,
        outcome: str,
        attempt: int,
        exc: WorkflowError,
        reason: str,
        log,
    ) -> ReconciliationReport:
        try:
            letter = self._dead_letters.create(
                {
                    "order_id": order_id,
                    "attempted_outcome": outcome,
                    "attempts": attempt,
                    "reason": reason,
                    "error_type": type(exc).__name__,
                    "last_error": exc.detail,
                }
            )
        except (OperationalError, InterfaceError) as db_exc:
            # Re-run the same attempt later: it either applies or
            # dead-letters again once the database is back.
            delay = self._max_delay
            log.error(
                "reconciliation.dead_letter_failed",
                reason=reason,
                attempts=attempt,
                error_type=type(exc).__name__,
                last_error=exc.detail,
                db_error=str(db_exc),
                delay_seconds=delay,
            )
            self._schedule_retry(order_id, outcome, attempt, delay)
            return ReconciliationReport(
                order_id=order_id,
                outcome=outcome,
                attempt=attempt,
                status=ReconciliationStatus.DEAD_LETTER_PENDING,
                delay_seconds=delay,
                error=exc.detail,
            )

        log.error(
            "reconciliation.dead_lettered",
            reason=reason,
            dead_letter_id=str(letter.id),
            error_type=type(exc).__name__,
            error=exc.detail,
        )
        return ReconciliationReport(
            order_id=order_id,
            outcome=outcome,
            attempt=attempt,
            status=ReconciliationStatus.DEAD_LETTERED,
            dead_letter_id=letter.id,
            error=exc.detail,
        )


class PaymentCallbackService:
    """Accepts a verified gateway callback and hands it to the worker.

    The callback only enqueues; the HTTP caller never waits on retries.
    A callback repeating the outcome already stored is acknowledged
    without enqueuing anything.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        enqueue: Callable[[UUID, str, int], None],
    ) -> None:
        self._order_repo = order_repository
        self._enqueue = enqueue

    def accept(self, order_id: str, outcome: str) -> ReconciliationStatus | None:
        """Return ``ALREADY_APPLIED`` or ``None`` once the attempt is queued.

        Raises:
            NotFound: the order does not exist.
            TransientError: the task queue is unreachable.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), outcome=outcome)
        if order.payment_status == outcome:
            log.info("payment_callback.already_applied")
            return ReconciliationStatus.ALREADY_APPLIED

        try:
            self._enqueue(order.id, outcome, 1)
        except KombuOperationalError as exc:
            log.error("payment_callback.queue_unavailable", error=str(exc))
            raise TransientError("Payment confirmation queue is unavailable.") from exc

        log.info("payment_callback.accepted")
        return None
