"""Domain events for payment reconciliation."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class PaymentReconciliationDeadLettered(DomainEvent):
    """Raised when a gateway outcome could not be applied to an order."""

    outcome: str = ""
    reason: str = ""
    attempts: int = 0
    error_type: str = ""

    topic = "reconciliation"
