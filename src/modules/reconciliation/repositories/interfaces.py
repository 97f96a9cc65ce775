"""Dead-letter repository interface."""

from __future__ import annotations

from typing import TYPE_CHECKING

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.reconciliation.models import PaymentDeadLetter


class IDeadLetterRepository(IRepository["PaymentDeadLetter"]):
    """Append-only store of reconciliation runs that gave up.

    ``create`` must also record the outbox event in the same transaction.
    """
