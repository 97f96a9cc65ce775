"""Reconciliation DTOs (immutable Pydantic v2 models)."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from modules.reconciliation.constants import ReconciliationStatus


class ReconciliationReport(BaseModel):
    """What one reconciliation attempt did.

    ``delay_seconds`` is set when another attempt was scheduled;
    ``dead_letter_id`` when the run gave up.
    """

    model_config = ConfigDict(frozen=True)

    order_id: UUID
    outcome: str
    attempt: int
    status: ReconciliationStatus
    payment_status: Optional[str] = None
    version: Optional[int] = None
    delay_seconds: Optional[float] = None
    dead_letter_id: Optional[UUID] = None
    error: Optional[str] = None
