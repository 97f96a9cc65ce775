"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderDTO``: checkout input.
- ``ChangeOrderStatusDTO``: fulfillment step by the back office.
- ``CancelOrderDTO``: cancellation by the owner or the back office.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from modules.workflow.constants import OrderStatus


class CreateOrderDTO(BaseModel):
    """Immutable DTO for checkout requests.

    Validates:
    - ``total_amount`` must be positive.
    - ``shipping_address`` must not be blank.
    """

    model_config = ConfigDict(frozen=True)

    total_amount: Decimal
    shipping_address: str
    notes: Optional[str] = ""

    @field_validator("total_amount")
    @classmethod
    def total_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Total amount must be greater than zero.")
        return v

    @field_validator("shipping_address")
    @classmethod
    def address_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Shipping address is required.")
        return v.strip()


class ChangeOrderStatusDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    to_status: OrderStatus
    expected_version: int
    note: str = ""

    @field_validator("to_status")
    @classmethod
    def cancellation_has_its_own_endpoint(cls, v: OrderStatus) -> OrderStatus:
        if v == OrderStatus.CANCELLED:
            raise ValueError("Use the cancel operation for cancellations.")
        return v


class CancelOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    expected_version: int
    note: str = ""
