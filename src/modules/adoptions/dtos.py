"""Adoption DTOs for the Service Layer (immutable Pydantic v2 models)."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.workflow.constants import AdoptionStatus


class OpenCaseDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    listing_id: UUID
    message: str = ""

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: str) -> str:
        return v.strip()


class DecideCaseDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    decision: AdoptionStatus
    expected_version: int
    note: str = ""

    @field_validator("decision")
    @classmethod
    def decision_must_be_final(cls, v: AdoptionStatus) -> AdoptionStatus:
        if v not in (AdoptionStatus.APPROVED, AdoptionStatus.REJECTED):
            raise ValueError("Decision must be APPROVED or REJECTED.")
        return v


class CancelCaseDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    expected_version: int
    note: str = ""
