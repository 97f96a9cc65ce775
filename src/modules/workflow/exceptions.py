"""Workflow domain exceptions.

Raised by the Transition Engine and the entity services.  Each carries the
HTTP status the API layer renders it with; ``retryable`` marks the two
failures the reconciliation worker may try again.
"""

from __future__ import annotations

from shared.domain.exceptions import DomainError


class WorkflowError(DomainError):
    """Base class for every rejected lifecycle operation."""

    retryable: bool = False


class NotFound(WorkflowError):
    """The referenced entity does not exist."""

    status_code = 404
    code = "not_found"
    default_detail = "Entity not found."


class Forbidden(WorkflowError):
    """The actor's role or ownership does not permit the operation."""

    status_code = 403
    code = "forbidden"
    default_detail = "You are not allowed to perform this transition."


class IllegalTransition(WorkflowError):
    """The move is not part of the entity's state machine."""

    status_code = 422
    code = "illegal_transition"
    default_detail = "This status change is not allowed."


class StaleState(WorkflowError):
    """The caller's view of the entity is out of date."""

    status_code = 409
    code = "stale_state"
    default_detail = "The entity was modified concurrently; re-read and retry."
    retryable = True


class PreconditionFailed(WorkflowError):
    """A related entity is not in the state the operation requires."""

    status_code = 412
    code = "precondition_failed"
    default_detail = "A precondition for this operation no longer holds."


class DuplicateOpenCase(WorkflowError):
    """The listing already has a pending adoption case."""

    status_code = 409
    code = "duplicate_open_case"
    default_detail = "This listing already has a pending adoption request."


class TransientError(WorkflowError):
    """The state store is temporarily unreachable."""

    status_code = 503
    code = "transient_error"
    default_detail = "The service is temporarily unavailable; try again later."
    retryable = True
