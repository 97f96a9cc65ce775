"""Base class for errors raised by the domain layer.

Each subclass declares the HTTP ``status_code`` and machine ``code`` the API
layer renders it with, so services raise plain exceptions and views never
need a ``try``/``except`` ladder.
"""

from __future__ import annotations


class DomainError(Exception):
    """A business rule rejected the requested operation."""

    status_code: int = 400
    code: str = "domain_error"
    default_detail: str = "The request violates a business rule."

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)
