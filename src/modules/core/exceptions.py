"""Error envelope for the REST API.

Every error, domain or framework, is rendered by ``drf-standardized-errors``
as::

    {"type": "client_error", "errors": [{"code": ..., "detail": ..., "attr": null}]}

``DomainExceptionHandler`` extends the library's handler so domain errors
(``shared.domain.exceptions.DomainError``) are converted into DRF
``APIException`` instances carrying their own status and code.
"""

from __future__ import annotations

import structlog
from drf_standardized_errors.handler import ExceptionHandler
from rest_framework import exceptions

from shared.domain.exceptions import DomainError

logger = structlog.get_logger(__name__)


class DomainAPIException(exceptions.APIException):
    """``APIException`` whose status comes from the wrapped domain error."""

    def __init__(self, error: DomainError) -> None:
        self.status_code = error.status_code
        super().__init__(detail=error.detail, code=error.code)


class DomainExceptionHandler(ExceptionHandler):
    def convert_known_exceptions(self, exc: Exception) -> Exception:
        if isinstance(exc, DomainError):
            logger.warning(
                "api.domain_error",
                error_type=type(exc).__name__,
                code=exc.code,
                status_code=exc.status_code,
                detail=exc.detail,
            )
            return DomainAPIException(exc)
        return super().convert_known_exceptions(exc)
