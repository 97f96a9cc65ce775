import time
from typing import Any, Callable, Dict

import structlog
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from config.celery import app as celery_app

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Health probes
# ---------------------------------------------------------------------------


def _probe_database() -> None:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _probe_cache() -> None:
    cache.set("_health_check", "ok", 10)
    if cache.get("_health_check") != "ok":
        raise ConnectionError("Cache read failed")


def _probe_broker() -> None:
    # Callbacks and requeues are refused with 503 while the broker is down.
    with celery_app.connection_for_write() as conn:
        conn.ensure_connection(max_retries=1)


PROBES: Dict[str, Callable[[], None]] = {
    "database": _probe_database,
    "cache": _probe_cache,
    "broker": _probe_broker,
}


def health_check(request: HttpRequest) -> JsonResponse:
    """Public liveness endpoint: 200 when every dependency answers, 503 otherwise."""
    services: Dict[str, Dict[str, Any]] = {}

    for name, probe in PROBES.items():
        start = time.monotonic()
        try:
            probe()
        except Exception:
            services[name] = {"status": "down"}
            logger.error("health_check.probe_failed", service=name, exc_info=True)
            continue
        services[name] = {
            "status": "up",
            "response_time_ms": round((time.monotonic() - start) * 1000, 2),
        }

    healthy = all(s["status"] == "up" for s in services.values())
    logger.info("health_check.completed", healthy=healthy)

    return JsonResponse(
        {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if healthy else 503,
    )


class MeView(APIView):
    """Echo the actor resolved from the bearer token.

    * No token  -> 401
    * Bad token -> 401
    * Valid JWT -> 200 ``{"id", "role"}``
    """

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        return Response({"id": str(request.user.id), "role": request.user.role})
