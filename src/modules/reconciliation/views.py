"""Reconciliation API views.

- ``PaymentCallbackView``: public, HMAC-signed endpoint the gateway
  redirect handler calls with the observed outcome.
- ``PaymentDeadLetterViewSet``: back-office listing and requeue of
  reconciliation runs that gave up.
"""

from __future__ import annotations

import structlog
from django.conf import settings
from django_filters.rest_framework import DjangoFilterBackend
from kombu.exceptions import OperationalError as KombuOperationalError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.core.permissions import IsOperator
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.reconciliation.constants import SIGNATURE_HEADER, ReconciliationStatus
from modules.reconciliation.filters import PaymentDeadLetterFilter
from modules.reconciliation.models import PaymentDeadLetter
from modules.reconciliation.repositories.django_repository import (
    PaymentDeadLetterDjangoRepository,
)
from modules.reconciliation.serializers import (
    PaymentCallbackSerializer,
    PaymentDeadLetterSerializer,
)
from modules.reconciliation.services import PaymentCallbackService
from modules.reconciliation.signing import verify_signature
from modules.reconciliation.tasks import schedule_reconciliation
from modules.workflow.exceptions import NotFound, TransientError

logger = structlog.get_logger(__name__)


class PaymentCallbackView(APIView):
    """POST /api/v1/orders/{pk}/payment-callback/

    Authenticated by signature, not by bearer token: the body must be
    signed with ``PAYMENT_WEBHOOK_SECRET`` (hex HMAC-SHA256 in
    ``X-Payment-Signature``).  Responds as soon as the attempt is queued.
    """

    authentication_classes: list = []
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "payment_callback"

    def post(self, request: Request, pk: str) -> Response:
        # Read before request.data so the exact signed bytes are verified.
        raw_body = request.body
        signature = request.headers.get(SIGNATURE_HEADER)

        if not verify_signature(
            raw_body=raw_body,
            signature=signature,
            secret=settings.PAYMENT_WEBHOOK_SECRET,
        ):
            logger.warning("payment_callback.invalid_signature", order_id=pk)
            raise PermissionDenied("Invalid payment signature.")

        serializer = PaymentCallbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        outcome = serializer.validated_data["outcome"]

        service = PaymentCallbackService(
            order_repository=OrderDjangoRepository(),
            enqueue=schedule_reconciliation,
        )
        result = service.accept(pk, outcome)

        body_status = (
            "already_applied"
            if result == ReconciliationStatus.ALREADY_APPLIED
            else "accepted"
        )
        return Response(
            {"status": body_status, "order_id": pk, "outcome": outcome},
            status=status.HTTP_200_OK,
        )


class PaymentDeadLetterViewSet(GenericViewSet):
    """Back-office view of reconciliation dead letters (ADMIN/STAFF)."""

    queryset = PaymentDeadLetter.objects.all()
    serializer_class = PaymentDeadLetterSerializer
    permission_classes = [IsAuthenticated, IsOperator]
    filterset_class = PaymentDeadLetterFilter
    ordering_fields = ["created_at", "attempts"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._repository = PaymentDeadLetterDjangoRepository()

    def get_queryset(self):
        return self._repository.list()

    def list(self, request: Request) -> Response:
        """GET /api/v1/reconciliation/dead-letters/"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = PaymentDeadLetterSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/reconciliation/dead-letters/{pk}/"""
        return Response(PaymentDeadLetterSerializer(self._get_letter(pk)).data)

    @action(detail=True, methods=["post"])
    def requeue(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/reconciliation/dead-letters/{pk}/requeue/

        Starts a fresh reconciliation run for the recorded order/outcome.
        The dead letter itself is left untouched.
        """
        letter = self._get_letter(pk)
        log = logger.bind(
            dead_letter_id=str(letter.id),
            order_id=str(letter.order_id),
            actor_id=str(request.user.id),
        )
        try:
            schedule_reconciliation(letter.order_id, letter.attempted_outcome, 1)
        except KombuOperationalError as exc:
            log.error("dead_letter.requeue_failed", error=str(exc))
            raise TransientError("Payment confirmation queue is unavailable.") from exc

        log.info("dead_letter.requeued")
        return Response(
            {
                "status": "requeued",
                "dead_letter_id": str(letter.id),
                "order_id": str(letter.order_id),
            },
            status=status.HTTP_202_ACCEPTED,
        )

    def _get_letter(self, pk: str | None) -> PaymentDeadLetter:
        letter = self._repository.get_by_id(str(pk))
        if not letter:
            raise NotFound(f"Dead letter {pk} not found.")
        return letter
