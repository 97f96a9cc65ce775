"""Adoption API views.

Exposes the ``AdoptionService`` via HTTP using DRF ViewSets.  Domain
errors propagate to the global exception handler.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.adoptions.dtos import CancelCaseDTO, DecideCaseDTO, OpenCaseDTO
from modules.adoptions.filters import AdoptionCaseFilter
from modules.adoptions.models import AdoptionCase
from modules.adoptions.repositories.django_repository import (
    AdoptionCaseDjangoRepository,
)
from modules.adoptions.serializers import (
    AdoptionCaseSerializer,
    CancelSerializer,
    DecisionSerializer,
    OpenCaseSerializer,
)
from modules.adoptions.services import AdoptionService
from modules.listings.repositories.django_repository import ListingDjangoRepository
from modules.workflow.engine import TransitionEngine
from modules.workflow.repositories.django_repository import DjangoStateStore


class AdoptionCaseViewSet(GenericViewSet):
    """ViewSet for adoption requests.

    Reads are scoped to what the caller may see: requesters see their own
    cases, shelters the cases on their listings, back office everything.
    """

    queryset = AdoptionCase.objects.all()
    serializer_class = AdoptionCaseSerializer
    filterset_class = AdoptionCaseFilter
    ordering_fields = ["submitted_at", "decided_at", "status"]
    ordering = ["-submitted_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        store = DjangoStateStore()
        self._service = AdoptionService(
            case_repository=AdoptionCaseDjangoRepository(),
            listing_repository=ListingDjangoRepository(),
            engine=TransitionEngine(store),
            state_store=store,
        )

    def get_throttles(self) -> list[BaseThrottle]:
        """Adoption requests are rate limited per user."""
        self.throttle_scope = "adoption_requests" if self.action == "create" else None
        return super().get_throttles()

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return AdoptionCase.objects.none()
        return self._service.list_cases(self.request.user.actor)

    # ------------------------------------------------------------------
    # Create / List / Retrieve
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/adoptions/"""
        serializer = OpenCaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = OpenCaseDTO(**serializer.validated_data)
        case = self._service.open_case(dto, request.user.actor)
        return Response(AdoptionCaseSerializer(case).data, status=status.HTTP_201_CREATED)

    def list(self, request: Request) -> Response:
        """GET /api/v1/adoptions/"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = AdoptionCaseSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/adoptions/{pk}/"""
        case = self._service.get_case_for(str(pk), request.user.actor)
        return Response(AdoptionCaseSerializer(case).data)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def decision(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/adoptions/{pk}/decision/

        Body: ``{decision: APPROVED|REJECTED, expected_version, note?}``.
        """
        serializer = DecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = DecideCaseDTO(**serializer.validated_data)
        case = self._service.decide(pk, dto, request.user.actor)
        return Response(AdoptionCaseSerializer(case).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/adoptions/{pk}/cancel/

        Body: ``{expected_version, note?}``.
        """
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = CancelCaseDTO(**serializer.validated_data)
        case = self._service.cancel(pk, dto, request.user.actor)
        return Response(AdoptionCaseSerializer(case).data)
