"""Listing API views.

Exposes the ``ListingService`` via HTTP using DRF ViewSets.  Domain errors
propagate to the global exception handler, which renders them with their
own status code.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.listings.dtos import ChangeListingStatusDTO, CreateListingDTO
from modules.listings.filters import ListingFilter
from modules.listings.models import Listing
from modules.listings.repositories.django_repository import ListingDjangoRepository
from modules.listings.serializers import (
    CreateListingSerializer,
    ListingSerializer,
    ListingStatusSerializer,
)
from modules.listings.services import ListingService
from modules.workflow.engine import TransitionEngine
from modules.workflow.repositories.django_repository import DjangoStateStore


class ListingViewSet(GenericViewSet):
    """ViewSet for animal listings.

    Does **not** extend ``ModelViewSet``: writes go through the service
    layer and status changes through the Transition Engine.
    """

    queryset = Listing.objects.all()
    serializer_class = ListingSerializer
    filterset_class = ListingFilter
    search_fields = ["name", "breed", "description"]
    ordering_fields = ["created_at", "name", "age", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        store = DjangoStateStore()
        self._service = ListingService(
            listing_repository=ListingDjangoRepository(),
            engine=TransitionEngine(store),
            state_store=store,
        )

    def get_queryset(self):
        return self._service.list_listings()

    # ------------------------------------------------------------------
    # Create / List / Retrieve
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/listings/"""
        serializer = CreateListingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = CreateListingDTO(**serializer.validated_data)
        listing = self._service.create_listing(dto, request.user.actor)
        return Response(ListingSerializer(listing).data, status=status.HTTP_201_CREATED)

    def list(self, request: Request) -> Response:
        """GET /api/v1/listings/"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = ListingSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/listings/{pk}/"""
        listing = self._service.get_listing(str(pk))
        return Response(ListingSerializer(listing).data)

    # ------------------------------------------------------------------
    # Status change
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/listings/{pk}/status/

        Body: ``{to_status, expected_version, from_status?, note?}``.
        """
        serializer = ListingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = ChangeListingStatusDTO(**serializer.validated_data)
        listing = self._service.change_status(pk, dto, request.user.actor)
        return Response(ListingSerializer(listing).data)
