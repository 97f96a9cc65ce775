"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.  Domain errors
propagate to the global exception handler, which renders them with their
own status code.  Gateway callbacks live in ``modules.reconciliation``.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.orders.dtos import CancelOrderDTO, ChangeOrderStatusDTO, CreateOrderDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CancelOrderSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    OrderStatusSerializer,
)
from modules.orders.services import OrderService
from modules.workflow.engine import TransitionEngine
from modules.workflow.repositories.django_repository import DjangoStateStore


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected collaborators (DIP).
    Does **not** extend ``ModelViewSet``: all writes go through the
    service layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    search_fields = ["order_number"]
    ordering_fields = ["created_at", "total_amount", "status", "payment_status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        store = DjangoStateStore()
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            engine=TransitionEngine(store),
            state_store=store,
        )

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Order.objects.none()
        return self._service.list_orders(self.request.user.actor)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = CreateOrderDTO(**serializer.validated_data)
        order = self._service.create_order(dto, request.user.actor)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, payment status, date range, total range) is
        handled by ``OrderFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/

        Clients poll this endpoint for ``payment_status`` after returning
        from the payment gateway.
        """
        order = self._service.get_order_for(str(pk), request.user.actor)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Fulfillment / Cancel
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/status/

        Body: ``{to_status: CONFIRMED|SHIPPING|COMPLETED, expected_version, note?}``.
        """
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = ChangeOrderStatusDTO(**serializer.validated_data)
        order = self._service.update_status(pk, dto, request.user.actor)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Body: ``{expected_version, note?}``.
        """
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = CancelOrderDTO(**serializer.validated_data)
        order = self._service.cancel_order(pk, dto, request.user.actor)
        return Response(OrderSerializer(order).data)
