"""Reconciliation URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.reconciliation.views import PaymentCallbackView, PaymentDeadLetterViewSet

router = DefaultRouter(trailing_slash=True)
router.register(
    "reconciliation/dead-letters", PaymentDeadLetterViewSet, basename="dead-letter"
)

urlpatterns = [
    path(
        "orders/<str:pk>/payment-callback/",
        PaymentCallbackView.as_view(),
        name="order-payment-callback",
    ),
    *router.urls,
]
