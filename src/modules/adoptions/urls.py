"""Adoption URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.adoptions.views import AdoptionCaseViewSet

router = DefaultRouter(trailing_slash=True)
router.register("adoptions", AdoptionCaseViewSet, basename="adoption")

urlpatterns = router.urls
