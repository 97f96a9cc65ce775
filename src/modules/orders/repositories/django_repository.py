"""Django ORM implementation of the Order repository."""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models

from modules.core.identity import Actor, Role
from modules.orders.models import Order
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order in PENDING/PENDING.

        ``data`` keys: ``user_id``, ``total_amount``, ``shipping_address``
        and optionally ``notes``.
        """
        order = Order(
            user_id=data["user_id"],
            total_amount=data["total_amount"],
            shipping_address=data["shipping_address"],
            notes=data.get("notes") or "",
        )
        order.save()
        logger.info(
            "order.persisted",
            order_id=str(order.id),
            order_number=order.order_number,
        )
        return order

    def get_by_id(self, id: str) -> Optional[Order]:
        """Returns ``None`` for non-existent or invalid IDs."""
        try:
            return Order.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        queryset = Order.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def visible_to(self, actor: Actor) -> models.QuerySet:
        if actor.role in (Role.ADMIN, Role.STAFF):
            return self.list()
        return self.list({"user_id": actor.id})
