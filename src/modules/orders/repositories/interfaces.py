"""Order repository interface.

Extends ``IRepository[Order]`` with actor-scoped reads.  Status columns
are never written through this contract.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.core.identity import Actor
    from modules.orders.models import Order


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def visible_to(self, actor: Actor) -> models.QuerySet:
        """Orders the actor may read: own orders, or all for back office."""
