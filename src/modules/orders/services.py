"""Order service layer (Use Cases).

Orchestrates checkout, fulfillment steps and cancellation.  All status
changes go through the ``TransitionEngine``; the payment axis is only
moved by the reconciliation worker or, on cancellation, by SYSTEM.

Business rules enforced:
- Only a USER may check out; the order starts PENDING/PENDING.
- Fulfillment steps (CONFIRMED → SHIPPING → COMPLETED) by ADMIN/STAFF.
- Cancellation by the owning USER while PENDING, or by ADMIN/STAFF while
  PENDING/CONFIRMED.  An unpaid order's payment is cancelled with it in
  the same unit of work; a paid order keeps PAID.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from django.db import models, transaction

from modules.core.identity import Actor
from modules.workflow import policy
from modules.workflow.constants import (
    EntityKind,
    OrderStatus,
    PaymentStatus,
    predecessors,
)
from modules.workflow.exceptions import Forbidden, NotFound

if TYPE_CHECKING:
    from uuid import UUID

    from modules.orders.dtos import CancelOrderDTO, ChangeOrderStatusDTO, CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.workflow.engine import TransitionEngine
    from modules.workflow.repositories.interfaces import IStateStore

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives its collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        engine: TransitionEngine,
        state_store: IStateStore,
    ) -> None:
        self._order_repo = order_repository
        self._engine = engine
        self._store = state_store

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO, actor: Actor) -> Order:
        """Create a PENDING/PENDING order owned by the calling user.

        Raises:
            Forbidden: the actor's role may not check out.
        """
        log = logger.bind(actor_id=str(actor.id), actor_role=actor.role)
        if not policy.can_create(actor.role, EntityKind.ORDER):
            log.warning("order.creation_forbidden")
            raise Forbidden("Only users can place orders.")

        order = self._order_repo.create(
            {
                "user_id": actor.id,
                "total_amount": dto.total_amount,
                "shipping_address": dto.shipping_address,
                "notes": dto.notes,
            }
        )
        self._store.record_creation(
            EntityKind.ORDER, order.id, OrderStatus.PENDING, actor
        )
        log.info("order.created", order_id=str(order.id), total=str(order.total_amount))
        return order

    def update_status(
        self, order_id: UUID, dto: ChangeOrderStatusDTO, actor: Actor
    ) -> Order:
        """Advance fulfillment one step (ADMIN/STAFF).

        The ``from`` side is the unique predecessor of the target; a target
        with none (PENDING) is tried from the stored status, so the gate
        rejects it.

        Raises:
            NotFound: order does not exist or is hidden from the actor.
            Forbidden, IllegalTransition, StaleState:
                see ``TransitionEngine.apply``.
        """
        order = self.get_order_for(str(order_id), actor)
        sources = predecessors(EntityKind.ORDER, dto.to_status)
        from_status = sources.pop() if len(sources) == 1 else order.status

        self._engine.apply(
            EntityKind.ORDER,
            order_id,
            dto.expected_version,
            from_status,
            dto.to_status,
            actor,
            notes=dto.note,
        )
        return self.get_order(str(order_id))

    @transaction.atomic
    def cancel_order(self, order_id: UUID, dto: CancelOrderDTO, actor: Actor) -> Order:
        """Cancel an order and, if still unpaid, its payment.

        ``expected_version`` is what guards against acting on a stale view;
        the current fulfillment status is the ``from`` side of the move.

        Raises:
            NotFound: order does not exist or is hidden from the actor.
            Forbidden: not the owner (while PENDING) nor back office.
            IllegalTransition: order already terminal.
            StaleState: order changed since the caller read it.
        """
        self.get_order_for(str(order_id), actor)
        snapshot = self._store.get_snapshot(EntityKind.ORDER, order_id)
        if snapshot is None:
            raise NotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order_id), current_status=snapshot.status)

        result = self._engine.apply(
            EntityKind.ORDER,
            order_id,
            dto.expected_version,
            snapshot.status,
            OrderStatus.CANCELLED,
            actor,
            notes=dto.note or "Order cancelled",
        )

        payment = self._store.get_snapshot(EntityKind.ORDER_PAYMENT, order_id)
        if payment is not None and payment.status == PaymentStatus.PENDING:
            self._engine.apply(
                EntityKind.ORDER_PAYMENT,
                order_id,
                payment.version,
                PaymentStatus.PENDING,
                PaymentStatus.CANCELLED,
                Actor.system(),
                notes="Order cancelled before payment",
            )
            log.info("order.payment_cancelled")

        log.info("order.cancelled", version=result.version)
        return self.get_order(str(order_id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Raises ``NotFound`` if the order does not exist."""
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found.")
        return order

    def get_order_for(self, order_id: str, actor: Actor) -> Order:
        """Like ``get_order`` but hides orders the actor may not read."""
        order = self.get_order(order_id)
        if not self._order_repo.visible_to(actor).filter(pk=order.pk).exists():
            raise NotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, actor: Actor) -> models.QuerySet:
        return self._order_repo.visible_to(actor)
