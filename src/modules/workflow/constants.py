"""Lifecycle constants shared by every workflow-managed entity.

Defines the status choices of each entity kind and the static state
machines the Transition Engine validates against.  A status with no
outgoing moves is terminal.
"""

from django.db import models


class EntityKind(models.TextChoices):
    LISTING = "LISTING", "Listing"
    ADOPTION_CASE = "ADOPTION_CASE", "Adoption case"
    ORDER = "ORDER", "Order (fulfillment)"
    ORDER_PAYMENT = "ORDER_PAYMENT", "Order (payment)"


class ListingStatus(models.TextChoices):
    PENDING = "PENDING", "Pending review"
    AVAILABLE = "AVAILABLE", "Available"
    RESCUED = "RESCUED", "Rescued"
    ADOPTED = "ADOPTED", "Adopted"
    REJECTED = "REJECTED", "Rejected"


class AdoptionStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    APPROVED = "APPROVED", "Approved"
    REJECTED = "REJECTED", "Rejected"
    CANCELLED = "CANCELLED", "Cancelled"


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    CONFIRMED = "CONFIRMED", "Confirmed"
    SHIPPING = "SHIPPING", "Shipping"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"


class PaymentStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PAID = "PAID", "Paid"
    FAILED = "FAILED", "Failed"
    CANCELLED = "CANCELLED", "Cancelled"


STATUS_CHOICES: dict[str, type[models.TextChoices]] = {
    EntityKind.LISTING: ListingStatus,
    EntityKind.ADOPTION_CASE: AdoptionStatus,
    EntityKind.ORDER: OrderStatus,
    EntityKind.ORDER_PAYMENT: PaymentStatus,
}

# RESCUED is reserved: no moves lead into or out of it yet. The back-office
# screen lists it as a target, but no role is granted the move, so requests
# for it are refused by the gate (403) rather than by the table.
VALID_TRANSITIONS: dict[str, dict[str, set[str]]] = {
    EntityKind.LISTING: {
        ListingStatus.PENDING: {ListingStatus.AVAILABLE, ListingStatus.REJECTED},
        ListingStatus.AVAILABLE: {ListingStatus.ADOPTED},
        ListingStatus.RESCUED: set(),
        ListingStatus.ADOPTED: set(),
        ListingStatus.REJECTED: set(),
    },
    EntityKind.ADOPTION_CASE: {
        AdoptionStatus.PENDING: {
            AdoptionStatus.APPROVED,
            AdoptionStatus.REJECTED,
            AdoptionStatus.CANCELLED,
        },
        AdoptionStatus.APPROVED: set(),
        AdoptionStatus.REJECTED: set(),
        AdoptionStatus.CANCELLED: set(),
    },
    EntityKind.ORDER: {
        OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
        OrderStatus.CONFIRMED: {OrderStatus.SHIPPING, OrderStatus.CANCELLED},
        OrderStatus.SHIPPING: {OrderStatus.COMPLETED},
        OrderStatus.COMPLETED: set(),
        OrderStatus.CANCELLED: set(),
    },
    EntityKind.ORDER_PAYMENT: {
        PaymentStatus.PENDING: {
            PaymentStatus.PAID,
            PaymentStatus.FAILED,
            PaymentStatus.CANCELLED,
        },
        PaymentStatus.PAID: set(),
        PaymentStatus.FAILED: set(),
        PaymentStatus.CANCELLED: set(),
    },
}

TERMINAL_STATES: dict[str, set[str]] = {
    kind: {status for status, targets in machine.items() if not targets}
    for kind, machine in VALID_TRANSITIONS.items()
}


def is_legal_transition(kind: str, from_status: str, to_status: str) -> bool:
    return to_status in VALID_TRANSITIONS.get(kind, {}).get(from_status, set())


def is_terminal(kind: str, status: str) -> bool:
    return status in TERMINAL_STATES.get(kind, set())


def predecessors(kind: str, to_status: str) -> set[str]:
    """Statuses from which *to_status* is reachable in one move."""
    return {
        status
        for status, targets in VALID_TRANSITIONS.get(kind, {}).items()
        if to_status in targets
    }
