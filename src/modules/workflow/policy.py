"""Authorization Gate.

A static, deny-by-default table of who may move which entity kind between
which two statuses.  Lookups are pure: no I/O, no clock.

``can_transition`` answers the role-only question.  ``is_permitted`` also
evaluates the ownership predicate of a rule against the entity snapshot,
so "SHELTER owning the listing" is part of the decision rather than a
check the caller might forget.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

from modules.core.identity import Role
from modules.workflow.constants import (
    AdoptionStatus,
    EntityKind,
    ListingStatus,
    OrderStatus,
    PaymentStatus,
)

if TYPE_CHECKING:
    from modules.core.identity import Actor
    from modules.workflow.dtos import EntitySnapshot


@dataclass(frozen=True)
class TransitionRule:
    """Roles allowed by one rule; ``owner_field`` restricts to the owner.

    When ``owner_field`` is set the actor's id must equal the snapshot
    attribute of that name.
    """

    roles: frozenset[str]
    owner_field: Optional[str] = None


_BACK_OFFICE = frozenset({Role.ADMIN, Role.STAFF})

TRANSITION_POLICY: dict[Tuple[str, str, str], Tuple[TransitionRule, ...]] = {
    # Listings: moderation by ADMIN, adoption only as a side effect.
    (EntityKind.LISTING, ListingStatus.PENDING, ListingStatus.AVAILABLE): (
        TransitionRule(frozenset({Role.ADMIN})),
    ),
    (EntityKind.LISTING, ListingStatus.PENDING, ListingStatus.REJECTED): (
        TransitionRule(frozenset({Role.ADMIN})),
    ),
    (EntityKind.LISTING, ListingStatus.AVAILABLE, ListingStatus.ADOPTED): (
        TransitionRule(frozenset({Role.SYSTEM})),
    ),
    # Adoption cases
    (EntityKind.ADOPTION_CASE, AdoptionStatus.PENDING, AdoptionStatus.APPROVED): (
        TransitionRule(frozenset({Role.SHELTER}), owner_field="shelter_id"),
    ),
    (EntityKind.ADOPTION_CASE, AdoptionStatus.PENDING, AdoptionStatus.REJECTED): (
        TransitionRule(frozenset({Role.SHELTER}), owner_field="shelter_id"),
    ),
    (EntityKind.ADOPTION_CASE, AdoptionStatus.PENDING, AdoptionStatus.CANCELLED): (
        TransitionRule(frozenset({Role.USER}), owner_field="requester_id"),
    ),
    # Order payment axis: only the reconciliation worker and order cancellation.
    (EntityKind.ORDER_PAYMENT, PaymentStatus.PENDING, PaymentStatus.PAID): (
        TransitionRule(frozenset({Role.SYSTEM})),
    ),
    (EntityKind.ORDER_PAYMENT, PaymentStatus.PENDING, PaymentStatus.FAILED): (
        TransitionRule(frozenset({Role.SYSTEM})),
    ),
    (EntityKind.ORDER_PAYMENT, PaymentStatus.PENDING, PaymentStatus.CANCELLED): (
        TransitionRule(frozenset({Role.SYSTEM})),
    ),
    # Order fulfillment axis
    (EntityKind.ORDER, OrderStatus.PENDING, OrderStatus.CONFIRMED): (
        TransitionRule(_BACK_OFFICE),
    ),
    (EntityKind.ORDER, OrderStatus.CONFIRMED, OrderStatus.SHIPPING): (
        TransitionRule(_BACK_OFFICE),
    ),
    (EntityKind.ORDER, OrderStatus.SHIPPING, OrderStatus.COMPLETED): (
        TransitionRule(_BACK_OFFICE),
    ),
    (EntityKind.ORDER, OrderStatus.PENDING, OrderStatus.CANCELLED): (
        TransitionRule(frozenset({Role.USER}), owner_field="user_id"),
        TransitionRule(_BACK_OFFICE),
    ),
    (EntityKind.ORDER, OrderStatus.CONFIRMED, OrderStatus.CANCELLED): (
        TransitionRule(_BACK_OFFICE),
    ),
}

CREATION_POLICY: dict[str, frozenset[str]] = {
    EntityKind.LISTING: frozenset({Role.SHELTER}),
    EntityKind.ADOPTION_CASE: frozenset({Role.USER}),
    EntityKind.ORDER: frozenset({Role.USER}),
}


def can_transition(role: str, kind: str, from_status: str, to_status: str) -> bool:
    """Return ``True`` if *role* appears in any rule for the move."""
    rules = TRANSITION_POLICY.get((kind, from_status, to_status), ())
    return any(role in rule.roles for rule in rules)


def is_permitted(
    actor: Actor,
    kind: str,
    from_status: str,
    to_status: str,
    snapshot: EntitySnapshot,
) -> bool:
    """Role check plus ownership predicate for a concrete entity."""
    for rule in TRANSITION_POLICY.get((kind, from_status, to_status), ()):
        if actor.role not in rule.roles:
            continue
        if rule.owner_field is None:
            return True
        owner = snapshot.attribute(rule.owner_field)
        if owner is not None and str(owner) == str(actor.id):
            return True
    return False


def can_create(role: str, kind: str) -> bool:
    return role in CREATION_POLICY.get(kind, frozenset())
