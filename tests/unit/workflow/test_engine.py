"""Unit tests for the Transition Engine.

Covers:
- Happy path: status/version written, audit record and outbox event.
- Stale reads (status or version) rejected with ``StaleState``.
- Terminal entities reject every move with ``IllegalTransition``.
- Already-in-target-state requests are idempotent successes.
- Gate denials (role and ownership) with ``Forbidden``.
- Compound approval: case APPROVED and listing ADOPTED in one unit of
  work, rolled back together when the listing is gone.
- A lost compare-and-set race surfaces as ``StaleState``.
- Store connectivity errors surface as ``TransientError``.
"""

from __future__ import annotations

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from django.db import OperationalError

from modules.core.identity import Actor, Role
from modules.core.models import OutboxEvent
from modules.workflow.constants import (
    AdoptionStatus,
    EntityKind,
    ListingStatus,
    OrderStatus,
    PaymentStatus,
)
from modules.workflow.dtos import EntitySnapshot
from modules.workflow.engine import TransitionEngine
from modules.workflow.exceptions import (
    Forbidden,
    IllegalTransition,
    NotFound,
    PreconditionFailed,
    StaleState,
    TransientError,
)
from modules.workflow.models import TransitionRecord
from modules.workflow.repositories.django_repository import DjangoStateStore

pytestmark = pytest.mark.unit


@pytest.fixture()
def engine():
    return TransitionEngine(DjangoStateStore())


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestApply:
    def test_moderation_writes_status_and_version(self, engine, admin, make_listing, shelter):
        listing = make_listing(shelter.id, status=ListingStatus.PENDING)

        result = engine.apply(
            EntityKind.LISTING,
            listing.id,
            0,
            ListingStatus.PENDING,
            ListingStatus.AVAILABLE,
            admin,
        )

        listing.refresh_from_db()
        assert listing.status == ListingStatus.AVAILABLE
        assert listing.version == 1
        assert result.status == ListingStatus.AVAILABLE
        assert result.version == 1
        assert not result.already_in_target_state
        assert len(result.applied) == 1

    def test_audit_record_and_outbox_event(self, engine, admin, make_listing, shelter):
        listing = make_listing(shelter.id, status=ListingStatus.PENDING)

        engine.apply(
            EntityKind.LISTING,
            listing.id,
            0,
            ListingStatus.PENDING,
            ListingStatus.REJECTED,
            admin,
            notes="Blurry photo",
        )

        record = TransitionRecord.objects.get(entity_id=listing.id)
        assert record.entity_kind == EntityKind.LISTING
        assert record.from_status == ListingStatus.PENDING
        assert record.to_status == ListingStatus.REJECTED
        assert record.version == 1
        assert record.actor_id == admin.id
        assert record.actor_role == Role.ADMIN
        assert record.notes == "Blurry photo"

        event = OutboxEvent.objects.get(aggregate_id=str(listing.id))
        assert event.event_type == "EntityTransitioned"
        assert event.topic == "workflow"
        assert event.payload["to_status"] == ListingStatus.REJECTED
        assert event.payload["version"] == 1

    def test_unknown_entity(self, engine, admin):
        with pytest.raises(NotFound):
            engine.apply(
                EntityKind.LISTING,
                uuid4(),
                0,
                ListingStatus.PENDING,
                ListingStatus.AVAILABLE,
                admin,
            )


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------


class TestRejections:
    def test_stale_version(self, engine, admin, make_listing, shelter):
        listing = make_listing(shelter.id, status=ListingStatus.PENDING, version=2)

        with pytest.raises(StaleState):
            engine.apply(
                EntityKind.LISTING,
                listing.id,
                1,
                ListingStatus.PENDING,
                ListingStatus.AVAILABLE,
                admin,
            )

        listing.refresh_from_db()
        assert listing.status == ListingStatus.PENDING
        assert listing.version == 2
        assert not TransitionRecord.objects.filter(entity_id=listing.id).exists()

    def test_stale_status(self, engine, staff, make_order, adopter):
        order = make_order(adopter.id, status=OrderStatus.CONFIRMED)

        with pytest.raises(StaleState):
            engine.apply(
                EntityKind.ORDER,
                order.id,
                0,
                OrderStatus.PENDING,
                OrderStatus.CANCELLED,
                staff,
            )

    def test_terminal_entity(self, engine, admin, make_listing, shelter):
        listing = make_listing(shelter.id, status=ListingStatus.REJECTED, version=1)

        with pytest.raises(IllegalTransition):
            engine.apply(
                EntityKind.LISTING,
                listing.id,
                1,
                ListingStatus.REJECTED,
                ListingStatus.AVAILABLE,
                admin,
            )

    def test_terminal_checked_before_version(self, engine, admin, make_listing, shelter):
        listing = make_listing(shelter.id, status=ListingStatus.ADOPTED, version=3)

        with pytest.raises(IllegalTransition):
            engine.apply(
                EntityKind.LISTING,
                listing.id,
                0,
                ListingStatus.AVAILABLE,
                ListingStatus.PENDING,
                admin,
            )

    def test_role_denied(self, engine, shelter, make_listing):
        listing = make_listing(shelter.id, status=ListingStatus.PENDING)

        with pytest.raises(Forbidden):
            engine.apply(
                EntityKind.LISTING,
                listing.id,
                0,
                ListingStatus.PENDING,
                ListingStatus.AVAILABLE,
                shelter,
            )

    def test_move_outside_the_table_is_forbidden(self, engine, admin, make_listing, shelter):
        listing = make_listing(shelter.id, status=ListingStatus.PENDING)

        with pytest.raises(Forbidden):
            engine.apply(
                EntityKind.LISTING,
                listing.id,
                0,
                ListingStatus.PENDING,
                ListingStatus.RESCUED,
                admin,
            )

    def test_ownership_denied(self, engine, other_shelter, make_listing, make_case, shelter, adopter):
        case = make_case(make_listing(shelter.id), adopter.id)

        with pytest.raises(Forbidden):
            engine.apply(
                EntityKind.ADOPTION_CASE,
                case.id,
                0,
                AdoptionStatus.PENDING,
                AdoptionStatus.REJECTED,
                other_shelter,
            )

    def test_external_actor_cannot_settle_payment(self, engine, admin, make_order, adopter):
        order = make_order(adopter.id)

        with pytest.raises(Forbidden):
            engine.apply(
                EntityKind.ORDER_PAYMENT,
                order.id,
                0,
                PaymentStatus.PENDING,
                PaymentStatus.PAID,
                admin,
            )


# ---------------------------------------------------------------------------
# Idempotency
# ---------------------------------------------------------------------------


class TestIdempotency:
    def test_repeated_request_is_a_no_op(self, engine, admin, make_listing, shelter):
        listing = make_listing(shelter.id, status=ListingStatus.PENDING)
        move = (
            EntityKind.LISTING,
            listing.id,
            0,
            ListingStatus.PENDING,
            ListingStatus.AVAILABLE,
            admin,
        )

        first = engine.apply(*move)
        second = engine.apply(*move)

        assert second.already_in_target_state
        assert second.applied == ()
        assert second.version == first.version == 1
        assert TransitionRecord.objects.filter(entity_id=listing.id).count() == 1

    def test_repeat_still_requires_permission(self, engine, shelter, make_listing):
        listing = make_listing(shelter.id, status=ListingStatus.AVAILABLE, version=1)

        with pytest.raises(Forbidden):
            engine.apply(
                EntityKind.LISTING,
                listing.id,
                0,
                ListingStatus.PENDING,
                ListingStatus.AVAILABLE,
                shelter,
            )

    def test_system_repeat_on_paid_order(self, engine, make_order, adopter):
        order = make_order(adopter.id, payment_status=PaymentStatus.PAID, version=1)

        result = engine.apply(
            EntityKind.ORDER_PAYMENT,
            order.id,
            0,
            PaymentStatus.PENDING,
            PaymentStatus.PAID,
            Actor.system(),
        )

        assert result.already_in_target_state
        assert result.status == PaymentStatus.PAID
        assert result.version == 1


# ---------------------------------------------------------------------------
# Compound approval
# ---------------------------------------------------------------------------


class TestCompoundApproval:
    def test_approval_adopts_listing(self, engine, shelter, adopter, make_listing, make_case):
        listing = make_listing(shelter.id, version=1)
        case = make_case(listing, adopter.id)

        result = engine.apply(
            EntityKind.ADOPTION_CASE,
            case.id,
            0,
            AdoptionStatus.PENDING,
            AdoptionStatus.APPROVED,
            shelter,
        )

        case.refresh_from_db()
        listing.refresh_from_db()
        assert case.status == AdoptionStatus.APPROVED
        assert case.version == 1
        assert case.decided_at is not None
        assert listing.status == ListingStatus.ADOPTED
        assert listing.version == 2
        assert [a.kind for a in result.applied] == [
            EntityKind.ADOPTION_CASE,
            EntityKind.LISTING,
        ]

        side_effect = TransitionRecord.objects.get(entity_id=listing.id)
        assert side_effect.actor_role == Role.SYSTEM

    def test_approval_rolls_back_when_listing_unavailable(
        self, engine, shelter, adopter, make_listing, make_case
    ):
        listing = make_listing(shelter.id)
        case = make_case(listing, adopter.id)
        type(listing).objects.filter(pk=listing.pk).update(
            status=ListingStatus.ADOPTED, version=5
        )

        with pytest.raises(PreconditionFailed):
            engine.apply(
                EntityKind.ADOPTION_CASE,
                case.id,
                0,
                AdoptionStatus.PENDING,
                AdoptionStatus.APPROVED,
                shelter,
            )

        case.refresh_from_db()
        assert case.status == AdoptionStatus.PENDING
        assert case.version == 0
        assert case.decided_at is None
        assert not TransitionRecord.objects.filter(entity_id=case.id).exists()
        assert not OutboxEvent.objects.filter(aggregate_id=str(case.id)).exists()

    def test_second_case_cannot_adopt_adopted_listing(
        self, engine, shelter, adopter, other_user, make_listing, make_case
    ):
        listing = make_listing(shelter.id, version=1)
        first = make_case(listing, adopter.id)
        second = make_case(listing, other_user.id)

        engine.apply(
            EntityKind.ADOPTION_CASE,
            first.id,
            0,
            AdoptionStatus.PENDING,
            AdoptionStatus.APPROVED,
            shelter,
        )
        with pytest.raises(PreconditionFailed):
            engine.apply(
                EntityKind.ADOPTION_CASE,
                second.id,
                0,
                AdoptionStatus.PENDING,
                AdoptionStatus.APPROVED,
                shelter,
            )

        second.refresh_from_db()
        listing.refresh_from_db()
        assert second.status == AdoptionStatus.PENDING
        assert second.version == 0
        assert listing.status == ListingStatus.ADOPTED
        assert listing.version == 2
        assert TransitionRecord.objects.filter(entity_id=listing.id).count() == 1
        assert not TransitionRecord.objects.filter(entity_id=second.id).exists()

    def test_rejection_leaves_listing_alone(self, engine, shelter, adopter, make_listing, make_case):
        listing = make_listing(shelter.id)
        case = make_case(listing, adopter.id)

        engine.apply(
            EntityKind.ADOPTION_CASE,
            case.id,
            0,
            AdoptionStatus.PENDING,
            AdoptionStatus.REJECTED,
            shelter,
        )

        listing.refresh_from_db()
        assert listing.status == ListingStatus.AVAILABLE
        assert listing.version == 0


# ---------------------------------------------------------------------------
# Store failures
# ---------------------------------------------------------------------------


def _pending_listing_snapshot():
    return EntitySnapshot(
        kind=EntityKind.LISTING,
        id=uuid4(),
        status=ListingStatus.PENDING,
        version=0,
        attributes={"shelter_id": uuid4()},
    )


class TestStoreFailures:
    def test_lost_race_is_stale(self, admin):
        store = MagicMock()
        snapshot = _pending_listing_snapshot()
        store.get_snapshot.return_value = snapshot
        store.compare_and_set.return_value = False

        with pytest.raises(StaleState):
            TransitionEngine(store).apply(
                EntityKind.LISTING,
                snapshot.id,
                0,
                ListingStatus.PENDING,
                ListingStatus.AVAILABLE,
                admin,
            )
        store.record_transition.assert_not_called()

    def test_connectivity_error_is_transient(self, admin):
        store = MagicMock()
        store.get_snapshot.side_effect = OperationalError("connection refused")

        with pytest.raises(TransientError) as exc_info:
            TransitionEngine(store).apply(
                EntityKind.LISTING,
                uuid4(),
                0,
                ListingStatus.PENDING,
                ListingStatus.AVAILABLE,
                admin,
            )
        assert exc_info.value.retryable

    def test_write_failure_is_transient(self, admin):
        store = MagicMock()
        snapshot = _pending_listing_snapshot()
        store.get_snapshot.return_value = snapshot
        store.compare_and_set.side_effect = OperationalError("server closed the connection")

        with pytest.raises(TransientError):
            TransitionEngine(store).apply(
                EntityKind.LISTING,
                snapshot.id,
                0,
                ListingStatus.PENDING,
                ListingStatus.AVAILABLE,
                admin,
            )
