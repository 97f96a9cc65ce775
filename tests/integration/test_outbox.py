"""Integration tests for the transactional outbox.

Events are written in the same transaction as the status change they
describe: an accepted request leaves one PENDING row per write, a
rejected one leaves none.
"""

from __future__ import annotations

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.listings.models import Listing
from modules.workflow.constants import AdoptionStatus, ListingStatus

pytestmark = pytest.mark.integration


class TestOutbox:
    def test_listing_creation_records_event(self, client_for, shelter):
        response = client_for(shelter).post(
            "/api/v1/listings/", {"name": "Nala"}, format="json"
        )

        assert response.status_code == 201
        event = OutboxEvent.objects.get(aggregate_id=response.json()["id"])
        assert event.event_type == "EntityCreated"
        assert event.status == EventStatus.PENDING
        assert event.payload["status"] == ListingStatus.PENDING

    def test_approval_records_case_and_listing_events(
        self, client_for, shelter, adopter, make_listing, make_case
    ):
        listing = make_listing(shelter.id)
        case = make_case(listing, adopter.id)

        response = client_for(shelter).post(
            f"/api/v1/adoptions/{case.id}/decision/",
            {"decision": AdoptionStatus.APPROVED, "expected_version": 0},
            format="json",
        )

        assert response.status_code == 200
        events = {
            row.aggregate_id: row.payload
            for row in OutboxEvent.objects.filter(event_type="EntityTransitioned")
        }
        assert events[str(case.id)]["to_status"] == AdoptionStatus.APPROVED
        assert events[str(listing.id)]["to_status"] == ListingStatus.ADOPTED
        assert events[str(listing.id)]["actor_role"] == "SYSTEM"

    def test_rejected_request_records_nothing(self, client_for, admin, shelter, make_listing):
        listing = make_listing(shelter.id, status=ListingStatus.PENDING)

        response = client_for(admin).post(
            f"/api/v1/listings/{listing.id}/status/",
            {"to_status": ListingStatus.AVAILABLE, "expected_version": 5},
            format="json",
        )

        assert response.status_code == 409
        assert not OutboxEvent.objects.exists()

    def test_failed_compound_transition_rolls_back_events(
        self, client_for, shelter, adopter, make_listing, make_case
    ):
        listing = make_listing(shelter.id)
        case = make_case(listing, adopter.id)
        # Listing adopted through another path meanwhile.
        Listing.objects.filter(pk=listing.pk).update(status=ListingStatus.ADOPTED)

        response = client_for(shelter).post(
            f"/api/v1/adoptions/{case.id}/decision/",
            {"decision": AdoptionStatus.APPROVED, "expected_version": 0},
            format="json",
        )

        assert response.status_code == 412
        case.refresh_from_db()
        assert case.status == AdoptionStatus.PENDING
        assert case.version == 0
        assert not OutboxEvent.objects.exists()
