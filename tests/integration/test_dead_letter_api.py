"""Integration tests for the reconciliation dead-letter endpoints.

Covers:
- Back office (ADMIN/STAFF) only; other roles get 403.
- List with filters, retrieve (404 on unknown ids).
- Requeue starts a fresh reconciliation run and leaves the letter alone.
"""

from __future__ import annotations

from unittest.mock import patch
from uuid import uuid4

import pytest
from kombu.exceptions import OperationalError as KombuOperationalError

from modules.reconciliation.constants import DeadLetterReason
from modules.reconciliation.models import PaymentDeadLetter
from modules.workflow.constants import PaymentStatus

pytestmark = pytest.mark.integration

DEAD_LETTERS_URL = "/api/v1/reconciliation/dead-letters/"


@pytest.fixture()
def make_letter():
    def _letter(order_id, **overrides) -> PaymentDeadLetter:
        data = {
            "order_id": order_id,
            "attempted_outcome": PaymentStatus.PAID,
            "attempts": 3,
            "reason": DeadLetterReason.RETRIES_EXHAUSTED,
            "error_type": "TransientError",
            "last_error": "database unreachable",
        }
        data.update(overrides)
        return PaymentDeadLetter.objects.create(**data)

    return _letter


class TestAccess:
    @pytest.mark.parametrize("role_fixture", ["adopter", "shelter", "sponsor"])
    def test_external_roles_forbidden(self, client_for, role_fixture, request):
        actor = request.getfixturevalue(role_fixture)

        response = client_for(actor).get(DEAD_LETTERS_URL)

        assert response.status_code == 403

    def test_anonymous(self, api_client):
        assert api_client.get(DEAD_LETTERS_URL).status_code == 401


class TestReadDeadLetters:
    def test_staff_lists_and_filters(self, client_for, staff, make_letter):
        exhausted = make_letter(uuid4())
        make_letter(uuid4(), reason=DeadLetterReason.REJECTED, attempts=1)

        response = client_for(staff).get(DEAD_LETTERS_URL, {"reason": "retries_exhausted"})

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["results"]] == [str(exhausted.id)]

    def test_filter_by_order(self, client_for, admin, make_letter):
        order_id = uuid4()
        make_letter(order_id)
        make_letter(uuid4())

        response = client_for(admin).get(DEAD_LETTERS_URL, {"order": str(order_id)})

        assert response.json()["count"] == 1

    def test_retrieve(self, client_for, admin, make_letter):
        letter = make_letter(uuid4())

        response = client_for(admin).get(f"{DEAD_LETTERS_URL}{letter.id}/")

        assert response.status_code == 200
        assert response.json()["last_error"] == "database unreachable"

    def test_retrieve_unknown(self, client_for, admin):
        response = client_for(admin).get(f"{DEAD_LETTERS_URL}{uuid4()}/")
        assert response.status_code == 404


class TestRequeue:
    def test_requeue_reconciles_order(self, client_for, staff, make_letter, make_order, adopter):
        order = make_order(adopter.id)
        letter = make_letter(order.id)

        response = client_for(staff).post(f"{DEAD_LETTERS_URL}{letter.id}/requeue/")

        assert response.status_code == 202
        assert response.json()["status"] == "requeued"
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PAID
        assert PaymentDeadLetter.objects.filter(pk=letter.pk).exists()

    def test_requeue_broker_unavailable(self, client_for, staff, make_letter, make_order, adopter):
        letter = make_letter(make_order(adopter.id).id)

        with patch(
            "modules.reconciliation.tasks.reconcile_order_payment.apply_async",
            side_effect=KombuOperationalError("Connection refused"),
        ):
            response = client_for(staff).post(f"{DEAD_LETTERS_URL}{letter.id}/requeue/")

        assert response.status_code == 503

    def test_requeue_forbidden_for_users(self, client_for, adopter, make_letter):
        letter = make_letter(uuid4())

        response = client_for(adopter).post(f"{DEAD_LETTERS_URL}{letter.id}/requeue/")

        assert response.status_code == 403
