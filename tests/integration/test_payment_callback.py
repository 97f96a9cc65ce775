"""Integration tests for POST /api/v1/orders/{id}/payment-callback/.

Celery runs eagerly under the test settings, so the reconciliation task
(and any retries it schedules) executes inside the request.

Covers:
- Signature verification (403 on missing / wrong signature).
- Unknown order (404) and invalid outcome (400).
- PAID and FAILED applied by the worker as SYSTEM.
- Repeated callback acknowledged as ``already_applied``.
- A later contradicting outcome is dead-lettered, never applied.
- Transient store failures retried, then dead-lettered.
- Broker unavailable → 503.
"""

from __future__ import annotations

from unittest.mock import patch
from uuid import uuid4

import pytest
from django.db import OperationalError
from kombu.exceptions import OperationalError as KombuOperationalError

from modules.core.identity import Role
from modules.reconciliation.constants import DeadLetterReason
from modules.reconciliation.models import PaymentDeadLetter
from modules.workflow.constants import EntityKind, OrderStatus, PaymentStatus
from modules.workflow.models import TransitionRecord
from modules.workflow.repositories.django_repository import DjangoStateStore

pytestmark = pytest.mark.integration


class TestSignature:
    def test_missing_signature(self, api_client, make_order, adopter):
        order = make_order(adopter.id)

        response = api_client.post(
            f"/api/v1/orders/{order.id}/payment-callback/",
            {"outcome": "PAID"},
            format="json",
        )

        assert response.status_code == 403
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PENDING

    def test_wrong_secret(self, signed_callback, make_order, adopter):
        order = make_order(adopter.id)

        response = signed_callback(order.id, "PAID", secret="attacker-secret")

        assert response.status_code == 403

    def test_unconfigured_secret_refuses_everything(
        self, signed_callback, make_order, adopter, settings
    ):
        order = make_order(adopter.id)
        settings.PAYMENT_WEBHOOK_SECRET = ""

        response = signed_callback(order.id, "PAID", secret="")

        assert response.status_code == 403

    def test_bearer_token_not_required(self, signed_callback, make_order, adopter):
        order = make_order(adopter.id)

        assert signed_callback(order.id, "PAID").status_code == 200


class TestValidation:
    def test_unknown_order(self, signed_callback):
        response = signed_callback(uuid4(), "PAID")

        assert response.status_code == 404

    @pytest.mark.parametrize("outcome", ["CANCELLED", "PENDING", "REFUNDED"])
    def test_invalid_outcome(self, signed_callback, make_order, adopter, outcome):
        order = make_order(adopter.id)

        response = signed_callback(order.id, outcome)

        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "outcome"


class TestReconciliation:
    @pytest.mark.parametrize("outcome", [PaymentStatus.PAID, PaymentStatus.FAILED])
    def test_outcome_applied(self, signed_callback, make_order, adopter, outcome):
        order = make_order(adopter.id)

        response = signed_callback(order.id, outcome)

        assert response.status_code == 200
        assert response.json() == {
            "status": "accepted",
            "order_id": str(order.id),
            "outcome": outcome,
        }
        order.refresh_from_db()
        assert order.payment_status == outcome
        assert order.status == OrderStatus.PENDING
        assert order.version == 1
        assert order.payment_resolved_at is not None

        record = TransitionRecord.objects.get(
            entity_kind=EntityKind.ORDER_PAYMENT, entity_id=order.id
        )
        assert record.actor_role == Role.SYSTEM

    def test_repeated_callback_is_acknowledged(self, signed_callback, make_order, adopter):
        order = make_order(adopter.id)
        signed_callback(order.id, "PAID")

        response = signed_callback(order.id, "PAID")

        assert response.status_code == 200
        assert response.json()["status"] == "already_applied"
        order.refresh_from_db()
        assert order.version == 1
        assert TransitionRecord.objects.filter(entity_id=order.id).count() == 1

    def test_failed_then_paid_is_rejected(self, signed_callback, make_order, adopter):
        order = make_order(adopter.id)
        signed_callback(order.id, "FAILED")

        response = signed_callback(order.id, "PAID")

        assert response.status_code == 200
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.FAILED
        assert order.version == 1

        letter = PaymentDeadLetter.objects.get(order_id=order.id)
        assert letter.attempted_outcome == PaymentStatus.PAID
        assert letter.reason == DeadLetterReason.REJECTED
        assert letter.error_type == "IllegalTransition"
        assert letter.attempts == 1

    def test_paid_order_already_shipped(self, signed_callback, make_order, adopter):
        order = make_order(adopter.id, status=OrderStatus.SHIPPING, version=2)

        signed_callback(order.id, "PAID")

        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PAID
        assert order.status == OrderStatus.SHIPPING
        assert order.version == 3

    def test_transient_failures_exhaust_retries(
        self, signed_callback, make_order, adopter, settings
    ):
        order = make_order(adopter.id)

        with patch.object(
            DjangoStateStore,
            "compare_and_set",
            side_effect=OperationalError("could not connect to server"),
        ) as compare_and_set:
            response = signed_callback(order.id, "PAID")

        assert response.status_code == 200
        assert compare_and_set.call_count == settings.RECONCILIATION_MAX_ATTEMPTS
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PENDING

        letter = PaymentDeadLetter.objects.get(order_id=order.id)
        assert letter.reason == DeadLetterReason.RETRIES_EXHAUSTED
        assert letter.attempts == settings.RECONCILIATION_MAX_ATTEMPTS
        assert letter.error_type == "TransientError"

    def test_transient_failure_then_success(self, signed_callback, make_order, adopter):
        order = make_order(adopter.id)
        real_compare_and_set = DjangoStateStore.compare_and_set
        calls = []

        def flaky(store, *args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise OperationalError("connection reset")
            return real_compare_and_set(store, *args, **kwargs)

        with patch.object(DjangoStateStore, "compare_and_set", autospec=True, side_effect=flaky):
            signed_callback(order.id, "PAID")

        assert len(calls) == 2
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PAID
        assert not PaymentDeadLetter.objects.exists()

    def test_broker_unavailable(self, signed_callback, make_order, adopter):
        order = make_order(adopter.id)

        with patch(
            "modules.reconciliation.tasks.reconcile_order_payment.apply_async",
            side_effect=KombuOperationalError("Error 111 connecting to redis"),
        ):
            response = signed_callback(order.id, "PAID")

        assert response.status_code == 503
        assert response.json()["errors"][0]["code"] == "transient_error"
