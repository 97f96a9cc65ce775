"""Integration tests for rate limiting on the public payment callback."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from rest_framework.throttling import ScopedRateThrottle

from modules.workflow.constants import PaymentStatus

pytestmark = pytest.mark.integration


@pytest.fixture()
def low_callback_rate():
    with patch.object(
        ScopedRateThrottle, "THROTTLE_RATES", {"payment_callback": "3/minute"}
    ):
        yield


def test_payment_callback_is_throttled(low_callback_rate, signed_callback, make_order, adopter):
    order = make_order(adopter.id)

    statuses = [signed_callback(order.id, PaymentStatus.PAID).status_code for _ in range(3)]
    assert statuses == [200, 200, 200]

    response = signed_callback(order.id, PaymentStatus.PAID)
    assert response.status_code == 429
    assert response.json()["errors"][0]["code"] == "throttled"


def test_rejected_signatures_count_against_the_limit(
    low_callback_rate, signed_callback, make_order, adopter
):
    order = make_order(adopter.id)

    for _ in range(3):
        assert signed_callback(order.id, PaymentStatus.PAID, signature="00").status_code == 403

    assert signed_callback(order.id, PaymentStatus.PAID).status_code == 429
