from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import jwt
import pytest
from django.conf import settings
from django.core.cache import cache

from rest_framework.test import APIClient

from modules.adoptions.models import AdoptionCase
from modules.core.authentication import IdentityUser
from modules.core.identity import Actor, Role
from modules.listings.constants import AnimalCategory, AnimalGender
from modules.listings.models import Listing
from modules.orders.models import Order
from modules.reconciliation.signing import compute_signature
from modules.workflow.constants import ListingStatus


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------


def make_actor(role: str) -> Actor:
    return Actor(id=uuid4(), role=role)


@pytest.fixture()
def shelter():
    return make_actor(Role.SHELTER)


@pytest.fixture()
def other_shelter():
    return make_actor(Role.SHELTER)


@pytest.fixture()
def adopter():
    return make_actor(Role.USER)


@pytest.fixture()
def other_user():
    return make_actor(Role.USER)


@pytest.fixture()
def admin():
    return make_actor(Role.ADMIN)


@pytest.fixture()
def staff():
    return make_actor(Role.STAFF)


@pytest.fixture()
def sponsor():
    return make_actor(Role.SPONSOR)


@pytest.fixture()
def client_for():
    """Factory returning an APIClient force-authenticated as *actor*."""

    def _client(actor: Actor) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=IdentityUser(actor))
        return client

    return _client


@pytest.fixture()
def make_token():
    """Factory minting identity tokens signed with the configured key."""

    def _token(sub: str, role: str, expires_in: int = 300, **claims) -> str:
        payload = {
            "sub": sub,
            "role": role,
            "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
            **claims,
        }
        return jwt.encode(
            payload,
            settings.IDENTITY_JWT_SIGNING_KEY,
            algorithm=settings.IDENTITY_JWT_ALGORITHM,
        )

    return _token


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_listing():
    def _listing(shelter_id, status=ListingStatus.AVAILABLE, **overrides) -> Listing:
        data = {
            "shelter_id": shelter_id,
            "name": "Bolt",
            "category": AnimalCategory.DOG,
            "breed": "Beagle",
            "age": 3,
            "gender": AnimalGender.MALE,
            "status": status,
        }
        data.update(overrides)
        return Listing.objects.create(**data)

    return _listing


@pytest.fixture()
def make_case():
    def _case(listing: Listing, requester_id, **overrides) -> AdoptionCase:
        data = {
            "listing": listing,
            "requester_id": requester_id,
            "shelter_id": listing.shelter_id,
        }
        data.update(overrides)
        return AdoptionCase.objects.create(**data)

    return _case


@pytest.fixture()
def make_order():
    def _order(user_id, **overrides) -> Order:
        data = {
            "user_id": user_id,
            "total_amount": Decimal("49.90"),
            "shipping_address": "1 Shelter Lane",
        }
        data.update(overrides)
        return Order.objects.create(**data)

    return _order


# ---------------------------------------------------------------------------
# Payment callbacks
# ---------------------------------------------------------------------------


@pytest.fixture()
def signed_callback(api_client):
    """POST a callback body signed with the configured webhook secret."""

    def _post(order_id, outcome: str, secret: str | None = None, signature=None):
        body = json.dumps({"outcome": outcome}).encode("utf-8")
        if signature is None:
            signature = compute_signature(
                body, secret if secret is not None else settings.PAYMENT_WEBHOOK_SECRET
            )
        return api_client.post(
            f"/api/v1/orders/{order_id}/payment-callback/",
            data=body,
            content_type="application/json",
            HTTP_X_PAYMENT_SIGNATURE=signature,
        )

    return _post
