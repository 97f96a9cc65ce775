"""Identity-token authentication backend for Django REST Framework.

Tokens are issued by the external Identity Context; this service only
verifies them and turns the ``sub`` / ``role`` claims into an ``Actor``.

Two verification modes, chosen by configuration:

* **Shared key** (default): ``IDENTITY_JWT_ALGORITHM`` (HS256) with
  ``IDENTITY_JWT_SIGNING_KEY``.
* **JWKS**: when ``IDENTITY_JWKS_URL`` is set, the signing key is looked
  up by ``kid`` through ``PyJWKClient`` (keys cached in-memory for 300 s).

Security decisions
------------------
* **Fail Closed**: any decode / validation error returns 401.
* ``algorithms`` is hard-coded to the configured value.  Never derived
  from the incoming token (prevents algorithm-confusion attacks).
* Audience and issuer are validated whenever they are configured.
* A token can never claim the internal ``SYSTEM`` role.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any
from uuid import UUID

import jwt as pyjwt
import structlog
from django.conf import settings
from jwt import PyJWKClient
from jwt.exceptions import PyJWTError
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

from modules.core.identity import EXTERNAL_ROLES, Actor

logger = structlog.get_logger(__name__)


@lru_cache(maxsize=4)
def _jwks_client(url: str) -> PyJWKClient:
    return PyJWKClient(url, cache_jwk_set=True, lifespan=300)


class IdentityUser:
    """Lightweight user object for requests authenticated by identity token.

    The Identity Context is the source of truth; we do **not** require a
    local Django ``User`` row.  Views read ``request.user.actor``.
    """

    # DRF checks
    is_authenticated = True
    is_active = True
    is_anonymous = False

    def __init__(self, actor: Actor, payload: dict[str, Any] | None = None) -> None:
        self.actor = actor
        self.payload = payload or {}

    @property
    def id(self) -> UUID:
        return self.actor.id

    @property
    def pk(self) -> UUID:
        return self.actor.id

    @property
    def role(self) -> str:
        return self.actor.role

    def __str__(self) -> str:  # pragma: no cover
        return str(self.actor)


class IdentityTokenAuthentication(BaseAuthentication):
    """DRF authentication class that validates identity JWT Bearer tokens."""

    keyword = "Bearer"

    # ------------------------------------------------------------------
    # Public API (DRF contract)
    # ------------------------------------------------------------------

    def authenticate(self, request):
        """Return ``(IdentityUser, token)`` or ``None`` (no credentials)."""
        header = request.META.get("HTTP_AUTHORIZATION", "")
        if not header:
            return None

        token = self._extract_token(header)
        payload = self._decode_token(token)
        actor = self._actor_from_claims(payload)

        logger.info("jwt_authenticated", actor_id=str(actor.id), role=actor.role)
        return (IdentityUser(actor, payload), token)

    def authenticate_header(self, request):
        """Value for the ``WWW-Authenticate`` response header on 401."""
        return f'{self.keyword} realm="api"'

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_token(header: str) -> str:
        parts = header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise AuthenticationFailed("Invalid Authorization header format.")
        return parts[1]

    @staticmethod
    def _decode_token(token: str) -> dict[str, Any]:
        algorithm = settings.IDENTITY_JWT_ALGORITHM
        audience = settings.IDENTITY_AUDIENCE or None
        issuer = settings.IDENTITY_ISSUER or None
        try:
            if settings.IDENTITY_JWKS_URL:
                key: Any = (
                    _jwks_client(settings.IDENTITY_JWKS_URL)
                    .get_signing_key_from_jwt(token)
                    .key
                )
            else:
                key = settings.IDENTITY_JWT_SIGNING_KEY
            payload = pyjwt.decode(
                token,
                key,
                algorithms=[algorithm],
                audience=audience,
                issuer=issuer,
                options={
                    "require": ["sub", "exp"],
                    "verify_aud": audience is not None,
                },
            )
        except PyJWTError as exc:
            logger.warning("jwt_validation_failed", error=str(exc))
            raise AuthenticationFailed(f"Token validation failed: {exc}") from exc
        return payload

    @staticmethod
    def _actor_from_claims(payload: dict[str, Any]) -> Actor:
        role = str(payload.get("role", "")).upper()
        if role not in EXTERNAL_ROLES:
            logger.warning("jwt_role_rejected", role=role)
            raise AuthenticationFailed("Token carries no recognised role.")
        try:
            actor_id = UUID(str(payload["sub"]))
        except ValueError as exc:
            raise AuthenticationFailed("Token subject is not a valid identifier.") from exc
        return Actor(id=actor_id, role=role)
