# Overview: Service-layer operations for bearer-token identity; resolves callers to owners.

"""
Identity Guard

WHY: Every catalog and ledger call is scoped to an owner. This module turns
an inbound bearer token into that owner, or refuses.

SECURITY FEATURES:
- Signed JWTs (HS256 by default), verified against a configured secret
- Expiry enforced by PyJWT (exp claim is required)
- Subject must still resolve to a User: deleting the user revokes its tokens
- Three internal failure kinds (missing / invalid-or-expired / unknown user),
  one caller-visible outcome; the kind is only written to the audit trail
- No compiled-in secret: TokenSettings is built from app config and
  create_app refuses to start without JWT_SECRET_KEY
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from ..extensions import db
from ..models import User
from .security_service import log_security_event


class AuthenticationError(Exception):
    """Caller is not authenticated. Subclasses exist for diagnostics only."""

    # Stable caller-facing message shared by every subclass
    public_message = "Authentication required"


class MissingTokenError(AuthenticationError):
    """No credential was presented at all."""


class InvalidTokenError(AuthenticationError):
    """Signature, structure or expiry check failed."""


class IdentityNotFoundError(AuthenticationError):
    """Token is valid but its subject no longer exists."""


@dataclass(frozen=True)
class TokenSettings:
    secret: str
    algorithm: str = "HS256"
    expires_minutes: int = 1440

    def __post_init__(self):
        if not self.secret:
            raise ValueError("Token secret must be configured")
        if self.expires_minutes < 1:
            raise ValueError("expires_minutes must be >= 1")


@dataclass(frozen=True)
class OwnerIdentity:
    """
    Resolved caller identity.

    user_id is the scoping key for every catalog and ledger call made
    during the request.
    """
    user_id: int
    email: str


class IdentityGuard:
    """Validates bearer tokens and mints new ones with one fixed configuration."""

    def __init__(self, settings: TokenSettings):
        self.settings = settings

    def issue_token(self, user: User, expires_delta: timedelta | None = None) -> str:
        """
        Create a signed access token for `user`.

        The subject is the user id as a string (RFC 7519 requires a string sub).
        """
        now = datetime.now(timezone.utc)
        expires = now + (expires_delta or timedelta(minutes=self.settings.expires_minutes))
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "iat": now,
            "exp": expires,
        }
        return jwt.encode(payload, self.settings.secret, algorithm=self.settings.algorithm)

    def authenticate(self, raw_token: str | None) -> OwnerIdentity:
        """
        Resolve a raw bearer token to an OwnerIdentity.

        Every outcome is written to the security audit trail.

        Raises:
            MissingTokenError: raw_token is None
            InvalidTokenError: bad signature, malformed, expired or bad subject
            IdentityNotFoundError: subject does not resolve to a user
        """
        try:
            identity = self._resolve(raw_token)
        except AuthenticationError as exc:
            log_security_event(
                user_id=getattr(exc, "user_id", None),
                event_type="AUTH_FAILED",
                success=False,
                reason=f"{type(exc).__name__}: {exc}",
            )
            raise

        log_security_event(
            user_id=identity.user_id,
            event_type="AUTH_SUCCEEDED",
            success=True,
        )
        return identity

    def _resolve(self, raw_token: str | None) -> OwnerIdentity:
        if raw_token is None:
            raise MissingTokenError("No bearer token presented")

        try:
            payload = jwt.decode(
                raw_token,
                self.settings.secret,
                algorithms=[self.settings.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token expired")
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError(f"Token rejected: {exc}")

        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError):
            raise InvalidTokenError("Token subject is not a user id")

        user = db.session.get(User, user_id)
        if user is None:
            exc = IdentityNotFoundError(f"User {user_id} no longer exists")
            exc.user_id = user_id
            raise exc

        return OwnerIdentity(user_id=user.id, email=user.email)
