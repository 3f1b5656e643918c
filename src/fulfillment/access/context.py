"""Caller identity — turns a bearer credential into an ``AuthContext``.

Tokens are issued elsewhere; this module only verifies them (PyJWT) and
reads the subject, email and role claims. Configuration comes from the
environment:

    AUTH_JWT_SECRET       verification key (required)
    AUTH_JWT_ALGORITHMS   comma-separated list, default "HS256"
    AUTH_JWT_AUDIENCE     expected ``aud`` claim, optional
    AUTH_JWT_ISSUER       expected ``iss`` claim, optional
"""

import os
from dataclasses import dataclass

import jwt
import structlog

from fulfillment.errors import AuthenticationError

logger = structlog.get_logger(__name__)

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class AuthContext:
    """The verified caller of one request. Never persisted."""

    subject_id: str
    email: str | None = None
    role_claims: tuple[str, ...] = ()

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.role_claims

    @classmethod
    def for_actor(cls, actor_id: str, actor_email: str | None = None, actor_is_admin: bool = False) -> "AuthContext":
        """Rebuild the caller carried on a command."""
        return cls(
            subject_id=actor_id,
            email=actor_email,
            role_claims=(ADMIN_ROLE,) if actor_is_admin else (),
        )


def _role_claims(claims: dict) -> tuple[str, ...]:
    roles = []
    if claims.get("role"):
        roles.append(str(claims["role"]))
    custom = claims.get("customClaims") or {}
    if isinstance(custom, dict) and custom.get("role"):
        roles.append(str(custom["role"]))
    return tuple(roles)


class AuthContextResolver:
    def __init__(
        self,
        secret: str | None,
        algorithms: tuple[str, ...] = ("HS256",),
        audience: str | None = None,
        issuer: str | None = None,
    ) -> None:
        self.secret = secret
        self.algorithms = algorithms
        self.audience = audience
        self.issuer = issuer

    @classmethod
    def from_env(cls) -> "AuthContextResolver":
        algorithms = os.environ.get("AUTH_JWT_ALGORITHMS", "HS256")
        return cls(
            secret=os.environ.get("AUTH_JWT_SECRET"),
            algorithms=tuple(a.strip() for a in algorithms.split(",") if a.strip()),
            audience=os.environ.get("AUTH_JWT_AUDIENCE") or None,
            issuer=os.environ.get("AUTH_JWT_ISSUER") or None,
        )

    def resolve(self, authorization: str | None) -> AuthContext:
        """Verify an ``Authorization`` header value and return the caller.

        Raises ``AuthenticationError`` when the header is missing or not a
        bearer credential, or when the token fails verification.
        """
        if not authorization:
            raise AuthenticationError("Missing Authorization header")
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthenticationError("Authorization header must be a Bearer token")
        if not self.secret:
            logger.error("auth_not_configured", reason="AUTH_JWT_SECRET is not set")
            raise AuthenticationError("Token verification is not configured")

        try:
            claims = jwt.decode(
                token.strip(),
                self.secret,
                algorithms=list(self.algorithms),
                audience=self.audience,
                issuer=self.issuer,
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            logger.info("token_rejected", reason=str(exc))
            raise AuthenticationError(f"Invalid token: {exc}") from exc

        subject_id = claims.get("sub") or claims.get("uid") or claims.get("user_id")
        if not subject_id:
            raise AuthenticationError("Token carries no subject")
        return AuthContext(
            subject_id=str(subject_id),
            email=claims.get("email"),
            role_claims=_role_claims(claims),
        )


_resolver_instance = None


def get_auth_resolver() -> AuthContextResolver:
    """Return the configured resolver (singleton), built from the environment."""
    global _resolver_instance
    if _resolver_instance is None:
        _resolver_instance = AuthContextResolver.from_env()
    return _resolver_instance


def reset_auth_resolver() -> None:
    """Reset the resolver singleton (useful for testing)."""
    global _resolver_instance
    _resolver_instance = None
