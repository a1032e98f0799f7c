"""Identity verifier contract."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

DISPLAY_NAME_CLAIM = "displayName"
EMAIL_CLAIM = "email"
ADMIN_CLAIM = "admin"


class IdentityError(RuntimeError):
    """Base exception for identity platform failures."""


class InvalidCredentialError(IdentityError):
    """Raised when a bearer credential is malformed, expired or revoked."""


class UnknownSubjectError(IdentityError):
    """Raised when an administrative call names a subject the platform does not know."""


@dataclass(slots=True, frozen=True)
class Principal:
    """A verified caller."""

    uid: str
    name: str | None = None
    email: str | None = None
    is_admin: bool = False
    claims: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_claims(cls, uid: str, claims: Mapping[str, Any]) -> Principal:
        return cls(
            uid=uid,
            name=claims.get(DISPLAY_NAME_CLAIM) or claims.get("name"),
            email=claims.get(EMAIL_CLAIM),
            is_admin=claims.get(ADMIN_CLAIM) is True,
            claims=dict(claims),
        )


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> Principal:
        """Return the principal for ``token`` or raise ``InvalidCredentialError``."""
        ...

    def mint_token(self, uid: str, claims: Mapping[str, Any]) -> str:
        """Issue an application credential for ``uid`` carrying ``claims``."""
        ...

    def grant_admin(self, uid: str) -> None:
        """Set the admin claim on ``uid``, keeping its other claims."""
        ...


__all__ = [
    "ADMIN_CLAIM",
    "DISPLAY_NAME_CLAIM",
    "EMAIL_CLAIM",
    "IdentityError",
    "IdentityVerifier",
    "InvalidCredentialError",
    "Principal",
    "UnknownSubjectError",
]
