"""Bearer credential verification and admin claim management."""
from __future__ import annotations

from datetime import timedelta

from votebox.core.config import Settings
from votebox.identity.base import (
    ADMIN_CLAIM,
    DISPLAY_NAME_CLAIM,
    EMAIL_CLAIM,
    IdentityError,
    IdentityVerifier,
    InvalidCredentialError,
    Principal,
    UnknownSubjectError,
)
from votebox.identity.jwt import AdminRegistry, JwtIdentityVerifier


def build_identity_verifier(settings: Settings) -> IdentityVerifier:
    """Construct the verifier selected by ``IDENTITY_BACKEND``."""

    if settings.identity_backend == "jwt":
        return JwtIdentityVerifier(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expires_in=timedelta(minutes=settings.access_token_expire_minutes),
            admins=AdminRegistry(settings.admin_uids),
        )

    from votebox.core.firebase import get_firebase_app
    from votebox.identity.firebase import FirebaseIdentityVerifier

    return FirebaseIdentityVerifier(get_firebase_app(settings))


__all__ = [
    "ADMIN_CLAIM",
    "AdminRegistry",
    "DISPLAY_NAME_CLAIM",
    "EMAIL_CLAIM",
    "IdentityError",
    "IdentityVerifier",
    "InvalidCredentialError",
    "JwtIdentityVerifier",
    "Principal",
    "UnknownSubjectError",
    "build_identity_verifier",
]
