"""Common dependencies for API routes.

Collaborators are constructed once by the application factory and kept on
``app.state``; handlers receive them through these dependencies so tests can
swap any of them.
"""
from __future__ import annotations

from fastapi import Request

from votebox.core.config import Settings
from votebox.identity import IdentityVerifier
from votebox.services.linkedin import LinkedInClient
from votebox.services.voting import RetryPolicy
from votebox.store import VoteStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> VoteStore:
    return request.app.state.store


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity


def get_linkedin_client(request: Request) -> LinkedInClient:
    return request.app.state.linkedin


def get_retry_policy(request: Request) -> RetryPolicy:
    return RetryPolicy.from_settings(request.app.state.settings)


__all__ = [
    "get_app_settings",
    "get_identity_verifier",
    "get_linkedin_client",
    "get_retry_policy",
    "get_store",
]
