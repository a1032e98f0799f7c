"""Bearer authentication dependencies and the LinkedIn login flow."""
from __future__ import annotations

import json
import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from votebox.api.deps import get_app_settings, get_identity_verifier, get_linkedin_client
from votebox.core.config import Settings
from votebox.identity import (
    DISPLAY_NAME_CLAIM,
    EMAIL_CLAIM,
    IdentityError,
    IdentityVerifier,
    InvalidCredentialError,
    Principal,
)
from votebox.services.linkedin import LinkedInClient, LinkedInError, LinkedInNotConfiguredError

logger = logging.getLogger(__name__)

router = APIRouter()
security_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
    identity: IdentityVerifier = Depends(get_identity_verifier),
) -> Principal:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        principal = identity.verify(credentials.credentials)
    except InvalidCredentialError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    except IdentityError as exc:
        logger.error("Identity verification unavailable: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Identity provider unavailable",
        ) from exc

    request.state.actor_uid = principal.uid
    return principal


def require_admin(user: Principal = Depends(get_current_user)) -> Principal:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied (Admin only)")
    return user


def _token_handoff_page(token: str, target_origin: str) -> HTMLResponse:
    """Page that hands the credential to the window that opened the login popup."""

    nonce = secrets.token_urlsafe(16)
    message = json.dumps({"firebaseToken": token}).replace("</", "<\\/")
    origin = json.dumps(target_origin).replace("</", "<\\/")
    content = (
        "<!DOCTYPE html>\n"
        "<html><head><meta charset=\"utf-8\"><title>Signing in</title></head><body>\n"
        f"<script nonce=\"{nonce}\">\n"
        f"  window.opener.postMessage({message}, {origin});\n"
        "  window.close();\n"
        "</script>\n"
        "</body></html>\n"
    )
    return HTMLResponse(
        content=content,
        headers={
            "Content-Security-Policy": f"default-src 'none'; script-src 'nonce-{nonce}'",
            # the popup must keep its opener reference across origins
            "Cross-Origin-Opener-Policy": "unsafe-none",
            "Cache-Control": "no-store",
        },
    )


@router.get("/auth/linkedin", summary="Start LinkedIn login")
def linkedin_login(linkedin: LinkedInClient = Depends(get_linkedin_client)) -> RedirectResponse:
    try:
        url = linkedin.authorization_url()
    except LinkedInNotConfiguredError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="LinkedIn login is not configured",
        ) from exc
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.get("/auth/linkedin/callback", summary="Complete LinkedIn login", response_class=HTMLResponse)
def linkedin_callback(
    code: str | None = None,
    error: str | None = None,
    linkedin: LinkedInClient = Depends(get_linkedin_client),
    identity: IdentityVerifier = Depends(get_identity_verifier),
    settings: Settings = Depends(get_app_settings),
):
    if error:
        logger.info("LinkedIn login denied: %s", error)
        return PlainTextResponse("LinkedIn login was not authorised", status_code=status.HTTP_400_BAD_REQUEST)
    if not code:
        return PlainTextResponse("No code received from LinkedIn", status_code=status.HTTP_400_BAD_REQUEST)

    try:
        profile = linkedin.authenticate(code)
        claims: dict[str, str] = {DISPLAY_NAME_CLAIM: profile.display_name or "Anonymous"}
        if profile.email:
            claims[EMAIL_CLAIM] = profile.email
        token = identity.mint_token(profile.subject_id, claims)
    except (LinkedInError, IdentityError):
        logger.exception("LinkedIn login failed")
        return PlainTextResponse("LinkedIn login failed", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info("LinkedIn login succeeded for %s", profile.subject_id)
    return _token_handoff_page(token, settings.oauth_post_message_origin)


__all__ = ["get_current_user", "linkedin_callback", "linkedin_login", "require_admin", "router"]
