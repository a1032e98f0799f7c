"""Self-contained identity backend issuing and verifying signed JWTs."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Literal
from uuid import uuid4

from jose import JWTError, jwt  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, ValidationError

from votebox.identity.base import ADMIN_CLAIM, InvalidCredentialError, Principal

logger = logging.getLogger(__name__)

_RESERVED_CLAIMS = {"sub", "iat", "exp", "jti", "type", ADMIN_CLAIM}


class TokenPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    sub: str
    type: Literal["access"]
    iat: datetime
    exp: datetime
    jti: str


class AdminRegistry:
    """In-memory set of subjects holding the admin claim."""

    def __init__(self, initial: Iterable[str] = ()) -> None:
        self._admins: set[str] = set(initial)
        self._lock = Lock()

    def grant(self, uid: str) -> None:
        with self._lock:
            self._admins.add(uid)

    def is_admin(self, uid: str) -> bool:
        with self._lock:
            return uid in self._admins

    def reset(self) -> None:
        with self._lock:
            self._admins.clear()


class JwtIdentityVerifier:
    """Mints access tokens for a subject and verifies them.

    Admin grants take effect on the next verified request, without
    re-issuing tokens, by consulting the ``AdminRegistry``.
    """

    def __init__(
        self,
        *,
        secret: str,
        algorithm: str = "HS256",
        expires_in: timedelta = timedelta(minutes=60),
        admins: AdminRegistry | None = None,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._expires_in = expires_in
        self.admins = admins or AdminRegistry()

    def mint_token(self, uid: str, claims: Mapping[str, Any]) -> str:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {key: value for key, value in claims.items() if key not in _RESERVED_CLAIMS}
        payload.update(
            {
                "sub": uid,
                "iat": int(now.timestamp()),
                "exp": int((now + self._expires_in).timestamp()),
                "type": "access",
                "jti": uuid4().hex,
            }
        )
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            raise InvalidCredentialError("Invalid or expired token") from exc
        try:
            validated = TokenPayload(**payload)
        except ValidationError as exc:
            raise InvalidCredentialError("Invalid token") from exc

        claims = dict(payload)
        claims[ADMIN_CLAIM] = self.admins.is_admin(validated.sub)
        return Principal.from_claims(validated.sub, claims)

    def grant_admin(self, uid: str) -> None:
        self.admins.grant(uid)
        logger.info("Granted admin claim to %s", uid)


__all__ = ["AdminRegistry", "JwtIdentityVerifier", "TokenPayload"]
