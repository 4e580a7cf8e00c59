"""
Server-side sessions.

A session maps an unguessable id to a ``SessionUser`` snapshot in the
key-value store.  Only the signed id travels to the client (cookie); the
snapshot never leaves the server.  Sessions expire a fixed TTL after
creation; reads do not extend them.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import Request, Response
from pydantic import ValidationError

from covidwatch.core.config import settings
from covidwatch.core.kv import KeyValueStore
from covidwatch.core.security import sign_session_id, unsign_session_id
from covidwatch.schemas.user import SessionUser

logger = logging.getLogger(__name__)

_KEY_PREFIX = "session:"


class SessionManager:
    def __init__(self, store: KeyValueStore, ttl_seconds: int) -> None:
        self._store = store
        self.ttl_seconds = ttl_seconds

    async def create(self, user: SessionUser) -> str:
        session_id = secrets.token_urlsafe(32)
        await self._store.set(
            _KEY_PREFIX + session_id, user.model_dump_json(), self.ttl_seconds
        )
        return session_id

    async def get(self, session_id: str) -> SessionUser | None:
        raw = await self._store.get(_KEY_PREFIX + session_id)
        if raw is None:
            return None
        try:
            return SessionUser.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable session payload")
            await self.destroy(session_id)
            return None

    async def destroy(self, session_id: str) -> None:
        await self._store.delete(_KEY_PREFIX + session_id)


# ── Cookie helpers ──────────────────────────────────────────────────
def read_session_id(request: Request) -> str | None:
    cookie = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not cookie:
        return None
    return unsign_session_id(cookie)


def set_session_cookie(response: Response, session_id: str, max_age: int) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=sign_session_id(session_id),
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=max_age,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        settings.SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
