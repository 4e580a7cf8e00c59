"""
FastAPI dependencies — database session, session user and the auth
pipeline that fronts every sensitive route.
"""

from collections.abc import AsyncGenerator, Collection
from dataclasses import dataclass
from typing import Any

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from covidwatch.core.authz import require_auth, require_role
from covidwatch.core.exceptions import ClientInputError, RateLimitError
from covidwatch.core.rate_limit import LimitClass, RateLimiter, client_key
from covidwatch.core.sessions import SessionManager, read_session_id
from covidwatch.core.validation import RequestForm, parse_form, reject_unexpected_fields
from covidwatch.db.session import async_session_factory
from covidwatch.schemas.user import SessionUser

_UNRESOLVED = object()


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── App-scoped services ─────────────────────────────────────────────
def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


async def get_session_user(request: Request) -> SessionUser | None:
    """Resolve the cookie to a session snapshot (``None`` when anonymous)."""
    cached = getattr(request.state, "session_user", _UNRESOLVED)
    if cached is not _UNRESOLVED:
        return cached
    user = None
    session_id = read_session_id(request)
    if session_id is not None:
        user = await get_session_manager(request).get(session_id)
    request.state.session_user = user
    return user


async def get_current_user(request: Request) -> SessionUser:
    return require_auth(await get_session_user(request))


# ── Auth pipeline ───────────────────────────────────────────────────
@dataclass
class RequestContext:
    form: Any = None
    user: SessionUser | None = None


async def _read_json_object(request: Request) -> dict[str, Any]:
    if not (await request.body()).strip():
        return {}
    try:
        data = await request.json()
    except ValueError as exc:
        raise ClientInputError("Malformed JSON body") from exc
    if not isinstance(data, dict):
        raise ClientInputError("Request body must be a JSON object")
    return data


class AuthPipeline:
    """Route dependency running the fixed stage order:

    rate limit -> unexpected-field rejection -> validation -> guard.

    Any stage that fails raises, which short-circuits the later ones.
    """

    def __init__(
        self,
        *,
        limit: LimitClass | None = None,
        form: type[RequestForm] | None = None,
        auth: bool = False,
        roles: Collection[str] | None = None,
    ) -> None:
        self.limit = limit
        self.form = form
        self.auth = auth or roles is not None
        self.roles = frozenset(roles) if roles is not None else None

    async def __call__(self, request: Request) -> RequestContext:
        user = await get_session_user(request)

        if self.limit is not None:
            key = client_key(request, self.limit, user.id if user else None)
            decision = await get_rate_limiter(request).check(key, self.limit)
            if not decision.allowed:
                raise RateLimitError(decision.retry_after)

        form = None
        if self.form is not None:
            raw = await _read_json_object(request)
            reject_unexpected_fields(self.form, raw)
            form = parse_form(self.form, raw)

        if self.roles is not None:
            user = require_role(user, self.roles)
        elif self.auth:
            user = require_auth(user)

        return RequestContext(form=form, user=user)
