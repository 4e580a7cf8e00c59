"""
Account & check-in endpoints — login, logout, signup, check-in, history.

Login and signup sit behind the ``auth`` rate limit; check-in behind the
``write`` limit.  Credential failures always return the same generic
message so the response does not reveal which part was wrong.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from covidwatch.api.deps import AuthPipeline, RequestContext, get_db, get_session_manager
from covidwatch.core.exceptions import AuthenticationError, StoreError
from covidwatch.core.rate_limit import LimitClass
from covidwatch.core.security import aget_password_hash, averify_and_update
from covidwatch.core.sessions import (
    SessionManager,
    clear_session_cookie,
    read_session_id,
    set_session_cookie,
)
from covidwatch.schemas.forms import CheckInForm, LoginForm, SignupForm
from covidwatch.schemas.check_in import CheckInRead
from covidwatch.schemas.user import LoginResponse, MessageResponse, SessionUser
from covidwatch.services.check_ins import create_check_in, list_check_ins
from covidwatch.services.users import create_user, get_user_by_username, update_password_hash

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)

_INVALID_CREDENTIALS = "Invalid username or password"


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    response: Response,
    ctx: RequestContext = Depends(
        AuthPipeline(limit=LimitClass.AUTH, form=LoginForm)
    ),
    db: AsyncSession = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
) -> LoginResponse:
    """Verify credentials, migrate legacy hashes, start a session cookie."""
    form = ctx.form
    username = form.user
    user = await get_user_by_username(db, username)

    matched, new_hash = await averify_and_update(
        form.password, user.password_hash if user else None
    )
    if user is None or not matched:
        logger.info("Failed login for '%s'", username)
        raise AuthenticationError(_INVALID_CREDENTIALS)

    # Snapshot before any write: a failed rewrite rolls back and expires `user`.
    snapshot = SessionUser.model_validate(user)

    if new_hash is not None:
        try:
            await update_password_hash(db, snapshot.id, new_hash)
            logger.info("Migrated legacy password hash for '%s'", snapshot.username)
        except StoreError as exc:
            logger.warning(
                "Could not migrate password hash for '%s': %s",
                snapshot.username,
                exc.__cause__ or exc,
            )

    previous = read_session_id(request)
    if previous is not None:
        await sessions.destroy(previous)
    session_id = await sessions.create(snapshot)
    set_session_cookie(response, session_id, sessions.ttl_seconds)

    logger.info("User '%s' logged in", snapshot.username)
    return LoginResponse(username=snapshot.username, user_type=snapshot.role)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    sessions: SessionManager = Depends(get_session_manager),
) -> MessageResponse:
    """Destroy the server-side session and clear the cookie."""
    session_id = read_session_id(request)
    if session_id is not None:
        await sessions.destroy(session_id)
    clear_session_cookie(response)
    return MessageResponse(message="Logged out")


@router.post("/signup", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    ctx: RequestContext = Depends(
        AuthPipeline(limit=LimitClass.AUTH, form=SignupForm)
    ),
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """Register a ``user`` or ``manager`` account."""
    form = ctx.form
    user = await create_user(
        db,
        username=form.user,
        email=form.email,
        password_hash=await aget_password_hash(form.password),
        given_name=form.given_name,
        family_name=form.family_name,
        role=form.user_type,
    )
    return LoginResponse(username=user.username, user_type=user.role)


@router.post("/check_in", response_model=CheckInRead, status_code=status.HTTP_201_CREATED)
async def check_in(
    ctx: RequestContext = Depends(
        AuthPipeline(limit=LimitClass.WRITE, form=CheckInForm, auth=True)
    ),
    db: AsyncSession = Depends(get_db),
) -> CheckInRead:
    """Record a venue check-in owned by the logged-in user."""
    record = await create_check_in(
        db,
        ctx.form.check_in_code,
        ctx.form.date_,
        ctx.form.time_,
        ctx.user.username,
    )
    return CheckInRead.model_validate(record)


@router.post("/history", response_model=list[CheckInRead])
async def history(
    ctx: RequestContext = Depends(AuthPipeline(limit=LimitClass.API, auth=True)),
    db: AsyncSession = Depends(get_db),
) -> list[CheckInRead]:
    """The logged-in user's check-ins, newest first."""
    records = await list_check_ins(db, ctx.user.username)
    return [CheckInRead.model_validate(r) for r in records]
