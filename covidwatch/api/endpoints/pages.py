"""
Session status & profile endpoints used by the front-end pages.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, RedirectResponse

from covidwatch.api.deps import get_current_user, get_session_user
from covidwatch.schemas.user import SessionUser

router = APIRouter(tags=["pages"])

_ACCOUNT_PAGES = {
    "user": "/user.html",
    "manager": "/manager.html",
    "admin": "/admin.html",
}


@router.get("/header", response_class=PlainTextResponse)
async def header(user: SessionUser | None = Depends(get_session_user)) -> str:
    """``in`` when a session is active, otherwise ``out``."""
    return "in" if user is not None else "out"


@router.get("/home")
async def home() -> RedirectResponse:
    return RedirectResponse("/", status_code=302)


@router.get("/account")
async def account(user: SessionUser | None = Depends(get_session_user)) -> RedirectResponse:
    """Send the browser to the dashboard matching the session's role."""
    if user is None:
        return RedirectResponse("/login.html", status_code=302)
    return RedirectResponse(_ACCOUNT_PAGES.get(user.role, "/"), status_code=302)


@router.get("/username", response_class=PlainTextResponse)
async def username(user: SessionUser = Depends(get_current_user)) -> str:
    return user.username


@router.get("/email", response_class=PlainTextResponse)
async def email(user: SessionUser = Depends(get_current_user)) -> str:
    return user.email
