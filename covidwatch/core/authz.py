"""
Authorization guard — allow/deny from the session snapshot alone.

Never consults the database: a role change takes effect at next login.
"""

from __future__ import annotations

from collections.abc import Collection

from covidwatch.core.exceptions import AuthenticationError, AuthorizationError
from covidwatch.schemas.user import SessionUser


def require_auth(user: SessionUser | None) -> SessionUser:
    if user is None:
        raise AuthenticationError("Authentication required")
    return user


def require_role(user: SessionUser | None, allowed_roles: Collection[str]) -> SessionUser:
    """401 when anonymous, 403 when the role is not in ``allowed_roles``."""
    user = require_auth(user)
    if user.role not in allowed_roles:
        raise AuthorizationError("Insufficient privileges")
    return user
