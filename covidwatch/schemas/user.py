"""Pydantic models for users and the session snapshot."""

from __future__ import annotations

from pydantic import BaseModel

VALID_ROLES = frozenset({"user", "manager", "admin"})
SIGNUP_ROLES = ("user", "manager")


class SessionUser(BaseModel):
    """Subset of the user record copied into the session at login.

    The password hash is deliberately absent.
    """

    id: int
    given_name: str
    family_name: str
    username: str
    email: str
    role: str

    model_config = {"from_attributes": True, "frozen": True}


class LoginResponse(BaseModel):
    username: str
    user_type: str


class MessageResponse(BaseModel):
    message: str
    success: bool = True
