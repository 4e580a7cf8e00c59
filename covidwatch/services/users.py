"""User persistence: lookups, signup inserts and password-hash rewrites."""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from covidwatch.core.exceptions import ConflictError, StoreError
from covidwatch.models.user import User

logger = logging.getLogger(__name__)


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    try:
        result = await session.execute(select(User).where(User.username == username))
    except SQLAlchemyError as exc:
        raise StoreError() from exc
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    try:
        result = await session.execute(select(User).where(User.email == email))
    except SQLAlchemyError as exc:
        raise StoreError() from exc
    return result.scalar_one_or_none()


async def _raise_duplicate(session: AsyncSession, username: str, email: str) -> None:
    if await get_user_by_username(session, username) is not None:
        raise ConflictError("Username already exists")
    if await get_user_by_email(session, email) is not None:
        raise ConflictError("Email already exists")


async def create_user(
    session: AsyncSession,
    *,
    username: str,
    email: str,
    password_hash: str,
    given_name: str,
    family_name: str,
    role: str = "user",
) -> User:
    """Insert a user; duplicate username/email raise ``ConflictError``."""
    await _raise_duplicate(session, username, email)

    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        given_name=given_name,
        family_name=family_name,
        role=role,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent signup for the same name/email.
        await session.rollback()
        await _raise_duplicate(session, username, email)
        raise ConflictError() from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StoreError() from exc
    await session.refresh(user)
    logger.info("Created %s account '%s'", role, username)
    return user


async def update_password_hash(session: AsyncSession, user_id: int, new_hash: str) -> None:
    try:
        await session.execute(
            update(User).where(User.id == user_id).values(password_hash=new_hash)
        )
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StoreError() from exc
