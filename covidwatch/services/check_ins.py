"""Check-in persistence.  The owner is always passed in by the caller."""

from __future__ import annotations

from datetime import date, time

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from covidwatch.core.exceptions import StoreError
from covidwatch.models.check_in import CheckIn


async def create_check_in(
    session: AsyncSession, code: str, on: date, at: time, username: str
) -> CheckIn:
    check_in = CheckIn(check_in_code=code, date_=on, time_=at, username=username)
    session.add(check_in)
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StoreError() from exc
    await session.refresh(check_in)
    return check_in


async def list_check_ins(session: AsyncSession, username: str) -> list[CheckIn]:
    """Return ``username``'s check-ins, newest first."""
    try:
        result = await session.execute(
            select(CheckIn)
            .where(CheckIn.username == username)
            .order_by(CheckIn.date_.desc(), CheckIn.time_.desc(), CheckIn.id.desc())
        )
    except SQLAlchemyError as exc:
        raise StoreError() from exc
    return list(result.scalars().all())
