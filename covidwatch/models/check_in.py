"""
Check-in model — one venue visit, owned by a username.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Time

from covidwatch.db.base import Base


class CheckIn(Base):
    __tablename__ = "check_ins"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    check_in_code: str = Column(String(10), nullable=False)  # type: ignore[assignment]
    date_: date = Column(Date, nullable=False)  # type: ignore[assignment]
    time_: time = Column(Time, nullable=False)  # type: ignore[assignment]
    username: str = Column(  # type: ignore[assignment]
        String(30),
        ForeignKey("users.username", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
