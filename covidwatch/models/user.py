"""
User model — credentials & role-based access control.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from covidwatch.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    given_name: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    family_name: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    username: str = Column(String(30), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    email: str = Column(String(254), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    # bcrypt, or a legacy 64-char SHA-256 hex digest awaiting migration
    password_hash: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="user",
        server_default="user",
    )  # user | manager | admin
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
