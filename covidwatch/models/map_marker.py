"""
Map marker model — a hotspot placed by a manager or admin.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String

from covidwatch.db.base import Base


class MapMarker(Base):
    __tablename__ = "mapmarkers"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    longitude: float = Column(Float, nullable=False)  # type: ignore[assignment]
    latitude: float = Column(Float, nullable=False)  # type: ignore[assignment]
    created_by: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
