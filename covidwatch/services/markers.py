"""Hotspot map-marker persistence."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from covidwatch.core.exceptions import StoreError
from covidwatch.models.map_marker import MapMarker

logger = logging.getLogger(__name__)


async def list_markers(session: AsyncSession) -> list[MapMarker]:
    try:
        result = await session.execute(select(MapMarker).order_by(MapMarker.id))
    except SQLAlchemyError as exc:
        raise StoreError() from exc
    return list(result.scalars().all())


async def create_marker(
    session: AsyncSession, longitude: float, latitude: float, created_by: str
) -> MapMarker:
    marker = MapMarker(longitude=longitude, latitude=latitude, created_by=created_by)
    session.add(marker)
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StoreError() from exc
    await session.refresh(marker)
    logger.info("Marker %d added by '%s' at (%s, %s)", marker.id, created_by, longitude, latitude)
    return marker
