"""
Hotspot map markers.

- GET /mapmarkers: any logged-in user.
- POST /addmarkers: managers and admins only.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from covidwatch.api.deps import AuthPipeline, RequestContext, get_db
from covidwatch.core.rate_limit import LimitClass
from covidwatch.schemas.forms import MarkerForm
from covidwatch.schemas.marker import MarkerCreated, MarkerRead
from covidwatch.services.markers import create_marker, list_markers

router = APIRouter(tags=["markers"])

MARKER_ROLES = ("manager", "admin")


@router.get("/mapmarkers", response_model=list[MarkerRead])
async def get_markers(
    _ctx: RequestContext = Depends(AuthPipeline(limit=LimitClass.API, auth=True)),
    db: AsyncSession = Depends(get_db),
) -> list[MarkerRead]:
    return [MarkerRead.model_validate(m) for m in await list_markers(db)]


@router.post("/addmarkers", response_model=MarkerCreated, status_code=status.HTTP_201_CREATED)
async def add_marker(
    ctx: RequestContext = Depends(
        AuthPipeline(limit=LimitClass.WRITE, form=MarkerForm, roles=MARKER_ROLES)
    ),
    db: AsyncSession = Depends(get_db),
) -> MarkerCreated:
    """Place a hotspot marker."""
    marker = await create_marker(
        db, ctx.form.longitude, ctx.form.latitude, ctx.user.username
    )
    return MarkerCreated(id=marker.id, longitude=marker.longitude, latitude=marker.latitude)
