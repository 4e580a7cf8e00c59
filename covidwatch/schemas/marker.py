"""Pydantic response models for map markers."""

from __future__ import annotations

from pydantic import BaseModel


class MarkerRead(BaseModel):
    longitude: float
    latitude: float

    model_config = {"from_attributes": True}


class MarkerCreated(MarkerRead):
    id: int
    success: bool = True
