"""Pydantic response models for check-ins."""

from __future__ import annotations

from datetime import date, time

from pydantic import BaseModel


class CheckInRead(BaseModel):
    check_in_code: str
    date_: date
    time_: time

    model_config = {"from_attributes": True}
