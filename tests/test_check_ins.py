"""Tests for /users/check_in and /users/history."""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from covidwatch.models.check_in import CheckIn


def _check_in(code: str = "AB12", on: date | None = None, at: str = "10:00:00") -> dict:
    return {"check_in": code, "date": (on or date.today()).isoformat(), "time": at}


@pytest.mark.asyncio
async def test_signup_login_check_in_history(async_client: AsyncClient, signup_payload: dict):
    """Full flow: signup, duplicate signup, login, check in, read history."""
    assert (await async_client.post("/users/signup", json=signup_payload)).status_code == 201

    dup = await async_client.post("/users/signup", json=signup_payload)
    assert dup.status_code == 409
    assert dup.json()["detail"] == "Username already exists"

    login = await async_client.post("/users/login", json={"user": "alice_01", "pass": "Abcdef12"})
    assert login.status_code == 200

    today = date.today().isoformat()
    resp = await async_client.post("/users/check_in", json=_check_in())
    assert resp.status_code == 201
    assert resp.json() == {"check_in_code": "AB12", "date_": today, "time_": "10:00:00"}

    history = await async_client.post("/users/history")
    assert history.status_code == 200
    assert history.json() == [{"check_in_code": "AB12", "date_": today, "time_": "10:00:00"}]


@pytest.mark.asyncio
async def test_check_in_requires_session(async_client: AsyncClient):
    resp = await async_client.post("/users/check_in", json=_check_in())
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_history_requires_session(async_client: AsyncClient):
    resp = await async_client.post("/users/history")
    assert resp.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["user", "username"])
async def test_check_in_owner_cannot_be_supplied(
    user_client: AsyncClient, db_session: AsyncSession, field: str
):
    """An owner field in the body is rejected outright and nothing is stored."""
    resp = await user_client.post("/users/check_in", json={**_check_in(), field: "mallory"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == f"Unexpected fields in request: {field}"

    result = await db_session.execute(select(CheckIn))
    assert result.scalars().all() == []


@pytest.mark.asyncio
async def test_check_in_owner_is_session_user(user_client: AsyncClient, db_session: AsyncSession):
    await user_client.post("/users/check_in", json=_check_in("VENUE1"))
    result = await db_session.execute(select(CheckIn.username))
    assert result.scalars().all() == ["bob_user"]


@pytest.mark.asyncio
async def test_history_newest_first(user_client: AsyncClient):
    today = date.today()
    await user_client.post("/users/check_in", json=_check_in("OLD1", today - timedelta(days=2)))
    await user_client.post("/users/check_in", json=_check_in("MID1", today, "09:00:00"))
    await user_client.post("/users/check_in", json=_check_in("NEW1", today, "18:30:00"))

    codes = [r["check_in_code"] for r in (await user_client.post("/users/history")).json()]
    assert codes == ["NEW1", "MID1", "OLD1"]


@pytest.mark.asyncio
async def test_history_only_shows_own_check_ins(user_client: AsyncClient, make_user, login):
    await user_client.post("/users/check_in", json=_check_in("BOB1"))

    await make_user("eve_user")
    await login("eve_user")
    await user_client.post("/users/check_in", json=_check_in("EVE1"))

    codes = [r["check_in_code"] for r in (await user_client.post("/users/history")).json()]
    assert codes == ["EVE1"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, field, message",
    [
        ({"check_in": "AB"}, "check_in", "Check-in code must be 4-10 characters"),
        ({"check_in": "AB-12"}, "check_in", "Check-in code can only contain letters and numbers"),
        ({"date": "18/10/2026"}, "date", "Date must be in YYYY-MM-DD format"),
        ({"date": "2026-02-30"}, "date", "Invalid date"),
        ({"time": "10:00"}, "time", "Time must be in HH:MM:SS format"),
        ({"time": "25:00:00"}, "time", "Invalid time values"),
        ({"time": "10:00:00\n"}, "time", "Time must be in HH:MM:SS format"),
        ({"time": "\u0661\u0660:00:00"}, "time", "Time must be in HH:MM:SS format"),
    ],
)
async def test_check_in_validation(user_client: AsyncClient, payload: dict, field: str, message: str):
    resp = await user_client.post("/users/check_in", json={**_check_in(), **payload})
    assert resp.status_code == 400
    assert resp.json()["errors"] == [{"field": field, "message": message}]


@pytest.mark.asyncio
async def test_check_in_rejects_future_and_stale_dates(user_client: AsyncClient):
    today = date.today()
    future = await user_client.post("/users/check_in", json=_check_in(on=today + timedelta(days=3)))
    assert future.json()["errors"][0]["message"] == "Date cannot be in the future"

    stale = await user_client.post("/users/check_in", json=_check_in(on=today - timedelta(days=31)))
    assert stale.json()["errors"][0]["message"] == "Date cannot be more than 30 days in the past"

    tomorrow = await user_client.post("/users/check_in", json=_check_in(on=today + timedelta(days=1)))
    assert tomorrow.status_code == 201
