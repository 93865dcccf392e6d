"""Availability API tests."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def test_day_availability_lists_capacity_slots(
    api_context: dict[str, object],
) -> None:
    client: AsyncClient = api_context["client"]  # type: ignore[assignment]
    visit_day = datetime.now(UTC).date() + timedelta(days=10)
    url = (
        f"/api/v1/venues/{api_context['venue_id']}"
        f"/services/{api_context['dinner_id']}/availability"
    )

    response = await client.get(
        url,
        params={
            "date": visit_day.isoformat(),
            "party_size": 2,
            "time_window_start": "09:00",
            "time_window_end": "11:00",
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["date"] == visit_day.isoformat()
    assert payload["day_of_week"] == visit_day.isoweekday() % 7
    assert [slot["start_time"] for slot in payload["time_slots"]] == [
        "09:00",
        "10:00",
        "11:00",
    ]
    assert all(slot["remaining_capacity"] == 4 for slot in payload["time_slots"])


async def test_week_availability_returns_seven_days(
    api_context: dict[str, object],
) -> None:
    client: AsyncClient = api_context["client"]  # type: ignore[assignment]
    start = datetime.now(UTC).date() + timedelta(days=10)
    url = (
        f"/api/v1/venues/{api_context['venue_id']}"
        f"/services/{api_context['haircut_id']}/availability/week"
    )

    response = await client.get(url, params={"start_date": start.isoformat()})

    assert response.status_code == 200
    days = response.json()
    assert len(days) == 7
    assert all(len(day["time_slots"]) == 14 for day in days)
    assert {slot["staff_member_id"] for slot in days[0]["time_slots"]} == {
        str(api_context["avery_id"]),
        str(api_context["jordan_id"]),
    }


async def test_unknown_venue_is_not_found(api_context: dict[str, object]) -> None:
    client: AsyncClient = api_context["client"]  # type: ignore[assignment]
    url = f"/api/v1/venues/{uuid4()}/services/{api_context['dinner_id']}/availability"

    response = await client.get(url, params={"date": "2030-01-14"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Venue not found or inactive"
