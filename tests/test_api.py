"""
Integration tests for the REST API endpoints.

Runs the real application against an in-memory SQLite database and a
temporary photo directory; Redis is replaced by ``AsyncMock``.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from carbon_passport.domain.stations import DEFAULT_DIRECTORY
from carbon_passport.infrastructure.models import PassportModel

PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 32


def _form(*legs: dict, **extra) -> dict:
    data = {"name": "Kim Minji", "date": "2026-05-01", "routes": json.dumps(list(legs))}
    data.update(extra)
    return data


async def _create(client: AsyncClient, *legs: dict, **kwargs) -> dict:
    resp = await client.post("/api/passports", data=_form(*legs), **kwargs)
    assert resp.status_code == 200, resp.text
    return resp.json()


# ── Health ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ── Passport creation ─────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_passport(client: AsyncClient):
    body = await _create(
        client,
        {"from": "SEOUL", "to": "BUSAN"},
        {"departure": "부산역", "destination": "Gyeongju"},
    )
    assert body["success"] is True
    passport = body["passport"]
    assert passport["routeCount"] == 2
    assert passport["name"] == "Kim Minji"
    assert passport["totalCO2Saved"] > 40
    assert passport["totalDistance"] > 350
    assert passport["photoUrl"] is None
    assert body["shareUrl"].endswith(f"/ko/passport/view/{passport['shareHash']}")
    assert body["errors"] == []
    assert body["message"] == "2 of 2 routes added"


@pytest.mark.asyncio
async def test_create_passport_with_photo(client: AsyncClient):
    resp = await client.post(
        "/api/passports",
        data=_form({"from": "SEOUL", "to": "DAEJEON"}),
        files={"photo": ("me.png", PNG, "image/png")},
    )
    assert resp.status_code == 200
    assert resp.json()["passport"]["photoUrl"].startswith("http://test/photos/")


@pytest.mark.asyncio
async def test_create_passport_rejects_bad_photo(client: AsyncClient):
    resp = await client.post(
        "/api/passports",
        data=_form({"from": "SEOUL", "to": "DAEJEON"}),
        files={"photo": ("me.gif", b"GIF89a", "image/gif")},
    )
    assert resp.status_code == 400
    assert "Unsupported photo type" in resp.json()["error"]


@pytest.mark.asyncio
async def test_partial_success(client: AsyncClient):
    body = await _create(
        client, {"from": "SEOUL", "to": "BUSAN"}, {"from": "SEOUL", "to": "ATLANTIS"}
    )
    assert body["passport"]["routeCount"] == 1
    assert len(body["errors"]) == 1
    assert body["errors"][0].startswith("Route 2:")
    assert body["message"] == "1 of 2 routes added"


@pytest.mark.asyncio
async def test_same_station_leg_does_not_reject_submission(client: AsyncClient):
    body = await _create(
        client, {"from": "SEOUL", "to": "BUSAN"}, {"from": "SEOUL", "to": "SEOUL"}
    )
    assert body["passport"]["routeCount"] == 1
    assert len(body["errors"]) == 1
    assert "same station" in body["errors"][0]


@pytest.mark.asyncio
async def test_database_failure_is_503_json(client: AsyncClient):
    with patch(
        "carbon_passport.services.submissions.PassportRepository.create_passport",
        AsyncMock(side_effect=SQLAlchemyError("connection reset")),
    ):
        resp = await client.post(
            "/api/passports", data=_form({"from": "SEOUL", "to": "BUSAN"})
        )
    assert resp.status_code == 503
    assert resp.json() == {"error": "Service temporarily unavailable"}


@pytest.mark.asyncio
async def test_all_routes_invalid_is_400(client: AsyncClient):
    resp = await client.post(
        "/api/passports",
        data=_form({"from": "SEOUL", "to": "ATLANTIS"}, {"from": "BUSAN", "to": "부산"}),
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "No valid routes to save"
    assert [e.split(":")[0] for e in body["errors"]] == ["Route 1", "Route 2"]


@pytest.mark.asyncio
async def test_missing_fields_is_400(client: AsyncClient):
    resp = await client.post("/api/passports", data={"routes": "[]"})
    assert resp.status_code == 400
    fields = [e.split(":")[0] for e in resp.json()["errors"]]
    assert fields == ["name", "date", "routes"]


@pytest.mark.asyncio
async def test_malformed_routes_is_400(client: AsyncClient):
    resp = await client.post(
        "/api/passports", data=_form() | {"routes": '[{"from": "SEOUL"}]'}
    )
    assert resp.status_code == 400


# ── Idempotency ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_idempotent_replay(client: AsyncClient):
    mock_redis = AsyncMock()
    mock_redis.set = AsyncMock(return_value=True)
    mock_redis.eval = AsyncMock(return_value=1)

    with patch(
        "carbon_passport.api.routes.passports.get_redis",
        AsyncMock(return_value=mock_redis),
    ):
        headers = {"Idempotency-Key": "client-key-1"}
        first = await _create(client, {"from": "SEOUL", "to": "BUSAN"}, headers=headers)
        second = await _create(client, {"from": "SEOUL", "to": "BUSAN"}, headers=headers)

    assert second["replayed"] is True
    assert second["passport"]["id"] == first["passport"]["id"]
    assert mock_redis.eval.await_count == 2


@pytest.mark.asyncio
async def test_in_flight_duplicate_is_409(client: AsyncClient):
    mock_redis = AsyncMock()
    mock_redis.set = AsyncMock(return_value=False)

    with patch(
        "carbon_passport.api.routes.passports.get_redis",
        AsyncMock(return_value=mock_redis),
    ):
        resp = await client.post(
            "/api/passports",
            data=_form({"from": "SEOUL", "to": "BUSAN"}),
            headers={"Idempotency-Key": "client-key-2"},
        )
    assert resp.status_code == 409



@pytest.mark.asyncio
async def test_redis_down_is_503(client: AsyncClient):
    mock_redis = AsyncMock()
    mock_redis.set = AsyncMock(side_effect=RedisConnectionError("refused"))

    with patch(
        "carbon_passport.api.routes.passports.get_redis",
        AsyncMock(return_value=mock_redis),
    ):
        resp = await client.post(
            "/api/passports",
            data=_form({"from": "SEOUL", "to": "BUSAN"}),
            headers={"Idempotency-Key": "client-key-3"},
        )
    assert resp.status_code == 503
    assert resp.json()["error"] == "Service temporarily unavailable"


@pytest.mark.asyncio
async def test_retry_of_orphaned_submission_reports_orphan(client: AsyncClient):
    mock_redis = AsyncMock()
    mock_redis.set = AsyncMock(return_value=True)
    mock_redis.eval = AsyncMock(return_value=1)
    headers = {"Idempotency-Key": "client-key-4"}
    form = _form({"from": "SEOUL", "to": "BUSAN"})

    with patch(
        "carbon_passport.api.routes.passports.get_redis",
        AsyncMock(return_value=mock_redis),
    ):
        with patch(
            "carbon_passport.services.submissions.RouteRepository.create_routes",
            AsyncMock(side_effect=SQLAlchemyError("boom")),
        ):
            first = await client.post("/api/passports", data=form, headers=headers)
        retry = await client.post("/api/passports", data=form, headers=headers)

    assert first.status_code == 500
    assert retry.status_code == 500
    assert retry.json()["passportId"] == first.json()["passportId"]


# ── Passport reads ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_get_passport(client: AsyncClient):
    created = await _create(
        client, {"from": "SEOUL", "to": "DAEJEON"}, {"from": "DAEJEON", "to": "BUSAN"}
    )
    passport_id = created["passport"]["id"]

    resp = await client.get(f"/api/passports/{passport_id}", params={"locale": "en"})
    assert resp.status_code == 200
    passport = resp.json()["passport"]
    assert passport["tripCount"] == 2
    assert passport["country"] == "Republic of Korea"
    assert passport["issueDate"] == "2026-05-01"
    assert passport["routes"][0]["fromName"] == "Seoul Station"
    assert [r["sequenceOrder"] for r in passport["routes"]] == [0, 1]
    assert passport["totalCO2Saved"] == created["passport"]["totalCO2Saved"]
    assert passport["environmentalImpact"]["level"] == "high"
    assert passport["barcodeData"] == f"CP-{passport['shareHash']}"


@pytest.mark.asyncio
async def test_get_passport_not_found(client: AsyncClient):
    resp = await client.get("/api/passports/does-not-exist")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_invalid_locale_is_400(client: AsyncClient):
    resp = await client.get("/api/passports/whatever", params={"locale": "fr"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_share_lookup(client: AsyncClient):
    created = await _create(client, {"from": "SEOUL", "to": "BUSAN"})
    share_hash = created["passport"]["shareHash"]

    resp = await client.get(f"/api/passports/share/{share_hash}")
    assert resp.status_code == 200
    assert resp.json()["passport"]["id"] == created["passport"]["id"]

    missing = await client.get("/api/passports/share/unknown-hash")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_expired_share_link_is_410(client: AsyncClient, session_factory):
    created = await _create(client, {"from": "SEOUL", "to": "BUSAN"})
    async with session_factory() as session:
        await session.execute(
            update(PassportModel)
            .where(PassportModel.id == created["passport"]["id"])
            .values(expires_at=datetime(2020, 1, 1, tzinfo=timezone.utc))
        )
        await session.commit()

    resp = await client.get(f"/api/passports/share/{created['passport']['shareHash']}")
    assert resp.status_code == 410


# ── Survey ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_survey_round_trip(client: AsyncClient):
    created = await _create(client, {"from": "SEOUL", "to": "BUSAN"})
    url = f"/api/passports/{created['passport']['id']}/survey"

    empty = await client.get(url)
    assert empty.status_code == 200
    assert empty.json()["responses"] == {}

    resp = await client.put(url, json={"responses": {"policySupport": "high"}})
    assert resp.status_code == 200
    assert resp.json()["completed"] is False

    saved = await client.get(url)
    assert saved.json()["responses"] == {"policySupport": "high"}


@pytest.mark.asyncio
async def test_survey_rejects_unknown_answers(client: AsyncClient):
    created = await _create(client, {"from": "SEOUL", "to": "BUSAN"})
    url = f"/api/passports/{created['passport']['id']}/survey"

    resp = await client.put(url, json={"responses": {"policySupport": "maybe"}})
    assert resp.status_code == 400

    incomplete = await client.put(
        url, json={"responses": {"policySupport": "high"}, "completed": True}
    )
    assert incomplete.status_code == 400


@pytest.mark.asyncio
async def test_survey_for_missing_passport(client: AsyncClient):
    resp = await client.get("/api/passports/nope/survey")
    assert resp.status_code == 404


# ── Route preview ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_calculate_routes(client: AsyncClient):
    resp = await client.post(
        "/api/routes/calculate",
        params={"locale": "en"},
        json={"routes": [{"from": "SEOUL", "to": "BUSAN"}, {"from": "X", "to": "Y"}]},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["routes"][0]["toName"] == "Busan Station"
    assert body["routes"][0]["co2"]["saved"] > 40
    assert body["totalCO2"]["saved"] == body["routes"][0]["co2"]["saved"]
    assert body["summary"] == "1 of 2 routes added"
    assert len(body["errors"]) == 1


# ── Stations ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_stations_falls_back_to_directory(client: AsyncClient):
    resp = await client.get("/api/stations", params={"locale": "en"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == len(DEFAULT_DIRECTORY.active())
    names = [s["name"] for s in body["stations"]]
    assert names == sorted(names)


@pytest.mark.asyncio
async def test_list_stations_by_region(client: AsyncClient):
    resp = await client.get("/api/stations", params={"region": "jeju"})
    body = resp.json()
    assert body["count"] == 1
    assert body["stations"][0]["code"] == "JEJU"
    assert body["stations"][0]["regionName"] == "제주도"


@pytest.mark.asyncio
async def test_list_stations_invalid_locale(client: AsyncClient):
    resp = await client.get("/api/stations", params={"locale": "xx"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_search_stations(client: AsyncClient):
    resp = await client.get("/api/stations/search", params={"q": "daegu", "locale": "en"})
    codes = [s["code"] for s in resp.json()["stations"]]
    assert codes == ["DAEGU", "DONGDAEGU"]


# ── Admin ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_delete_passport(client: AsyncClient):
    created = await _create(client, {"from": "SEOUL", "to": "BUSAN"})
    passport_id = created["passport"]["id"]

    resp = await client.delete(f"/api/admin/passports/{passport_id}")
    assert resp.status_code == 200
    assert resp.json()["id"] == passport_id

    assert (await client.get(f"/api/passports/{passport_id}")).status_code == 404
    assert (await client.delete(f"/api/admin/passports/{passport_id}")).status_code == 404
