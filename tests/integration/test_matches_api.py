"""
Integration tests for the match HTTP API and its error mapping
"""

import pytest

from app.core.auth import create_access_token

API = "/api/v1"
CREATE = {"teamA": "CSE", "teamB": "ECE"}


async def create(test_client, admin_headers, sport="football", body=None):
    response = await test_client.post(f"{API}/matches/{sport}/create", json=body or CREATE, headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_match(test_client, admin_headers):
    document = await create(test_client, admin_headers, "table-tennis", {**CREATE, "maxSets": 5})

    assert document["sport"] == "TABLE_TENNIS"
    assert document["version"] == 1
    assert document["maxSets"] == 5
    assert document["rules"]["winThreshold"] == 11


@pytest.mark.asyncio
async def test_create_requires_admin_token(test_client):
    response = await test_client.post(f"{API}/matches/football/create", json=CREATE)

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_non_admin_token_rejected(test_client):
    token = create_access_token({"sub": "viewer-1"})
    response = await test_client.post(
        f"{API}/matches/football/create", json=CREATE, headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_same_team_twice_is_bad_request(test_client, admin_headers):
    response = await test_client.post(
        f"{API}/matches/football/create", json={"teamA": "CSE", "teamB": "CSE"}, headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_unknown_sport_is_bad_request(test_client, admin_headers):
    response = await test_client.post(f"{API}/matches/curling/create", json=CREATE, headers=admin_headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_returns_new_version(test_client, admin_headers):
    match = await create(test_client, admin_headers)

    response = await test_client.put(
        f"{API}/matches/football/update/{match['id']}",
        json={"action": "recordScore", "team": "A", "scorerName": "Arjun", "version": 1},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["version"] == 2
    assert body["scoreA"] == 1
    assert body["scorers"][0]["playerName"] == "Arjun"


@pytest.mark.asyncio
async def test_stale_version_conflict(test_client, admin_headers):
    match = await create(test_client, admin_headers)
    url = f"{API}/matches/football/update/{match['id']}"
    await test_client.put(url, json={"action": "startMatch", "version": 1}, headers=admin_headers)

    response = await test_client.put(url, json={"action": "recordScore", "team": "B", "version": 1},
                                     headers=admin_headers)

    assert response.status_code == 409
    assert response.json() == {
        "error": "concurrent_modification",
        "matchId": match["id"],
        "expectedVersion": 1,
        "currentVersion": 2,
    }


@pytest.mark.asyncio
async def test_state_violation_body(test_client, admin_headers):
    match = await create(test_client, admin_headers, "badminton")

    response = await test_client.put(
        f"{API}/matches/badminton/update/{match['id']}",
        json={"action": "endSet", "winner": "A"},
        headers=admin_headers,
    )

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "state_violation"
    assert body["action"] == "endSet"
    assert body["status"] == "SCHEDULED"
    assert body["reason"]


@pytest.mark.asyncio
async def test_invalid_action_payload_is_bad_request(test_client, admin_headers):
    match = await create(test_client, admin_headers, "cricket")

    response = await test_client.put(
        f"{API}/matches/cricket/update/{match['id']}",
        json={"action": "recordBall", "runs": 9},
        headers=admin_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_sport_mismatch_is_bad_request(test_client, admin_headers):
    match = await create(test_client, admin_headers)

    response = await test_client.put(
        f"{API}/matches/cricket/update/{match['id']}", json={"action": "startMatch"}, headers=admin_headers
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_match_is_not_found(test_client, admin_headers):
    response = await test_client.get(f"{API}/matches/does-not-exist")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"

    response = await test_client.put(
        f"{API}/matches/football/update/does-not-exist", json={"action": "startMatch"}, headers=admin_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_read_endpoints_are_public(test_client, admin_headers):
    live = await create(test_client, admin_headers, "chess")
    await create(test_client, admin_headers, "cricket")
    await test_client.put(f"{API}/matches/chess/update/{live['id']}", json={"action": "startMatch"},
                          headers=admin_headers)

    response = await test_client.get(f"{API}/matches/live")
    assert response.status_code == 200
    assert [m["id"] for m in response.json()] == [live["id"]]

    response = await test_client.get(f"{API}/matches", params={"sport": "cricket"})
    assert response.status_code == 200
    assert [m["sport"] for m in response.json()] == ["CRICKET"]

    response = await test_client.get(f"{API}/matches/{live['id']}")
    assert response.status_code == 200
    assert response.json()["status"] == "LIVE"


@pytest.mark.asyncio
async def test_bad_query_is_bad_request(test_client):
    response = await test_client.get(f"{API}/matches", params={"limit": 0})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_metrics_endpoint(test_client):
    response = await test_client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text
