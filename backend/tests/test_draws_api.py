from fastapi.testclient import TestClient


def _tournament(client: TestClient, fmt: str, max_participants: int) -> int:
    response = client.post(
        "/api/tournaments",
        json={
            "name": f"{fmt} cup",
            "location": "Harbour Ground",
            "start_date": "2026-07-01",
            "end_date": "2026-07-10",
            "format": fmt,
            "max_participants": max_participants,
        },
    )
    return response.json()["id"]


def _teams(client: TestClient, tournament_id: int, count: int, approve: bool = False):
    teams = []
    for i in range(1, count + 1):
        team = client.post(f"/api/tournaments/{tournament_id}/teams", json={"name": f"Club {i}"}).json()
        if approve:
            client.patch(f"/api/teams/{team['id']}/payment-status", json={"payment_status": "approved"})
        teams.append(team)
    return teams


def test_trigger_requires_identifiers(client: TestClient):
    response = client.post("/api/draws/trigger", json={"team_id": 1, "new_payment_status": "approved"})
    assert response.status_code == 400
    assert response.json()["detail"] == "tournament_id is required"

    response = client.post("/api/draws/trigger", json={"tournament_id": 1, "new_payment_status": "approved"})
    assert response.status_code == 400
    assert response.json()["detail"] == "team_id is required"


def test_populate_and_create_missing_require_tournament_id(client: TestClient):
    assert client.post("/api/draws/populate", json={}).status_code == 400
    assert client.post("/api/groups/create-missing", json={}).status_code == 400


def test_trigger_endpoint(client: TestClient):
    tournament_id = _tournament(client, "groups-knockout", 8)
    team = _teams(client, tournament_id, 1)[0]
    client.post("/api/groups/create-missing", json={"tournament_id": tournament_id})

    payload = {
        "tournament_id": tournament_id,
        "team_id": team["id"],
        "new_payment_status": "approved",
        "old_payment_status": "pending",
    }
    first = client.post("/api/draws/trigger", json=payload)
    second = client.post("/api/draws/trigger", json=payload)

    assert first.json() == {"drawn": True, "reason": "assigned to Group A"}
    assert second.json() == {"drawn": False, "reason": "draw already exists"}


def test_trigger_unknown_tournament_is_404(client: TestClient):
    payload = {"tournament_id": 404, "team_id": 1, "new_payment_status": "approved", "old_payment_status": None}
    assert client.post("/api/draws/trigger", json=payload).status_code == 404


def test_trigger_without_groups_is_400(client: TestClient):
    tournament_id = _tournament(client, "groups-only", 8)
    team = _teams(client, tournament_id, 1)[0]

    response = client.post(
        "/api/draws/trigger",
        json={"tournament_id": tournament_id, "team_id": team["id"], "new_payment_status": "approved"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "groups not configured"


def test_group_tournament_end_to_end(client: TestClient):
    tournament_id = _tournament(client, "groups-knockout", 16)

    assert client.post("/api/groups/create-missing", json={"tournament_id": tournament_id}).json() == {
        "groups_created": 4
    }
    assert client.post("/api/groups/create-missing", json={"tournament_id": tournament_id}).json() == {
        "groups_created": 0
    }

    _teams(client, tournament_id, 16, approve=True)

    groups = client.get(f"/api/tournaments/{tournament_id}/groups").json()
    assert [g["name"] for g in groups] == ["Group A", "Group B", "Group C", "Group D"]
    assert [len(g["team_ids"]) for g in groups] == [4, 4, 4, 4]

    assert client.post("/api/draws/populate", json={"tournament_id": tournament_id}).json() == {"teams_processed": 0}

    tables = client.get(f"/api/tournaments/{tournament_id}/standings/groups").json()
    assert len(tables) == 4
    assert all(len(t["rows"]) == 4 for t in tables)


def test_bulk_populate_balances_groups(client: TestClient):
    tournament_id = _tournament(client, "groups-only", 16)
    _teams(client, tournament_id, 10, approve=True)  # approvals fail: no groups yet
    assert client.get(f"/api/tournaments/{tournament_id}/draws").json() == []

    client.post("/api/groups/create-missing", json={"tournament_id": tournament_id})
    response = client.post("/api/draws/populate", json={"tournament_id": tournament_id})

    assert response.json() == {"teams_processed": 10}
    sizes = sorted(len(g["team_ids"]) for g in client.get(f"/api/tournaments/{tournament_id}/groups").json())
    assert sizes == [2, 2, 3, 3]


def test_bracket_view(client: TestClient):
    tournament_id = _tournament(client, "knockout", 8)
    _teams(client, tournament_id, 3, approve=True)

    bracket = client.get(f"/api/tournaments/{tournament_id}/bracket").json()

    assert bracket["slot_count"] == 8
    assert bracket["initial_round_name"] == "Quarterfinals"
    assert len(bracket["matchups"]) == 4
    assert bracket["matchups"][1]["home"]["team_name"] == "Club 3"
    assert bracket["matchups"][1]["away"]["team_id"] is None


def test_knockout_capacity_through_populate(client: TestClient):
    tournament_id = _tournament(client, "knockout", 4)
    _teams(client, tournament_id, 4, approve=True)
    extra = client.post(f"/api/tournaments/{tournament_id}/teams", json={"name": "Late Club"}).json()

    response = client.patch(f"/api/teams/{extra['id']}/payment-status", json={"payment_status": "approved"})
    assert response.json()["drawn"] is False
    assert "full" in response.json()["reason"]

    response = client.post("/api/draws/populate", json={"tournament_id": tournament_id})
    assert response.status_code == 400
