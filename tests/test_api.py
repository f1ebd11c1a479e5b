from fastapi.testclient import TestClient

from scoreboard.api.profiles import SESSION_COOKIE
from scoreboard.services.engine import ScoreboardEngine
from scoreboard.services.kv_store import MemoryKeyValueStore
from scoreboard.services.sync import SyncRemoteError
from tests.conftest import FakeSyncClient, teacher_headers


def _engine(client: TestClient):
    return client.app.state.engine


def _fake_submit(calls: list, new_id: str = "row-9"):
    async def submit(payload: dict) -> str:
        calls.append(payload)
        return new_id

    return submit


def test_health_endpoint(app_client: TestClient):
    response = app_client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert isinstance(payload["version"], str)


def test_system_info_reports_loaded_dataset(app_client: TestClient):
    response = app_client.get("/system/info")
    assert response.status_code == 200
    payload = response.json()
    assert payload["groups"] == 3
    assert payload["students"] == 4
    assert payload["transactions"] == 2
    assert payload["sync_configured"] is False
    assert payload["milestone_interval"] == 25


def test_group_leaderboard_sorted_with_pets(app_client: TestClient):
    response = app_client.get("/groups/leaderboard")
    assert response.status_code == 200
    items = response.json()
    assert [(item["rank"], item["id"], item["points"]) for item in items] == [
        (1, "G2", 15),
        (2, "G1", 10),
        (3, "G3", 0),
    ]
    assert items[0]["pets"]["earned"] == []
    assert [pet["id"] for pet in items[0]["pets"]["locked"]] == ["axolotl", "quetzal"]


def test_group_leaderboard_hour_filter(app_client: TestClient):
    response = app_client.get("/groups/leaderboard", params={"hour": "hour4"})
    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == ["G3"]


def test_student_leaderboard_filters(app_client: TestClient):
    response = app_client.get("/students/leaderboard", params={"group": "G1"})
    assert response.status_code == 200
    items = response.json()
    assert [(item["rank"], item["id"]) for item in items] == [(1, "S1"), (2, "S2")]
    assert items[0]["group_name"] == "Eagles"
    assert items[0]["powerups"] == ["Double Points"]

    response = app_client.get("/students/leaderboard", params={"cohort": "all", "q": "PATEL"})
    assert [item["id"] for item in response.json()] == ["S4"]

    response = app_client.get("/students/leaderboard", params={"q": "nobody"})
    assert response.status_code == 200
    assert response.json() == []


def test_cohort_options(app_client: TestClient):
    response = app_client.get("/students/cohorts")
    assert response.status_code == 200
    assert response.json() == [{"id": "hour3", "label": "Hour 3"}, {"id": "hour4", "label": "Hour 4"}]


def test_profile_lookup_and_remembered_code(app_client: TestClient):
    assert app_client.get("/profile").status_code == 404

    response = app_client.get("/profile/abc1")
    assert response.status_code == 200
    payload = response.json()
    assert payload["id"] == "S1"
    assert payload["points"] == 10
    assert payload["group_name"] == "Eagles"
    assert [tx["id"] for tx in payload["transactions"]] == ["t-1"]

    assert response.cookies.get(SESSION_COOKIE)

    remembered = app_client.get("/profile")
    assert remembered.status_code == 200
    assert remembered.json()["id"] == "S1"


def test_remembered_profile_is_scoped_to_the_client(app_client: TestClient):
    assert app_client.get("/profile/abc1").status_code == 200

    other = TestClient(app_client.app)
    response = other.get("/profile")
    assert response.status_code == 404
    assert response.json()["detail"] == "No student found for that code."

    assert other.get("/profile/jag1").status_code == 200
    assert other.get("/profile").json()["id"] == "S3"
    assert app_client.get("/profile").json()["id"] == "S1"


def test_unknown_session_cookie_gets_not_found(app_client: TestClient):
    assert app_client.get("/profile/abc1").status_code == 200
    forged = TestClient(app_client.app, cookies={SESSION_COOKIE: "forged-session"})
    assert forged.get("/profile").status_code == 404


def test_profile_lookup_miss(app_client: TestClient):
    response = app_client.get("/profile/xyz9")
    assert response.status_code == 404
    assert response.json()["detail"] == "No student found for that code."


def test_teacher_unlock(app_client: TestClient):
    response = app_client.post("/teacher/unlock", json={"passcode": "wrong"})
    assert response.status_code == 401
    assert teacher_headers(app_client)["Authorization"].startswith("Bearer ")


def test_teacher_routes_require_token(app_client: TestClient):
    assert app_client.get("/teacher/roster").status_code == 401
    assert app_client.post("/teacher/sync").status_code == 401
    assert app_client.get("/teacher/export").status_code == 401
    response = app_client.get("/teacher/export", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_roster_groups_hours(app_client: TestClient):
    headers = teacher_headers(app_client)
    response = app_client.get("/teacher/roster", headers=headers)
    assert response.status_code == 200
    roster = response.json()
    assert [hour["id"] for hour in roster] == ["hour3", "hour4"]
    assert roster[0]["label"] == "Hour 3"
    assert [group["name"] for group in roster[0]["groups"]] == ["Eagles", "Jaguars"]
    assert [student["name"] for student in roster[0]["groups"][0]["students"]] == ["Ana Ruiz", "Ben Ortiz"]


def test_submit_transaction_updates_scoreboard(app_client: TestClient, monkeypatch):
    headers = teacher_headers(app_client)
    calls: list[dict] = []
    monkeypatch.setattr(_engine(app_client).sync_client, "submit", _fake_submit(calls))

    response = app_client.post(
        "/teacher/transactions",
        headers=headers,
        json={"studentId": "S1", "groupId": "G1", "delta": 15, "reason": "Quiz", "date": "2025-09-06"},
    )
    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["transaction"]["id"] == "row-9"
    assert payload["group_points"] == 25
    assert payload["celebrate"] is True
    assert payload["milestone_groups"] == ["G1"]
    assert calls == [{"studentId": "S1", "groupId": "G1", "delta": 15, "reason": "Quiz", "date": "2025-09-06"}]

    standings = app_client.get("/groups/leaderboard").json()
    assert standings[0]["id"] == "G1"
    assert standings[0]["points"] == 25
    assert [pet["id"] for pet in standings[0]["pets"]["earned"]] == ["axolotl"]

    again = app_client.post(
        "/teacher/transactions",
        headers=headers,
        json={"studentId": "S2", "groupId": "G1", "delta": 1},
    )
    assert again.status_code == 200, again.text
    assert again.json()["celebrate"] is False
    assert again.json()["transaction"]["reason"] == "Adjustment"


def test_submit_transaction_validation(app_client: TestClient):
    headers = teacher_headers(app_client)
    zero = app_client.post("/teacher/transactions", headers=headers, json={"studentId": "S1", "groupId": "G1", "delta": 0})
    assert zero.status_code == 422

    unknown = app_client.post(
        "/teacher/transactions",
        headers=headers,
        json={"studentId": "S404", "groupId": "G1", "delta": 5},
    )
    assert unknown.status_code == 400


def test_submit_without_endpoint_is_reported(app_client: TestClient):
    headers = teacher_headers(app_client)
    response = app_client.post("/teacher/transactions", headers=headers, json={"studentId": "S1", "groupId": "G1", "delta": 5})
    assert response.status_code == 503
    assert len(_engine(app_client).store.transactions) == 2


def test_submit_remote_failure_keeps_ledger(app_client: TestClient, monkeypatch):
    headers = teacher_headers(app_client)

    async def failing_submit(payload: dict) -> str:
        raise SyncRemoteError("Sheet is locked")

    monkeypatch.setattr(_engine(app_client).sync_client, "submit", failing_submit)
    response = app_client.post("/teacher/transactions", headers=headers, json={"studentId": "S1", "groupId": "G1", "delta": 5})
    assert response.status_code == 502
    assert "Sheet is locked" in response.json()["detail"]
    assert len(_engine(app_client).store.transactions) == 2


def test_sync_failure_is_not_destructive(app_client: TestClient):
    headers = teacher_headers(app_client)
    response = app_client.post("/teacher/sync", headers=headers)
    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is False
    assert payload["transactions"] == 2
    assert payload["error"]


def test_export_returns_attachment(app_client: TestClient):
    headers = teacher_headers(app_client)
    response = app_client.get("/teacher/export", headers=headers)
    assert response.status_code == 200
    assert "scoreboard-data.json" in response.headers["content-disposition"]
    payload = response.json()
    assert payload["teacherPasscode"] == "luchador"
    assert [tx["id"] for tx in payload["transactions"]] == ["t-1", "t-2"]
    assert payload["students"][0]["groupId"] == "G1"


def test_routes_unavailable_until_dataset_loaded(app_client: TestClient):
    app_client.app.state.engine = ScoreboardEngine(storage=MemoryKeyValueStore(), sync_client=FakeSyncClient())
    response = app_client.get("/groups/leaderboard")
    assert response.status_code == 503
    assert response.json()["detail"] == "Scoreboard is not loaded"


def test_unknown_student_detail_has_no_placeholder(app_client: TestClient):
    headers = teacher_headers(app_client)
    response = app_client.post(
        "/teacher/transactions",
        headers=headers,
        json={"studentId": "S404", "groupId": "G1", "delta": 5},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "adjustment references unknown student 'S404'"
