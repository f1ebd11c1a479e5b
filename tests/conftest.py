import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from scoreboard.schemas.ledger import Transaction
from scoreboard.services.engine import ScoreboardEngine
from scoreboard.services.kv_store import MemoryKeyValueStore
from scoreboard.services.sync import SyncNetworkError

TEACHER_PASSCODE = "luchador"


def dataset_dict(transactions: list[dict] | None = None) -> dict:
    return {
        "teacherPasscode": TEACHER_PASSCODE,
        "groups": [
            {"id": "G1", "hour": "hour3", "name": "Eagles", "color": "#2563eb", "motto": "Soar"},
            {"id": "G2", "hour": "hour3", "name": "Jaguars", "color": "#d97706"},
            {"id": "G3", "hour": "hour4", "name": "Serpents", "color": "#059669"},
        ],
        "students": [
            {"id": "S1", "name": "Ana Ruiz", "groupId": "G1", "code": "ABC1", "level": 2, "classId": "hour3",
             "powerups": ["p-double", "p-missing"]},
            {"id": "S2", "name": "Ben Ortiz", "groupId": "G1", "code": "ABC2", "classId": "hour3"},
            {"id": "S3", "name": "Cora Diaz", "groupId": "G2", "code": "JAG1", "classId": "hour3"},
            {"id": "S4", "name": "Dev Patel", "groupId": "G3", "code": "SER1", "classId": "hour4"},
        ],
        "transactions": transactions or [],
        "pets": [
            {"id": "quetzal", "name": "Quetzal", "threshold": 50, "emoji": "Q"},
            {"id": "axolotl", "name": "Axolotl", "threshold": 25, "emoji": "A"},
        ],
        "powerups": [{"id": "p-double", "label": "Double Points"}],
    }


class FakeSyncClient:
    def __init__(self, remote: list[Transaction] | None = None, fail: Exception | None = None) -> None:
        self.configured = True
        self.remote = remote or []
        self.fail = fail
        self.submitted: list[dict] = []
        self.next_id = 100

    async def submit(self, payload: dict) -> str:
        if self.fail is not None:
            raise self.fail
        self.submitted.append(payload)
        self.next_id += 1
        return f"row-{self.next_id}"

    async def fetch_all(self) -> list[Transaction]:
        if self.fail is not None:
            raise self.fail
        return list(self.remote)


@pytest.fixture()
def storage() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def sync_client() -> FakeSyncClient:
    return FakeSyncClient()


@pytest.fixture()
def engine(storage: MemoryKeyValueStore, sync_client: FakeSyncClient) -> ScoreboardEngine:
    scoreboard = ScoreboardEngine(storage=storage, sync_client=sync_client, milestone_interval=25)
    scoreboard.load(dataset_dict())
    return scoreboard


@pytest.fixture()
def database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    db_file = tmp_path / "kv.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_file.as_posix()}")

    from scoreboard.core.config import clear_settings_cache
    from scoreboard.db.session import create_tables, reset_engine

    clear_settings_cache()
    reset_engine()
    create_tables()
    yield
    reset_engine()
    clear_settings_cache()


@pytest.fixture()
def app_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    db_file = tmp_path / "test.db"
    dataset_file = tmp_path / "scoreboard.json"
    dataset_file.write_text(
        json.dumps(
            dataset_dict(
                [
                    {"id": "t-1", "studentId": "S1", "groupId": "G1", "delta": 10, "reason": "Warm-up",
                     "date": "2025-09-02"},
                    {"id": "t-2", "studentId": "S3", "groupId": "G2", "delta": 15, "reason": "Quiz",
                     "date": "2025-09-03"},
                ]
            )
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_file.as_posix()}")
    monkeypatch.setenv("DATASET_PATH", str(dataset_file))
    monkeypatch.setenv("SYNC_ENDPOINT_URL", "")
    monkeypatch.setenv("SYNC_ON_STARTUP", "false")
    monkeypatch.setenv("JWT_SECRET", "test-secret-for-scoreboard-token-signing")

    from scoreboard.core.config import clear_settings_cache
    from scoreboard.db.session import reset_engine
    from scoreboard.main import create_app

    clear_settings_cache()
    reset_engine()

    app = create_app()
    with TestClient(app) as client:
        yield client

    reset_engine()
    clear_settings_cache()


def teacher_headers(client: TestClient) -> dict[str, str]:
    response = client.post("/teacher/unlock", json={"passcode": TEACHER_PASSCODE})
    assert response.status_code == 200, response.text
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def network_failure() -> SyncNetworkError:
    return SyncNetworkError("Network error: 500", status=500)
