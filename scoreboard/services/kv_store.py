from typing import Protocol

from sqlalchemy.orm import Session, sessionmaker

from scoreboard.db.session import get_session_factory
from scoreboard.models.storage_entry import StorageEntry

MILESTONE_SNAPSHOT_KEY = "lmh_group_points"
STUDENT_CODE_KEY = "student_code"


class KeyValueStorage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class KeyValueStore:
    """Last-write-wins string entries that outlive a session."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self.session_factory = session_factory or get_session_factory()

    def get(self, key: str) -> str | None:
        with self.session_factory() as db:
            entry = db.get(StorageEntry, key)
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        with self.session_factory() as db:
            entry = db.get(StorageEntry, key)
            if entry is None:
                entry = StorageEntry(key=key, value=value)
            else:
                entry.value = value
            db.add(entry)
            db.commit()


class MemoryKeyValueStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.entries: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.entries.get(key)

    def set(self, key: str, value: str) -> None:
        self.entries[key] = value
