import logging
from dataclasses import dataclass, field

from scoreboard.schemas.ledger import Group, Number, Student, Transaction
from scoreboard.services.aggregator import totals_by_student
from scoreboard.services.kv_store import STUDENT_CODE_KEY, KeyValueStorage
from scoreboard.services.ledger import LedgerStore
from scoreboard.services.tiers import TierStatus, resolve

logger = logging.getLogger(__name__)


def _code_key(session_id: str) -> str:
    return f"{STUDENT_CODE_KEY}:{session_id}"


@dataclass(frozen=True)
class Profile:
    student: Student
    group: Group | None
    total: Number
    tiers: TierStatus
    powerups: list[str] = field(default_factory=list)
    history: list[Transaction] = field(default_factory=list)


class ProfileResolver:
    def __init__(self, store: LedgerStore, storage: KeyValueStorage | None = None) -> None:
        self.store = store
        self.storage = storage

    def find_by_code(self, code: str | None) -> Student | None:
        needle = (code or "").strip().lower()
        if not needle:
            return None
        for student in self.store.students:
            if student.code.lower() == needle:
                return student
        logger.debug("No student matches lookup code.")
        return None

    def build_profile(self, student: Student) -> Profile:
        total = totals_by_student(self.store).get(student.id, 0)
        history = [tx for tx in self.store.transactions if tx.student_id == student.id]
        # reverse=True keeps ledger order for equal dates
        history.sort(key=lambda tx: tx.date, reverse=True)
        return Profile(
            student=student,
            group=self.store.group(student.group_id),
            total=total,
            tiers=resolve(total, self.store.tiers),
            powerups=self.store.powerup_labels(student),
            history=history,
        )

    def lookup(self, code: str | None, session_id: str | None = None) -> Profile | None:
        student = self.find_by_code(code)
        if student is None:
            return None
        if session_id:
            self.remember_code(session_id, student.code)
        return self.build_profile(student)

    def remember_code(self, session_id: str, code: str) -> None:
        if self.storage is not None:
            self.storage.set(_code_key(session_id), code)

    def remembered_code(self, session_id: str | None) -> str | None:
        if self.storage is None or not session_id:
            return None
        return self.storage.get(_code_key(session_id))
