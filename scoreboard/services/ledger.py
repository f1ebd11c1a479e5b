import json
import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from scoreboard.schemas.ledger import Dataset, Group, Powerup, RewardTier, Student, Transaction

logger = logging.getLogger(__name__)

LedgerListener = Callable[["LedgerStore"], None]


class DataError(Exception):
    pass


class DanglingReference(DataError):
    def __init__(self, record: str, record_id: str | None, field: str, missing_id: str) -> None:
        self.record = record
        self.record_id = record_id
        self.field = field
        self.missing_id = missing_id
        if record_id is None:
            message = f"{record} references unknown {field} {missing_id!r}"
        else:
            message = f"{record} {record_id!r} references unknown {field} {missing_id!r}"
        super().__init__(message)


def _index_by_id(records: Iterable[Any], kind: str) -> dict[str, Any]:
    index: dict[str, Any] = {}
    for record in records:
        if record.id in index:
            raise DataError(f"Duplicate {kind} id {record.id!r}")
        index[record.id] = record
    return index


class LedgerStore:
    """In-memory dataset for one scoreboard session.

    Groups, students, reward tiers and power-ups are fixed once loaded. The
    transaction list changes only through ``append_transaction`` and
    ``replace_transactions``; both notify subscribers afterwards.
    """

    def __init__(self) -> None:
        self.groups: list[Group] = []
        self.students: list[Student] = []
        self.tiers: list[RewardTier] = []
        self.powerups: list[Powerup] = []
        self.teacher_passcode: str | None = None
        self._transactions: list[Transaction] = []
        self._group_by_id: dict[str, Group] = {}
        self._student_by_id: dict[str, Student] = {}
        self._powerup_by_id: dict[str, Powerup] = {}
        self._listeners: list[LedgerListener] = []
        self.loaded = False

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._transactions)

    def load_dataset(self, raw: Dataset | Mapping[str, Any]) -> None:
        if isinstance(raw, Dataset):
            dataset = raw
        else:
            try:
                dataset = Dataset.model_validate(raw)
            except ValidationError as exc:
                raise DataError(f"Invalid scoreboard dataset: {exc}") from exc

        group_by_id = _index_by_id(dataset.groups, "group")
        student_by_id = _index_by_id(dataset.students, "student")

        for student in dataset.students:
            if student.group_id not in group_by_id:
                raise DanglingReference("student", student.id, "group", student.group_id)
        for tx in dataset.transactions:
            self._check_references(tx, group_by_id, student_by_id)

        self.groups = list(dataset.groups)
        self.students = list(dataset.students)
        self.tiers = list(dataset.pets)
        self.powerups = list(dataset.powerups)
        self.teacher_passcode = dataset.teacher_passcode
        self._group_by_id = group_by_id
        self._student_by_id = student_by_id
        self._powerup_by_id = {powerup.id: powerup for powerup in dataset.powerups}
        self._transactions = list(dataset.transactions)
        self.loaded = True
        logger.info(
            "Loaded scoreboard dataset: %d groups, %d students, %d transactions, %d tiers.",
            len(self.groups),
            len(self.students),
            len(self._transactions),
            len(self.tiers),
        )
        self._notify()

    def load_dataset_file(self, path: Path | str) -> None:
        dataset_path = Path(path)
        try:
            raw = json.loads(dataset_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise DataError(f"Unable to read scoreboard dataset {dataset_path}: {exc}") from exc
        self.load_dataset(raw)

    def append_transaction(self, tx: Transaction) -> None:
        self._check_references(tx, self._group_by_id, self._student_by_id)
        self._transactions.append(tx)
        self._notify()

    def replace_transactions(self, transactions: Iterable[Transaction]) -> None:
        replacement = list(transactions)
        dangling = sum(
            1
            for tx in replacement
            if tx.group_id not in self._group_by_id or tx.student_id not in self._student_by_id
        )
        if dangling:
            logger.warning("%d replaced transaction(s) reference unknown students or groups.", dangling)
        self._transactions = replacement
        self._notify()

    def subscribe(self, listener: LedgerListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def group(self, group_id: str) -> Group | None:
        return self._group_by_id.get(group_id)

    def student(self, student_id: str) -> Student | None:
        return self._student_by_id.get(student_id)

    def powerup_labels(self, student: Student) -> list[str]:
        return [self._powerup_by_id[pid].label for pid in student.powerups if pid in self._powerup_by_id]

    def cohorts(self) -> list[str]:
        return sorted({student.class_id for student in self.students if student.class_id})

    def hours(self) -> list[str]:
        return sorted({group.hour for group in self.groups if group.hour})

    def to_dataset(self) -> Dataset:
        return Dataset(
            groups=list(self.groups),
            students=list(self.students),
            transactions=list(self._transactions),
            pets=list(self.tiers),
            powerups=list(self.powerups),
            teacher_passcode=self.teacher_passcode,
        )

    def _check_references(
        self,
        tx: Transaction,
        group_by_id: Mapping[str, Group],
        student_by_id: Mapping[str, Student],
    ) -> None:
        if tx.student_id not in student_by_id:
            raise DanglingReference("transaction", tx.id, "student", tx.student_id)
        if tx.group_id not in group_by_id:
            raise DanglingReference("transaction", tx.id, "group", tx.group_id)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
