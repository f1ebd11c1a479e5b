import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from fastapi.concurrency import run_in_threadpool

from scoreboard.core.config import get_settings
from scoreboard.schemas.ledger import AdjustmentRequest, Dataset, Transaction
from scoreboard.services.aggregator import totals_by_group
from scoreboard.services.kv_store import KeyValueStorage
from scoreboard.services.ledger import DanglingReference, DataError, LedgerListener, LedgerStore
from scoreboard.services.milestones import Celebration, MilestoneDetector
from scoreboard.services.profiles import ProfileResolver
from scoreboard.services.sync import RemoteSyncClient, SyncError

logger = logging.getLogger(__name__)


class PasscodeNotSet(Exception):
    pass


@dataclass(frozen=True)
class SubmissionResult:
    transaction: Transaction
    celebration: Celebration | None


@dataclass(frozen=True)
class SyncOutcome:
    ok: bool
    replaced_count: int = 0
    error: str | None = None
    celebration: Celebration | None = None


class ScoreboardEngine:
    """Session context owning the ledger and everything derived from it."""

    def __init__(
        self,
        storage: KeyValueStorage,
        sync_client: RemoteSyncClient | None = None,
        milestone_interval: int | None = None,
        store: LedgerStore | None = None,
    ) -> None:
        self.store = store or LedgerStore()
        self.sync_client = sync_client or RemoteSyncClient()
        self.milestones = MilestoneDetector(storage, interval=milestone_interval or get_settings().milestone_interval)
        self.profiles = ProfileResolver(self.store, storage)
        self._last_celebration: Celebration | None = None
        self._lock = threading.Lock()
        self.store.subscribe(self._on_ledger_changed)

    def subscribe(self, listener: LedgerListener) -> Callable[[], None]:
        return self.store.subscribe(listener)

    def load(self, raw: Dataset | Mapping[str, Any]) -> Celebration | None:
        return self._apply(self.store.load_dataset, raw)

    def load_file(self, path: Path | str) -> Celebration | None:
        return self._apply(self.store.load_dataset_file, path)

    async def submit_adjustment(self, request: AdjustmentRequest) -> SubmissionResult:
        student = self.store.student(request.student_id)
        if student is None:
            raise DanglingReference("adjustment", None, "student", request.student_id)
        if self.store.group(request.group_id) is None:
            raise DanglingReference("adjustment", None, "group", request.group_id)
        if student.group_id != request.group_id:
            raise DataError(f"Student {student.id!r} is not a member of group {request.group_id!r}")

        new_id = await self.sync_client.submit(request.to_remote_payload())

        transaction = Transaction(
            id=new_id,
            student_id=request.student_id,
            group_id=request.group_id,
            delta=request.delta,
            reason=request.reason,
            date=(request.date or date.today()).isoformat(),
        )
        celebration = await run_in_threadpool(self._apply, self.store.append_transaction, transaction)
        return SubmissionResult(transaction=transaction, celebration=celebration)

    async def refresh_from_remote(self) -> SyncOutcome:
        try:
            transactions = await self.sync_client.fetch_all()
        except SyncError as exc:
            logger.warning("Remote sync failed, keeping %d local transaction(s): %s", len(self.store.transactions), exc)
            return SyncOutcome(ok=False, replaced_count=0, error=str(exc))

        celebration = await run_in_threadpool(self._apply, self.store.replace_transactions, transactions)
        return SyncOutcome(ok=True, replaced_count=len(transactions), celebration=celebration)

    def check_passcode(self, entered: str) -> bool:
        expected = (self.store.teacher_passcode or "").strip()
        if not expected:
            raise PasscodeNotSet("Teacher passcode is not set in the data.")
        return entered.strip() == expected

    def export_dataset(self) -> dict[str, Any]:
        return self.store.to_dataset().model_dump(mode="json", by_alias=True)

    def _on_ledger_changed(self, store: LedgerStore) -> None:
        celebration = self.milestones.evaluate(totals_by_group(store))
        if celebration is not None:
            self._last_celebration = celebration

    def _apply(self, mutate: Callable[..., None], *args: Any) -> Celebration | None:
        # Ledger writes fire the milestone pass, which persists its snapshot.
        with self._lock:
            mutate(*args)
            celebration, self._last_celebration = self._last_celebration, None
        return celebration
