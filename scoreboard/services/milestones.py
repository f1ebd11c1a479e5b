import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from scoreboard.schemas.ledger import Number
from scoreboard.services.kv_store import MILESTONE_SNAPSHOT_KEY, KeyValueStorage

logger = logging.getLogger(__name__)

MILESTONE_INTERVAL = 25


class SnapshotUnreadable(Exception):
    pass


@dataclass(frozen=True)
class Celebration:
    group_ids: list[str] = field(default_factory=list)


def crossed_band(previous: Number, current: Number, interval: int = MILESTONE_INTERVAL) -> bool:
    return math.floor(previous / interval) < math.floor(current / interval) and current >= interval


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class MilestoneDetector:
    """Detects group totals moving into a higher fixed-size band.

    The last observed totals live in ``storage`` so a reload of the same
    ledger does not celebrate again. A pass emits at most one ``Celebration``
    no matter how many groups crossed.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        interval: int = MILESTONE_INTERVAL,
        key: str = MILESTONE_SNAPSHOT_KEY,
    ) -> None:
        if interval <= 0:
            raise ValueError("milestone interval must be positive")
        self.storage = storage
        self.interval = interval
        self.key = key

    def load_snapshot(self) -> dict[str, object]:
        try:
            raw = self.storage.get(self.key)
        except SQLAlchemyError as exc:
            raise SnapshotUnreadable(str(exc)) from exc
        if raw is None or raw == "":
            return {}
        try:
            snapshot = json.loads(raw)
        except ValueError as exc:
            raise SnapshotUnreadable(f"snapshot is not valid JSON: {exc}") from exc
        if not isinstance(snapshot, dict):
            raise SnapshotUnreadable("snapshot is not a JSON object")
        return snapshot

    def save_snapshot(self, totals: Mapping[str, Number]) -> None:
        try:
            self.storage.set(self.key, json.dumps(dict(totals)))
        except SQLAlchemyError as exc:
            logger.warning("Unable to persist milestone snapshot: %s", exc)

    def evaluate(self, group_totals: Mapping[str, Number]) -> Celebration | None:
        crossed: list[str] = []
        try:
            previous_totals = self.load_snapshot()
        except SnapshotUnreadable as exc:
            logger.warning("Milestone snapshot unreadable, skipping detection this pass: %s", exc)
        else:
            for group_id, current in group_totals.items():
                previous = previous_totals.get(group_id, 0)
                if not _is_number(previous):
                    continue
                if crossed_band(previous, current, self.interval):
                    crossed.append(group_id)

        self.save_snapshot(group_totals)

        if not crossed:
            return None
        logger.info("Milestone reached by %d group(s): %s", len(crossed), ", ".join(crossed))
        return Celebration(group_ids=crossed)
