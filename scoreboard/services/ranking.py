from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Generic, TypeVar

from scoreboard.schemas.ledger import Group, Number, Student
from scoreboard.services.aggregator import totals_by_group, totals_by_student
from scoreboard.services.ledger import LedgerStore

Ranked = TypeVar("Ranked", Group, Student)
Predicate = Callable[[Group | Student], bool]


@dataclass(frozen=True)
class LeaderboardEntry(Generic[Ranked]):
    rank: int
    item: Ranked
    points: Number


def by_group(group_id: str) -> Predicate:
    def predicate(entity: Group | Student) -> bool:
        if isinstance(entity, Student):
            return entity.group_id == group_id
        return entity.id == group_id

    return predicate


def by_cohort(cohort: str) -> Predicate:
    return lambda entity: entity.cohort == cohort


def name_contains(query: str) -> Predicate:
    needle = query.strip().lower()
    return lambda entity: needle in entity.name.lower()


def rank(
    entities: Iterable[Ranked],
    totals: Mapping[str, Number],
    *filters: Predicate,
) -> list[LeaderboardEntry[Ranked]]:
    """Filter, attach points and order by points descending.

    Equal totals keep their input order. Ranks are 1-based positions in the
    filtered sequence, not in the whole population.
    """
    selected = [entity for entity in entities if all(check(entity) for check in filters)]
    scored = [(entity, totals.get(entity.id, 0)) for entity in selected]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return [
        LeaderboardEntry(rank=index, item=entity, points=points)
        for index, (entity, points) in enumerate(scored, start=1)
    ]


def _filters(group: str | None, cohort: str | None, query: str | None) -> list[Predicate]:
    filters: list[Predicate] = []
    if group and group != "all":
        filters.append(by_group(group))
    if cohort and cohort != "all":
        filters.append(by_cohort(cohort))
    if query and query.strip():
        filters.append(name_contains(query))
    return filters


def group_leaderboard(store: LedgerStore, *, hour: str | None = None) -> list[LeaderboardEntry[Group]]:
    return rank(store.groups, totals_by_group(store), *_filters(None, hour, None))


def student_leaderboard(
    store: LedgerStore,
    *,
    group: str | None = None,
    cohort: str | None = None,
    query: str | None = None,
) -> list[LeaderboardEntry[Student]]:
    return rank(store.students, totals_by_student(store), *_filters(group, cohort, query))
