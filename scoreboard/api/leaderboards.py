from fastapi import APIRouter, Depends, Query

from scoreboard.api.deps import get_engine
from scoreboard.schemas.scoreboard import CohortOption, GroupStanding, StudentStanding, TierStatusOut, cohort_label
from scoreboard.services.engine import ScoreboardEngine
from scoreboard.services.ranking import group_leaderboard, student_leaderboard
from scoreboard.services.tiers import resolve

router = APIRouter(tags=["leaderboards"])


@router.get("/groups/leaderboard", response_model=list[GroupStanding])
def list_group_standings(
    hour: str | None = Query(default=None),
    engine: ScoreboardEngine = Depends(get_engine),
):
    tiers = engine.store.tiers
    return [
        GroupStanding(
            rank=entry.rank,
            id=entry.item.id,
            name=entry.item.name,
            hour=entry.item.hour,
            color=entry.item.color,
            motto=entry.item.motto,
            points=entry.points,
            pets=TierStatusOut.from_status(resolve(entry.points, tiers)),
        )
        for entry in group_leaderboard(engine.store, hour=hour)
    ]


@router.get("/students/leaderboard", response_model=list[StudentStanding])
def list_student_standings(
    group: str | None = Query(default=None),
    cohort: str | None = Query(default=None),
    q: str | None = Query(default=None, max_length=128),
    engine: ScoreboardEngine = Depends(get_engine),
):
    store = engine.store
    rows: list[StudentStanding] = []
    for entry in student_leaderboard(store, group=group, cohort=cohort, query=q):
        student = entry.item
        student_group = store.group(student.group_id)
        rows.append(
            StudentStanding(
                rank=entry.rank,
                id=student.id,
                name=student.name,
                group_id=student.group_id,
                group_name=student_group.name if student_group else "",
                group_color=student_group.color if student_group else "",
                level=student.level,
                class_id=student.class_id,
                points=entry.points,
                powerups=store.powerup_labels(student),
            )
        )
    return rows


@router.get("/students/cohorts", response_model=list[CohortOption])
def list_cohorts(engine: ScoreboardEngine = Depends(get_engine)):
    return [CohortOption(id=cohort, label=cohort_label(cohort)) for cohort in engine.store.cohorts()]
