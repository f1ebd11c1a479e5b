import re

from pydantic import BaseModel, Field

from scoreboard.schemas.ledger import Number
from scoreboard.services.tiers import TierStatus

_HOUR_PREFIX = re.compile(r"^hour", re.IGNORECASE)


def cohort_label(cohort: str) -> str:
    label = _HOUR_PREFIX.sub("Hour ", cohort)
    return label[:1].upper() + label[1:]


class TierOut(BaseModel):
    id: str
    name: str
    threshold: Number
    desc: str | None
    emoji: str | None
    img: str | None

    model_config = {"from_attributes": True}


class TierStatusOut(BaseModel):
    earned: list[TierOut]
    locked: list[TierOut]

    @classmethod
    def from_status(cls, status: TierStatus) -> "TierStatusOut":
        return cls(
            earned=[TierOut.model_validate(tier) for tier in status.earned],
            locked=[TierOut.model_validate(tier) for tier in status.locked],
        )


class GroupStanding(BaseModel):
    rank: int
    id: str
    name: str
    hour: str | None
    color: str
    motto: str | None
    points: Number
    pets: TierStatusOut


class StudentStanding(BaseModel):
    rank: int
    id: str
    name: str
    group_id: str
    group_name: str
    group_color: str
    level: int
    class_id: str | None
    points: Number
    powerups: list[str]


class CohortOption(BaseModel):
    id: str
    label: str


class TransactionOut(BaseModel):
    id: str
    student_id: str
    group_id: str
    delta: Number
    reason: str
    date: str

    model_config = {"from_attributes": True}


class ProfileOut(BaseModel):
    id: str
    name: str
    code: str
    level: int
    group_id: str
    group_name: str | None
    group_color: str | None
    points: Number
    powerups: list[str]
    pets: TierStatusOut
    transactions: list[TransactionOut]


class UnlockRequest(BaseModel):
    passcode: str = Field(..., max_length=256)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class RosterStudent(BaseModel):
    id: str
    name: str


class RosterGroup(BaseModel):
    id: str
    name: str
    students: list[RosterStudent]


class RosterHour(BaseModel):
    id: str
    label: str
    groups: list[RosterGroup]


class SubmissionResponse(BaseModel):
    ok: bool
    transaction: TransactionOut
    group_points: Number
    celebrate: bool
    milestone_groups: list[str]


class SyncResponse(BaseModel):
    ok: bool
    transactions: int
    error: str | None
    celebrate: bool

