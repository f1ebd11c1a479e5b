import datetime
import math

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_REASON = "Adjustment"

Number = int | float


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Group(CamelModel):
    id: str
    name: str
    hour: str | None = None
    color: str = "#6b7280"
    motto: str | None = None

    @property
    def cohort(self) -> str | None:
        return self.hour


class Student(CamelModel):
    id: str
    name: str
    group_id: str
    code: str
    level: int = 1
    class_id: str | None = None
    powerups: list[str] = Field(default_factory=list)

    @property
    def cohort(self) -> str | None:
        return self.class_id


class Transaction(CamelModel):
    id: str
    student_id: str
    group_id: str
    delta: Number
    reason: str = DEFAULT_REASON
    date: str = ""

    @field_validator("id", "student_id", "group_id", mode="before")
    @classmethod
    def coerce_identifier(cls, value):
        # Sheet-backed stores hand back numeric cells for ids.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("reason", mode="before")
    @classmethod
    def default_reason(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_REASON
        return value


class RewardTier(CamelModel):
    id: str
    name: str
    threshold: Number = 0
    desc: str | None = None
    emoji: str | None = None
    img: str | None = None

    @field_validator("threshold")
    @classmethod
    def non_negative_threshold(cls, value: Number) -> Number:
        if value < 0:
            raise ValueError("threshold must not be negative")
        return value


class Powerup(CamelModel):
    id: str
    label: str


class Dataset(CamelModel):
    groups: list[Group]
    students: list[Student]
    transactions: list[Transaction] = Field(default_factory=list)
    pets: list[RewardTier] = Field(default_factory=list)
    powerups: list[Powerup] = Field(default_factory=list)
    teacher_passcode: str | None = None


class AdjustmentRequest(CamelModel):
    student_id: str = Field(..., min_length=1)
    group_id: str = Field(..., min_length=1)
    delta: Number
    reason: str = DEFAULT_REASON
    date: datetime.date | None = None

    @field_validator("student_id", "group_id")
    @classmethod
    def strip_identifier(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("identifier must not be blank")
        return value

    @field_validator("delta")
    @classmethod
    def non_zero_delta(cls, value: Number) -> Number:
        if not math.isfinite(value) or value == 0:
            raise ValueError("delta must be a non-zero number")
        return value

    @field_validator("reason", mode="before")
    @classmethod
    def default_reason(cls, value):
        if value is None:
            return DEFAULT_REASON
        if isinstance(value, str):
            return value.strip() or DEFAULT_REASON
        return value

    def to_remote_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "studentId": self.student_id,
            "groupId": self.group_id,
            "delta": self.delta,
            "reason": self.reason,
        }
        if self.date is not None:
            payload["date"] = self.date.isoformat()
        return payload
