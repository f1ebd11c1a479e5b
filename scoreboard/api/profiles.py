import secrets

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response

from scoreboard.api.deps import get_engine
from scoreboard.schemas.scoreboard import ProfileOut, TierStatusOut, TransactionOut
from scoreboard.services.engine import ScoreboardEngine
from scoreboard.services.profiles import Profile

router = APIRouter(prefix="/profile", tags=["profile"])

NOT_FOUND_DETAIL = "No student found for that code."
SESSION_COOKIE = "scoreboard_session"
SESSION_MAX_AGE = 60 * 60 * 24 * 365
MAX_SESSION_ID_LENGTH = 64


def _valid_session(session_id: str | None) -> str | None:
    if session_id and len(session_id) <= MAX_SESSION_ID_LENGTH:
        return session_id
    return None


def _profile_out(profile: Profile) -> ProfileOut:
    student = profile.student
    return ProfileOut(
        id=student.id,
        name=student.name,
        code=student.code,
        level=student.level,
        group_id=student.group_id,
        group_name=profile.group.name if profile.group else None,
        group_color=profile.group.color if profile.group else None,
        points=profile.total,
        powerups=profile.powerups,
        pets=TierStatusOut.from_status(profile.tiers),
        transactions=[TransactionOut.model_validate(tx) for tx in profile.history],
    )


@router.get("", response_model=ProfileOut)
def remembered_profile(
    session_id: str | None = Cookie(default=None, alias=SESSION_COOKIE),
    engine: ScoreboardEngine = Depends(get_engine),
):
    session_id = _valid_session(session_id)
    profile = engine.profiles.lookup(engine.profiles.remembered_code(session_id)) if session_id else None
    if profile is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)
    return _profile_out(profile)


@router.get("/{code}", response_model=ProfileOut)
def profile_by_code(
    code: str,
    response: Response,
    session_id: str | None = Cookie(default=None, alias=SESSION_COOKIE),
    engine: ScoreboardEngine = Depends(get_engine),
):
    session_id = _valid_session(session_id) or secrets.token_urlsafe(24)
    profile = engine.profiles.lookup(code, session_id=session_id)
    if profile is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)
    response.set_cookie(SESSION_COOKIE, session_id, max_age=SESSION_MAX_AGE, httponly=True, samesite="lax")
    return _profile_out(profile)
