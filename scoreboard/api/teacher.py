import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from scoreboard.api.deps import get_current_teacher, get_engine
from scoreboard.core.security import create_access_token
from scoreboard.schemas.ledger import AdjustmentRequest
from scoreboard.schemas.scoreboard import (
    RosterGroup,
    RosterHour,
    RosterStudent,
    SubmissionResponse,
    SyncResponse,
    TokenResponse,
    TransactionOut,
    UnlockRequest,
    cohort_label,
)
from scoreboard.services.aggregator import totals_by_group
from scoreboard.services.engine import PasscodeNotSet, ScoreboardEngine
from scoreboard.services.ledger import DataError
from scoreboard.services.sync import SyncNetworkError, SyncNotConfigured, SyncRemoteError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/teacher", tags=["teacher"])


@router.post("/unlock", response_model=TokenResponse)
def unlock(payload: UnlockRequest, engine: ScoreboardEngine = Depends(get_engine)):
    try:
        accepted = engine.check_passcode(payload.passcode)
    except PasscodeNotSet as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if not accepted:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect passcode. Please try again.",
        )
    return TokenResponse(access_token=create_access_token())


@router.get("/roster", response_model=list[RosterHour], dependencies=[Depends(get_current_teacher)])
def roster(engine: ScoreboardEngine = Depends(get_engine)):
    store = engine.store
    hours: list[RosterHour] = []
    for hour in store.hours():
        groups = sorted((group for group in store.groups if group.hour == hour), key=lambda item: item.name)
        hours.append(
            RosterHour(
                id=hour,
                label=cohort_label(hour),
                groups=[
                    RosterGroup(
                        id=group.id,
                        name=group.name,
                        students=[
                            RosterStudent(id=student.id, name=student.name)
                            for student in sorted(
                                (s for s in store.students if s.group_id == group.id),
                                key=lambda item: item.name,
                            )
                        ],
                    )
                    for group in groups
                ],
            )
        )
    return hours


@router.post("/transactions", response_model=SubmissionResponse, dependencies=[Depends(get_current_teacher)])
async def add_transaction(payload: AdjustmentRequest, engine: ScoreboardEngine = Depends(get_engine)):
    try:
        result = await engine.submit_adjustment(payload)
    except DataError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SyncNotConfigured as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except (SyncNetworkError, SyncRemoteError) as exc:
        logger.warning("Transaction submission failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Error adding transaction: {exc}",
        ) from exc

    transaction = result.transaction
    celebration = result.celebration
    return SubmissionResponse(
        ok=True,
        transaction=TransactionOut.model_validate(transaction),
        group_points=totals_by_group(engine.store).get(transaction.group_id, 0),
        celebrate=celebration is not None,
        milestone_groups=celebration.group_ids if celebration else [],
    )


@router.post("/sync", response_model=SyncResponse, dependencies=[Depends(get_current_teacher)])
async def sync_transactions(engine: ScoreboardEngine = Depends(get_engine)):
    outcome = await engine.refresh_from_remote()
    return SyncResponse(
        ok=outcome.ok,
        transactions=len(engine.store.transactions),
        error=outcome.error,
        celebrate=outcome.celebration is not None,
    )


@router.get("/export", dependencies=[Depends(get_current_teacher)])
def export_dataset(engine: ScoreboardEngine = Depends(get_engine)):
    return JSONResponse(
        content=engine.export_dataset(),
        headers={"Content-Disposition": 'attachment; filename="scoreboard-data.json"'},
    )
