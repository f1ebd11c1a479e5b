from fastapi import APIRouter, Depends

from scoreboard.api.deps import get_engine
from scoreboard.core.config import get_settings
from scoreboard.services.engine import ScoreboardEngine

router = APIRouter(tags=["system"])


@router.get("/health")
def health():
    settings = get_settings()
    return {"status": "ok", "version": settings.app_version}


@router.get("/system/info")
def system_info(engine: ScoreboardEngine = Depends(get_engine)):
    settings = get_settings()
    return {
        "app_name": settings.app_name,
        "app_env": settings.app_env,
        "app_version": settings.app_version,
        "sync_configured": engine.sync_client.configured,
        "groups": len(engine.store.groups),
        "students": len(engine.store.students),
        "transactions": len(engine.store.transactions),
        "milestone_interval": engine.milestones.interval,
    }
