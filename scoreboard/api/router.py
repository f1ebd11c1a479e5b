from fastapi import APIRouter

from scoreboard.api import leaderboards, profiles, system, teacher

api_router = APIRouter()
api_router.include_router(system.router)
api_router.include_router(leaderboards.router)
api_router.include_router(profiles.router)
api_router.include_router(teacher.router)
