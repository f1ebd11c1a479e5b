import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from scoreboard.api.router import api_router
from scoreboard.core.config import get_settings
from scoreboard.db.session import create_tables
from scoreboard.services.engine import ScoreboardEngine
from scoreboard.services.kv_store import KeyValueStore
from scoreboard.services.ledger import DataError

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        create_tables()
        engine = ScoreboardEngine(storage=KeyValueStore())
        try:
            await run_in_threadpool(engine.load_file, settings.dataset_file)
        except DataError as exc:
            logger.error("Failed to initialize scoreboard: %s", exc)
            raise

        if settings.sync_on_startup and engine.sync_client.configured:
            outcome = await engine.refresh_from_remote()
            if outcome.ok:
                logger.info("Loaded %d transaction(s) from remote store on start-up.", outcome.replaced_count)

        app.state.engine = engine
        yield
        app.state.engine = None

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    return app


app = create_app()
