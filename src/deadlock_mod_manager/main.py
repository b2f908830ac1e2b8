import logging
import sys
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import deadlock_mod_manager.models  # noqa: F401  register all models with SQLModel
from deadlock_mod_manager import database
from deadlock_mod_manager.routers import api_router
from deadlock_mod_manager.schemas.download import DownloadEvent, DownloadEventKind
from deadlock_mod_manager.services.catalog import GameBananaClient
from deadlock_mod_manager.services.download_orchestrator import DownloadOrchestrator
from deadlock_mod_manager.services.metadata_store import SqlMetadataStore


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    for name in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)


_configure_logging()
logger = logging.getLogger(__name__)


def _log_event(event: DownloadEvent) -> None:
    if event.kind == DownloadEventKind.progress:
        return
    logger.info("%s task=%d mod=%d", event.kind, event.task_id, event.mod_id)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    database.create_db_and_tables()
    async with AsyncExitStack() as stack:
        catalog = await stack.enter_async_context(GameBananaClient())
        orchestrator = DownloadOrchestrator(
            catalog,
            SqlMetadataStore(database.engine),
            on_event=_log_event,
        )
        app.state.orchestrator = orchestrator
        logger.info("Application started")
        yield
        logger.info("Shutting down...")
        await orchestrator.shutdown()
    database.engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Deadlock Mod Manager",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:1420", "https://tauri.localhost"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(api_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
