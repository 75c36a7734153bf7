import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from elkarbackup.api import jobs, maintenance, parameters
from elkarbackup.dependencies import get_log_handler, get_tick_service
from elkarbackup.utils.migrations import run_migrations

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Starting ElkarBackup dispatch service...")

    if not run_migrations():
        raise RuntimeError("Database migration failed, refusing to start")
    logger.info("Database ready")

    log_handler = get_log_handler()
    logging.getLogger("elkarbackup").addHandler(log_handler)

    tick_service = get_tick_service()
    await tick_service.start()

    try:
        yield
    finally:
        logger.info("Shutting down...")
        await tick_service.stop()
        await log_handler.flush_records()
        logging.getLogger("elkarbackup").removeHandler(log_handler)


app = FastAPI(title="ElkarBackup - job queue and command mailbox", lifespan=lifespan)

app.include_router(
    jobs.router,
    prefix="/api",
    tags=["jobs"],
)

app.include_router(
    maintenance.router,
    prefix="/api",
    tags=["maintenance"],
)

app.include_router(
    parameters.router,
    prefix="/api/parameters",
    tags=["parameters"],
)
