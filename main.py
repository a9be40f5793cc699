"""
main.py — Aplicación FastAPI.

Ejecución:
    uvicorn main:app --reload
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

import db as db_module
from config import settings
from middleware.error_handler import register_error_handlers
from routers import chat, health

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    db_module.init_db(settings.DATABASE_URL)
    await db_module.create_all_tables()
    logger.info(
        "startup: entorno=%s modelo=%s", settings.ENVIRONMENT, settings.GEMINI_MODEL
    )
    yield
    if db_module.engine is not None:
        await db_module.engine.dispose()
    logger.info("shutdown: engine liberado")


app = FastAPI(title="Companion Backend", version="1.0", lifespan=lifespan)

register_error_handlers(app)
app.include_router(health.router)
app.include_router(chat.router)
