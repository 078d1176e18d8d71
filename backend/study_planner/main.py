import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import telemetry_pipeline  # noqa: F401
from .catalog import get_catalog
from .config import Settings, get_settings
from .db.monitoring import get_pool_snapshot
from .db.session import get_engine, init_db
from .logging_config import configure_logging
from .planner_routes import router as planner_router


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    if get_settings().persistence_mode == "database":
        try:
            init_db()
        except (SQLAlchemyError, RuntimeError):
            logger.exception("Failed to create planner tables at startup")
        else:
            logger.info("Planner tables ready")
    yield


app = FastAPI(title="Study Planner Backend", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(planner_router)

settings_snapshot = get_settings()
logger.info("Planner starting in %s persistence mode", settings_snapshot.persistence_mode)
logger.info("Catalog version: %s", get_catalog().version)


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    return {"status": "ok", "persistence_mode": settings.persistence_mode}


@app.get("/healthz/database")
def database_health(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    if settings.persistence_mode != "database":
        return {"status": "skipped", "persistence_mode": settings.persistence_mode}
    try:
        engine = get_engine()
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except (SQLAlchemyError, RuntimeError) as exc:
        logger.warning("Database health check failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    return {"status": "ok", "persistence_mode": settings.persistence_mode, "pool": get_pool_snapshot(engine)}


def run() -> None:
    import uvicorn

    uvicorn.run(
        app,
        host=os.getenv("STUDY_PLANNER_HOST", "0.0.0.0"),
        port=int(os.getenv("STUDY_PLANNER_PORT", "8000")),
        log_level="info",
    )


if __name__ == "__main__":
    run()
