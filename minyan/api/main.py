"""
minyan.api.main — FastAPI application entry point
===================================================

Run with::

    uvicorn minyan.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from minyan import __version__  # noqa: E402
from minyan.api.deps import get_engine  # noqa: E402
from minyan.api.error_handlers import register_error_handlers  # noqa: E402
from minyan.api.routes.minyan_reports import router as reports_router  # noqa: E402
from minyan.api.routes.prayer_times import router as prayer_times_router  # noqa: E402
from minyan.api.routes.synagogues import router as synagogues_router  # noqa: E402
from minyan.database.engine import init_db  # noqa: E402

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle: create missing tables, warm the engine."""
    engine = get_engine()
    init_db(engine)
    logger.info("Minyan API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Minyan API shutting down")


app = FastAPI(
    title="Minyan Finder API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(synagogues_router, prefix="/api")
app.include_router(prayer_times_router, prefix="/api")
app.include_router(reports_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
