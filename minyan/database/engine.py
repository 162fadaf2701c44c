"""
minyan.database.engine — Database Connection & Session Helpers
===============================================================

One pooled SQLAlchemy engine per process, created from ``DATABASE_URL``.
Request handlers are synchronous and stateless; each one opens a short-lived
session and either commits or rolls back.

Store failures (connection refused, pool exhausted, …) are re-raised as
:class:`~minyan.errors.PersistenceError` so the API layer answers with a
structured 500.  Nothing here retries; retry is the caller's decision.

Usage::

    from minyan.database.engine import create_db_engine, get_session, init_db

    engine = create_db_engine()     # $DATABASE_URL
    init_db(engine)                 # create missing tables

    with get_session(engine) as session:
        session.add(Synagogue(...))
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from minyan.database.models import Base
from minyan.errors import PersistenceError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Pooled engine for *url* (defaults to ``$DATABASE_URL``).

    Pool sizing follows ``DB_POOL_SIZE`` / ``DB_MAX_OVERFLOW`` (5 / 10 by
    default); a request waits at most 10 s for a free connection before the
    driver error surfaces as :class:`~minyan.errors.PersistenceError`.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set; add it to .env (see .env.example)."
        )

    engine = create_engine(
        url,
        pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
        max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),
        pool_pre_ping=True,
        pool_timeout=10,
        pool_recycle=3600,
    )
    logger.info("Engine ready for %s/%s", engine.url.host, engine.url.database)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create any missing tables from :mod:`minyan.database.models`.

    Alembic owns the production schema (``alembic upgrade head``); this only
    keeps fresh dev and test databases usable without a migration run.
    """
    Base.metadata.create_all(engine)
    logger.info("Schema checked: %d tables", len(Base.metadata.tables))


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that commits on success and rolls back on
    exception.

    Objects stay readable after the block (``expire_on_commit=False``) so
    services can serialize them once the transaction is closed.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except IntegrityError:
        session.rollback()
        raise
    except (OperationalError, DBAPIError) as exc:
        session.rollback()
        logger.error("Persistence failure: %s", exc.__class__.__name__)
        raise PersistenceError("The data store is unavailable") from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** database function on a background thread.

    Async route handlers (the ones that also await a time provider) go
    through this wrapper so a slow query never blocks the event loop::

        detail = await run_db(get_synagogue_detail, engine, synagogue_id)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
