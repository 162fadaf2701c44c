"""
minyan.api.deps — FastAPI dependency injection
================================================
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy import Engine

from minyan.config import MinyanConfig, load_config
from minyan.database.engine import create_db_engine
from minyan.services.prayer_times import PrayerTimeResolver, build_resolver


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> MinyanConfig:
    return load_config(os.getenv("MINYAN_CONFIG", "config.yaml"))


def get_resolver(cfg: Annotated[MinyanConfig, Depends(get_config)]) -> PrayerTimeResolver:
    return build_resolver(cfg)
