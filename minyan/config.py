"""
minyan.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for the service's tunables (search radius limits,
time-provider endpoints and timeouts).  Secrets such as ``DATABASE_URL`` and
``MYZMANIM_API_KEY`` stay in the environment (``.env``).

Usage::

    from minyan.config import load_config

    cfg = load_config()                  # reads ./config.yaml by default
    print(cfg.search_radius_ceiling_km)  # 500.0
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from minyan.constants import MAX_REPORT_LIST_LIMIT


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class MinyanConfig:
    """Immutable configuration loaded from ``config.yaml``.

    Every field has a default so a partial YAML file is enough.
    """

    # Search
    search_radius_ceiling_km: float = 500.0  # radius at/above this disables the geo filter
    default_radius_km: float = 10.0          # used when a center is given without a radius

    # Prayer times
    provider_timeout_seconds: float = 3.0
    timezone: str = "Asia/Jerusalem"
    myzmanim_url: str = "https://www.myzmanim.com/webservice/zmanim"
    hebcal_url: str = "https://www.hebcal.com/zmanim"

    # Ledger
    report_list_limit: int = 20


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def clamp_list_limit(value: int) -> int:
    """Bound a default ledger page size to 1..MAX_REPORT_LIST_LIMIT."""
    return max(1, min(value, MAX_REPORT_LIST_LIMIT))


def load_config(path: str | Path = "config.yaml") -> MinyanConfig:
    """Read *path* and return a :class:`MinyanConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    defaults = MinyanConfig()
    search = raw.get("search") or {}
    times = raw.get("prayer_times") or {}
    reports = raw.get("reports") or {}

    return MinyanConfig(
        search_radius_ceiling_km=float(
            search.get("radius_ceiling_km", defaults.search_radius_ceiling_km)
        ),
        default_radius_km=float(search.get("default_radius_km", defaults.default_radius_km)),
        provider_timeout_seconds=float(
            times.get("provider_timeout_seconds", defaults.provider_timeout_seconds)
        ),
        timezone=str(times.get("timezone", defaults.timezone)),
        myzmanim_url=str(times.get("myzmanim_url", defaults.myzmanim_url)),
        hebcal_url=str(times.get("hebcal_url", defaults.hebcal_url)),
        report_list_limit=clamp_list_limit(
            int(reports.get("list_limit", defaults.report_list_limit))
        ),
    )
