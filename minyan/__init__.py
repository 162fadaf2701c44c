"""
Minyan Finder — Synagogue Search, Prayer Times & Live Minyan Reports
=====================================================================
Finds synagogues near a point or by free text, resolves daily prayer times
with graceful fallback across time providers, and keeps a community-sourced
ledger of whether a minyan is forming, active, or short of people.

Package layout::

    minyan/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Enum labels, thresholds
    ├── errors.py          # Error hierarchy (validation, not found, …)
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helpers
    │   └── models.py      # ORM models (synagogues, schedules, reports, …)
    ├── engine/
    │   ├── geo.py         # Haversine distance + search filtering/ranking
    │   ├── zmanim.py      # Local sunrise/sunset calculation
    │   ├── rating.py      # Review → display rating
    │   └── reports.py     # Minyan report field validation
    ├── services/
    │   ├── synagogue_service.py  # Catalogue reads/writes, search
    │   ├── report_service.py     # Minyan report ledger
    │   └── prayer_times.py       # Provider chain resolver
    └── api/
        ├── main.py        # FastAPI app
        ├── error_handlers.py
        └── routes/        # Public REST endpoints
"""

__version__ = "0.1.0"
