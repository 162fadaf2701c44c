"""
minyan.constants — Shared Constants
====================================

Single source of truth for ledger thresholds, numeric ranges and the
Hebrew display labels used by the client.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Minyan ledger
# ---------------------------------------------------------------------------
VERIFICATION_THRESHOLD = 2  # distinct corroborating users for "verified"

MINYAN_QUORUM = 10
MINYAN_COUNT_RANGE = (MINYAN_QUORUM, 200)  # only meaningful with ACTIVE_NOW
NEEDS_MORE_RANGE = (1, MINYAN_QUORUM - 1)  # only meaningful with NEEDS_MORE

MAX_REPORT_LIST_LIMIT = 100
DETAIL_RECENT_REPORTS = 10
DETAIL_MAX_PHOTOS = 5

# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------
RATING_RANGE = (1, 5)

# ---------------------------------------------------------------------------
# Geography
# ---------------------------------------------------------------------------
EARTH_RADIUS_KM = 6371.0
LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)

# ---------------------------------------------------------------------------
# Display labels (Hebrew UI)
# ---------------------------------------------------------------------------
NUSACH_LABELS: dict[str, str] = {
    "ASHKENAZ": "אשכנז",
    "SEPHARD": "ספרד",
    "EDOT_MIZRACH": "עדות המזרח",
    "YEMENITE": "תימני",
    "CHABAD": 'חב"ד',
}
