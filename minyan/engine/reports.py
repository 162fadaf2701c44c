"""
minyan.engine.reports — Minyan Report Validation
=================================================

Checks a prospective report before the ledger persists it.  Pure; the
service layer owns persistence and the synagogue existence check.

Numeric fields are tied to a status: ``minyan_count`` (10–200) only makes
sense for ``ACTIVE_NOW`` and ``needs_more`` (1–9) only for ``NEEDS_MORE``.
Supplying one with any other status is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass

from minyan.constants import MINYAN_COUNT_RANGE, NEEDS_MORE_RANGE
from minyan.database.models import PrayerType, ReportStatus
from minyan.engine.geo import validate_coordinates
from minyan.errors import ValidationError

__all__ = ["ReportDraft", "validate_report", "parse_prayer_type", "parse_status"]

MAX_NOTES_LENGTH = 1000


@dataclass(frozen=True, slots=True)
class ReportDraft:
    """A validated, not-yet-persisted minyan report."""

    synagogue_id: str
    reporter_id: str
    prayer_type: PrayerType
    status: ReportStatus
    minyan_count: int | None = None
    needs_more: int | None = None
    notes: str | None = None
    latitude: float | None = None
    longitude: float | None = None


def _required(value: str | None, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    return str(value).strip()


def parse_prayer_type(value: str | None, field: str = "prayerType") -> PrayerType:
    raw = _required(value, field).upper()
    try:
        return PrayerType(raw)
    except ValueError:
        raise ValidationError(
            f"Invalid {field}. Must be one of: {[p.value for p in PrayerType]}",
            field=field,
        ) from None


def parse_status(value: str | None, field: str = "status") -> ReportStatus:
    raw = _required(value, field).upper()
    try:
        return ReportStatus(raw)
    except ValueError:
        raise ValidationError(
            f"Invalid {field}. Must be one of: {[s.value for s in ReportStatus]}",
            field=field,
        ) from None


def _ranged_int(
    value: int | None,
    field: str,
    bounds: tuple[int, int],
    *,
    allowed: bool,
    required_status: ReportStatus,
) -> int | None:
    if value is None:
        return None
    if not allowed:
        raise ValidationError(
            f"{field} is only valid when status is {required_status.value}", field=field
        )
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer", field=field)
    low, high = bounds
    if not low <= value <= high:
        raise ValidationError(f"{field} must be between {low} and {high}", field=field)
    return value


def validate_report(
    synagogue_id: str | None,
    reporter_id: str | None,
    prayer_type: str | None,
    status: str | None,
    *,
    minyan_count: int | None = None,
    needs_more: int | None = None,
    notes: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
) -> ReportDraft:
    """Validate raw report fields and return a :class:`ReportDraft`.

    Raises
    ------
    ValidationError
        On a missing required field, an unknown enum value, an out-of-range
        number, or a number supplied with a status it doesn't belong to.
    """
    sid = _required(synagogue_id, "synagogueId")
    rid = _required(reporter_id, "reporterId")
    ptype = parse_prayer_type(prayer_type)
    st = parse_status(status)

    count = _ranged_int(
        minyan_count, "minyanCount", MINYAN_COUNT_RANGE,
        allowed=st is ReportStatus.ACTIVE_NOW, required_status=ReportStatus.ACTIVE_NOW,
    )
    missing = _ranged_int(
        needs_more, "needsMore", NEEDS_MORE_RANGE,
        allowed=st is ReportStatus.NEEDS_MORE, required_status=ReportStatus.NEEDS_MORE,
    )

    if notes is not None:
        notes = notes.strip() or None
        if notes and len(notes) > MAX_NOTES_LENGTH:
            raise ValidationError(
                f"notes must be at most {MAX_NOTES_LENGTH} characters", field="notes"
            )

    if (latitude is None) != (longitude is None):
        raise ValidationError("latitude and longitude must be given together", field="latitude")
    if latitude is not None:
        validate_coordinates(latitude, longitude)

    return ReportDraft(
        synagogue_id=sid,
        reporter_id=rid,
        prayer_type=ptype,
        status=st,
        minyan_count=count,
        needs_more=missing,
        notes=notes,
        latitude=latitude,
        longitude=longitude,
    )
