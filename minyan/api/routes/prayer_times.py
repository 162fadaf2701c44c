"""
minyan.api.routes.prayer_times — Resolved daily prayer times
==============================================================
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query

from minyan.api.deps import get_config, get_resolver
from minyan.config import MinyanConfig
from minyan.engine.geo import validate_coordinates
from minyan.errors import ValidationError
from minyan.services.prayer_times import PrayerTimeResolver, local_today

router = APIRouter(tags=["prayer-times"])


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError("date must be YYYY-MM-DD", field="date") from None


@router.get("/prayer-times")
async def get_prayer_times(
    lat: float | None = Query(None),
    lng: float | None = Query(None),
    day: str | None = Query(None, alias="date"),
    cfg: MinyanConfig = Depends(get_config),
    resolver: PrayerTimeResolver = Depends(get_resolver),
):
    """Times for a location/date; ``source`` tells which provider answered."""
    if lat is None or lng is None:
        raise ValidationError("Latitude and longitude are required", field="lat")
    point = validate_coordinates(lat, lng)
    target = _parse_date(day) if day else local_today(cfg.timezone)

    times = await resolver.resolve(point.lat, point.lng, target)
    return {"prayerTimes": times.to_dict(), "date": target.isoformat()}
