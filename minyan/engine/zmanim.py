"""
minyan.engine.zmanim — Local Sunrise/Sunset & Prayer-Time Calculation
======================================================================

The terminal step of the prayer-time provider chain.  Pure arithmetic that
cannot fail, so the resolver always has an answer.

Approximation used::

    declination = 23.45° · sin(2π · (284 + dayOfYear) / 365)
    H           = acos(clamp(-tan(lat) · tan(declination), -1, 1))
    sunrise     = 12 - H·12/π - lng/15     (hours)
    sunset      = 12 + H·12/π - lng/15

    shacharit = sunrise + 30 min
    mincha    = sunset  - 30 min
    maariv    = sunset  + 15 min

The clamp turns polar day/night into a degenerate sunrise ≈ sunset instead
of a math domain error.  Not halachically precise; results are labelled
``source="calculated"`` so clients can show lower confidence.

Also hosts :func:`normalize_time`, which coerces provider payload times into
``HH:MM``.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime

__all__ = [
    "PrayerTimes",
    "add_minutes",
    "calculate_prayer_times",
    "day_of_year",
    "format_hhmm",
    "normalize_time",
    "solar_declination",
    "sun_times",
]

MINUTES_PER_DAY = 24 * 60

SHACHARIT_AFTER_SUNRISE = 30
MINCHA_BEFORE_SUNSET = 30
MAARIV_AFTER_SUNSET = 15

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")
_AMPM = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?\s*([AaPp])\.?[Mm]\.?$")


@dataclass(frozen=True, slots=True)
class PrayerTimes:
    shacharit: str
    mincha: str
    maariv: str
    sunrise: str
    sunset: str
    source: str

    def to_dict(self) -> dict[str, str]:
        return {
            "shacharit": self.shacharit,
            "mincha": self.mincha,
            "maariv": self.maariv,
            "sunrise": self.sunrise,
            "sunset": self.sunset,
            "source": self.source,
        }


# ---------------------------------------------------------------------------
# Time-of-day helpers
# ---------------------------------------------------------------------------
def format_hhmm(total_minutes: int) -> str:
    """Render minutes-since-midnight as ``HH:MM``, wrapping modulo 24 h."""
    total_minutes %= MINUTES_PER_DAY
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def add_minutes(hhmm: str, delta: int) -> str:
    hours, minutes = (int(part) for part in hhmm.split(":"))
    return format_hhmm(hours * 60 + minutes + delta)


def normalize_time(value: object) -> str:
    """Coerce a provider time value into ``HH:MM``.

    Accepts ``HH:MM[:SS]``, ``H:MM AM/PM`` and ISO-8601 datetimes (the wall
    clock of the given offset is kept).

    Raises
    ------
    ValueError
        If *value* is not a recognizable time.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Not a time value: {value!r}")
    text = value.strip()

    if m := _HHMM.match(text):
        hours, minutes = int(m.group(1)), int(m.group(2))
    elif m := _AMPM.match(text):
        hours, minutes = int(m.group(1)), int(m.group(2))
        if not 1 <= hours <= 12:
            raise ValueError(f"Hour out of range: {value!r}")
        hours = hours % 12 + (12 if m.group(3).lower() == "p" else 0)
    else:
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"Unrecognized time format: {value!r}") from None
        hours, minutes = parsed.hour, parsed.minute

    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Time out of range: {value!r}")
    return f"{hours:02d}:{minutes:02d}"


# ---------------------------------------------------------------------------
# Solar approximation
# ---------------------------------------------------------------------------
def day_of_year(d: date) -> int:
    """1 for January 1st."""
    return d.timetuple().tm_yday


def solar_declination(doy: int) -> float:
    """Approximate solar declination in degrees."""
    return 23.45 * math.sin(2 * math.pi * (284 + doy) / 365)


def _finite(value: float) -> float:
    return value if isinstance(value, (int, float)) and math.isfinite(value) else 0.0


def sun_times(lat: float, lng: float, d: date) -> tuple[float, float]:
    """Return ``(sunrise, sunset)`` in fractional hours (may fall outside 0–24)."""
    lat, lng = _finite(lat), _finite(lng)
    decl = math.radians(solar_declination(day_of_year(d)))
    cos_h = -math.tan(math.radians(lat)) * math.tan(decl)
    hour_angle = math.acos(max(-1.0, min(1.0, cos_h)))

    half_day = hour_angle * 12 / math.pi
    offset = lng / 15
    return 12 - half_day - offset, 12 + half_day - offset


def calculate_prayer_times(lat: float, lng: float, d: date) -> PrayerTimes:
    sunrise_h, sunset_h = sun_times(lat, lng, d)
    sunrise = math.floor(sunrise_h * 60)
    sunset = math.floor(sunset_h * 60)

    return PrayerTimes(
        shacharit=format_hhmm(sunrise + SHACHARIT_AFTER_SUNRISE),
        mincha=format_hhmm(sunset - MINCHA_BEFORE_SUNSET),
        maariv=format_hhmm(sunset + MAARIV_AFTER_SUNSET),
        sunrise=format_hhmm(sunrise),
        sunset=format_hhmm(sunset),
        source="calculated",
    )
