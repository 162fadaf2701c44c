"""
minyan.engine.geo — Geographic & Free-Text Synagogue Search
============================================================

Pure filtering and ranking over synagogue summaries (no I/O).  The service
layer loads the candidates and hands them to :func:`search`.

Rules:

* Distance is great-circle (haversine) on a 6371 km sphere.  Good to ~0.5%
  at city-to-country scales; the ellipsoid is ignored on purpose.
* A non-empty ``text`` searches the whole corpus: any center and radius are
  ignored, neither validated nor used to filter, and no distance is attached.
* A radius at or above the configured ceiling disables the geographic
  filter instead of filtering by a radius that covers everything anyway.
* Unknown nusach values are ignored rather than matching nothing.
* Results are ordered by descending rating; ties keep input order.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, replace

from minyan.constants import EARTH_RADIUS_KM, LATITUDE_RANGE, LONGITUDE_RANGE, NUSACH_LABELS
from minyan.database.models import Nusach
from minyan.errors import ValidationError

__all__ = [
    "GeoPoint",
    "SearchFilter",
    "SynagogueSummary",
    "haversine_km",
    "parse_nusach",
    "search",
    "validate_coordinates",
]

_NUSACH_VALUES = frozenset(n.value for n in Nusach)


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class SearchFilter:
    """Every field is optional; an empty filter returns the whole corpus."""

    center: GeoPoint | None = None
    radius_km: float | None = None
    nusach: str | None = None
    text: str | None = None


@dataclass(frozen=True, slots=True)
class SynagogueSummary:
    """The list-view shape of a synagogue, carrying its computed rating."""

    id: str
    name: str
    address: str
    city: str
    latitude: float
    longitude: float
    nusach: str
    average_rating: float = 0.0
    total_reviews: int = 0
    wheelchair_access: bool = False
    parking: bool = False
    air_conditioning: bool = False
    distance_km: float | None = None

    def to_dict(self) -> dict:
        body = {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "nusach": self.nusach,
            "nusachLabel": NUSACH_LABELS.get(self.nusach, self.nusach),
            "averageRating": self.average_rating,
            "totalReviews": self.total_reviews,
            "wheelchairAccess": self.wheelchair_access,
            "parking": self.parking,
            "airConditioning": self.air_conditioning,
        }
        if self.distance_km is not None:
            body["distanceKm"] = round(self.distance_km, 2)
        return body


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def validate_coordinates(lat: float, lng: float) -> GeoPoint:
    """Return a :class:`GeoPoint`, or raise ``ValidationError`` when out of range."""
    if lat is None or not math.isfinite(lat) or not LATITUDE_RANGE[0] <= lat <= LATITUDE_RANGE[1]:
        raise ValidationError("Latitude must be between -90 and 90", field="lat")
    if lng is None or not math.isfinite(lng) or not LONGITUDE_RANGE[0] <= lng <= LONGITUDE_RANGE[1]:
        raise ValidationError("Longitude must be between -180 and 180", field="lng")
    return GeoPoint(lat=lat, lng=lng)


def parse_nusach(value: str | None) -> str | None:
    """Normalize a nusach filter value; unknown values come back as ``None``."""
    if not value:
        return None
    candidate = value.strip().upper()
    return candidate if candidate in _NUSACH_VALUES else None


# ---------------------------------------------------------------------------
# Distance
# ---------------------------------------------------------------------------
def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between *a* and *b* in kilometres."""
    phi1, phi2 = math.radians(a.lat), math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlambda = math.radians(b.lng - a.lng)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
def _matches_text(s: SynagogueSummary, needle: str) -> bool:
    # casefold() is Unicode-aware; scripts without case (Hebrew) pass through
    return any(needle in field.casefold() for field in (s.name, s.address, s.city))


def search(
    records: Sequence[SynagogueSummary],
    flt: SearchFilter,
    *,
    radius_ceiling_km: float = 500.0,
    default_radius_km: float = 10.0,
) -> list[SynagogueSummary]:
    """Filter *records* by *flt* and rank them by descending rating.

    Raises
    ------
    ValidationError
        If no text is given and the center is out of range or the radius
        is negative.
    """
    needle = (flt.text or "").strip().casefold()
    nusach = parse_nusach(flt.nusach)

    center = None
    apply_geo = False
    if not needle:
        center = validate_coordinates(flt.center.lat, flt.center.lng) if flt.center else None
        if flt.radius_km is not None and (not math.isfinite(flt.radius_km) or flt.radius_km < 0):
            raise ValidationError("Radius must be a non-negative number", field="radius")
        radius = flt.radius_km if flt.radius_km is not None else default_radius_km
        apply_geo = center is not None and radius < radius_ceiling_km

    results: list[SynagogueSummary] = []
    for s in records:
        if nusach is not None and s.nusach != nusach:
            continue
        if needle and not _matches_text(s, needle):
            continue
        if center is not None:
            distance = haversine_km(center, GeoPoint(s.latitude, s.longitude))
            if apply_geo and distance > radius:
                continue
            s = replace(s, distance_km=distance)
        results.append(s)

    # sorted() is stable, so equal ratings keep their input order
    return sorted(results, key=lambda s: -s.average_rating)
