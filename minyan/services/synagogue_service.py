"""
minyan.services.synagogue_service — Catalogue, Search & Reviews
================================================================

Loads synagogue candidates from the store and hands them to the pure
search in :mod:`minyan.engine.geo`.  Ratings are recomputed from the raw
reviews on every read via :mod:`minyan.engine.rating`; a synagogue with no
local reviews keeps the rating it was imported with.

Search and reporting never modify synagogue rows.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from sqlalchemy import Engine, case, select
from sqlalchemy.orm import Session

from minyan.config import MinyanConfig
from minyan.constants import (
    DETAIL_MAX_PHOTOS,
    DETAIL_RECENT_REPORTS,
    NUSACH_LABELS,
    RATING_RANGE,
)
from minyan.database.engine import get_session
from minyan.database.models import (
    Nusach,
    PrayerSchedule,
    PrayerType,
    Review,
    Synagogue,
    SynagoguePhoto,
)
from minyan.engine import geo
from minyan.engine.rating import RatingSummary, compute_average
from minyan.engine.reports import parse_prayer_type
from minyan.engine.zmanim import normalize_time
from minyan.errors import NotFoundError, ValidationError
from minyan.services import report_service

logger = logging.getLogger(__name__)

_AMENITIES = ("wheelchair_access", "parking", "air_conditioning", "womens_section", "mikveh")
_OPTIONAL_TEXT = ("state", "postal_code", "rabbi", "phone", "email", "website", "description")

# Schedule rows within a day follow the order of the services, not clock time
_PRAYER_ORDER = case(
    {p.value: i for i, p in enumerate(PrayerType)},
    value=PrayerSchedule.prayer_type,
)


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------
def _ratings_by_synagogue(session: Session, ids: list[str] | None = None) -> dict[str, list[int]]:
    stmt = select(Review.synagogue_id, Review.rating)
    if ids is not None:
        stmt = stmt.where(Review.synagogue_id.in_(ids))
    grouped: dict[str, list[int]] = defaultdict(list)
    for synagogue_id, rating in session.execute(stmt).all():
        grouped[synagogue_id].append(rating)
    return grouped


def display_rating(s: Synagogue, ratings: list[int]) -> RatingSummary:
    """Aggregated local reviews, or the imported rating when there are none."""
    if ratings:
        return compute_average({"rating": r} for r in ratings)
    return RatingSummary(average=s.average_rating or 0.0, total_reviews=s.total_reviews or 0)


def _summary(s: Synagogue, rating: RatingSummary) -> geo.SynagogueSummary:
    return geo.SynagogueSummary(
        id=s.id,
        name=s.name,
        address=s.address,
        city=s.city,
        latitude=s.latitude,
        longitude=s.longitude,
        nusach=s.nusach,
        average_rating=rating.average,
        total_reviews=rating.total_reviews,
        wheelchair_access=bool(s.wheelchair_access),
        parking=bool(s.parking),
        air_conditioning=bool(s.air_conditioning),
    )


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
def search_synagogues(
    engine: Engine,
    flt: geo.SearchFilter,
    cfg: MinyanConfig | None = None,
) -> list[geo.SynagogueSummary]:
    """Run :func:`minyan.engine.geo.search` over the stored catalogue."""
    cfg = cfg or MinyanConfig()

    stmt = select(Synagogue).order_by(Synagogue.created_at, Synagogue.id)
    nusach = geo.parse_nusach(flt.nusach)
    if nusach is not None:
        stmt = stmt.where(Synagogue.nusach == nusach)

    with get_session(engine) as session:
        rows = session.scalars(stmt).all()
        ratings = _ratings_by_synagogue(session)
        candidates = [_summary(s, display_rating(s, ratings.get(s.id, []))) for s in rows]

    return geo.search(
        candidates,
        flt,
        radius_ceiling_km=cfg.search_radius_ceiling_km,
        default_radius_km=cfg.default_radius_km,
    )


# ---------------------------------------------------------------------------
# Detail
# ---------------------------------------------------------------------------
def _synagogue_dict(s: Synagogue, rating: RatingSummary) -> dict:
    return {
        "id": s.id,
        "name": s.name,
        "address": s.address,
        "city": s.city,
        "state": s.state,
        "country": s.country,
        "postalCode": s.postal_code,
        "latitude": s.latitude,
        "longitude": s.longitude,
        "nusach": s.nusach,
        "nusachLabel": NUSACH_LABELS.get(s.nusach, s.nusach),
        "rabbi": s.rabbi,
        "phone": s.phone,
        "email": s.email,
        "website": s.website,
        "description": s.description,
        "wheelchairAccess": s.wheelchair_access,
        "parking": s.parking,
        "airConditioning": s.air_conditioning,
        "womensSection": s.womens_section,
        "mikveh": s.mikveh,
        "averageRating": rating.average,
        "totalReviews": rating.total_reviews,
        "createdAt": s.created_at.isoformat() if s.created_at else None,
    }


def get_synagogue_detail(engine: Engine, synagogue_id: str) -> dict:
    """Full record with schedule, photos, recent reports and current status.

    Raises
    ------
    NotFoundError
        If the synagogue does not exist.
    """
    with get_session(engine) as session:
        s = session.get(Synagogue, synagogue_id)
        if s is None:
            raise NotFoundError(f"Synagogue {synagogue_id} not found")

        rating = display_rating(s, _ratings_by_synagogue(session, [s.id]).get(s.id, []))

        schedule = session.scalars(
            select(PrayerSchedule)
            .where(PrayerSchedule.synagogue_id == s.id)
            .order_by(PrayerSchedule.day_of_week, _PRAYER_ORDER)
        ).all()
        photos = session.scalars(
            select(SynagoguePhoto)
            .where(SynagoguePhoto.synagogue_id == s.id)
            .order_by(SynagoguePhoto.is_primary.desc(), SynagoguePhoto.id)
            .limit(DETAIL_MAX_PHOTOS)
        ).all()

        recent = report_service.recent_reports(session, s.id, DETAIL_RECENT_REPORTS)
        latest = report_service.current_status(session, s.id)
        reporters = report_service.load_reporters(session, [*recent, *latest.values()])

        detail = _synagogue_dict(s, rating)
        detail["prayerSchedule"] = [
            {"dayOfWeek": p.day_of_week, "prayerType": p.prayer_type, "time": p.time}
            for p in schedule
        ]
        detail["photos"] = [
            {"id": ph.id, "url": ph.url, "caption": ph.caption, "isPrimary": ph.is_primary}
            for ph in photos
        ]
        detail["recentReports"] = [
            report_service.report_to_dict(r, reporters.get(r.reporter_id)) for r in recent
        ]
        detail["currentStatus"] = {
            prayer: report_service.report_to_dict(r, reporters.get(r.reporter_id))
            for prayer, r in latest.items()
        }
    return detail


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def _required_text(data: dict[str, Any], key: str, label: str) -> str:
    value = data.get(key)
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required", field=label)
    return str(value).strip()


def _parse_schedule(entries: list[dict[str, Any]] | None) -> list[PrayerSchedule]:
    rows: list[PrayerSchedule] = []
    seen: set[tuple[int, str]] = set()
    for entry in entries or []:
        day = entry.get("day_of_week")
        if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
            raise ValidationError("dayOfWeek must be between 0 and 6", field="prayerSchedule")
        prayer = parse_prayer_type(entry.get("prayer_type"), field="prayerSchedule.prayerType")
        try:
            time = normalize_time(entry.get("time"))
        except ValueError:
            raise ValidationError(
                f"Invalid time {entry.get('time')!r}", field="prayerSchedule.time"
            ) from None

        slot = (day, prayer.value)
        if slot in seen:
            raise ValidationError(
                f"Duplicate schedule entry for day {day} {prayer.value}", field="prayerSchedule"
            )
        seen.add(slot)
        rows.append(PrayerSchedule(day_of_week=day, prayer_type=prayer.value, time=time))
    return rows


def create_synagogue(engine: Engine, data: dict[str, Any]) -> dict:
    """Validate and insert a synagogue (and optional weekly schedule).

    *data* uses snake_case keys matching the model columns, plus an optional
    ``prayer_schedule`` list of ``{day_of_week, prayer_type, time}``.

    Raises
    ------
    ValidationError
        On missing name/address/city, bad coordinates, an unknown nusach,
        or a malformed / duplicate schedule entry.
    """
    name = _required_text(data, "name", "name")
    address = _required_text(data, "address", "address")
    city = _required_text(data, "city", "city")

    lat, lng = data.get("latitude"), data.get("longitude")
    if lat is None or lng is None:
        raise ValidationError("latitude and longitude are required", field="latitude")
    try:
        point = geo.validate_coordinates(float(lat), float(lng))
    except (TypeError, ValueError):
        raise ValidationError("latitude and longitude must be numbers", field="latitude") from None

    raw_nusach = data.get("nusach") or Nusach.ASHKENAZ.value
    nusach = geo.parse_nusach(raw_nusach)
    if nusach is None:
        raise ValidationError(
            f"Invalid nusach. Must be one of: {[n.value for n in Nusach]}", field="nusach"
        )

    synagogue = Synagogue(
        name=name,
        address=address,
        city=city,
        country=(data.get("country") or "ישראל"),
        latitude=point.lat,
        longitude=point.lng,
        nusach=nusach,
        **{key: (data.get(key) or None) for key in _OPTIONAL_TEXT},
        **{key: bool(data.get(key, False)) for key in _AMENITIES},
    )
    synagogue.schedule = _parse_schedule(data.get("prayer_schedule"))

    with get_session(engine) as session:
        session.add(synagogue)
        session.flush()
        synagogue_id = synagogue.id

    logger.info("Synagogue %s created: %r (%s)", synagogue_id, name, city)
    return get_synagogue_detail(engine, synagogue_id)


def add_review(
    engine: Engine,
    synagogue_id: str,
    *,
    rating: int | None,
    comment: str | None = None,
    user_id: str | None = None,
) -> tuple[Review, RatingSummary]:
    """Store a review and return it with the synagogue's refreshed rating.

    Raises
    ------
    ValidationError
        If *rating* is not an integer in 1–5.
    NotFoundError
        If the synagogue does not exist.
    """
    low, high = RATING_RANGE
    if isinstance(rating, bool) or not isinstance(rating, int) or not low <= rating <= high:
        raise ValidationError(f"rating must be an integer between {low} and {high}", field="rating")

    with get_session(engine) as session:
        s = session.get(Synagogue, synagogue_id)
        if s is None:
            raise NotFoundError(f"Synagogue {synagogue_id} not found")
        review = Review(
            synagogue_id=s.id,
            user_id=user_id,
            rating=rating,
            comment=(comment or "").strip() or None,
        )
        session.add(review)
        session.flush()
        summary = display_rating(s, _ratings_by_synagogue(session, [s.id]).get(s.id, []))

    logger.info("Review %s added to synagogue %s (rating=%d)", review.id, synagogue_id, rating)
    return review, summary


def review_to_dict(review: Review) -> dict:
    return {
        "id": review.id,
        "synagogueId": review.synagogue_id,
        "userId": review.user_id,
        "rating": review.rating,
        "comment": review.comment,
        "createdAt": review.created_at.isoformat() if review.created_at else None,
    }
