"""
minyan.api.routes.synagogues — Synagogue search, detail & creation
====================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import Engine

from minyan.api.deps import get_config, get_engine, get_resolver
from minyan.config import MinyanConfig
from minyan.database.engine import run_db
from minyan.engine import geo
from minyan.services import synagogue_service
from minyan.services.prayer_times import PrayerTimeResolver, local_today

router = APIRouter(tags=["synagogues"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScheduleEntry(_CamelModel):
    day_of_week: int | None = None  # 0 = Sunday
    prayer_type: str | None = None
    time: str | None = None


class SynagogueCreate(_CamelModel):
    name: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    nusach: str | None = None
    rabbi: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    description: str | None = None
    wheelchair_access: bool = False
    parking: bool = False
    air_conditioning: bool = False
    womens_section: bool = False
    mikveh: bool = False
    prayer_schedule: list[ScheduleEntry] = []


class ReviewCreate(_CamelModel):
    rating: int | None = None
    comment: str | None = None
    user_id: str | None = None


# ---------------------------------------------------------------------------
# GET /synagogues
# ---------------------------------------------------------------------------
@router.get("/synagogues")
def list_synagogues(
    lat: float | None = Query(None),
    lng: float | None = Query(None),
    radius: float | None = Query(None),
    nusach: str | None = Query(None),
    search: str | None = Query(None),
    engine: Engine = Depends(get_engine),
    cfg: MinyanConfig = Depends(get_config),
):
    """Synagogues near a point and/or matching free text, best rated first."""
    center = geo.GeoPoint(lat, lng) if lat is not None and lng is not None else None
    flt = geo.SearchFilter(center=center, radius_km=radius, nusach=nusach, text=search)
    results = synagogue_service.search_synagogues(engine, flt, cfg)
    return {"synagogues": [s.to_dict() for s in results]}


# ---------------------------------------------------------------------------
# GET /synagogues/{id}
# ---------------------------------------------------------------------------
@router.get("/synagogues/{synagogue_id}")
async def get_synagogue(
    synagogue_id: str,
    engine: Engine = Depends(get_engine),
    cfg: MinyanConfig = Depends(get_config),
    resolver: PrayerTimeResolver = Depends(get_resolver),
):
    """Full detail.  Without a published schedule, today's resolved times are attached."""
    detail = await run_db(synagogue_service.get_synagogue_detail, engine, synagogue_id)
    if not detail["prayerSchedule"]:
        times = await resolver.resolve(
            detail["latitude"], detail["longitude"], local_today(cfg.timezone)
        )
        detail["prayerTimes"] = times.to_dict()
    return {"synagogue": detail}


# ---------------------------------------------------------------------------
# POST /synagogues
# ---------------------------------------------------------------------------
@router.post("/synagogues", status_code=201)
def create_synagogue(body: SynagogueCreate, engine: Engine = Depends(get_engine)):
    detail = synagogue_service.create_synagogue(engine, body.model_dump())
    return {"synagogue": detail}


# ---------------------------------------------------------------------------
# POST /synagogues/{id}/reviews
# ---------------------------------------------------------------------------
@router.post("/synagogues/{synagogue_id}/reviews", status_code=201)
def add_review(synagogue_id: str, body: ReviewCreate, engine: Engine = Depends(get_engine)):
    review, rating = synagogue_service.add_review(
        engine,
        synagogue_id,
        rating=body.rating,
        comment=body.comment,
        user_id=body.user_id,
    )
    return {"review": synagogue_service.review_to_dict(review), "rating": rating.to_dict()}
