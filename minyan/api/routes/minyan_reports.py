"""
minyan.api.routes.minyan_reports — Minyan report ledger endpoints
===================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import Engine

from minyan.api.deps import get_config, get_engine
from minyan.config import MinyanConfig, clamp_list_limit
from minyan.services import report_service

router = APIRouter(tags=["minyan-reports"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ReportCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    synagogue_id: str | None = None
    reporter_id: str | None = Field(
        default=None, validation_alias=AliasChoices("reporterId", "userId", "reporter_id")
    )
    prayer_type: str | None = None
    status: str | None = None
    minyan_count: int | None = None
    needs_more: int | None = None
    notes: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @field_validator("minyan_count", "needs_more", "latitude", "longitude", mode="before")
    @classmethod
    def _blank_is_none(cls, v):
        # Form clients send "" for untouched number inputs
        if isinstance(v, str) and not v.strip():
            return None
        return v


class VerifyRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str | None = None


# ---------------------------------------------------------------------------
# GET /minyan-reports
# ---------------------------------------------------------------------------
@router.get("/minyan-reports")
def list_minyan_reports(
    synagogue_id: str | None = Query(None, alias="synagogueId"),
    prayer_type: str | None = Query(None, alias="prayerType"),
    status: str | None = Query(None),
    limit: int | None = Query(None),
    engine: Engine = Depends(get_engine),
    cfg: MinyanConfig = Depends(get_config),
):
    """Filtered ledger slice, newest first."""
    reports = report_service.list_reports(
        engine,
        synagogue_id=synagogue_id,
        prayer_type=prayer_type,
        status=status,
        limit=limit if limit is not None else clamp_list_limit(cfg.report_list_limit),
    )
    return {"reports": report_service.describe_reports(engine, reports)}


# ---------------------------------------------------------------------------
# POST /minyan-reports
# ---------------------------------------------------------------------------
@router.post("/minyan-reports", status_code=201)
def create_minyan_report(body: ReportCreate, engine: Engine = Depends(get_engine)):
    report = report_service.create_report(engine, **body.model_dump())
    return {"report": report_service.describe_reports(engine, [report])[0]}


# ---------------------------------------------------------------------------
# PUT /minyan-reports?id=… — verify
# ---------------------------------------------------------------------------
@router.put("/minyan-reports")
def verify_minyan_report(
    body: VerifyRequest,
    report_id: int = Query(..., alias="id"),
    engine: Engine = Depends(get_engine),
):
    """Add the caller to the report's verifiers (repeat calls are no-ops)."""
    report = report_service.verify_report(engine, report_id, body.user_id)
    return {"report": report_service.describe_reports(engine, [report])[0]}
