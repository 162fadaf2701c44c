"""
minyan.services.report_service — Minyan Report Ledger
======================================================

Append-only log of community observations, one row per report.  "Current
status" for a (synagogue, prayer) pair is simply the newest report for it;
reports never transition into one another.

Verification is a set-union: each corroboration is its own row keyed by
``(report_id, verifier_id)``.  The insert runs inside a SAVEPOINT and a
primary-key collision means the verifier was already in the set, so:

* concurrent verifications by different users both land;
* a repeated or concurrent verification by the same user is a no-op.

``is_verified`` is derived from the row count on every read and never
stored, so it cannot drift from ``verified_by``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import Engine, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from minyan.constants import MAX_REPORT_LIST_LIMIT
from minyan.database.engine import get_session
from minyan.database.models import (
    MinyanReport,
    MinyanReportVerification,
    Synagogue,
    User,
)
from minyan.engine.reports import parse_prayer_type, parse_status, validate_report
from minyan.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def create_report(
    engine: Engine,
    *,
    synagogue_id: str | None,
    reporter_id: str | None,
    prayer_type: str | None,
    status: str | None,
    minyan_count: int | None = None,
    needs_more: int | None = None,
    notes: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
) -> MinyanReport:
    """Validate and persist a new report with an empty verification set.

    Raises
    ------
    ValidationError
        On missing / malformed fields (see :func:`validate_report`).
    NotFoundError
        If the synagogue does not exist.
    """
    draft = validate_report(
        synagogue_id,
        reporter_id,
        prayer_type,
        status,
        minyan_count=minyan_count,
        needs_more=needs_more,
        notes=notes,
        latitude=latitude,
        longitude=longitude,
    )

    with get_session(engine) as session:
        if session.get(Synagogue, draft.synagogue_id) is None:
            raise NotFoundError(f"Synagogue {draft.synagogue_id} not found")

        report = MinyanReport(
            synagogue_id=draft.synagogue_id,
            reporter_id=draft.reporter_id,
            prayer_type=draft.prayer_type.value,
            status=draft.status.value,
            minyan_count=draft.minyan_count,
            needs_more=draft.needs_more,
            notes=draft.notes,
            latitude=draft.latitude,
            longitude=draft.longitude,
        )
        session.add(report)
        session.flush()
        _ = report.verifications  # initialise the (empty) collection before close

    logger.info(
        "Report %s created: synagogue=%s %s %s by %s",
        report.id, report.synagogue_id, report.prayer_type, report.status, report.reporter_id,
    )
    return report


def verify_report(engine: Engine, report_id: int, verifier_id: str | None) -> MinyanReport:
    """Add *verifier_id* to the report's verification set (idempotent).

    Raises
    ------
    ValidationError
        If *verifier_id* is blank or is the report's own author.
    NotFoundError
        If the report does not exist.
    """
    if verifier_id is None or not str(verifier_id).strip():
        raise ValidationError("userId is required", field="userId")
    verifier_id = str(verifier_id).strip()

    with get_session(engine) as session:
        report = session.get(MinyanReport, report_id)
        if report is None:
            raise NotFoundError(f"Report {report_id} not found")
        if report.reporter_id == verifier_id:
            raise ValidationError("Reporters cannot verify their own report", field="userId")

        try:
            with session.begin_nested():   # SAVEPOINT
                # Core insert so a duplicate surfaces as the DB PK violation
                session.execute(
                    insert(MinyanReportVerification).values(
                        report_id=report.id, verifier_id=verifier_id
                    )
                )
            added = True
        except IntegrityError:
            # Already in the set; only the SAVEPOINT was rolled back.
            added = False

        session.expire(report, ["verifications"])
        count = len(report.verifications)

    if added:
        logger.info(
            "Report %s verified by %s (%d verification(s), verified=%s)",
            report_id, verifier_id, count, report.is_verified,
        )
    else:
        logger.debug("Report %s already verified by %s — no-op", report_id, verifier_id)
    return report


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_reports(
    engine: Engine,
    *,
    synagogue_id: str | None = None,
    prayer_type: str | None = None,
    status: str | None = None,
    limit: int = 20,
) -> list[MinyanReport]:
    """Matching reports, newest first, truncated to *limit*.

    Raises
    ------
    ValidationError
        If *limit* is outside 1–100 or a filter names an unknown enum value.
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_REPORT_LIST_LIMIT:
        raise ValidationError(
            f"limit must be between 1 and {MAX_REPORT_LIST_LIMIT}", field="limit"
        )

    stmt = select(MinyanReport)
    if synagogue_id:
        stmt = stmt.where(MinyanReport.synagogue_id == synagogue_id)
    if prayer_type:
        stmt = stmt.where(MinyanReport.prayer_type == parse_prayer_type(prayer_type).value)
    if status:
        stmt = stmt.where(MinyanReport.status == parse_status(status).value)
    stmt = stmt.order_by(MinyanReport.created_at.desc(), MinyanReport.id.desc()).limit(limit)

    with get_session(engine) as session:
        return list(session.scalars(stmt).all())


def current_status(session: Session, synagogue_id: str) -> dict[str, MinyanReport]:
    """Newest report per prayer type for one synagogue."""
    ranked = (
        select(
            MinyanReport.id.label("id"),
            func.row_number()
            .over(
                partition_by=MinyanReport.prayer_type,
                order_by=(MinyanReport.created_at.desc(), MinyanReport.id.desc()),
            )
            .label("rn"),
        )
        .where(MinyanReport.synagogue_id == synagogue_id)
        .subquery()
    )
    rows = session.scalars(
        select(MinyanReport).join(ranked, MinyanReport.id == ranked.c.id).where(ranked.c.rn == 1)
    ).all()
    return {r.prayer_type: r for r in rows}


def recent_reports(session: Session, synagogue_id: str, limit: int) -> list[MinyanReport]:
    return list(
        session.scalars(
            select(MinyanReport)
            .where(MinyanReport.synagogue_id == synagogue_id)
            .order_by(MinyanReport.created_at.desc(), MinyanReport.id.desc())
            .limit(limit)
        ).all()
    )


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def load_reporters(session: Session, reports: Iterable[MinyanReport]) -> dict[str, User]:
    """Reporter display rows keyed by id; unknown reporters are simply absent."""
    ids = {r.reporter_id for r in reports}
    if not ids:
        return {}
    rows = session.scalars(select(User).where(User.id.in_(ids))).all()
    return {u.id: u for u in rows}


def report_to_dict(report: MinyanReport, reporter: User | None = None) -> dict:
    return {
        "id": report.id,
        "synagogueId": report.synagogue_id,
        "reporterId": report.reporter_id,
        "prayerType": report.prayer_type,
        "status": report.status,
        "minyanCount": report.minyan_count,
        "needsMore": report.needs_more,
        "notes": report.notes,
        "latitude": report.latitude,
        "longitude": report.longitude,
        "reportTime": report.created_at.isoformat() if report.created_at else None,
        "verifiedBy": report.verified_by,
        "isVerified": report.is_verified,
        "reporter": (
            {"name": reporter.name, "trustScore": reporter.trust_score}
            if reporter is not None
            else None
        ),
    }


def describe_reports(engine: Engine, reports: Sequence[MinyanReport]) -> list[dict]:
    """Serialize *reports* with their reporters' display data attached."""
    with get_session(engine) as session:
        reporters = load_reporters(session, reports)
    return [report_to_dict(r, reporters.get(r.reporter_id)) for r in reports]
