"""
minyan.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- synagogues                  — Catalogue of places (coordinates, nusach, amenities)
- prayer_schedules            — Static weekly times, unique per (synagogue, day, prayer)
- synagogue_photos            — Gallery entries for the detail view
- reviews                     — Raw 1–5 ratings feeding the display rating
- users                       — Reporter display data (name, trust score)
- minyan_reports              — Append-only point-in-time minyan observations
- minyan_report_verifications — Set of corroborating users per report
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from minyan.constants import VERIFICATION_THRESHOLD


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Minyan Finder ORM models."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class Nusach(enum.StrEnum):
    """Liturgical rites a synagogue can follow."""
    ASHKENAZ = "ASHKENAZ"
    SEPHARD = "SEPHARD"
    EDOT_MIZRACH = "EDOT_MIZRACH"
    YEMENITE = "YEMENITE"
    CHABAD = "CHABAD"


class PrayerType(enum.StrEnum):
    """Prayer services a schedule entry or report refers to."""
    SHACHARIT = "SHACHARIT"
    MINCHA = "MINCHA"
    MAARIV = "MAARIV"
    MUSAF = "MUSAF"
    NEILAH = "NEILAH"


class ReportStatus(enum.StrEnum):
    """Observed state of a minyan at report time."""
    ACTIVE_NOW = "ACTIVE_NOW"
    STARTING_SOON = "STARTING_SOON"
    NEEDS_MORE = "NEEDS_MORE"
    FINISHED = "FINISHED"
    NO_MINYAN = "NO_MINYAN"
    CANCELLED = "CANCELLED"


# ---------------------------------------------------------------------------
# Synagogues
# ---------------------------------------------------------------------------
class Synagogue(Base):
    __tablename__ = "synagogues"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str] = mapped_column(String(300), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str | None] = mapped_column(String(100), default=None)
    country: Mapped[str] = mapped_column(String(100), default="ישראל")
    postal_code: Mapped[str | None] = mapped_column(String(20), default=None)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    nusach: Mapped[str] = mapped_column(String(20), default=Nusach.ASHKENAZ.value)
    rabbi: Mapped[str | None] = mapped_column(String(200), default=None)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    email: Mapped[str | None] = mapped_column(String(200), default=None)
    website: Mapped[str | None] = mapped_column(String(300), default=None)
    description: Mapped[str | None] = mapped_column(Text, default=None)

    # Amenities
    wheelchair_access: Mapped[bool] = mapped_column(Boolean, default=False)
    parking: Mapped[bool] = mapped_column(Boolean, default=False)
    air_conditioning: Mapped[bool] = mapped_column(Boolean, default=False)
    womens_section: Mapped[bool] = mapped_column(Boolean, default=False)
    mikveh: Mapped[bool] = mapped_column(Boolean, default=False)

    # Denormalized rating imported with the record; local reviews take precedence
    average_rating: Mapped[float] = mapped_column(Float, default=0.0)
    total_reviews: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    # Relationships
    schedule: Mapped[list[PrayerSchedule]] = relationship(
        back_populates="synagogue", cascade="all, delete-orphan"
    )
    photos: Mapped[list[SynagoguePhoto]] = relationship(
        back_populates="synagogue", cascade="all, delete-orphan"
    )
    reviews: Mapped[list[Review]] = relationship(
        back_populates="synagogue", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_synagogues_nusach", "nusach"),
        Index("ix_synagogues_lat_lng", "latitude", "longitude"),
    )

    def __repr__(self) -> str:
        return f"<Synagogue id={self.id} name={self.name!r} city={self.city!r}>"


class PrayerSchedule(Base):
    __tablename__ = "prayer_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    synagogue_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("synagogues.id", ondelete="CASCADE"), nullable=False
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0 = Sunday
    prayer_type: Mapped[str] = mapped_column(String(20), nullable=False)
    time: Mapped[str] = mapped_column(String(16), nullable=False)

    synagogue: Mapped[Synagogue] = relationship(back_populates="schedule")

    __table_args__ = (
        UniqueConstraint(
            "synagogue_id", "day_of_week", "prayer_type",
            name="uq_prayer_schedule_slot",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<PrayerSchedule synagogue={self.synagogue_id} "
            f"day={self.day_of_week} {self.prayer_type}={self.time}>"
        )


class SynagoguePhoto(Base):
    __tablename__ = "synagogue_photos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    synagogue_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("synagogues.id", ondelete="CASCADE"), nullable=False
    )
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    caption: Mapped[str | None] = mapped_column(String(300), default=None)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)

    synagogue: Mapped[Synagogue] = relationship(back_populates="photos")


# ---------------------------------------------------------------------------
# Reviews — raw input to the rating aggregator
# ---------------------------------------------------------------------------
class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    synagogue_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("synagogues.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str | None] = mapped_column(String(64), default=None)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)  # 1–5
    comment: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    synagogue: Mapped[Synagogue] = relationship(back_populates="reviews")

    __table_args__ = (
        Index("ix_reviews_synagogue", "synagogue_id"),
    )


# ---------------------------------------------------------------------------
# Users — display data only; trust_score is not used in any computation
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    trust_score: Mapped[int] = mapped_column(Integer, default=50)  # 0–100
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r} trust={self.trust_score}>"


# ---------------------------------------------------------------------------
# Minyan reports — append-only ledger
# ---------------------------------------------------------------------------
class MinyanReport(Base):
    """One community observation of a minyan at a synagogue.

    Immutable after insert.  The only thing that grows is the set of
    verifications stored in ``minyan_report_verifications``.
    """
    __tablename__ = "minyan_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    synagogue_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("synagogues.id", ondelete="CASCADE"), nullable=False
    )
    reporter_id: Mapped[str] = mapped_column(String(64), nullable=False)
    prayer_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    minyan_count: Mapped[int | None] = mapped_column(Integer, default=None)
    needs_more: Mapped[int | None] = mapped_column(Integer, default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    latitude: Mapped[float | None] = mapped_column(Float, default=None)
    longitude: Mapped[float | None] = mapped_column(Float, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    verifications: Mapped[list[MinyanReportVerification]] = relationship(
        back_populates="report",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="MinyanReportVerification.created_at",
    )

    __table_args__ = (
        Index("ix_minyan_reports_slot_time", "synagogue_id", "prayer_type", "created_at"),
        Index("ix_minyan_reports_created_at", "created_at"),
        Index("ix_minyan_reports_status_time", "status", "created_at"),
    )

    @property
    def verified_by(self) -> list[str]:
        return [v.verifier_id for v in self.verifications]

    @property
    def is_verified(self) -> bool:
        return len(self.verifications) >= VERIFICATION_THRESHOLD

    def __repr__(self) -> str:
        return (
            f"<MinyanReport id={self.id} synagogue={self.synagogue_id} "
            f"{self.prayer_type} {self.status}>"
        )


class MinyanReportVerification(Base):
    """One corroboration of a report.

    The composite primary key makes (report, verifier) a set: a repeated
    verification by the same user collides and is dropped.
    """
    __tablename__ = "minyan_report_verifications"

    report_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("minyan_reports.id", ondelete="CASCADE"), primary_key=True
    )
    verifier_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    report: Mapped[MinyanReport] = relationship(back_populates="verifications")
