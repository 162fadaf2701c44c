"""
tests/test_synagogue_service.py — Catalogue, Search & Review Integration Tests
================================================================================
Uses an in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from conftest import add_synagogue, add_user, minutes_ago
from minyan.database.models import MinyanReport, Review, Synagogue, SynagoguePhoto
from minyan.engine.geo import GeoPoint, SearchFilter
from minyan.errors import NotFoundError, ValidationError
from minyan.services import synagogue_service

JERUSALEM = GeoPoint(31.7767, 35.2345)


@pytest.fixture
def engine(db_engine):
    return db_engine


@pytest.fixture
def catalogue(engine) -> dict[str, str]:
    """Three synagogues: two in Jerusalem, one in Haifa (~120 km away)."""
    return {
        "great": add_synagogue(engine, name="Great Synagogue", average_rating=4.8, total_reviews=40),
        "yeshurun": add_synagogue(
            engine,
            name="Yeshurun",
            address="King George 44",
            latitude=31.7790,
            longitude=35.2200,
            nusach="SEPHARD",
            average_rating=4.1,
        ),
        "haifa": add_synagogue(
            engine,
            name="Ohel Aharon",
            address="Technion City",
            city="Haifa",
            latitude=32.7767,
            longitude=35.0231,
            average_rating=4.5,
        ),
    }


def _add_reviews(engine, synagogue_id: str, *ratings: int) -> None:
    with Session(engine) as session:
        session.add_all(Review(synagogue_id=synagogue_id, rating=r) for r in ratings)
        session.commit()


# ===========================================================================
# Search
# ===========================================================================
class TestSearchSynagogues:
    def test_ranked_by_rating(self, engine, catalogue):
        result = synagogue_service.search_synagogues(engine, SearchFilter())
        assert [s.id for s in result] == [catalogue["great"], catalogue["haifa"], catalogue["yeshurun"]]

    def test_radius(self, engine, catalogue, cfg):
        result = synagogue_service.search_synagogues(
            engine, SearchFilter(center=JERUSALEM, radius_km=20), cfg
        )
        assert {s.id for s in result} == {catalogue["great"], catalogue["yeshurun"]}
        assert all(s.distance_km is not None for s in result)

    def test_ceiling_radius_equals_no_geo(self, engine, catalogue, cfg):
        everything = synagogue_service.search_synagogues(engine, SearchFilter(), cfg)
        ceiling = synagogue_service.search_synagogues(
            engine, SearchFilter(center=JERUSALEM, radius_km=cfg.search_radius_ceiling_km), cfg
        )
        assert [s.id for s in ceiling] == [s.id for s in everything]

    def test_text_ignores_radius(self, engine, catalogue):
        result = synagogue_service.search_synagogues(
            engine, SearchFilter(center=JERUSALEM, radius_km=1, text="haifa")
        )
        assert [s.id for s in result] == [catalogue["haifa"]]

    def test_nusach(self, engine, catalogue):
        result = synagogue_service.search_synagogues(engine, SearchFilter(nusach="Sephard"))
        assert [s.id for s in result] == [catalogue["yeshurun"]]

    def test_local_reviews_override_imported_rating(self, engine, catalogue):
        _add_reviews(engine, catalogue["yeshurun"], 5, 5, 5)
        result = synagogue_service.search_synagogues(engine, SearchFilter())
        assert result[0].id == catalogue["yeshurun"]
        assert result[0].average_rating == 5.0
        assert result[0].total_reviews == 3

    def test_search_does_not_modify_rows(self, engine, catalogue):
        _add_reviews(engine, catalogue["great"], 1)
        synagogue_service.search_synagogues(engine, SearchFilter())
        with Session(engine) as session:
            assert session.get(Synagogue, catalogue["great"]).average_rating == 4.8


# ===========================================================================
# Detail
# ===========================================================================
class TestSynagogueDetail:
    def test_unknown(self, engine):
        with pytest.raises(NotFoundError):
            synagogue_service.get_synagogue_detail(engine, "missing")

    def test_shape(self, engine, catalogue):
        detail = synagogue_service.get_synagogue_detail(engine, catalogue["great"])
        assert detail["name"] == "Great Synagogue"
        assert detail["nusachLabel"] == "אשכנז"
        assert detail["prayerSchedule"] == []
        assert detail["photos"] == []
        assert detail["recentReports"] == []
        assert detail["currentStatus"] == {}
        assert detail["averageRating"] == 4.8

    def test_recent_reports_capped_and_current_status(self, engine, catalogue):
        sid = catalogue["great"]
        add_user(engine, "author", "Rivka", trust_score=70)
        with Session(engine) as session:
            for i in range(12):
                session.add(
                    MinyanReport(
                        synagogue_id=sid,
                        reporter_id="author",
                        prayer_type="MINCHA",
                        status="STARTING_SOON" if i else "ACTIVE_NOW",
                        minyan_count=None if i else 15,
                        created_at=minutes_ago(i),
                    )
                )
            session.commit()

        detail = synagogue_service.get_synagogue_detail(engine, sid)
        assert len(detail["recentReports"]) == 10
        assert detail["recentReports"][0]["status"] == "ACTIVE_NOW"
        assert detail["currentStatus"]["MINCHA"]["minyanCount"] == 15
        assert detail["currentStatus"]["MINCHA"]["reporter"]["name"] == "Rivka"

    def test_photos_capped_primary_first(self, engine, catalogue):
        sid = catalogue["great"]
        with Session(engine) as session:
            for i in range(7):
                session.add(SynagoguePhoto(synagogue_id=sid, url=f"https://img/{i}.jpg", is_primary=(i == 3)))
            session.commit()

        photos = synagogue_service.get_synagogue_detail(engine, sid)["photos"]
        assert len(photos) == 5
        assert photos[0]["url"] == "https://img/3.jpg"


# ===========================================================================
# Create
# ===========================================================================
class TestCreateSynagogue:
    BASE = {
        "name": "Ramban",
        "address": "Amatzia 7",
        "city": "Jerusalem",
        "latitude": 31.7660,
        "longitude": 35.2160,
    }

    def test_minimal(self, engine):
        detail = synagogue_service.create_synagogue(engine, dict(self.BASE))
        assert detail["id"]
        assert detail["nusach"] == "ASHKENAZ"
        assert detail["averageRating"] == 0.0
        assert detail["totalReviews"] == 0

    def test_with_schedule(self, engine):
        data = dict(
            self.BASE,
            nusach="edot_mizrach",
            wheelchair_access=True,
            prayer_schedule=[
                {"day_of_week": 0, "prayer_type": "SHACHARIT", "time": "6:30"},
                {"day_of_week": 0, "prayer_type": "mincha", "time": "1:15 PM"},
            ],
        )
        detail = synagogue_service.create_synagogue(engine, data)
        assert detail["nusach"] == "EDOT_MIZRACH"
        assert detail["wheelchairAccess"] is True
        assert detail["prayerSchedule"] == [
            {"dayOfWeek": 0, "prayerType": "SHACHARIT", "time": "06:30"},
            {"dayOfWeek": 0, "prayerType": "MINCHA", "time": "13:15"},
        ]

    def test_schedule_ordered_by_day_then_prayer(self, engine):
        # inserted out of order; day 1 MAARIV is the earliest on the clock
        data = dict(
            self.BASE,
            prayer_schedule=[
                {"day_of_week": 1, "prayer_type": "MAARIV", "time": "05:00"},
                {"day_of_week": 0, "prayer_type": "MINCHA", "time": "13:00"},
                {"day_of_week": 1, "prayer_type": "SHACHARIT", "time": "07:00"},
                {"day_of_week": 1, "prayer_type": "MINCHA", "time": "06:00"},
            ],
        )
        detail = synagogue_service.create_synagogue(engine, data)
        assert [(e["dayOfWeek"], e["prayerType"]) for e in detail["prayerSchedule"]] == [
            (0, "MINCHA"),
            (1, "SHACHARIT"),
            (1, "MINCHA"),
            (1, "MAARIV"),
        ]

    @pytest.mark.parametrize("missing", ["name", "address", "city"])
    def test_required_text(self, engine, missing):
        data = dict(self.BASE, **{missing: "  "})
        with pytest.raises(ValidationError) as exc:
            synagogue_service.create_synagogue(engine, data)
        assert exc.value.field == missing

    def test_bad_coordinates(self, engine):
        with pytest.raises(ValidationError):
            synagogue_service.create_synagogue(engine, dict(self.BASE, latitude=91))

    def test_unknown_nusach(self, engine):
        with pytest.raises(ValidationError) as exc:
            synagogue_service.create_synagogue(engine, dict(self.BASE, nusach="REFORM"))
        assert exc.value.field == "nusach"

    def test_duplicate_schedule_slot(self, engine):
        slot = {"day_of_week": 2, "prayer_type": "MAARIV", "time": "20:00"}
        with pytest.raises(ValidationError):
            synagogue_service.create_synagogue(engine, dict(self.BASE, prayer_schedule=[slot, slot]))

    def test_bad_schedule_time(self, engine):
        slot = {"day_of_week": 2, "prayer_type": "MAARIV", "time": "after dark"}
        with pytest.raises(ValidationError):
            synagogue_service.create_synagogue(engine, dict(self.BASE, prayer_schedule=[slot]))


# ===========================================================================
# Reviews
# ===========================================================================
class TestAddReview:
    def test_review_updates_rating(self, engine, catalogue):
        sid = catalogue["haifa"]
        synagogue_service.add_review(engine, sid, rating=5)
        review, rating = synagogue_service.add_review(engine, sid, rating=4, comment=" nice ", user_id="u1")
        assert review.comment == "nice"
        assert rating.average == 4.5
        assert rating.total_reviews == 2

    @pytest.mark.parametrize("value", [0, 6, None, True])
    def test_rating_range(self, engine, catalogue, value):
        with pytest.raises(ValidationError):
            synagogue_service.add_review(engine, catalogue["haifa"], rating=value)

    def test_unknown_synagogue(self, engine):
        with pytest.raises(NotFoundError):
            synagogue_service.add_review(engine, "missing", rating=3)
