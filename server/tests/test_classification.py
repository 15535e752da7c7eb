"""Tests for context classification against base places and the no-base fallback."""

import datetime
import math

import pytest

from cells import DistanceLevel, haversine_m
from classification import (
    ContextClassifier,
    TravelContext,
    select_base_places,
    total_distance_m,
)
from domain import BasePlace, PlaceRole
from patterns import VisitRecord
from tests.photo_test_fixtures import (
    DAY,
    HOME_CENTER,
    building_cells_in_neighborhood,
    make_cluster,
    make_summary,
    neighborhood_center,
    offset,
)


def _hours(h):
    return DAY + datetime.timedelta(hours=h)


@pytest.fixture
def home():
    """A registered home at the centre of its neighbourhood cell."""
    lat, lon = neighborhood_center(HOME_CENTER["latitude"], HOME_CENTER["longitude"])
    return BasePlace.at(lat, lon, PlaceRole.HOME, name="Home")


@pytest.fixture
def classifier():
    return ContextClassifier()


# =====================================================================
# Scenario tests
# =====================================================================

class TestScenarios:
    def test_daily_near_home(self, classifier, home):
        coords = building_cells_in_neighborhood(home.latitude, home.longitude, 5)
        summaries = [
            make_summary(i + 1, lat, lon, start=_hours(9 + i))
            for i, (lat, lon) in enumerate(coords)
        ]
        result = classifier.classify(summaries, [home])
        assert result.context == TravelContext.DAILY
        assert result.confidence >= 0.8
        assert result.distance_level == DistanceLevel.SAME_NEIGHBORHOOD
        assert result.mixed is None

    def test_outing_within_25km(self, classifier):
        base = BasePlace(HOME_CENTER["latitude"], HOME_CENTER["longitude"], PlaceRole.HOME)
        summaries = [
            make_summary(i + 1, *offset(HOME_CENTER, north_m=km * 1000), start=_hours(9 + i))
            for i, km in enumerate((6, 12, 18, 25))
        ]
        result = classifier.classify(summaries, [base])
        assert result.context == TravelContext.OUTING
        assert result.distance_level == DistanceLevel.SAME_CITY
        assert result.confidence == pytest.approx(0.9)

    def test_outing_default_branch(self, classifier):
        home = BasePlace.at(HOME_CENTER["latitude"], HOME_CENTER["longitude"], PlaceRole.HOME)
        summaries = [
            make_summary(i + 1, *offset(HOME_CENTER, north_m=km * 1000), start=_hours(9 + i))
            for i, km in enumerate((6, 12, 18, 25))
        ]
        result = classifier.classify(summaries, [home])
        # mostly same-province places on one day: no earlier rule applies
        assert result.context == TravelContext.OUTING
        assert result.distance_level == DistanceLevel.SAME_CITY
        assert result.confidence == pytest.approx(0.7)

    def test_travel_three_days_far_away(self, classifier, home):
        lat, lon = offset(HOME_CENTER, north_m=300_000)
        summaries = [
            make_summary(1, lat, lon, start=_hours(10)),
            make_summary(2, lat + 0.01, lon, start=_hours(58)),
        ]
        result = classifier.classify(summaries, [home])
        assert result.context == TravelContext.TRAVEL
        assert result.confidence >= 0.6
        assert result.distance_level == DistanceLevel.DIFFERENT_PROVINCE

    def test_mixed_near_and_far(self, classifier, home):
        near_lat, near_lon = offset({"latitude": home.latitude, "longitude": home.longitude}, north_m=100)
        far_lat, far_lon = offset(HOME_CENTER, north_m=400_000)
        summaries = [
            make_summary(1, near_lat, near_lon, start=_hours(9)),
            make_summary(2, far_lat, far_lon, start=_hours(15), count=5),
        ]
        result = classifier.classify(summaries, [home])
        assert result.context == TravelContext.MIXED
        assert result.confidence == pytest.approx(0.8)
        assert result.mixed.near_cluster_ids == [1]
        assert result.mixed.far_cluster_ids == [2]
        assert result.mixed.near_photo_count == 3
        assert result.mixed.far_photo_count == 5

    def test_multi_day_near_home_is_not_daily(self, classifier, home):
        summaries = [
            make_summary(1, home.latitude, home.longitude, start=_hours(9)),
            make_summary(2, home.latitude, home.longitude, start=_hours(33)),
        ]
        result = classifier.classify(summaries, [home])
        assert result.context == TravelContext.TRAVEL

    def test_nearest_base_place_wins(self, classifier, home):
        lat, lon = offset(HOME_CENTER, north_m=300_000)
        work = BasePlace.at(lat, lon, PlaceRole.WORK)
        summaries = [make_summary(1, lat, lon, start=_hours(10))]
        result = classifier.classify(summaries, [home, work])
        assert result.context == TravelContext.DAILY

    def test_empty_input(self, classifier, home):
        result = classifier.classify([], [home])
        assert result.context == TravelContext.DAILY
        assert result.confidence == 0.5

    def test_classify_clusters(self, classifier, home):
        cluster = make_cluster(1, home.latitude, home.longitude, start=_hours(9))
        result = classifier.classify_clusters([cluster], [home])
        assert result.context == TravelContext.DAILY


# =====================================================================
# No-base fallback tests
# =====================================================================

class TestWithoutBase:
    def test_short_same_day_trip_is_outing(self, classifier):
        coords = building_cells_in_neighborhood(HOME_CENTER["latitude"], HOME_CENTER["longitude"], 2)
        summaries = [
            make_summary(1, *coords[0], start=_hours(9)),
            make_summary(2, *coords[1], start=_hours(12)),
        ]
        result = classifier.classify(summaries, [])
        assert result.context == TravelContext.OUTING
        assert result.confidence == pytest.approx(0.7)

    def test_multi_day_is_travel(self, classifier):
        summaries = [
            make_summary(1, *offset(HOME_CENTER), start=_hours(9)),
            make_summary(2, *offset(HOME_CENTER, north_m=1000), start=_hours(40)),
        ]
        result = classifier.classify(summaries, [])
        assert result.context == TravelContext.TRAVEL
        assert result.confidence == pytest.approx(0.8)

    def test_long_distance_is_travel(self, classifier):
        summaries = [
            make_summary(1, *offset(HOME_CENTER), start=_hours(8)),
            make_summary(2, *offset(HOME_CENTER, north_m=400_000), start=_hours(14)),
        ]
        result = classifier.classify(summaries, [])
        assert result.context == TravelContext.TRAVEL
        assert result.distance_level == DistanceLevel.DIFFERENT_PROVINCE

    def test_mid_distance_same_day_is_low_confidence_outing(self, classifier):
        coords = building_cells_in_neighborhood(HOME_CENTER["latitude"], HOME_CENTER["longitude"], 49)
        a, b = max(
            ((p, q) for p in coords for q in coords),
            key=lambda pair: haversine_m(*pair[0], *pair[1]),
        )
        hop = haversine_m(*a, *b)
        hops = math.ceil(25_000 / hop)
        summaries = [
            make_summary(i + 1, *(a if i % 2 == 0 else b), start=_hours(8) + datetime.timedelta(minutes=15 * i))
            for i in range(hops + 1)
        ]
        assert 20_000 <= total_distance_m(summaries) < 50_000

        result = classifier.classify(summaries, [])
        assert result.context == TravelContext.OUTING
        assert result.confidence == pytest.approx(0.6)


# =====================================================================
# Base place selection tests
# =====================================================================

class TestSelectBasePlaces:
    def _learned(self, confirmed=True, ignored=False):
        record = VisitRecord.at(HOME_CENTER["latitude"], HOME_CENTER["longitude"])
        record.is_confirmed = confirmed
        record.is_ignored = ignored
        return record

    def test_registered_places_win(self, home):
        assert select_base_places([home], [self._learned()]) == [home]

    def test_confirmed_learned_places_stand_in(self):
        base = select_base_places([], [self._learned()])
        assert len(base) == 1
        assert base[0].latitude == HOME_CENTER["latitude"]

    def test_unconfirmed_and_ignored_are_skipped(self):
        learned = [self._learned(confirmed=False), self._learned(ignored=True)]
        assert select_base_places([], learned) == []

    def test_learned_fallback_classifies_daily(self, classifier):
        base = select_base_places([], [self._learned()])
        summaries = [make_summary(1, HOME_CENTER["latitude"], HOME_CENTER["longitude"], start=_hours(9))]
        assert classifier.classify(summaries, base).context == TravelContext.DAILY


def test_total_distance():
    summaries = [
        make_summary(1, *offset(HOME_CENTER)),
        make_summary(2, *offset(HOME_CENTER, north_m=1000)),
        make_summary(3, *offset(HOME_CENTER)),
    ]
    assert total_distance_m(summaries) == pytest.approx(2000, rel=1e-3)
    assert total_distance_m(summaries[:1]) == 0.0
