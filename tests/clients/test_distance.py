import pytest

from visitvibe.clients.distance import (
    distance_between,
    has_moved_significantly,
    haversine_km,
    haversine_m,
    sort_by_distance,
    surrounding_venues,
)
from visitvibe.models.venue import Coordinates
from tests.factories import make_venue

CENTER = Coordinates(lat=37.7749, lng=-122.4194)


def _venue_at(venue_id: str, lat: float, lng: float):
    return make_venue(id=venue_id, name=venue_id, coordinates=Coordinates(lat=lat, lng=lng))


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(37.7749, -122.4194, 37.7749, -122.4194) == 0.0

    def test_one_degree_latitude(self):
        # 1° of latitude ≈ 111.19 km on a 6371 km sphere
        assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)

    def test_sf_to_la(self):
        assert haversine_km(37.7749, -122.4194, 34.0522, -118.2437) == pytest.approx(559, abs=2)

    def test_metres_is_km_times_1000(self):
        km = haversine_km(37.7749, -122.4194, 37.7839, -122.4089)
        assert haversine_m(37.7749, -122.4194, 37.7839, -122.4089) == pytest.approx(km * 1000)

    def test_symmetric(self):
        a = Coordinates(lat=37.7749, lng=-122.4194)
        b = Coordinates(lat=37.7899, lng=-122.4014)
        assert distance_between(a, b) == pytest.approx(distance_between(b, a))


class TestSortByDistance:
    def test_nearest_first_with_distance_set(self):
        far = _venue_at("far", 37.7929, -122.4094)
        near = _venue_at("near", 37.7750, -122.4195)
        result = sort_by_distance(CENTER, [far, near])
        assert [v.id for v in result] == ["near", "far"]
        assert result[0].distance_m is not None
        assert result[0].distance_m < result[1].distance_m

    def test_does_not_mutate_input(self):
        venue = _venue_at("v", 37.78, -122.41)
        sort_by_distance(CENTER, [venue])
        assert venue.distance_m is None


class TestSurroundingVenues:
    def test_filters_by_radius_and_excludes_self(self):
        me = _venue_at("me", CENTER.lat, CENTER.lng)
        close = _venue_at("close", 37.7760, -122.4194)   # ~120 m
        far = _venue_at("far", 37.7899, -122.4014)       # ~2.3 km
        result = surrounding_venues(CENTER, [me, close, far], radius_m=500, exclude_id="me")
        assert [v.id for v in result] == ["close"]

    def test_limit_applied_after_sorting(self):
        venues = [_venue_at(f"v{i}", CENTER.lat + i * 0.0005, CENTER.lng) for i in range(6, 0, -1)]
        result = surrounding_venues(CENTER, venues, radius_m=1000, limit=3)
        assert [v.id for v in result] == ["v1", "v2", "v3"]

    def test_empty_when_nothing_in_range(self):
        far = _venue_at("far", 38.5, -121.5)
        assert surrounding_venues(CENTER, [far]) == []


class TestHasMovedSignificantly:
    def test_small_move(self):
        moved = Coordinates(lat=37.7800, lng=-122.4194)  # ~570 m
        assert has_moved_significantly(CENTER, moved) is False

    def test_large_move(self):
        moved = Coordinates(lat=37.7949, lng=-122.4194)  # ~2.2 km
        assert has_moved_significantly(CENTER, moved) is True

    def test_custom_threshold(self):
        moved = Coordinates(lat=37.7800, lng=-122.4194)
        assert has_moved_significantly(CENTER, moved, threshold_km=0.5) is True
