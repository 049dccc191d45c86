"""
Tests for the geometry projector and distance helpers.
"""

import pytest

from tests.helpers import make_station
from trackengine.core.geometry import (
    antimeridian_crossing_latitude,
    great_circle_miles,
    great_circle_parts,
    haversine_km,
    normalize_longitude,
    path_length_km,
    point_along,
    station_coordinates,
    station_ids_to_multiline,
    station_ids_to_polyline,
)


@pytest.fixture
def world():
    return {
        "NYC": make_station("NYC", 40.7128, -74.0060),
        "LON": make_station("LON", 51.5074, -0.1278),
        "TYO": make_station("TYO", 35.6762, 139.6503),
        "SFO": make_station("SFO", 37.7749, -122.4194),
        "E1": make_station("E1", 0.0, 179.5),
        "W1": make_station("W1", 1.0, -179.5),
        "A": make_station("A", 0.0, 0.0),
        "B": make_station("B", 0.01, 0.0),
        "C": make_station("C", 0.02, 0.0),
        "WRAP": make_station("WRAP", 0.0, 190.0),
    }


@pytest.mark.fast
class TestDistanceHelpers:
    """Tests for distance helpers."""

    @pytest.mark.parametrize("lng,expected", [
        (0.0, 0.0),
        (179.9, 179.9),
        (180.0, -180.0),
        (190.0, -170.0),
        (-190.0, 170.0),
        (540.0, -180.0),
    ])
    def test_normalize_longitude(self, lng, expected):
        assert normalize_longitude(lng) == pytest.approx(expected)

    def test_one_degree_of_latitude(self):
        """One degree of latitude is about 111.2 km or 69.1 miles."""
        assert haversine_km((0.0, 0.0), (0.0, 1.0)) == pytest.approx(111.195, rel=1e-3)
        assert great_circle_miles((0.0, 0.0), (0.0, 1.0)) == pytest.approx(69.09, rel=1e-3)

    def test_same_point_is_zero(self):
        assert great_circle_miles((10.0, 10.0), (10.0, 10.0)) == 0.0

    def test_path_length(self):
        coords = [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)]
        assert path_length_km(coords) == pytest.approx(2 * 111.195, rel=1e-3)
        assert path_length_km(coords[:1]) == 0.0

    def test_point_along_interpolates(self):
        coords = [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)]
        lng, lat = point_along(coords, path_length_km(coords) * 0.75)
        assert lng == pytest.approx(0.0)
        assert lat == pytest.approx(1.5, rel=1e-6)

    def test_point_along_clamps(self):
        coords = [(0.0, 0.0), (0.0, 1.0)]
        assert point_along(coords, -5.0) == (0.0, 0.0)
        assert point_along(coords, 1e6) == (0.0, 1.0)

    def test_point_along_needs_two_coordinates(self):
        with pytest.raises(ValueError):
            point_along([(0.0, 0.0)], 1.0)


@pytest.mark.fast
class TestStationCoordinates:
    """Tests for station id to coordinate conversion."""

    def test_skips_missing_and_normalizes(self, world):
        assert station_coordinates(world, ["A", "GONE", "WRAP"]) == [(0.0, 0.0), (-170.0, 0.0)]

    def test_polyline(self, world):
        assert station_ids_to_polyline(world, ["A", "B"]) == [(0.0, 0.0), (0.0, 0.01)]
        assert station_ids_to_polyline(world, ["A", "GONE"]) == []


@pytest.mark.fast
class TestMultiline:
    """Tests for station_ids_to_multiline."""

    def test_short_line_is_single_part(self, world):
        assert station_ids_to_multiline(world, ["A", "B", "C"]) == [[(0.0, 0.0), (0.0, 0.01), (0.0, 0.02)]]

    def test_missing_station_is_skipped(self, world):
        assert station_ids_to_multiline(world, ["A", "GONE", "C"]) == [[(0.0, 0.0), (0.0, 0.02)]]

    @pytest.mark.parametrize("station_ids", [[], ["A"], ["A", "GONE"]])
    def test_degenerate_input(self, world, station_ids):
        assert station_ids_to_multiline(world, station_ids) == []

    def test_antimeridian_crossing_splits(self, world):
        """A short hop across the antimeridian closes at +180 and reopens at -180."""
        parts = station_ids_to_multiline(world, ["E1", "W1"])

        assert len(parts) == 2
        first, second = parts
        assert first[0] == (179.5, 0.0)
        assert first[-1][0] == 180.0
        assert second[0][0] == -180.0
        assert second[-1] == (-179.5, 1.0)
        assert first[-1][1] == pytest.approx(0.5)
        assert second[0][1] == pytest.approx(0.5)

    def test_antimeridian_crossing_westbound(self, world):
        parts = station_ids_to_multiline(world, ["W1", "E1"])

        assert len(parts) == 2
        assert parts[0][-1][0] == -180.0
        assert parts[1][0][0] == 180.0

    def test_no_part_wraps_the_globe(self, world):
        for station_ids in (["E1", "W1", "E1"], ["TYO", "SFO"], ["SFO", "TYO", "SFO"]):
            for part in station_ids_to_multiline(world, station_ids):
                for (lng0, _), (lng1, _) in zip(part, part[1:]):
                    assert abs(lng1 - lng0) <= 180.0

    def test_long_pair_follows_great_circle(self, world):
        """New York to London bows north of both endpoints."""
        parts = station_ids_to_multiline(world, ["NYC", "LON"])

        assert len(parts) == 1
        path = parts[0]
        assert len(path) == 100
        assert path[0] == pytest.approx((-74.0060, 40.7128))
        assert path[-1] == pytest.approx((-0.1278, 51.5074))
        assert max(lat for _, lat in path) > 51.5074

    def test_great_circle_across_antimeridian(self, world):
        parts = station_ids_to_multiline(world, ["TYO", "SFO"])

        assert len(parts) == 2
        assert all(lng >= 0 for lng, _ in parts[0])
        assert all(lng <= 0 for lng, _ in parts[1])
        assert parts[0][-1][0] == 180.0
        assert parts[1][0][0] == -180.0

    def test_threshold_is_configurable(self, world):
        """Below the threshold pairs are joined directly."""
        parts = station_ids_to_multiline(world, ["NYC", "LON"], threshold_miles=10000)
        assert parts == [[(-74.0060, 40.7128), (-0.1278, 51.5074)]]


@pytest.mark.fast
class TestAntimeridian:
    """Tests for the antimeridian helpers."""

    def test_crossing_latitude(self):
        assert antimeridian_crossing_latitude((170.0, 0.0), (-170.0, 10.0)) == pytest.approx(5.0)

    def test_great_circle_parts_endpoints(self):
        parts = great_circle_parts((-74.0060, 40.7128), (-0.1278, 51.5074), npoints=10)
        assert len(parts) == 1
        assert len(parts[0]) == 10
