"""Tests for polygon matching and buffer distances."""

import pytest
from shapely.geometry import box

from hfc.engine.geo import (
    PolygonArea,
    haversine_m,
    match_site_name,
    parse_coordinate,
    polygons_from_geojson,
    site_mismatch_reason,
    within_buffer,
)

FIELDS = ("gps_latitude", "gps_longitude")


class TestMatchSiteName:
    """Reverse geocoding against site polygons."""

    @pytest.mark.parametrize(
        "site,lat,lon",
        [
            ("North", -1.92, 30.02),
            ("North", -1.94, 30.001),
            ("South", -1.91, 30.09),
            ("south", -1.93, 30.06),
        ],
    )
    def test_declared_site_returned_when_inside(self, polygons, site, lat, lon):
        """A point inside the declared site's polygon keeps the declared site."""
        record = {"site": site, "gps_latitude": lat, "gps_longitude": lon}
        matched = match_site_name(record, polygons, *FIELDS, "site")
        assert matched.lower() == site.lower()
        assert site_mismatch_reason(record, polygons, *FIELDS, "site") == (None, matched)

    def test_overlapping_polygons_prefer_declared_site(self):
        """When areas overlap, the declared site's own polygon wins."""
        areas = [
            PolygonArea("A", box(0.5, 0.5, 2.0, 2.0)),
            PolygonArea("B", box(0.5, 0.5, 3.0, 3.0)),
        ]
        record = {"site": "B", "gps_latitude": 1.0, "gps_longitude": 1.0}
        assert match_site_name(record, areas, *FIELDS, "site") == "B"

    def test_boundary_point_counts_as_inside(self, polygons):
        record = {"site": "North", "gps_latitude": -1.95, "gps_longitude": 30.01}
        assert match_site_name(record, polygons, *FIELDS, "site") == "North"

    def test_mismatch_reports_polygon_site(self, polygons):
        record = {"site": "South", "gps_latitude": -1.92, "gps_longitude": 30.02}
        reason, matched = site_mismatch_reason(record, polygons, *FIELDS, "site")
        assert matched == "North"
        assert "South" in reason and "North" in reason

    def test_outside_all_polygons(self, polygons):
        record = {"site": "North", "gps_latitude": -1.5, "gps_longitude": 30.02}
        reason, matched = site_mismatch_reason(record, polygons, *FIELDS, "site")
        assert matched is None
        assert "outside" in reason

    @pytest.mark.parametrize("lat,lon", [(None, 30.02), (0, 0), ("", ""), ("abc", 30.0)])
    def test_missing_coordinates_are_flagged(self, polygons, lat, lon):
        record = {"site": "North", "gps_latitude": lat, "gps_longitude": lon}
        assert match_site_name(record, polygons, *FIELDS, "site") is None
        reason, _ = site_mismatch_reason(record, polygons, *FIELDS, "site")
        assert reason == "missing or invalid GPS coordinates"


class TestWithinBuffer:
    """Distance checks against assigned sample points."""

    def test_haversine_one_degree_latitude(self):
        assert haversine_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_195, rel=1e-3)

    def test_radius_decides_pass(self, points):
        record = {"gps_latitude": -1.9209, "gps_longitude": 30.02, "point_id": "N-01"}
        assert not within_buffer(record, points, *FIELDS, "point_id", radius_m=50)
        assert within_buffer(record, points, *FIELDS, "point_id", radius_m=150)
        assert within_buffer(record, points, *FIELDS, "point_id")

    def test_monotonic_in_radius(self, points):
        """Growing the radius never turns a passing record into a failing one."""
        record = {"gps_latitude": -1.9235, "gps_longitude": 30.0231, "point_id": "N-01"}
        outcomes = [
            within_buffer(record, points, *FIELDS, "point_id", radius_m=radius)
            for radius in (0, 10, 100, 300, 500, 1000, 5000)
        ]
        first_pass = outcomes.index(True)
        assert all(outcomes[first_pass:])
        assert not any(outcomes[:first_pass])

    def test_nearest_point_used_without_assignment(self, points):
        record = {"gps_latitude": -1.92, "gps_longitude": 30.0801}
        assert within_buffer(record, points, *FIELDS, radius_m=50)

    @pytest.mark.parametrize("lat,lon", [(0, 30.02), (None, None), ("", 30.02), (-1.92, 0.0)])
    def test_missing_or_zero_coordinates_fail(self, points, lat, lon):
        record = {"gps_latitude": lat, "gps_longitude": lon, "point_id": "N-01"}
        assert not within_buffer(record, points, *FIELDS, "point_id", radius_m=1e9)

    def test_unknown_point_fails(self, points):
        record = {"gps_latitude": -1.92, "gps_longitude": 30.02, "point_id": "X-99"}
        assert not within_buffer(record, points, *FIELDS, "point_id", radius_m=1e9)


def test_parse_coordinate_rejects_out_of_range():
    assert parse_coordinate("91", 90.0) is None
    assert parse_coordinate(" -1.5 ", 90.0) == -1.5


def test_polygons_from_geojson():
    payload = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"name": " North "},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]],
                },
            },
            {"type": "Feature", "properties": {}, "geometry": None},
        ],
    }
    areas = polygons_from_geojson(payload, "name")
    assert [area.key for area in areas] == ["North"]
    record = {"site": "north", "gps_latitude": 0.5, "gps_longitude": 0.5}
    assert match_site_name(record, areas, *FIELDS, "site") == "North"
