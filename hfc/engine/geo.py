"""Point-in-polygon lookup and buffer distances for GPS readings."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from shapely.geometry import Point, shape
from shapely.geometry.base import BaseGeometry
from shapely.prepared import PreparedGeometry, prep

from hfc.engine.constants import EARTH_RADIUS_M
from hfc.engine.records import is_missing


@dataclass(frozen=True)
class PolygonArea:
    key: str
    geometry: BaseGeometry
    prepared: PreparedGeometry = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "prepared", prep(self.geometry))

    def covers(self, point: Point) -> bool:
        return self.prepared.covers(point)


@dataclass(frozen=True)
class SamplePoint:
    point_id: str
    latitude: float
    longitude: float
    radius_m: float


def polygons_from_geojson(
    feature_collection: Mapping[str, Any], join_key: str
) -> list[PolygonArea]:
    """Build polygon areas from an already-parsed GeoJSON FeatureCollection."""
    areas: list[PolygonArea] = []
    for feature in feature_collection.get("features") or []:
        properties = feature.get("properties") or {}
        key = properties.get(join_key)
        geometry = feature.get("geometry")
        if is_missing(key) or not geometry:
            continue
        areas.append(PolygonArea(key=str(key).strip(), geometry=shape(geometry)))
    return areas


def parse_coordinate(value: Any, limit: float) -> float | None:
    """Parse a latitude/longitude value; zero and out-of-range readings count as missing."""
    if is_missing(value):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or number == 0.0 or abs(number) > limit:
        return None
    return number


def record_coordinates(
    record: Mapping[str, Any], latitude_field: str, longitude_field: str
) -> tuple[float, float] | None:
    latitude = parse_coordinate(record.get(latitude_field), 90.0)
    longitude = parse_coordinate(record.get(longitude_field), 180.0)
    if latitude is None or longitude is None:
        return None
    return latitude, longitude


def _same_site(left: Any, right: Any) -> bool:
    if is_missing(left) or is_missing(right):
        return False
    return str(left).strip().lower() == str(right).strip().lower()


def match_site_name(
    record: Mapping[str, Any],
    polygons: Iterable[PolygonArea],
    latitude_field: str,
    longitude_field: str,
    site_field: str,
) -> str | None:
    coords = record_coordinates(record, latitude_field, longitude_field)
    if coords is None:
        return None
    latitude, longitude = coords
    point = Point(longitude, latitude)
    declared = record.get(site_field)
    matches = [area for area in polygons if area.covers(point)]
    for area in matches:
        if _same_site(area.key, declared):
            return area.key
    return matches[0].key if matches else None


def site_mismatch_reason(
    record: Mapping[str, Any],
    polygons: Iterable[PolygonArea],
    latitude_field: str,
    longitude_field: str,
    site_field: str,
) -> tuple[str | None, str | None]:
    """Return ``(reason, matched_site)``; reason is None when the site agrees."""
    if record_coordinates(record, latitude_field, longitude_field) is None:
        return "missing or invalid GPS coordinates", None
    matched = match_site_name(
        record, polygons, latitude_field, longitude_field, site_field
    )
    if matched is None:
        return "GPS location falls outside all site areas", None
    declared = record.get(site_field)
    if _same_site(matched, declared):
        return None, matched
    return f"declared site '{declared}' but GPS location is in '{matched}'", matched


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def assigned_point(
    record: Mapping[str, Any],
    points: Mapping[str, SamplePoint],
    coords: tuple[float, float],
    point_id_field: str | None,
) -> SamplePoint | None:
    if point_id_field:
        point_id = record.get(point_id_field)
        if is_missing(point_id):
            return None
        return points.get(str(point_id).strip())
    if not points:
        return None
    latitude, longitude = coords
    return min(
        points.values(),
        key=lambda sp: haversine_m(latitude, longitude, sp.latitude, sp.longitude),
    )


def buffer_distance(
    record: Mapping[str, Any],
    points: Mapping[str, SamplePoint],
    latitude_field: str,
    longitude_field: str,
    point_id_field: str | None = None,
) -> tuple[float | None, SamplePoint | None]:
    coords = record_coordinates(record, latitude_field, longitude_field)
    if coords is None:
        return None, None
    point = assigned_point(record, points, coords, point_id_field)
    if point is None:
        return None, None
    distance = haversine_m(coords[0], coords[1], point.latitude, point.longitude)
    return distance, point


def within_buffer(
    record: Mapping[str, Any],
    points: Mapping[str, SamplePoint],
    latitude_field: str,
    longitude_field: str,
    point_id_field: str | None = None,
    radius_m: float | None = None,
) -> bool:
    distance, point = buffer_distance(
        record, points, latitude_field, longitude_field, point_id_field
    )
    if distance is None or point is None:
        return False
    radius = point.radius_m if radius_m is None else radius_m
    return distance <= radius
