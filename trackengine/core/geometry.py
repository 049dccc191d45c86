"""
Geometry Projector

Turns ordered station ids into rendering-ready polylines and provides the
distance helpers used by the vehicle simulator.

Key Principles:
1. Coordinates are (lng, lat) in WGS84, GeoJSON axis order
2. Longitudes are normalized to [-180, 180)
3. Long-haul pairs follow a great circle instead of a straight screen line
4. No emitted segment implicitly wraps the globe: antimeridian crossings
   split the polyline, closing one part at +/-180 and reopening the next
   at the opposite sign

Dependencies: shapely, pyproj, numpy
"""

import logging
import math
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pyproj
from shapely.geometry import LineString

from trackengine.core.models import LngLat, Station
from trackengine.core.validation import is_within_longitude_range
from trackengine.utils.constants import (
    ANTIMERIDIAN_LAT_LIMIT,
    EARTH_RADIUS_KM,
    GREAT_CIRCLE_POINTS,
    GREAT_CIRCLE_THRESHOLD_MILES,
    HALF_LONGITUDE_SPAN,
    KM_PER_MILE,
    LONGITUDE_SPAN,
    METERS_PER_KM,
)

logger = logging.getLogger(__name__)

# Spherical earth so great-circle paths agree with the haversine distances below
GEOD = pyproj.Geod(a=EARTH_RADIUS_KM * METERS_PER_KM, b=EARTH_RADIUS_KM * METERS_PER_KM)

ANTIMERIDIAN_POSITIVE = LineString([(HALF_LONGITUDE_SPAN, ANTIMERIDIAN_LAT_LIMIT),
                                    (HALF_LONGITUDE_SPAN, -ANTIMERIDIAN_LAT_LIMIT)])
ANTIMERIDIAN_NEGATIVE = LineString([(-HALF_LONGITUDE_SPAN, ANTIMERIDIAN_LAT_LIMIT),
                                    (-HALF_LONGITUDE_SPAN, -ANTIMERIDIAN_LAT_LIMIT)])


# --- distance helpers ---

def normalize_longitude(lng: float) -> float:
    """Ensure the longitude is in the range [-180, 180)."""
    if is_within_longitude_range(lng):
        return lng
    return ((lng + HALF_LONGITUDE_SPAN) % LONGITUDE_SPAN) - HALF_LONGITUDE_SPAN


def haversine_km(a: LngLat, b: LngLat) -> float:
    """Great-circle distance between two (lng, lat) coordinates in kilometers."""
    (lon1, lat1), (lon2, lat2) = a, b
    rlat1, rlon1, rlat2, rlon2 = map(math.radians, (lat1, lon1, lat2, lon2))
    dlat, dlon = rlat2 - rlat1, rlon2 - rlon1
    h = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def great_circle_miles(a: LngLat, b: LngLat) -> float:
    """Great-circle distance between two (lng, lat) coordinates in statute miles."""
    if a == b:
        return 0.0
    return haversine_km(a, b) / KM_PER_MILE


def cumulative_km(coords: Sequence[LngLat]) -> np.ndarray:
    """
    coords: [(lng, lat), ...] in travel order.
    Returns cumulative distance in km for each vertex, starting at 0.0.
    """
    if not coords:
        return np.zeros(0)
    steps = [haversine_km(coords[i - 1], coords[i]) for i in range(1, len(coords))]
    return np.concatenate(([0.0], np.cumsum(steps)))


def path_length_km(coords: Sequence[LngLat]) -> float:
    """Total length of a polyline in km; 0.0 for fewer than two coordinates."""
    if len(coords) < 2:
        return 0.0
    return float(cumulative_km(coords)[-1])


def point_along(coords: Sequence[LngLat], distance_km: float) -> LngLat:
    """
    Returns (lng, lat) at distance_km along the polyline (linear along each
    segment), clamped to the first and last vertex.

    Raises:
        ValueError: If coords has fewer than two coordinates
    """
    if len(coords) < 2:
        raise ValueError(f"point_along needs at least two coordinates, got {len(coords)}")

    cum = cumulative_km(coords)
    if distance_km <= 0:
        return tuple(coords[0])
    if distance_km >= cum[-1]:
        return tuple(coords[-1])

    j = int(np.searchsorted(cum, distance_km, side="right")) - 1
    j = min(max(j, 0), len(coords) - 2)
    d0, d1 = cum[j], cum[j + 1]
    lng0, lat0 = coords[j]
    lng1, lat1 = coords[j + 1]
    if d1 <= d0:
        return (lng0, lat0)
    t = (distance_km - d0) / (d1 - d0)
    return (lng0 + t * (lng1 - lng0), lat0 + t * (lat1 - lat0))


# --- projection ---

def station_coordinates(stations: Mapping[str, Station], station_ids: Sequence[str]) -> List[LngLat]:
    """
    Converts station ids into [(lng, lat), ...], skipping ids missing from
    the lookup and normalizing longitudes.
    """
    coords: List[LngLat] = []
    for station_id in station_ids or []:
        station = stations.get(station_id)
        if station is None:
            continue
        coords.append((normalize_longitude(station.lng), station.lat))
    return coords


def antimeridian_crossing_latitude(prev: LngLat, coord: LngLat) -> Optional[float]:
    """
    Latitude at which the short way from prev to coord crosses the antimeridian.

    prev is shifted by +/-360 degrees so that the pair becomes a straight
    unwrapped segment, which is then intersected with both the +180 and the
    -180 meridian.

    Returns:
        Crossing latitude, or None if the unwrapped segment touches neither meridian
    """
    temp_lng = prev[0] + (LONGITUDE_SPAN if prev[0] < 0 else -LONGITUDE_SPAN)
    segment = LineString([(temp_lng, prev[1]), coord])

    for meridian in (ANTIMERIDIAN_POSITIVE, ANTIMERIDIAN_NEGATIVE):
        hit = segment.intersection(meridian)
        if not hit.is_empty:
            return hit.representative_point().y
    return None


def _antimeridian_edges(prev: LngLat, coord: LngLat) -> Optional[Tuple[LngLat, LngLat]]:
    """
    (closing, reopening) vertices for a pair that crosses the antimeridian,
    or None when the pair does not cross it.
    """
    if abs(coord[0] - prev[0]) <= HALF_LONGITUDE_SPAN:
        return None
    crossing_lat = antimeridian_crossing_latitude(prev, coord)
    if crossing_lat is None:
        return None
    edge = -HALF_LONGITUDE_SPAN if prev[0] < 0 else HALF_LONGITUDE_SPAN
    return (edge, crossing_lat), (-edge, crossing_lat)


def _split_at_antimeridian(coords: Sequence[LngLat]) -> List[List[LngLat]]:
    """Split a polyline wherever consecutive longitudes jump across the antimeridian."""
    parts: List[List[LngLat]] = []
    part: List[LngLat] = []
    prev: Optional[LngLat] = None
    for coord in coords:
        edges = _antimeridian_edges(prev, coord) if prev is not None else None
        if edges is not None:
            part.append(edges[0])
            parts.append(part)
            part = [edges[1]]
        part.append(coord)
        prev = coord
    parts.append(part)
    return parts


def great_circle_parts(
    start: LngLat,
    end: LngLat,
    npoints: int = GREAT_CIRCLE_POINTS,
) -> List[List[LngLat]]:
    """
    Great-circle path between two coordinates as one or more polylines.

    The path is sampled with npoints vertices (endpoints included) and split
    into several polylines when it crosses the antimeridian.
    """
    inner = GEOD.npts(start[0], start[1], end[0], end[1], max(npoints - 2, 0))
    path = [tuple(start)] + [(normalize_longitude(lng), lat) for lng, lat in inner] + [tuple(end)]
    return [part for part in _split_at_antimeridian(path) if len(part) >= 2]


def station_ids_to_multiline(
    stations: Mapping[str, Station],
    station_ids: Sequence[str],
    threshold_miles: float = GREAT_CIRCLE_THRESHOLD_MILES,
    npoints: int = GREAT_CIRCLE_POINTS,
) -> List[List[LngLat]]:
    """
    Converts station ids into a list of polylines.

    Consecutive stations at least threshold_miles apart are joined by a
    great-circle path, which starts a new polyline (several if the path is
    reported as multi-part). Pairs whose straight longitude delta exceeds
    180 degrees cross the antimeridian: the current polyline is closed at
    +/-180 and the next one reopened at the opposite sign.

    Returns:
        Polylines with at least two coordinates each; empty for degenerate input
    """
    coords = station_coordinates(stations, station_ids)
    if len(coords) < 2:
        logger.debug(f"Degenerate geometry: {len(coords)} of {len(station_ids or [])} stations resolved")
        return []

    multiline: List[List[LngLat]] = []
    line_coords: List[LngLat] = []
    prev: Optional[LngLat] = None
    for coord in coords:
        if prev is not None and great_circle_miles(prev, coord) >= threshold_miles:
            multiline.append(line_coords)
            multiline.extend(great_circle_parts(prev, coord, npoints))
            line_coords = []
        elif prev is not None:
            edges = _antimeridian_edges(prev, coord)
            if edges is not None:
                line_coords.append(edges[0])
                multiline.append(line_coords)
                line_coords = [edges[1]]

        line_coords.append(coord)
        prev = coord

    multiline.append(line_coords)

    return [part for part in multiline if len(part) >= 2]


def station_ids_to_polyline(stations: Mapping[str, Station], station_ids: Sequence[str]) -> List[LngLat]:
    """Single-polyline variant; empty when fewer than two stations resolve."""
    coords = station_coordinates(stations, station_ids)
    return coords if len(coords) >= 2 else []
