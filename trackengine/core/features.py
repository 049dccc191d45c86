"""
GeoJSON output for the display surface.

Builds plain-dict FeatureCollections for base tracks, interline segments and
vehicles. Every feature carries a "role" property so a single surface can
style all three.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from trackengine.core.geometry import station_ids_to_multiline
from trackengine.core.models import InterlineSegment, Line, LngLat, Station, VehicleState
from trackengine.utils.constants import (
    GREAT_CIRCLE_POINTS,
    GREAT_CIRCLE_THRESHOLD_MILES,
    ROLE_SEGMENT,
    ROLE_TRACK,
    ROLE_VEHICLE,
    SEGMENT_KEY_SEPARATOR,
    SOLID_ICON,
)

logger = logging.getLogger(__name__)

Feature = Dict[str, Any]


def feature_collection(features: Iterable[Feature], **properties: Any) -> Dict[str, Any]:
    collection = {"type": "FeatureCollection", "features": list(features)}
    if properties:
        collection["properties"] = properties
    return collection


def track_feature(
    line: Line,
    stations: Mapping[str, Station],
    threshold_miles: float = GREAT_CIRCLE_THRESHOLD_MILES,
    npoints: int = GREAT_CIRCLE_POINTS,
) -> Optional[Feature]:
    """Base track of one line, or None when its geometry is degenerate."""
    coords = station_ids_to_multiline(stations, line.station_ids, threshold_miles, npoints)
    if not coords:
        return None

    return {
        "type": "Feature",
        "properties": {
            "role": ROLE_TRACK,
            "line_key": line.id,
            "name": line.name,
            "color": line.color,
            "mode": line.mode,
        },
        "geometry": {
            "type": "MultiLineString",
            "coordinates": [[list(c) for c in part] for part in coords],
        },
    }


def segment_features(
    segment: InterlineSegment,
    stations: Mapping[str, Station],
    threshold_miles: float = GREAT_CIRCLE_THRESHOLD_MILES,
    npoints: int = GREAT_CIRCLE_POINTS,
) -> Dict[str, Feature]:
    """
    One feature per pattern on an interline segment.

    Returns:
        Long key ("segment|color|icon") → feature; empty for degenerate geometry
    """
    coords = station_ids_to_multiline(stations, segment.station_ids, threshold_miles, npoints)
    if not coords:
        logger.debug(f"Segment {segment.key} has no renderable geometry")
        return {}

    features: Dict[str, Feature] = {}
    for pattern in segment.patterns:
        long_key = SEGMENT_KEY_SEPARATOR.join((segment.key, pattern.color, pattern.icon or SOLID_ICON))
        properties: Dict[str, Any] = {
            "role": ROLE_SEGMENT,
            "segment_key": segment.key,
            "segment_long_key": long_key,
            "offset": segment.offsets.get(pattern.key, 0.0),
        }
        # icon patterns render as a repeated image instead of a colored line
        if pattern.icon:
            properties["icon"] = pattern.icon
        else:
            properties["color"] = pattern.color

        features[long_key] = {
            "type": "Feature",
            "properties": properties,
            "geometry": {
                "type": "MultiLineString",
                "coordinates": [[list(c) for c in part] for part in coords],
            },
        }
    return features


def vehicle_feature(line: Line, state: VehicleState, position: LngLat, time_ms: float) -> Feature:
    """Point feature for one vehicle, with its kinematic state as debug properties."""
    return {
        "type": "Feature",
        "properties": {
            "role": ROLE_VEHICLE,
            "line_key": line.id,
            "color": line.color,
            "prev_station_id": state.prev_station_id,
            "prev_section_index": state.section_index,
            "speed": state.speed,
            "distance": state.distance,
            "route_distance": state.route_distance,
            "last_time": time_ms,
            "forward": state.forward,
            "is_circular": state.is_circular,
            "paused": state.is_paused(time_ms),
        },
        "geometry": {
            "type": "Point",
            "coordinates": [position[0], position[1]],
        },
    }


def vehicles_collection(features: List[Feature]) -> Dict[str, Any]:
    return feature_collection(features, total_vehicles=len(features))
