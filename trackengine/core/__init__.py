"""
Track Engine Core Module

Data model, validation and the pure geometry functions: section
partitioning, projection, transfer detection and interline segments.

The stateful parts (vehicles, engine, animation) depend on the config
package and are imported from their own modules.
"""

from trackengine.core.models import (
    ChangeSet,
    InterlineSegment,
    Line,
    LngLat,
    Mode,
    Pattern,
    Station,
    SystemSnapshot,
    VehicleState,
)
from trackengine.core.validation import ValidationError, parse_coordinate
from trackengine.core.sections import (
    line_stop_ids,
    partition_sections,
    rejoin_sections,
    resolve_section_index,
)
from trackengine.core.geometry import (
    great_circle_miles,
    normalize_longitude,
    path_length_km,
    point_along,
    station_ids_to_multiline,
    station_ids_to_polyline,
)
from trackengine.core.transfers import build_transfer_index, check_for_transfer
from trackengine.core.interline import (
    build_interline_segments,
    calculate_offsets,
    diff_interline_segments,
    line_pattern,
)

__all__ = [
    # Models
    "ChangeSet",
    "InterlineSegment",
    "Line",
    "LngLat",
    "Mode",
    "Pattern",
    "Station",
    "SystemSnapshot",
    "VehicleState",
    # Validation
    "ValidationError",
    "parse_coordinate",
    # Sections
    "line_stop_ids",
    "partition_sections",
    "rejoin_sections",
    "resolve_section_index",
    # Geometry
    "great_circle_miles",
    "normalize_longitude",
    "path_length_km",
    "point_along",
    "station_ids_to_multiline",
    "station_ids_to_polyline",
    # Transfers
    "build_transfer_index",
    "check_for_transfer",
    # Interline segments
    "build_interline_segments",
    "calculate_offsets",
    "diff_interline_segments",
    "line_pattern",
]
