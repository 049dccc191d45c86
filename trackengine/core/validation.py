"""
Track Engine Validation Module

Provides the single parse-and-validate step for station coordinates and
structured errors for payload decoding.
"""

import math
from typing import Any

from trackengine.utils.constants import HALF_LONGITUDE_SPAN

MAX_LATITUDE = 90.0


class ValidationError(Exception):
    """
    Validation error with an error code and message.

    Error codes:
    - 400: Bad request (missing required field, wrong shape)
    - 422: Unprocessable entity (non-numeric or out-of-range coordinate)
    """
    def __init__(self, message: str, code: int = 400):
        self.message = message
        self.code = code
        super().__init__(self.message)


def parse_coordinate(value: Any, field_name: str, station_id: str = "unknown") -> float:
    """
    Coerce a coordinate that may arrive as text into a finite float.

    Args:
        value: Raw coordinate (float, int or numeric string)
        field_name: "lat" or "lng", used for range checks and messages
        station_id: Owning station, used in messages

    Returns:
        float: Parsed coordinate

    Raises:
        ValidationError (400): If the coordinate is missing
        ValidationError (422): If it is not numeric, not finite, or latitude is out of range
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(
            f"Missing required field '{field_name}' for station '{station_id}'",
            code=400
        )
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be numeric for station '{station_id}', got bool",
            code=422
        )

    try:
        parsed = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"{field_name} must be numeric for station '{station_id}', got {value!r}",
            code=422
        )

    if not math.isfinite(parsed):
        raise ValidationError(
            f"{field_name} must be finite for station '{station_id}', got {value!r}",
            code=422
        )

    if field_name == "lat" and abs(parsed) > MAX_LATITUDE:
        raise ValidationError(
            f"lat {parsed} for station '{station_id}' must be between -{MAX_LATITUDE} and {MAX_LATITUDE}",
            code=422
        )

    return parsed


def validate_line_station_ids(line_id: str, station_ids: Any) -> None:
    """
    Validate a line's station list is a list of string ids.

    Raises:
        ValidationError (400): If station_ids is not a list of strings
    """
    if not isinstance(station_ids, (list, tuple)):
        raise ValidationError(
            f"stationIds must be a list for line '{line_id}', got {type(station_ids).__name__}",
            code=400
        )
    bad = [sid for sid in station_ids if not isinstance(sid, str) or not sid]
    if bad:
        raise ValidationError(
            f"stationIds for line '{line_id}' must be non-empty strings, got {bad[:3]}",
            code=400
        )


def is_within_longitude_range(lng: float) -> bool:
    """Whether a longitude already lies in [-180, 180)."""
    return -HALF_LONGITUDE_SPAN <= lng < HALF_LONGITUDE_SPAN
