"""
Snapshot loader.

Decodes the editor's {stations, lines} document and change notifications
into the engine's dataclass model. This is the only place where raw
records are probed and coordinates are coerced.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from trackengine.core.models import ChangeSet, Line, Station, SystemSnapshot
from trackengine.core.validation import (
    ValidationError,
    parse_coordinate,
    validate_line_station_ids,
)
from trackengine.io.payloads import (
    ChangeSetPayload,
    LinePayload,
    SnapshotPayload,
    StationPayload,
)
from trackengine.utils.error_handling import create_error_summary

logger = logging.getLogger(__name__)


def _pydantic_message(e: PydanticValidationError) -> str:
    first = e.errors()[0] if e.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', str(e))}" if location else str(e)


def load_station(station_id: str, raw: Any) -> Station:
    """
    Decode one station record.

    Args:
        station_id: Key of the record in the stations mapping
        raw: Raw record ({lat, lng, name, isWaypoint, ...})

    Returns:
        Station with float coordinates

    Raises:
        ValidationError: If the record is malformed or a coordinate cannot be parsed
    """
    try:
        payload = StationPayload.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid station '{station_id}': {_pydantic_message(e)}", code=400)

    return Station(
        id=station_id,
        lat=parse_coordinate(payload.lat, "lat", station_id),
        lng=parse_coordinate(payload.lng, "lng", station_id),
        name=payload.name,
        is_waypoint=payload.is_waypoint,
    )


def load_line(line_id: str, raw: Any) -> Line:
    """
    Decode one line record.

    Raises:
        ValidationError: If the record is malformed
    """
    if isinstance(raw, Mapping):
        validate_line_station_ids(line_id, raw.get("stationIds", raw.get("station_ids", [])) or [])

    try:
        payload = LinePayload.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid line '{line_id}': {_pydantic_message(e)}", code=400)

    return Line(
        id=line_id,
        name=payload.name,
        color=payload.color,
        station_ids=tuple(payload.station_ids),
        waypoint_overrides=frozenset(payload.waypoint_overrides),
        mode=payload.mode,
        icon=payload.icon,
        line_group_id=payload.line_group_id,
    )


def load_snapshot(payload: Mapping[str, Any], strict: bool = False) -> SystemSnapshot:
    """
    Decode a full {stations, lines} snapshot.

    In the default lenient mode, records that fail to decode are dropped and
    logged; a dropped station then behaves like any other missing reference.
    With strict=True the first failure is raised.

    Args:
        payload: Raw snapshot document
        strict: Raise instead of dropping undecodable records

    Returns:
        SystemSnapshot

    Raises:
        ValidationError: If the document itself is malformed, or on any record failure when strict
    """
    try:
        snapshot_payload = SnapshotPayload.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid snapshot: {_pydantic_message(e)}", code=400)

    errors: List[Exception] = []

    stations: Dict[str, Station] = {}
    for station_id, raw in snapshot_payload.stations.items():
        try:
            stations[station_id] = load_station(station_id, raw)
        except ValidationError as e:
            if strict:
                raise
            errors.append(e)

    lines: Dict[str, Line] = {}
    for line_id, raw in snapshot_payload.lines.items():
        try:
            lines[line_id] = load_line(line_id, raw)
        except ValidationError as e:
            if strict:
                raise
            errors.append(e)

    if errors:
        logger.warning(f"Dropped {len(errors)} undecodable records from snapshot\n{create_error_summary(errors)}")

    logger.debug(f"Loaded snapshot with {len(stations)} stations and {len(lines)} lines")
    return SystemSnapshot(stations=stations, lines=lines)


def load_change_set(payload: Optional[Mapping[str, Any]]) -> ChangeSet:
    """
    Decode a change notification. A missing payload means nothing changed.

    Raises:
        ValidationError: If the payload is malformed
    """
    if not payload:
        return ChangeSet()

    try:
        change_payload = ChangeSetPayload.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid change set: {_pydantic_message(e)}", code=400)

    return ChangeSet(
        all=change_payload.all,
        station_ids=frozenset(change_payload.station_ids),
        line_ids=frozenset(change_payload.line_ids),
        segment_keys=frozenset(change_payload.segment_keys),
    )
