"""
Vehicle Simulator

Owns one VehicleState per line and advances it every animation tick.

Each vehicle travels one section at a time:
- accelerating out of the departure stop for the first accel distance
- cruising at the mode's top speed
- decelerating into the arrival stop for the last accel distance
- pausing at the arrival stop if it is a real stop for the line

Sections too short to reach top speed peak at their midpoint instead.
Vehicles on closed loops always travel forward and wrap around; other
vehicles reverse at the termini, or jump back into the line when its
terminus re-enters an earlier part of the line.

Units: distances in km, speeds in km per animation second, timestamps in ms.
"""

import logging
import random
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from trackengine.config.loader import EngineSettings, get_mode
from trackengine.core.features import Feature, vehicle_feature
from trackengine.core.geometry import path_length_km, point_along, station_coordinates
from trackengine.core.models import Line, LngLat, Mode, Station, SystemSnapshot, VehicleState
from trackengine.core.sections import line_stop_ids, partition_sections, resolve_section_index
from trackengine.utils.constants import (
    FALLBACK_ROUTE_DISTANCE_KM,
    MIN_VEHICLE_SPEED,
    MIN_VEHICLE_STOPS,
    MS_PER_SECOND,
)
from trackengine.utils.error_handling import safe_execute

logger = logging.getLogger(__name__)


def vehicle_speed(mode: Mode, distance: float, route_distance: float) -> float:
    """
    Speed of a vehicle at `distance` km into a section of `route_distance` km.

    Ramps are linear in distance and floored at MIN_VEHICLE_SPEED so a
    vehicle never stalls. When the section is shorter than two accel
    distances, the midpoint is the peak and top speed is scaled by
    route_distance / (2 * accel_distance).
    """
    accel_distance = mode.accel_distance
    no_top_speed = route_distance < accel_distance * 2

    braking_point = route_distance / 2 if no_top_speed else route_distance - accel_distance
    braking_zone = route_distance / 2 if no_top_speed else accel_distance
    if braking_zone <= 0:
        return MIN_VEHICLE_SPEED

    if distance > braking_point:
        top_speed_ratio = route_distance / (accel_distance * 2) if no_top_speed else 1.0
        slowing_ratio = (distance - braking_point) / braking_zone
        return max(mode.speed * top_speed_ratio * (1 - slowing_ratio), MIN_VEHICLE_SPEED)

    if distance <= braking_zone:
        return max(mode.speed * (distance / accel_distance), MIN_VEHICLE_SPEED)

    return mode.speed


def _route_distance(coords: Sequence[LngLat], line_id: str) -> float:
    if len(coords) >= 2:
        return path_length_km(coords)
    logger.warning(f"Section on line {line_id} has {len(coords)} coordinates, "
                   f"defaulting route distance to {FALLBACK_ROUTE_DISTANCE_KM} km")
    return FALLBACK_ROUTE_DISTANCE_KM


def _ids_length(stations: Mapping[str, Station], station_ids: Sequence[str]) -> float:
    return path_length_km(station_coordinates(stations, station_ids))


def loop_entry(
    sections: List[List[str]],
    stations: Mapping[str, Station],
    station_id: str,
    at_end: bool,
) -> Optional[Tuple[int, float]]:
    """
    Section to re-enter when a line's terminus also occurs earlier on the line.

    Off the end of the line the sections are scanned from the start, off the
    start they are scanned from the end; the first section containing the
    terminus wins. When the terminus is a waypoint inside that section, the
    vehicle starts part way along it, so the distance already behind it is
    returned with the index.

    Returns:
        (section_index, preloaded_distance), or None if no section contains the station
    """
    indexed = list(enumerate(sections))
    if not at_end:
        indexed.reverse()

    for i, section in indexed:
        if station_id not in section:
            continue
        position = section.index(station_id)
        distance = 0.0
        if 0 < position < len(section) - 1:
            full = _ids_length(stations, section)
            covered = _ids_length(stations, section[:position + 1] if at_end else section[position:])
            distance = full - covered
        return i, distance

    return None


class VehicleSimulator:
    """
    One simulated vehicle per line.

    Attributes:
        modes: Mode table
        settings: Engine settings
        rng: Random source for starting sections and directions
        states: Line id → VehicleState
    """

    def __init__(
        self,
        modes: Mapping[str, Mode],
        settings: Optional[EngineSettings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.modes = dict(modes)
        self.settings = settings or EngineSettings()
        self.rng = rng or random.Random()
        self.states: Dict[str, VehicleState] = {}

    def get_mode(self, line: Line) -> Mode:
        return get_mode(self.modes, line.mode)

    def reset(self) -> None:
        """Drop every vehicle."""
        self.states.clear()

    def sync(self, snapshot: SystemSnapshot, line_ids: Optional[Iterable[str]] = None) -> None:
        """
        Bind vehicles to the current lines.

        Vehicles of lines that are gone, not listed, or below two real stops are
        discarded. Vehicles of edited lines keep their position: they are
        placed on the section that starts (or ends, going backward) at the
        station they last departed from. New lines get a vehicle at a random
        section.

        Args:
            snapshot: Current stations and lines
            line_ids: Lines that carry vehicles; None means every line
        """
        targets = set(snapshot.lines) if line_ids is None else {i for i in line_ids if i in snapshot.lines}

        for line_id in list(self.states):
            if line_id not in targets:
                del self.states[line_id]

        for line_id in sorted(targets):
            self._bind(snapshot.lines[line_id], snapshot.stations)

        logger.debug(f"Synced {len(self.states)} vehicles for {len(targets)} lines")

    def _bind(self, line: Line, stations: Mapping[str, Station]) -> Optional[VehicleState]:
        existing = self.states.pop(line.id, None)
        if len(line_stop_ids(line, stations)) < MIN_VEHICLE_STOPS:
            return None

        sections = partition_sections(line, stations)
        if not sections:
            return None

        if existing is not None and existing.sections:
            state = existing
            prev_station_id = existing.prev_station_id
            prev_section_index = existing.section_index
            state.is_circular = line.is_circular
            if state.is_circular:
                state.forward = True
        else:
            is_circular = line.is_circular
            state = VehicleState(
                line_id=line.id,
                is_circular=is_circular,
                forward=True if is_circular else self.rng.random() < 0.5,
            )
            prev_station_id = None
            prev_section_index = None

        section_index = resolve_section_index(sections, prev_station_id, prev_section_index, state.forward, self.rng)
        coords = station_coordinates(stations, sections[section_index])
        if not coords:
            return None

        state.sections = sections
        state.section_index = section_index
        state.section_coords = coords
        state.route_distance = _route_distance(coords, line.id)
        self.states[line.id] = state
        return state

    def advance(self, snapshot: SystemSnapshot, time_ms: float) -> List[Feature]:
        """
        Advance every vehicle to `time_ms`.

        Returns:
            Point features of the vehicles that could be placed this tick
        """
        features: List[Feature] = []
        for line_id, state in list(self.states.items()):
            line = snapshot.lines.get(line_id)
            if line is None:
                continue
            feature = self._step(line, state, snapshot.stations, time_ms)
            if feature is not None:
                features.append(feature)
        return features

    def features(self, snapshot: SystemSnapshot, time_ms: float) -> List[Feature]:
        """Point features at the vehicles' current positions, without advancing them."""
        features: List[Feature] = []
        for line_id, state in self.states.items():
            line = snapshot.lines.get(line_id)
            if line is None:
                continue
            feature = self._feature(line, state, time_ms)
            if feature is not None:
                features.append(feature)
        return features

    @staticmethod
    def _feature(line: Line, state: VehicleState, time_ms: float) -> Optional[Feature]:
        coords = state.coords_in_travel_order()
        if len(coords) < 2:
            return None
        position = safe_execute(
            point_along, coords, state.distance,
            error_context=f"Interpolating vehicle on line {line.id}",
        )
        return vehicle_feature(line, state, position, time_ms) if position is not None else None

    def _step(
        self,
        line: Line,
        state: VehicleState,
        stations: Mapping[str, Station],
        time_ms: float,
    ) -> Optional[Feature]:
        mode = self.get_mode(line)
        if state.last_time is None:
            state.last_time = time_ms

        if not state.is_paused(time_ms):
            state.pause_until = None
            state.speed = vehicle_speed(mode, state.distance, state.route_distance)
            state.distance += state.speed * (time_ms - state.last_time) / MS_PER_SECOND

        state.last_time = time_ms

        if len(state.section_coords) < 2:
            return None

        feature = self._feature(line, state, time_ms)

        if state.distance > state.route_distance:
            self._arrive(line, state, mode, stations, time_ms)

        return feature

    def _arrive(
        self,
        line: Line,
        state: VehicleState,
        mode: Mode,
        stations: Mapping[str, Station],
        time_ms: float,
    ) -> None:
        """Move a vehicle that reached the end of its section onto the next one."""
        dest_station = stations.get(state.next_station_id)
        if dest_station is None:
            # station was deleted under the vehicle; wait for the next sync
            return

        state.last_time = None
        state.speed = 0.0
        state.distance = 0.0

        last_index = len(state.sections) - 1
        section_index = state.section_index + (1 if state.forward else -1)

        if section_index > last_index or section_index < 0:
            at_end = section_index > last_index
            if state.is_circular:
                section_index = 0
            else:
                terminus = line.station_ids[-1] if at_end else line.station_ids[0]
                rest = line.station_ids[:-1] if at_end else line.station_ids[1:]
                entry = loop_entry(state.sections, stations, terminus, at_end) if terminus in rest else None
                if entry is not None:
                    section_index, state.distance = entry
                else:
                    section_index = last_index if at_end else 0
                state.forward = not state.forward

        state.section_index = section_index
        state.section_coords = station_coordinates(stations, state.current_section)
        state.route_distance = _route_distance(state.section_coords, line.id)

        if not line.is_waypoint_for_line(dest_station):
            state.pause_until = time_ms + mode.pause
