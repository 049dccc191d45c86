"""
Section Partitioner

Splits a line's station list into sections: the stretches between two real
stops (or a line end). Sections are the unit over which vehicle motion and
dwell times are computed.
"""

import random
from typing import List, Mapping, Optional

from trackengine.core.models import Line, Station


def partition_sections(line: Line, stations: Mapping[str, Station]) -> List[List[str]]:
    """
    Split a line into sections.

    A station closes the current section, and opens the next one with itself,
    when it is a real stop for this line or when it is the line's last id.
    Ids missing from the lookup stay in the section they fall in but never
    close it, so adjacency is preserved and rejoining the sections (dropping
    the duplicated boundary ids) reproduces line.station_ids.

    Args:
        line: Line to partition
        stations: Station lookup by id

    Returns:
        Ordered sections; empty for lines with fewer than two ids
    """
    sections: List[List[str]] = []
    section: List[str] = []
    last_index = len(line.station_ids) - 1

    for i, station_id in enumerate(line.station_ids):
        section.append(station_id)
        if i == 0:
            continue

        if i == last_index:
            sections.append(section)
            break

        station = stations.get(station_id)
        if station is None:
            continue

        if not line.is_waypoint_for_line(station):
            sections.append(section)
            section = [station_id]

    return sections


def rejoin_sections(sections: List[List[str]]) -> List[str]:
    """Concatenate sections back into a station list, dropping shared boundaries."""
    station_ids: List[str] = []
    for section in sections:
        station_ids.extend(section if not station_ids else section[1:])
    return station_ids


def line_stop_ids(line: Line, stations: Mapping[str, Station]) -> List[str]:
    """Ids of the real stops on a line: present, not waypoints, not overridden."""
    return [
        station_id for station_id in line.station_ids
        if station_id in stations and not line.is_waypoint_for_line(stations[station_id])
    ]


def resolve_section_index(
    sections: List[List[str]],
    prev_station_id: Optional[str],
    prev_section_index: Optional[int],
    forward: bool,
    rng: Optional[random.Random] = None,
) -> int:
    """
    Find the section a vehicle should occupy after its line was (re)partitioned.

    A vehicle with no history gets a pseudo-random section. Otherwise the
    section that starts (forward) or ends (backward) at the vehicle's previous
    station wins; when the station occurs more than once, a match within one
    of the previous index is preferred. If the station is gone from the line,
    the previous index is reused, clamped to the new section count.

    Args:
        sections: Non-empty list of sections
        prev_station_id: Station the vehicle last departed from
        prev_section_index: Section index the vehicle last occupied
        forward: Direction of travel
        rng: Random source for new vehicles

    Returns:
        Section index in range(len(sections))
    """
    if prev_station_id is None and prev_section_index is None:
        return (rng or random).randrange(len(sections))

    anchor = prev_section_index or 0
    match: Optional[int] = None
    for i, section in enumerate(sections):
        boundary = section[0] if forward else section[-1]
        if boundary != prev_station_id:
            continue
        if match is None or abs(i - anchor) <= 1:
            match = i

    if match is not None:
        return match

    # station no longer on the line
    if forward:
        return min(max(anchor - 1, 0), len(sections) - 1)
    return max(min(anchor, len(sections) - 1), 0)
