"""
Station → line index and transfer detection.

For every station, records which lines visit it (and whether the line
treats it as a waypoint override) and which pairs of lines offer a
transfer there. The Interline Segment Builder uses the visiting-lines part
to limit adjacency checks to lines that can possibly share a segment.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from trackengine.core.models import Line, Station
from trackengine.core.sections import line_stop_ids


@dataclass(frozen=True)
class OnLine:
    line_id: str
    is_waypoint_override: bool = False


@dataclass
class StationTransfers:
    """
    Lines at one station.

    Attributes:
        on_lines: Every line whose station_ids include the station
        has_transfers: Unordered pairs of line ids that transfer here
    """
    on_lines: List[OnLine] = field(default_factory=list)
    has_transfers: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def line_ids(self) -> List[str]:
        return [on_line.line_id for on_line in self.on_lines]


def check_for_transfer(station_id: str, curr_stop_ids: Sequence[str], other_stop_ids: Sequence[str]) -> bool:
    """
    Whether two lines' stop lists offer a transfer at station_id.

    Two lines that merely run together through a station do not transfer
    there: a transfer exists when exactly one of them ends at the station,
    or when the neighbouring stops of either line are not shared by the other.
    """
    if station_id not in curr_stop_ids or station_id not in other_stop_ids:
        return False

    position_a = curr_stop_ids.index(station_id)
    position_b = other_stop_ids.index(station_id)
    a_at_end = position_a in (0, len(curr_stop_ids) - 1)
    b_at_end = position_b in (0, len(other_stop_ids) - 1)
    if a_at_end != b_at_end:
        return True

    this_prev = curr_stop_ids[max(0, position_a - 1)]
    this_next = curr_stop_ids[min(len(curr_stop_ids) - 1, position_a + 1)]
    if this_prev not in other_stop_ids or this_next not in other_stop_ids:
        return True

    other_prev = other_stop_ids[max(0, position_b - 1)]
    other_next = other_stop_ids[min(len(other_stop_ids) - 1, position_b + 1)]
    if other_prev not in curr_stop_ids or other_next not in curr_stop_ids:
        return True

    return False


def transfers_for_station(
    station_id: str,
    lines: Mapping[str, Line],
    stops_by_line_id: Mapping[str, Sequence[str]],
) -> StationTransfers:
    """Lines visiting station_id and the line pairs that transfer there."""
    result = StationTransfers()
    seen_pairs = set()

    for curr_id, line in lines.items():
        if station_id not in line.station_ids:
            continue
        result.on_lines.append(OnLine(curr_id, station_id in line.waypoint_overrides))

        for other_id in lines:
            if other_id == curr_id:
                continue
            pair = (curr_id, other_id) if curr_id > other_id else (other_id, curr_id)
            if pair in seen_pairs:
                continue
            if check_for_transfer(station_id, stops_by_line_id.get(curr_id, []), stops_by_line_id.get(other_id, [])):
                result.has_transfers.append(pair)
                seen_pairs.add(pair)

    return result


def build_transfer_index(
    stations: Mapping[str, Station],
    lines: Mapping[str, Line],
    station_ids: Optional[Iterable[str]] = None,
    previous: Optional[Mapping[str, StationTransfers]] = None,
) -> Dict[str, StationTransfers]:
    """
    Build (or refresh) the station → lines index.

    Args:
        stations: Station lookup
        lines: Line lookup
        station_ids: Stations to (re)compute; None computes every station
        previous: Index to start from when refreshing a subset

    Returns:
        New index; stations no longer in the lookup are dropped
    """
    index: Dict[str, StationTransfers] = dict(previous or {})
    targets = list(stations) if station_ids is None else list(station_ids)
    stops_by_line_id = {line_id: line_stop_ids(line, stations) for line_id, line in lines.items()}

    for station_id in targets:
        if station_id in stations:
            index[station_id] = transfers_for_station(station_id, lines, stops_by_line_id)
        else:
            index.pop(station_id, None)

    return index
