"""
Builders shared by the track engine tests.
"""

from typing import Iterable, Optional

from trackengine.core.models import Line, Station, SystemSnapshot

RED = "#e6194b"
BLUE = "#4363d8"
GREEN = "#3cb44b"


def make_station(station_id: str, lat: float, lng: float, is_waypoint: bool = False) -> Station:
    return Station(id=station_id, lat=lat, lng=lng, name=station_id, is_waypoint=is_waypoint)


def make_line(
    line_id: str,
    station_ids: Iterable[str],
    color: str = RED,
    mode: Optional[str] = None,
    **kwargs,
) -> Line:
    return Line(id=line_id, station_ids=tuple(station_ids), name=line_id, color=color, mode=mode, **kwargs)


def make_snapshot(stations: Iterable[Station], lines: Iterable[Line]) -> SystemSnapshot:
    return SystemSnapshot(
        stations={s.id: s for s in stations},
        lines={l.id: l for l in lines},
    )
