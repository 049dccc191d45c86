"""
Track Engine Data Models

Defines the core data structures for Station, Line, Mode, Pattern,
InterlineSegment and VehicleState.

The engine never owns the canonical station/line graph: it receives a
read-only SystemSnapshot per call and owns only the derived state built
from it (sections, interline segments, vehicle states).
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from trackengine.utils.constants import PATTERN_SEPARATOR, SEGMENT_KEY_SEPARATOR, SOLID_ICON

# (lng, lat) pairs, GeoJSON axis order
LngLat = Tuple[float, float]


@dataclass(frozen=True)
class Station:
    """
    Station data model.

    Coordinates are already parsed to floats; textual coordinates are
    coerced once at the decode boundary (see trackengine.io.loader).

    Attributes:
        id: Unique station identifier
        lat: Latitude in degrees
        lng: Longitude in degrees (not yet normalized)
        name: Display name
        is_waypoint: Geometry-only point, never a boarding stop unless overridden
    """
    id: str
    lat: float
    lng: float
    name: str = ""
    is_waypoint: bool = False

    @property
    def coordinate(self) -> LngLat:
        return (self.lng, self.lat)


@dataclass(frozen=True)
class Line:
    """
    Line data model.

    Attributes:
        id: Unique line identifier
        name: Display name
        color: Hex color used to render the line
        station_ids: Ordered station ids; an id may repeat to express a loop
        waypoint_overrides: Stations treated as waypoints for this line only
        mode: Key into the mode table (None selects the default mode)
        icon: Optional icon shape rendered as a line pattern
        line_group_id: Optional group used to filter displayed lines
    """
    id: str
    station_ids: Tuple[str, ...] = ()
    name: str = ""
    color: str = "#000000"
    waypoint_overrides: FrozenSet[str] = frozenset()
    mode: Optional[str] = None
    icon: Optional[str] = None
    line_group_id: Optional[str] = None

    def __post_init__(self):
        """Freeze list-like inputs so the line stays hashable and read-only."""
        object.__setattr__(self, "station_ids", tuple(self.station_ids))
        object.__setattr__(self, "waypoint_overrides", frozenset(self.waypoint_overrides))

    @property
    def is_circular(self) -> bool:
        """A closed loop starts and ends on the same station."""
        return len(self.station_ids) >= 2 and self.station_ids[0] == self.station_ids[-1]

    def is_waypoint_for_line(self, station: Station) -> bool:
        """Whether the station is geometry-only on this line."""
        return station.is_waypoint or station.id in self.waypoint_overrides


@dataclass(frozen=True)
class Mode:
    """
    Kinematic profile assigned to a line.

    Attributes:
        key: Mode key referenced by Line.mode
        label: Human readable label
        speed: Top speed in km per animation second
        acceleration: Acceleration in km/s per second
        pause: Dwell time at a real stop, in milliseconds
    """
    key: str
    speed: float
    acceleration: float
    pause: float
    label: str = ""

    @property
    def accel_distance(self) -> float:
        """Distance needed to reach (or brake from) top speed."""
        return self.speed / self.acceleration


@dataclass(frozen=True, order=True)
class Pattern:
    """
    How one line renders along a segment: a color plus an optional icon.

    Patterns order by their canonical key so pattern lists sort the same way
    regardless of which line contributed them first.
    """
    sort_key: str = field(init=False, repr=False)
    color: str = field(compare=False)
    icon: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "sort_key", self.key)

    @property
    def key(self) -> str:
        """Canonical "color|icon" key, with "solid" standing in for no icon."""
        return f"{self.color}{PATTERN_SEPARATOR}{self.icon or SOLID_ICON}"


@dataclass
class InterlineSegment:
    """
    One maximal stretch of track and the line patterns traveling it.

    Attributes:
        station_ids: Ordered station ids, larger boundary id first
        patterns: Patterns sharing the stretch, sorted by key
        offsets: Lateral offset per pattern key, in screen pixels
    """
    station_ids: List[str]
    patterns: List[Pattern]
    offsets: Dict[str, float] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return SEGMENT_KEY_SEPARATOR.join(self.station_ids)

    @property
    def pattern_keys(self) -> List[str]:
        return [p.key for p in self.patterns]


@dataclass
class VehicleState:
    """
    Kinematic state of the single vehicle simulated on a line.

    Created lazily on first need, mutated every tick and discarded when the
    line is deleted or drops below two stops. Never persisted.

    Attributes:
        line_id: Owning line
        section_index: Index into the line's sections
        forward: Direction of travel along the line's station order
        distance: Km travelled into the current section
        speed: Current speed in km per animation second
        is_circular: Closed-loop line, direction is fixed forward
        pause_until: Animation timestamp (ms) until which the vehicle dwells
        last_time: Timestamp (ms) of the previous tick, None right after a transition
        route_distance: Length of the current section in km
        sections: Cached sections of the line
        section_coords: Cached forward coordinates of the current section
    """
    line_id: str
    section_index: int = 0
    forward: bool = True
    distance: float = 0.0
    speed: float = 0.0
    is_circular: bool = False
    pause_until: Optional[float] = None
    last_time: Optional[float] = None
    route_distance: float = 0.0
    sections: List[List[str]] = field(default_factory=list)
    section_coords: List[LngLat] = field(default_factory=list)

    @property
    def current_section(self) -> List[str]:
        return self.sections[self.section_index]

    @property
    def prev_station_id(self) -> str:
        """Station the vehicle departed from in the current section."""
        section = self.current_section
        return section[0] if self.forward else section[-1]

    @property
    def next_station_id(self) -> str:
        """Station the vehicle is heading to in the current section."""
        section = self.current_section
        return section[-1] if self.forward else section[0]

    def coords_in_travel_order(self) -> List[LngLat]:
        return list(self.section_coords) if self.forward else list(reversed(self.section_coords))

    def is_paused(self, time_ms: float) -> bool:
        return self.pause_until is not None and time_ms < self.pause_until


@dataclass(frozen=True)
class SystemSnapshot:
    """Read-only view of the station/line graph for one invocation."""
    stations: Dict[str, Station] = field(default_factory=dict)
    lines: Dict[str, Line] = field(default_factory=dict)


@dataclass(frozen=True)
class ChangeSet:
    """
    Ids changed since the last render, used to scope recomputation.

    Attributes:
        all: Everything changed (initial load, display reset)
        station_ids: Stations added, moved or deleted
        line_ids: Lines added, edited or deleted
        segment_keys: Interline segment keys to redraw
    """
    all: bool = False
    station_ids: FrozenSet[str] = frozenset()
    line_ids: FrozenSet[str] = frozenset()
    segment_keys: FrozenSet[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "station_ids", frozenset(self.station_ids))
        object.__setattr__(self, "line_ids", frozenset(self.line_ids))
        object.__setattr__(self, "segment_keys", frozenset(self.segment_keys))

    @property
    def is_empty(self) -> bool:
        return not (self.all or self.station_ids or self.line_ids or self.segment_keys)
