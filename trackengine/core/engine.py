"""
Track Engine

Single owner of all derived state: transfer index, interline segments,
rendered features and vehicle states. Drivers (a timer, an editor event, a
test) call recompute() when the snapshot changes and tick() once per frame.
"""

import dataclasses
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from trackengine.config.loader import EngineSettings, get_mode, load_engine_settings, load_modes
from trackengine.core.features import (
    Feature,
    feature_collection,
    segment_features,
    track_feature,
    vehicles_collection,
)
from trackengine.core.interline import build_interline_segments, diff_interline_segments
from trackengine.core.models import ChangeSet, InterlineSegment, Line, Mode, SystemSnapshot
from trackengine.core.transfers import StationTransfers, build_transfer_index
from trackengine.core.vehicles import VehicleSimulator

logger = logging.getLogger(__name__)


@dataclass
class RecomputeResult:
    """
    What a recompute changed, for incremental redraw.

    Attributes:
        segment_keys: Interline segments added, removed or restyled
        line_ids: Lines whose base track was redrawn or removed
        vehicles_synced: Whether vehicles were rebound to the new lines
    """
    segment_keys: List[str] = field(default_factory=list)
    line_ids: List[str] = field(default_factory=list)
    vehicles_synced: bool = False


class TrackEngine:
    """
    Derived state of one displayed system.

    Args:
        modes: Mode table; loaded from configuration when omitted
        settings: Engine settings; loaded from configuration when omitted
        rng: Random source for vehicle placement
        groups_displayed: Line group ids (or mode keys for ungrouped lines)
            to display; None displays every line
    """

    def __init__(
        self,
        modes: Optional[Mapping[str, Mode]] = None,
        settings: Optional[EngineSettings] = None,
        rng: Optional[random.Random] = None,
        groups_displayed: Optional[Iterable[str]] = None,
    ):
        self.modes: Dict[str, Mode] = dict(modes) if modes is not None else load_modes()
        self.settings = settings if settings is not None else load_engine_settings()
        self.groups_displayed: Optional[Set[str]] = set(groups_displayed) if groups_displayed is not None else None

        self.snapshot = SystemSnapshot()
        self.transfer_index: Dict[str, StationTransfers] = {}
        self.segments: Dict[str, InterlineSegment] = {}
        self.track_features: Dict[str, Feature] = {}
        self.segment_features: Dict[str, Dict[str, Feature]] = {}
        self.simulator = VehicleSimulator(self.modes, self.settings, rng)

    # --- filtering ---

    def is_displayed(self, line: Line) -> bool:
        if self.groups_displayed is None:
            return True
        group = line.line_group_id or get_mode(self.modes, line.mode).key
        return group in self.groups_displayed

    def displayed_line_ids(self, snapshot: Optional[SystemSnapshot] = None) -> List[str]:
        snapshot = snapshot or self.snapshot
        return sorted(line_id for line_id, line in snapshot.lines.items() if self.is_displayed(line))

    def set_groups_displayed(self, groups: Optional[Iterable[str]]) -> RecomputeResult:
        """Change the displayed groups and redraw everything."""
        self.groups_displayed = set(groups) if groups is not None else None
        return self.recompute(self.snapshot, ChangeSet(all=True))

    # --- recompute ---

    def recompute(self, snapshot: SystemSnapshot, changes: Optional[ChangeSet] = None) -> RecomputeResult:
        """
        Rebuild derived state for a new snapshot.

        Args:
            snapshot: Current stations and lines
            changes: Ids changed since the previous call; None recomputes everything

        Returns:
            RecomputeResult naming what the display surface must redraw
        """
        changes = changes if changes is not None else ChangeSet(all=True)
        previous = self.snapshot
        self.snapshot = snapshot

        if changes.is_empty:
            return RecomputeResult()

        touched_lines = self._touched_line_ids(previous, snapshot, changes)
        touched_stations = self._touched_station_ids(previous, snapshot, changes, touched_lines)

        if changes.all:
            self.transfer_index = build_transfer_index(snapshot.stations, snapshot.lines)
        else:
            self.transfer_index = build_transfer_index(
                snapshot.stations, snapshot.lines, touched_stations, previous=self.transfer_index
            )

        displayed = self.displayed_line_ids(snapshot)
        new_segments = build_interline_segments(
            snapshot,
            displayed,
            thickness=self.settings.track_thickness,
            ignore_icon=self.settings.ignore_icon,
            transfer_index=self.transfer_index,
        )
        changed_segments = set(diff_interline_segments(self.segments, new_segments))
        if changes.all:
            changed_segments |= set(self.segments) | set(new_segments)
        changed_segments |= {key for key in changes.segment_keys if key in self.segments or key in new_segments}
        # a moved station keeps segment keys and offsets but changes their geometry
        if changes.station_ids:
            changed_segments |= {
                key for key, segment in new_segments.items()
                if changes.station_ids.intersection(segment.station_ids)
            }
        self.segments = new_segments
        self._redraw_segments(changed_segments)

        redrawn_lines = set(previous.lines) | set(snapshot.lines) if changes.all else touched_lines
        self._redraw_tracks(redrawn_lines, set(displayed))

        vehicles_synced = False
        if changes.all or touched_lines or changes.station_ids:
            if self.settings.low_performance:
                self.simulator.reset()
            else:
                self.simulator.sync(snapshot, displayed)
                vehicles_synced = True

        result = RecomputeResult(
            segment_keys=sorted(changed_segments),
            line_ids=sorted(redrawn_lines),
            vehicles_synced=vehicles_synced,
        )
        logger.info(f"Recomputed {len(result.segment_keys)} segments and {len(result.line_ids)} tracks "
                    f"({len(self.segments)} segments, {len(self.simulator.states)} vehicles total)")
        return result

    @staticmethod
    def _touched_line_ids(previous: SystemSnapshot, snapshot: SystemSnapshot, changes: ChangeSet) -> Set[str]:
        """Changed lines, plus every line running through a changed station."""
        touched = set(changes.line_ids)
        if changes.station_ids:
            for lines in (previous.lines, snapshot.lines):
                for line_id, line in lines.items():
                    if changes.station_ids.intersection(line.station_ids):
                        touched.add(line_id)
        return touched

    @staticmethod
    def _touched_station_ids(
        previous: SystemSnapshot,
        snapshot: SystemSnapshot,
        changes: ChangeSet,
        touched_lines: Set[str],
    ) -> Set[str]:
        """Stations whose transfer entry may have changed."""
        touched = set(changes.station_ids)
        for lines in (previous.lines, snapshot.lines):
            for line_id in touched_lines:
                line = lines.get(line_id)
                if line is not None:
                    touched.update(line.station_ids)
        return touched

    def _redraw_segments(self, segment_keys: Iterable[str]) -> None:
        stations = self.snapshot.stations
        for key in segment_keys:
            segment = self.segments.get(key)
            if segment is None:
                self.segment_features.pop(key, None)
                continue
            self.segment_features[key] = segment_features(
                segment,
                stations,
                self.settings.great_circle_threshold_miles,
                self.settings.great_circle_points,
            )

    def _redraw_tracks(self, line_ids: Iterable[str], displayed: Set[str]) -> None:
        for line_id in line_ids:
            line = self.snapshot.lines.get(line_id)
            feature = None
            if line is not None and line_id in displayed:
                feature = track_feature(
                    line,
                    self.snapshot.stations,
                    self.settings.great_circle_threshold_miles,
                    self.settings.great_circle_points,
                )
            if feature is None:
                self.track_features.pop(line_id, None)
            else:
                self.track_features[line_id] = feature

    # --- animation ---

    def tick(self, time_ms: float) -> Dict[str, Any]:
        """Advance every vehicle to time_ms and return the vehicle collection."""
        if self.settings.low_performance:
            return vehicles_collection([])
        return vehicles_collection(self.simulator.advance(self.snapshot, time_ms))

    def current_vehicles(self, time_ms: float) -> Dict[str, Any]:
        """Vehicle collection at the current positions; nothing is advanced."""
        if self.settings.low_performance:
            return vehicles_collection([])
        return vehicles_collection(self.simulator.features(self.snapshot, time_ms))

    def set_low_performance(self, low_performance: bool) -> None:
        """Turn vehicle animation off (dropping all vehicles) or back on."""
        if low_performance == self.settings.low_performance:
            return
        self.settings = dataclasses.replace(self.settings, low_performance=low_performance)
        self.simulator.settings = self.settings
        if low_performance:
            self.simulator.reset()
        else:
            self.simulator.sync(self.snapshot, self.displayed_line_ids())
        logger.info(f"Low performance mode {'enabled' if low_performance else 'disabled'}")

    def release(self) -> None:
        """Drop vehicle state; geometry is kept for a later restart."""
        self.simulator.reset()

    # --- output ---

    def tracks_collection(self) -> Dict[str, Any]:
        return feature_collection(self.track_features[k] for k in sorted(self.track_features))

    def segments_collection(self) -> Dict[str, Any]:
        features = []
        for key in sorted(self.segment_features):
            by_pattern = self.segment_features[key]
            features.extend(by_pattern[long_key] for long_key in sorted(by_pattern))
        return feature_collection(features, total_segments=len(self.segment_features))
