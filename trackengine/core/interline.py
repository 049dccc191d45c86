"""
Interline Segment Builder

Finds track shared by several lines, merges it into maximal segments and
computes a lateral offset per line pattern so overlapping colors render side
by side instead of on top of each other.

Three phases:
1. Unit segmentation: every adjacent station pair of every line becomes a
   unit segment tagged with the patterns of all lines that run directly
   between the two stations.
2. Chain merging: unit segments with the same pattern set are spliced into
   the longest chains possible.
3. Offset assignment: patterns alternate left and right of the centre line,
   one track thickness apart.

The builder is a pure function of its inputs. Unit segments are processed in
sorted order so that the result does not depend on line iteration order.
"""

import logging
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from trackengine.core.models import InterlineSegment, Line, Pattern, Station, SystemSnapshot
from trackengine.core.transfers import StationTransfers, build_transfer_index
from trackengine.utils.constants import (
    COLOR_TO_NAME,
    DEFAULT_TRACK_THICKNESS,
    LINE_ICON_SHAPES,
    PATTERN_SET_SEPARATOR,
)

logger = logging.getLogger(__name__)

StationPair = Tuple[str, str]


def colored_icon(line: Line) -> Optional[str]:
    """Map icon name for a line, or None when the line renders solid."""
    if not line.icon:
        return None
    if line.color in COLOR_TO_NAME and line.icon in LINE_ICON_SHAPES:
        return f"md_{line.icon}_{COLOR_TO_NAME[line.color]}"
    return None


def line_pattern(line: Line, ignore_icon: bool = False) -> Pattern:
    return Pattern(color=line.color, icon=None if ignore_icon else colored_icon(line))


def are_adjacent_in_line(line: Line, station_a: str, station_b: str) -> bool:
    """
    Whether the two stations appear next to each other anywhere in the line.

    A station may occur more than once on a looping line, so every pair of
    positions is checked, in either order.
    """
    positions_a = [i for i, sid in enumerate(line.station_ids) if sid == station_a]
    if not positions_a:
        return False
    positions_b = {i for i, sid in enumerate(line.station_ids) if sid == station_b}
    return any(i - 1 in positions_b or i + 1 in positions_b for i in positions_a)


def build_unit_segments(
    lines: Mapping[str, Line],
    stations: Mapping[str, Station],
    line_ids: Iterable[str],
    transfer_index: Mapping[str, StationTransfers],
    ignore_icon: bool = False,
) -> Dict[StationPair, Set[Pattern]]:
    """
    Tag every adjacent station pair with the patterns running between them.

    Args:
        lines: Line lookup
        stations: Station lookup; pairs with a missing endpoint are skipped
        line_ids: Lines to build from; other lines never contribute patterns
        transfer_index: Station → visiting lines, narrows the adjacency checks
        ignore_icon: Render every line solid

    Returns:
        Sorted station pair → pattern set
    """
    included = [line_id for line_id in line_ids if line_id in lines]
    included_set = set(included)
    units: Dict[StationPair, Set[Pattern]] = {}

    for line_id in included:
        line = lines[line_id]
        pattern = line_pattern(line, ignore_icon)

        for curr_id, next_id in zip(line.station_ids, line.station_ids[1:]):
            if curr_id not in stations or next_id not in stations:
                continue

            pair = tuple(sorted((curr_id, next_id)))
            patterns = units.setdefault(pair, set())
            patterns.add(pattern)

            candidates = set()
            for station_id in pair:
                transfers = transfer_index.get(station_id)
                if transfers is not None:
                    candidates.update(transfers.line_ids)

            for other_id in sorted(candidates & included_set):
                if other_id == line_id:
                    continue
                other = lines[other_id]
                other_pattern = line_pattern(other, ignore_icon)
                if other_pattern in patterns:
                    continue
                if are_adjacent_in_line(other, curr_id, next_id):
                    patterns.add(other_pattern)

    return units


def pattern_set_key(patterns: Iterable[Pattern]) -> str:
    """Order-independent key for a pattern set."""
    return PATTERN_SET_SEPARATOR.join(sorted(p.key for p in patterns))


def group_by_patterns(units: Mapping[StationPair, Set[Pattern]]) -> Dict[str, List[StationPair]]:
    groups: Dict[str, List[StationPair]] = defaultdict(list)
    for pair in sorted(units):
        groups[pattern_set_key(units[pair])].append(pair)
    return dict(groups)


def merge_chains(pairs: Sequence[StationPair]) -> List[List[str]]:
    """
    Splice station pairs that share an endpoint into maximal chains.

    Each chain grows at both ends until no remaining pair attaches to it, then
    the next unused pair seeds a new chain. Chains are canonicalized so the
    lexicographically larger boundary id comes first.
    """
    remaining = list(pairs)
    chains: List[List[str]] = []

    while remaining:
        chain = list(remaining.pop(0))
        growing = True
        while growing:
            growing = False
            for pair in list(remaining):
                first, last = chain[0], chain[-1]
                if first == pair[0]:
                    chain.insert(0, pair[1])
                elif first == pair[1]:
                    chain.insert(0, pair[0])
                elif last == pair[0]:
                    chain.append(pair[1])
                elif last == pair[1]:
                    chain.append(pair[0])
                else:
                    continue
                remaining.remove(pair)
                growing = True

        if not chain[0] > chain[-1]:
            chain.reverse()
        chains.append(chain)

    return chains


def calculate_offsets(patterns: Sequence[Pattern], thickness: float = DEFAULT_TRACK_THICKNESS) -> Dict[str, float]:
    """
    Lateral offset per pattern key.

    With an odd number of patterns the first one is centred at 0 and the
    rest step outwards by one thickness; with an even number every pattern
    sits half a thickness off centre at least. Signs alternate +, -, +, ...
    """
    offsets: Dict[str, float] = {}
    centered = len(patterns) % 2 == 1

    for i, pattern in enumerate(patterns):
        if centered:
            distance = math.floor((i + 1) / 2) * thickness
        else:
            distance = thickness / 2 + math.floor(i / 2) * thickness
        offsets[pattern.key] = -distance if i % 2 else distance

    return offsets


def build_interline_segments(
    snapshot: SystemSnapshot,
    line_ids: Optional[Iterable[str]] = None,
    thickness: float = DEFAULT_TRACK_THICKNESS,
    ignore_icon: bool = False,
    transfer_index: Optional[Mapping[str, StationTransfers]] = None,
) -> Dict[str, InterlineSegment]:
    """
    Build the interline segments of a system.

    Args:
        snapshot: Stations and lines
        line_ids: Lines to include; None or empty includes every line
        thickness: Rendered track thickness, the step between offsets
        ignore_icon: Render every line solid
        transfer_index: Precomputed station → lines index; built when omitted

    Returns:
        Segment key → InterlineSegment
    """
    included = sorted(line_ids) if line_ids else sorted(snapshot.lines)
    if transfer_index is None:
        transfer_index = build_transfer_index(snapshot.stations, snapshot.lines)

    units = build_unit_segments(snapshot.lines, snapshot.stations, included, transfer_index, ignore_icon)

    segments: Dict[str, InterlineSegment] = {}
    for pairs in group_by_patterns(units).values():
        patterns = sorted(units[pairs[0]])
        for chain in merge_chains(pairs):
            segment = InterlineSegment(
                station_ids=chain,
                patterns=list(patterns),
                offsets=calculate_offsets(patterns, thickness),
            )
            segments[segment.key] = segment

    logger.debug(f"Built {len(segments)} interline segments from {len(units)} unit segments "
                 f"across {len(included)} lines")
    return segments


def diff_interline_segments(
    old: Optional[Mapping[str, InterlineSegment]],
    new: Optional[Mapping[str, InterlineSegment]],
) -> List[str]:
    """
    Keys to redraw: present in only one mapping, or present in both with a
    different pattern list or offset mapping.
    """
    old = old or {}
    new = new or {}
    changed = set(old) ^ set(new)
    for key in set(old) & set(new):
        if old[key].pattern_keys != new[key].pattern_keys or old[key].offsets != new[key].offsets:
            changed.add(key)
    return sorted(changed)
