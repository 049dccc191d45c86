"""
Tests for the interline segment builder.
"""

import pytest

from tests.helpers import BLUE, GREEN, RED, make_line, make_snapshot, make_station
from trackengine.core.interline import (
    are_adjacent_in_line,
    build_interline_segments,
    calculate_offsets,
    diff_interline_segments,
    line_pattern,
    merge_chains,
)
from trackengine.core.models import InterlineSegment, Pattern, SystemSnapshot


def _stations(ids):
    return [make_station(sid, 0.01 * i, 0.0) for i, sid in enumerate(ids)]


def _summary(segments):
    return {key: (seg.station_ids, seg.pattern_keys, seg.offsets) for key, seg in segments.items()}


@pytest.mark.fast
class TestLinePattern:
    """Tests for line patterns."""

    def test_solid_line(self):
        assert line_pattern(make_line("L1", ["A"], color=RED)).key == f"{RED}|solid"

    def test_palette_icon(self):
        line = make_line("L1", ["A"], color=RED, icon="star")
        assert line_pattern(line).icon == "md_star_red"

    def test_icon_needs_palette_color(self):
        line = make_line("L1", ["A"], color="#123456", icon="star")
        assert line_pattern(line).icon is None

    def test_icon_needs_known_shape(self):
        line = make_line("L1", ["A"], color=RED, icon="hexagon")
        assert line_pattern(line).icon is None

    def test_ignore_icon(self):
        line = make_line("L1", ["A"], color=RED, icon="star")
        assert line_pattern(line, ignore_icon=True) == Pattern(color=RED)


@pytest.mark.fast
class TestAdjacency:
    """Tests for are_adjacent_in_line."""

    def test_adjacent_either_order(self):
        line = make_line("L1", ["A", "B", "C"])
        assert are_adjacent_in_line(line, "A", "B")
        assert are_adjacent_in_line(line, "B", "A")
        assert not are_adjacent_in_line(line, "A", "C")

    def test_loop_positions(self):
        """A station repeated on a loop is adjacent at every occurrence."""
        line = make_line("L1", ["A", "B", "C", "A"])
        assert are_adjacent_in_line(line, "C", "A")
        assert are_adjacent_in_line(line, "A", "B")

    def test_station_not_on_line(self):
        assert not are_adjacent_in_line(make_line("L1", ["A", "B"]), "A", "Z")


@pytest.mark.fast
class TestMergeChains:
    """Tests for merge_chains."""

    def test_chain_is_spliced_and_canonical(self):
        assert merge_chains([("A", "B"), ("B", "C"), ("C", "D")]) == [["D", "C", "B", "A"]]

    def test_splices_at_both_ends(self):
        assert merge_chains([("B", "C"), ("A", "B"), ("C", "D")]) == [["D", "C", "B", "A"]]

    def test_disjoint_pairs_stay_separate(self):
        assert merge_chains([("A", "B"), ("C", "D")]) == [["B", "A"], ["D", "C"]]


@pytest.mark.fast
class TestCalculateOffsets:
    """Tests for calculate_offsets."""

    PATTERNS = [Pattern(color=c) for c in ("#1", "#2", "#3", "#4", "#5")]

    @pytest.mark.parametrize("count,expected", [
        (1, [0]),
        (2, [4, -4]),
        (3, [0, -8, 8]),
        (4, [4, -4, 12, -12]),
        (5, [0, -8, 8, -16, 16]),
    ])
    def test_offsets(self, count, expected):
        offsets = calculate_offsets(self.PATTERNS[:count], thickness=8)
        assert [offsets[p.key] for p in self.PATTERNS[:count]] == expected

    @pytest.mark.parametrize("count", [1, 2, 3, 4, 5])
    def test_symmetry(self, count):
        """Offsets sum to zero; exactly one centred pattern when the count is odd."""
        offsets = calculate_offsets(self.PATTERNS[:count], thickness=6)
        assert sum(offsets.values()) == pytest.approx(0)
        zeros = [v for v in offsets.values() if v == 0]
        assert len(zeros) == (1 if count % 2 else 0)


@pytest.mark.fast
class TestBuildInterlineSegments:
    """Tests for build_interline_segments."""

    def test_shared_track(self, shared_track_snapshot):
        """B-C carries both colors; A-B and C-D stay separate single-color segments."""
        segments = build_interline_segments(shared_track_snapshot)

        assert set(segments) == {"B|A", "C|B", "D|C"}
        assert segments["C|B"].pattern_keys == [f"{BLUE}|solid", f"{RED}|solid"]
        assert segments["B|A"].pattern_keys == [f"{RED}|solid"]
        assert segments["D|C"].pattern_keys == [f"{BLUE}|solid"]
        assert segments["C|B"].offsets == {f"{BLUE}|solid": 4, f"{RED}|solid": -4}
        assert segments["B|A"].offsets == {f"{RED}|solid": 0}

    def test_single_line_is_one_segment(self):
        snapshot = make_snapshot(_stations("ABCD"), [make_line("L1", ["A", "B", "C", "D"])])
        segments = build_interline_segments(snapshot)
        assert list(segments) == ["D|C|B|A"]

    def test_same_pattern_lines_merge(self):
        """Two lines of the same color share one pattern."""
        snapshot = make_snapshot(_stations("ABC"), [
            make_line("L1", ["A", "B", "C"], color=RED),
            make_line("L2", ["C", "B", "A"], color=RED),
        ])
        segments = build_interline_segments(snapshot)
        assert _summary(segments) == {"C|B|A": (["C", "B", "A"], [f"{RED}|solid"], {f"{RED}|solid": 0})}

    def test_missing_station_skips_pair(self):
        snapshot = make_snapshot(_stations("AB"), [make_line("L1", ["A", "B", "GONE"])])
        assert list(build_interline_segments(snapshot)) == ["B|A"]

    def test_excluded_lines_do_not_contribute(self, shared_track_snapshot):
        segments = build_interline_segments(shared_track_snapshot, line_ids=["L1"])
        assert set(segments) == {"C|B|A"}
        assert segments["C|B|A"].pattern_keys == [f"{RED}|solid"]

    def test_icon_patterns(self):
        snapshot = make_snapshot(_stations("AB"), [
            make_line("L1", ["A", "B"], color=RED, icon="star"),
            make_line("L2", ["A", "B"], color=RED),
        ])
        segment = build_interline_segments(snapshot)["B|A"]
        assert segment.pattern_keys == [f"{RED}|md_star_red", f"{RED}|solid"]

    def test_thickness(self, shared_track_snapshot):
        segments = build_interline_segments(shared_track_snapshot, thickness=10)
        assert sorted(segments["C|B"].offsets.values()) == [-5, 5]

    def test_deterministic_across_line_order(self):
        """Insertion order of lines does not change keys, patterns or offsets."""
        stations = _stations("ABCDEF")
        lines = [
            make_line("L1", ["A", "B", "C", "D"], color=RED),
            make_line("L2", ["B", "C", "D", "E"], color=BLUE),
            make_line("L3", ["C", "D", "E", "F"], color=GREEN),
            make_line("L4", ["F", "E", "D"], color=RED, icon="circle"),
        ]
        forward = build_interline_segments(make_snapshot(stations, lines))
        backward = build_interline_segments(make_snapshot(stations, reversed(lines)))
        shuffled = build_interline_segments(
            SystemSnapshot(
                stations={s.id: s for s in reversed(stations)},
                lines={l.id: l for l in (lines[2], lines[0], lines[3], lines[1])},
            ),
            line_ids=["L4", "L2", "L3", "L1"],
        )

        assert _summary(forward) == _summary(backward) == _summary(shuffled)

    def test_segments_cover_every_pair_once(self):
        stations = _stations("ABCDE")
        lines = [
            make_line("L1", ["A", "B", "C", "D", "E"], color=RED),
            make_line("L2", ["B", "C", "D"], color=BLUE),
        ]
        segments = build_interline_segments(make_snapshot(stations, lines))
        pairs = []
        for segment in segments.values():
            ids = segment.station_ids
            assert ids[0] > ids[-1]
            pairs.extend(frozenset(p) for p in zip(ids, ids[1:]))
        assert len(pairs) == len(set(pairs)) == 4


@pytest.mark.fast
class TestDiffInterlineSegments:
    """Tests for diff_interline_segments."""

    def test_identical(self, shared_track_snapshot):
        segments = build_interline_segments(shared_track_snapshot)
        assert diff_interline_segments(segments, build_interline_segments(shared_track_snapshot)) == []

    def test_added_and_removed(self, shared_track_snapshot):
        old = build_interline_segments(shared_track_snapshot, line_ids=["L1"])
        new = build_interline_segments(shared_track_snapshot)
        assert diff_interline_segments(old, new) == ["B|A", "C|B", "C|B|A", "D|C"]

    def test_changed_patterns_or_offsets(self):
        old = {"B|A": InterlineSegment(["B", "A"], [Pattern(color=RED)], {f"{RED}|solid": 0})}
        same = {"B|A": InterlineSegment(["B", "A"], [Pattern(color=RED)], {f"{RED}|solid": 0})}
        shifted = {"B|A": InterlineSegment(["B", "A"], [Pattern(color=RED)], {f"{RED}|solid": 4})}
        recolored = {"B|A": InterlineSegment(["B", "A"], [Pattern(color=BLUE)], {f"{BLUE}|solid": 0})}

        assert diff_interline_segments(old, same) == []
        assert diff_interline_segments(old, shifted) == ["B|A"]
        assert diff_interline_segments(old, recolored) == ["B|A"]

    def test_none_inputs(self):
        assert diff_interline_segments(None, None) == []
