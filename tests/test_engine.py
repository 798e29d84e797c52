"""Tests for the tip-to-pivot path transform."""

import math

import pytest

from dragknifecam.config.settings import (
    DegeneratePolicy,
    DragknifeConfig,
    InfeasiblePolicy,
    LiftConfig,
    LiftMode,
)
from dragknifecam.core import engine
from dragknifecam.core.engine import check_connectivity, transform, transform_with_config
from dragknifecam.core.errors import (
    DisconnectedPathError,
    InfeasibleOffsetError,
    IssueKind,
    TransformWarning,
)
from dragknifecam.core.geometry import EPSILON, ArcDirection, Point
from dragknifecam.core.simulate import reproduction_error
from dragknifecam.core.toolpath.base import Arc, Line, MotionKind, Path, Swivel
from dragknifecam.core.toolpath.offset import offset_arc


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _path(*segments) -> Path:
    return Path(segments=list(segments))


def _assert_point(p: Point, x: float, y: float, z: float = 0.0) -> None:
    assert p.x == pytest.approx(x, abs=1e-9)
    assert p.y == pytest.approx(y, abs=1e-9)
    assert p.z == pytest.approx(z, abs=1e-9)


@pytest.fixture
def right_angle() -> Path:
    return _path(
        Line(Point(0, 0), Point(10, 0), feed_rate=600.0),
        Line(Point(10, 0), Point(10, 10), feed_rate=600.0),
    )


@pytest.fixture
def tight_arc() -> Path:
    return _path(
        Line(Point(0, 0), Point(10, 0)),
        Arc(Point(10, 0), Point(11, 1), Point(10, 1), ArcDirection.CCW),
    )


@pytest.fixture
def limited_offset(monkeypatch):
    """Make arc offsets larger than a given distance infeasible."""

    def limit(largest: float) -> None:
        def offset(arc, distance, tolerance=EPSILON):
            if distance > largest:
                raise InfeasibleOffsetError(f"offset {distance:g} exceeds {largest:g}")
            return offset_arc(arc, distance, tolerance)

        monkeypatch.setattr(engine, "offset_arc", offset)

    return limit


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_sharp_right_angle(self, right_angle):
        out = transform(right_angle, 2.0, 30.0)
        assert [type(s) for s in out] == [Line, Swivel, Line]

        first, swivel, second = out
        _assert_point(first.start, -2, 0)
        _assert_point(first.end, 8, 0)
        _assert_point(second.start, 10, -2)
        _assert_point(second.end, 10, 8)

        assert swivel.start == swivel.end == Point(10, 0)
        assert swivel.sweep == pytest.approx(math.pi / 2)
        assert swivel.direction is ArcDirection.CCW
        assert swivel.kind is MotionKind.SWIVEL

    def test_small_angle_makes_no_swivel(self):
        a = math.radians(5)
        path = _path(
            Line(Point(0, 0), Point(10, 0)),
            Line(Point(10, 0), Point(10 + 10 * math.cos(a), 10 * math.sin(a))),
        )
        out = transform(path, 2.0, 10.0)
        assert len(out) == 2
        assert out.swivels == []

    def test_single_line(self):
        out = transform(_path(Line(Point(0, 0), Point(5, 5))), 1.0, 10.0)
        assert len(out) == 1
        assert isinstance(out[0], Line)

    def test_empty_path(self):
        out = transform(Path(), 1.0, 10.0)
        assert out.is_empty

    def test_reversal_swivels_half_a_turn(self):
        path = _path(Line(Point(0, 0), Point(10, 0)), Line(Point(10, 0), Point(0, 0)))
        out = transform(path, 1.0, 10.0)
        swivel = out.swivels[0]
        assert swivel.direction is ArcDirection.CCW
        assert swivel.sweep == pytest.approx(math.pi)

    def test_zero_offset_keeps_geometry(self, right_angle):
        out = transform(right_angle, 0.0, 30.0)
        assert out.moves == right_angle.segments

    def test_segment_count(self, right_angle):
        out = transform(right_angle, 2.0, 30.0)
        assert len(out) == len(right_angle) + len(out.swivels)


# ---------------------------------------------------------------------------
# Arcs
# ---------------------------------------------------------------------------


class TestArcs:
    def test_tangent_arc_joins_without_swivel(self):
        path = _path(
            Line(Point(0, 0), Point(10, 0)),
            Arc(Point(10, 0), Point(15, 5), Point(10, 5), ArcDirection.CCW),
        )
        out = transform(path, 2.0, 10.0)
        assert [type(s) for s in out] == [Line, Arc]
        arc = out[1]
        assert arc.radius == pytest.approx(math.hypot(5, 2))
        _assert_point(arc.start, 8, 0)
        _assert_point(arc.end, 15, 3)
        assert out[0].end.distance_to(arc.start) == pytest.approx(0.0, abs=1e-9)

    def test_arc_sets_swivel_direction(self):
        # arc leaves the line at a right angle
        path = _path(
            Line(Point(0, 0), Point(10, 0)),
            Arc(Point(10, 0), Point(5, 5), Point(5, 0), ArcDirection.CW),
        )
        out = transform(path, 1.0, 10.0)
        swivel = out.swivels[0]
        assert swivel.direction is ArcDirection.CW

    def test_arc_tighter_than_offset_is_exact(self, tight_arc):
        out = transform(tight_arc, 2.0, 10.0)
        assert out.issues == []
        arc = out.moves[1]
        assert arc.radius == pytest.approx(math.sqrt(5.0))
        _assert_point(arc.start, 8, 0)
        assert reproduction_error(tight_arc, out, 2.0) == pytest.approx(0.0, abs=1e-6)

    def test_infeasible_clamps_by_default(self, tight_arc, limited_offset):
        limited_offset(1.5)
        with pytest.warns(TransformWarning):
            out = transform(tight_arc, 2.0, 10.0)
        arc = out.moves[1]
        assert arc.radius == pytest.approx(math.hypot(1, 1))
        assert out.issues[0].kind is IssueKind.INFEASIBLE
        assert out.issues[0].index == 1

    def test_clamp_falls_back_to_passthrough(self, tight_arc, limited_offset):
        limited_offset(0.5)
        with pytest.warns(TransformWarning):
            out = transform(tight_arc, 2.0, 10.0)
        assert out.moves[1] == tight_arc[1]
        assert "passed through" in out.issues[0].message

    def test_infeasible_passthrough(self, tight_arc, limited_offset):
        limited_offset(1.5)
        cfg = DragknifeConfig(infeasible_policy=InfeasiblePolicy.PASSTHROUGH)
        with pytest.warns(TransformWarning):
            out = transform(tight_arc, 2.0, 10.0, cfg)
        assert out.moves[1] == tight_arc[1]

    def test_infeasible_error(self, tight_arc, limited_offset):
        limited_offset(1.5)
        cfg = DragknifeConfig(infeasible_policy=InfeasiblePolicy.ERROR)
        with pytest.raises(InfeasibleOffsetError) as exc_info:
            transform(tight_arc, 2.0, 10.0, cfg)
        assert exc_info.value.index == 1


# ---------------------------------------------------------------------------
# Moves without a direction
# ---------------------------------------------------------------------------


class TestPlungesAndDegenerates:
    def test_plunge_and_retract_follow_the_cut(self):
        path = _path(
            Line(Point(0, 0, 5), Point(0, 0, -1)),
            Line(Point(0, 0, -1), Point(10, 0, -1)),
            Line(Point(10, 0, -1), Point(10, 0, 5)),
        )
        out = transform(path, 2.0, 10.0)
        assert len(out) == 3
        _assert_point(out[0].start, -2, 0, 5)
        _assert_point(out[0].end, -2, 0, -1)
        _assert_point(out[2].start, 8, 0, -1)
        _assert_point(out[2].end, 8, 0, 5)

    def test_degenerate_passthrough(self):
        path = _path(
            Line(Point(0, 0), Point(10, 0)),
            Line(Point(10, 0), Point(10, 0)),
            Line(Point(10, 0), Point(20, 0)),
        )
        with pytest.warns(TransformWarning):
            out = transform(path, 2.0, 10.0)
        assert len(out) == 3
        _assert_point(out[1].start, 8, 0)
        assert out.issues[0].kind is IssueKind.DEGENERATE

    def test_degenerate_skip(self):
        path = _path(
            Line(Point(0, 0), Point(10, 0)),
            Arc(Point(10, 0), Point(10, 0), Point(10, 0)),
            Line(Point(10, 0), Point(20, 0)),
        )
        cfg = DragknifeConfig(degenerate_policy=DegeneratePolicy.SKIP)
        with pytest.warns(TransformWarning):
            out = transform(path, 2.0, 10.0, cfg)
        assert len(out) == 2
        assert len(out.issues) == 1


# ---------------------------------------------------------------------------
# Swivel feed and lift
# ---------------------------------------------------------------------------


class TestSwivelSettings:
    def test_default_feed_and_lift(self, right_angle):
        swivel = transform(right_angle, 2.0, 30.0).swivels[0]
        assert swivel.feed_rate == 300.0
        assert swivel.lift_height == pytest.approx(1.0)

    def test_feed_falls_back_to_cut_feed(self, right_angle):
        cfg = DragknifeConfig(swivel_feed_rate=None)
        swivel = transform(right_angle, 2.0, 30.0, cfg).swivels[0]
        assert swivel.feed_rate == 600.0

    def test_no_lift(self, right_angle):
        cfg = DragknifeConfig(lift=LiftConfig(height=0.0))
        swivel = transform(right_angle, 2.0, 30.0, cfg).swivels[0]
        assert swivel.lift_height is None

    def test_absolute_lift(self, right_angle):
        cfg = DragknifeConfig(lift=LiftConfig(LiftMode.ABSOLUTE, 5.0))
        swivel = transform(right_angle, 2.0, 30.0, cfg).swivels[0]
        assert swivel.lift_height == 5.0

    def test_rapid_takes_part_in_junctions(self):
        path = _path(
            Line(Point(0, 0), Point(10, 0), kind=MotionKind.RAPID),
            Line(Point(10, 0), Point(10, 10)),
        )
        out = transform(path, 1.0, 10.0)
        assert out[0].kind is MotionKind.RAPID
        assert len(out.swivels) == 1


# ---------------------------------------------------------------------------
# Input checks
# ---------------------------------------------------------------------------


class TestInputChecks:
    def test_disconnected(self):
        path = _path(Line(Point(0, 0), Point(1, 0)), Line(Point(2, 0), Point(3, 0)))
        with pytest.raises(DisconnectedPathError) as exc_info:
            transform(path, 1.0, 10.0)
        assert exc_info.value.index == 1

    def test_gap_within_tolerance(self):
        path = _path(Line(Point(0, 0), Point(1, 0)), Line(Point(1.0005, 0), Point(3, 0)))
        check_connectivity(path, 1e-3)

    def test_negative_offset(self, right_angle):
        with pytest.raises(ValueError):
            transform(right_angle, -1.0, 10.0)

    def test_threshold_out_of_range(self, right_angle):
        with pytest.raises(ValueError):
            transform(right_angle, 1.0, 200.0)

    def test_transform_with_config(self, right_angle):
        cfg = DragknifeConfig(knife_offset=2.0, corner_threshold=30.0)
        out = transform_with_config(right_angle, cfg)
        _assert_point(out[0].start, -2, 0)
        assert len(out.swivels) == 1


# ---------------------------------------------------------------------------
# Reproduction
# ---------------------------------------------------------------------------


class TestReproduction:
    def test_retraced_pivot_path_matches_tip_path(self):
        path = _path(
            Line(Point(0, 0, 5), Point(0, 0, -1)),
            Line(Point(0, 0, -1), Point(10, 0, -1)),
            Arc(Point(10, 0, -1), Point(15, 5, -1), Point(10, 5, -1), ArcDirection.CCW),
            Line(Point(15, 5, -1), Point(15, 15, -1)),
            Line(Point(15, 15, -1), Point(0, 15, -1)),
            Arc(Point(0, 15, -1), Point(-3, 12, -1), Point(0, 12, -1), ArcDirection.CCW),
        )
        out = transform(path, 1.5, 10.0)
        assert len(out.swivels) == 1
        assert reproduction_error(path, out, 1.5) == pytest.approx(0.0, abs=1e-6)


# ---------------------------------------------------------------------------
# Path model
# ---------------------------------------------------------------------------


class TestPathModel:
    def test_cut_length_ignores_rapids_and_swivels(self, right_angle):
        path = _path(
            Line(Point(0, 0), Point(0, 5), kind=MotionKind.RAPID),
            Line(Point(0, 5), Point(10, 5)),
            Arc(Point(10, 5), Point(10, -5), Point(10, 0), ArcDirection.CW),
        )
        assert path.cut_length == pytest.approx(10 + 5 * math.pi)
        out = transform(right_angle, 2.0, 30.0)
        assert out.cut_length == pytest.approx(20.0)

    def test_arc_point_at(self):
        arc = Arc(Point(5, 0, 0), Point(-5, 0, -2), Point(0, 0, 0))
        mid = arc.point_at(0.5)
        _assert_point(mid, 0, 5, -1)
