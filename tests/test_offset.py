"""Tests for per-segment offsetting."""

import math

import pytest

from dragknifecam.core.errors import DegenerateGeometryError, InfeasibleOffsetError
from dragknifecam.core.geometry import ArcDirection, Plane, Point
from dragknifecam.core.toolpath.base import Arc, Line, MotionKind
from dragknifecam.core.toolpath.offset import (
    check_arc,
    lead_angle,
    offset_arc,
    offset_line,
    pivot_radius,
    stationary,
    tip_radius,
)


# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------


class TestOffsetLine:
    def test_shifts_back_along_travel(self):
        line = Line(Point(0, 0), Point(10, 0), feed_rate=500.0, source_index=7)
        pivot = offset_line(line, 2.0)
        assert pivot.start == Point(-2, 0)
        assert pivot.end == Point(8, 0)
        assert pivot.feed_rate == 500.0
        assert pivot.source_index == 7

    def test_diagonal(self):
        line = Line(Point(0, 0), Point(3, 4))
        pivot = offset_line(line, 5.0)
        assert pivot.start.x == pytest.approx(-3.0)
        assert pivot.start.y == pytest.approx(-4.0)
        assert pivot.end.x == pytest.approx(0.0)
        assert pivot.end.y == pytest.approx(0.0)

    def test_zero_offset_is_identity(self):
        line = Line(Point(1, 2), Point(5, 7))
        assert offset_line(line, 0.0) == line

    def test_keeps_kind_and_through_axis(self):
        line = Line(Point(0, 0, 5), Point(10, 0, 5), kind=MotionKind.RAPID)
        pivot = offset_line(line, 1.0)
        assert pivot.kind is MotionKind.RAPID
        assert pivot.start.z == 5

    def test_plunge_needs_a_heading(self):
        plunge = Line(Point(1, 1, 5), Point(1, 1, -1))
        with pytest.raises(DegenerateGeometryError):
            offset_line(plunge, 1.0)

    def test_plunge_with_heading(self):
        plunge = Line(Point(1, 1, 5), Point(1, 1, -1))
        pivot = offset_line(plunge, 1.0, angle=math.pi / 2)
        assert pivot.start.x == pytest.approx(1.0)
        assert pivot.start.y == pytest.approx(0.0)
        assert pivot.end.z == -1

    def test_other_plane(self):
        # ZX plane: first axis Z, second axis X
        line = Line(Point(0, 0, 0), Point(0, 0, 10))
        pivot = offset_line(line, 2.0, Plane.ZX)
        assert pivot.start.z == pytest.approx(-2.0)
        assert pivot.end.z == pytest.approx(8.0)
        assert pivot.start.x == pytest.approx(0.0)


# ---------------------------------------------------------------------------
# Arcs
# ---------------------------------------------------------------------------


def _quarter(direction=ArcDirection.CCW, radius=5.0) -> Arc:
    if direction is ArcDirection.CCW:
        return Arc(Point(radius, 0), Point(0, radius), Point(0, 0), direction)
    return Arc(Point(0, radius), Point(radius, 0), Point(0, 0), direction)


class TestOffsetArc:
    def test_concentric_radius(self):
        pivot = offset_arc(_quarter(), 2.0)
        assert pivot.center == Point(0, 0)
        assert pivot.radius == pytest.approx(math.hypot(5.0, 2.0))
        assert pivot.end_radius == pytest.approx(math.hypot(5.0, 2.0))

    def test_pivot_trails_the_tip(self):
        pivot = offset_arc(_quarter(), 2.0)
        # tangent at (5, 0) going CCW is +Y
        assert pivot.start.x == pytest.approx(5.0)
        assert pivot.start.y == pytest.approx(-2.0)
        # tangent at (0, 5) going CCW is -X
        assert pivot.end.x == pytest.approx(2.0)
        assert pivot.end.y == pytest.approx(5.0)

    def test_sweep_and_direction_preserved(self):
        for direction in ArcDirection:
            arc = _quarter(direction)
            pivot = offset_arc(arc, 1.5)
            assert pivot.direction is direction
            assert pivot.sweep == pytest.approx(arc.sweep)

    def test_cw_pivot(self):
        pivot = offset_arc(_quarter(ArcDirection.CW), 2.0)
        # tangent at (0, 5) going CW is +X
        assert pivot.start.x == pytest.approx(-2.0)
        assert pivot.start.y == pytest.approx(5.0)

    def test_helical_through_axis_kept(self):
        arc = Arc(Point(5, 0, 0), Point(0, 5, -1), Point(0, 0, 0))
        pivot = offset_arc(arc, 1.0)
        assert pivot.start.z == 0
        assert pivot.end.z == -1

    def test_arc_tighter_than_offset(self):
        pivot = offset_arc(_quarter(radius=1.0), 2.0)
        assert pivot.radius == pytest.approx(math.sqrt(5.0))
        assert pivot.start.x == pytest.approx(1.0)
        assert pivot.start.y == pytest.approx(-2.0)

    def test_non_finite_offset_is_infeasible(self):
        with pytest.raises(InfeasibleOffsetError):
            offset_arc(_quarter(), math.inf)

    def test_offset_equal_to_radius_is_feasible(self):
        pivot = offset_arc(_quarter(radius=2.0), 2.0)
        assert pivot.radius == pytest.approx(math.hypot(2.0, 2.0))

    def test_zero_radius(self):
        arc = Arc(Point(0, 0), Point(0, 0), Point(0, 0))
        with pytest.raises(DegenerateGeometryError):
            check_arc(arc)

    def test_zero_sweep(self):
        arc = Arc(Point(5, 0), Point(5, 0), Point(0, 0))
        with pytest.raises(DegenerateGeometryError):
            offset_arc(arc, 1.0)

    def test_mismatched_radius(self):
        arc = Arc(Point(5, 0), Point(0, 6), Point(0, 0))
        with pytest.raises(DegenerateGeometryError):
            offset_arc(arc, 1.0)


class TestRadii:
    def test_pivot_and_tip_radius_are_inverse(self):
        assert tip_radius(pivot_radius(4.0, 3.0), 3.0) == pytest.approx(4.0)

    def test_pivot_radius(self):
        assert pivot_radius(3.0, 4.0) == pytest.approx(5.0)

    def test_lead_angle(self):
        assert lead_angle(1.0, 1.0) == pytest.approx(math.pi / 4)


class TestStationary:
    def test_sits_at_carriage_position(self):
        line = Line(Point(3, 3, 0), Point(3, 3, 0), source_index=4)
        stand_in = stationary(line, line.start, Plane.XY, 1.0, 0.0)
        assert stand_in.start == Point(2, 3, 0)
        assert stand_in.end == Point(2, 3, 0)
        assert stand_in.source_index == 4

    def test_without_heading(self):
        line = Line(Point(3, 3, 0), Point(3, 3, 0))
        stand_in = stationary(line, line.start, Plane.XY, 1.0, None)
        assert stand_in.start == Point(3, 3, 0)
