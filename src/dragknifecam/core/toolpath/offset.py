"""Tip-path to pivot-path offset for individual segments.

The blade trails the pivot, so the offset is measured from the tip back to
the pivot: for a tip point travelling with unit direction ``t`` the pivot
sits at ``tip - d * t``, and a line becomes the same line translated by
``-d * t``.  Carriage-leading descriptions that write the pivot as
``tip + d * t`` measure the same offset with the opposite sign of ``d``.

On an arc ``t`` is the tangent, which rotates with the radius vector, so
every pivot point keeps the same angle to the radius and lies on a
concentric circle of radius ``sqrt(r**2 + d**2)``.  The pivot arc keeps the
centre, the sweep and the rotation sense of the tip arc.  That radius is
never smaller than the tip radius, so any usable tip arc has a usable pivot
arc, however tight it is compared to the offset.
"""

from __future__ import annotations

import math

import numpy as np

from ..errors import DegenerateGeometryError, InfeasibleOffsetError
from ..geometry import EPSILON, Plane, unit_vector
from .base import Arc, Line


def offset_line(
    line: Line,
    distance: float,
    plane: Plane = Plane.XY,
    angle: float | None = None,
    tolerance: float = EPSILON,
) -> Line:
    """Translate *line* by *distance* against its travel direction.

    Parameters
    ----------
    angle:
        Travel heading to use instead of the line's own.  Needed for moves
        without an in-plane extent (plunges, retracts), which inherit the
        heading of the blade from the surrounding cut.

    Raises
    ------
    DegenerateGeometryError:
        If the line has no in-plane extent and no *angle* was given.
    """
    if angle is None:
        direction = line.direction(plane, tolerance)
    else:
        direction = unit_vector(angle)
    shift = -distance * direction
    return Line(
        start=plane.translate(line.start, shift),
        end=plane.translate(line.end, shift),
        kind=line.kind,
        feed_rate=line.feed_rate,
        source_index=line.source_index,
    )


def check_arc(arc: Arc, tolerance: float = EPSILON) -> None:
    """Raise DegenerateGeometryError unless *arc* is a usable circular arc."""
    r = arc.radius
    if r <= tolerance:
        raise DegenerateGeometryError(f"arc radius {r:.3g} is zero")
    if abs(arc.end_radius - r) > max(tolerance, 1e-6 * r):
        raise DegenerateGeometryError(
            f"arc end radius {arc.end_radius:.6g} does not match start radius {r:.6g}")
    if arc.plane.planar_distance(arc.start, arc.end) <= tolerance:
        raise DegenerateGeometryError("arc has zero sweep")


def offset_arc(arc: Arc, distance: float, tolerance: float = EPSILON) -> Arc:
    """Exact concentric offset of *arc*.

    Raises
    ------
    DegenerateGeometryError:
        For zero-radius, zero-sweep or radius-inconsistent arcs.
    InfeasibleOffsetError:
        If the offset arc is not a finite, positive-radius arc.
    """
    check_arc(arc, tolerance)
    radius = pivot_radius(arc.radius, distance)
    if not math.isfinite(radius) or radius <= tolerance:
        raise InfeasibleOffsetError(
            f"offsetting an arc of radius {arc.radius:.4g} by {distance:.4g} "
            f"gives pivot radius {radius:.4g}")

    def pivot(point):
        return arc.plane.translate(point, -distance * arc.tangent_at(point, tolerance))

    start, end = pivot(arc.start), pivot(arc.end)
    if not np.all(np.isfinite(start.as_tuple() + end.as_tuple())):
        raise InfeasibleOffsetError("offset arc end points are not finite")

    return Arc(
        start=start,
        end=end,
        center=arc.center,
        direction=arc.direction,
        plane=arc.plane,
        kind=arc.kind,
        feed_rate=arc.feed_rate,
        source_index=arc.source_index,
    )


def pivot_radius(tip_radius: float, distance: float) -> float:
    return math.hypot(tip_radius, distance)


def tip_radius(pivot_radius: float, distance: float) -> float:
    """Inverse of :func:`pivot_radius`; 0 when the pivot circle is too small."""
    return math.sqrt(max(pivot_radius * pivot_radius - distance * distance, 0.0))


def lead_angle(tip_radius: float, distance: float) -> float:
    """Angle between the radius to the tip and the radius to the pivot."""
    return math.atan2(distance, tip_radius)


def stationary(line_or_arc: Line | Arc, at, plane: Plane, distance: float,
               angle: float | None) -> Line:
    """A zero-extent stand-in for a degenerate segment.

    The move is kept in sequence at the current carriage position, which is
    the segment's start point shifted against *angle*.  Through-axis motion
    of the original is preserved.
    """
    shift = np.zeros(2) if angle is None else -distance * unit_vector(angle)
    start = plane.translate(at, shift)
    end_through = plane.through(line_or_arc.end)
    end = plane.point(plane.project(start), end_through)
    return Line(
        start=start,
        end=end,
        kind=line_or_arc.kind,
        feed_rate=line_or_arc.feed_rate,
        source_index=line_or_arc.source_index,
    )
