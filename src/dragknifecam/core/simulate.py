"""Retrace a pivot path back to the blade tip and measure the deviation.

``retrace`` inverts the offset transform: it follows the pivot path and
projects every point forward by the knife offset along the local trailing
direction.  Swivels leave the tip where it is and are dropped.  The
deviation between two tip paths is measured on sampled polylines with
shapely's Hausdorff distance.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np
from shapely.geometry import LineString

from .geometry import EPSILON, Plane, heading, unit_vector
from .toolpath.base import (
    Arc,
    Line,
    Path,
    Segment,
    Swivel,
    end_angle,
    is_directional,
    start_angle,
)
from .toolpath.offset import lead_angle, offset_line, tip_radius


def retrace(path: Path, offset: float, tolerance: float = EPSILON) -> Path:
    """Tip path traced by a knife whose pivot follows *path*."""
    plane = path.plane
    tips = Path(plane=plane)
    carried = _first_heading(path, offset, tolerance)

    for seg in path:
        if isinstance(seg, Swivel):
            carried = seg.to_angle
            continue
        if isinstance(seg, Arc):
            if _collapses(seg, offset, tolerance):
                # pivot circle no larger than the offset: the tip spins on the centre
                tips.append(_centre_stop(seg))
                continue
            tip = _retrace_arc(seg, offset)
            tips.append(tip)
            carried = end_angle(tip, plane, tolerance)
            continue
        if seg.planar_length(plane) > tolerance:
            carried = heading(seg.direction(plane, tolerance))
        if carried is None:
            tips.append(seg)
        else:
            tips.append(offset_line(seg, -offset, plane, carried, tolerance))
    return tips


def _collapses(arc: Arc, offset: float, tolerance: float) -> bool:
    return tip_radius(arc.radius, offset) <= tolerance


def _centre_stop(arc: Arc) -> Line:
    plane = arc.plane
    c = plane.project(arc.center)
    return Line(
        start=plane.point(c, plane.through(arc.start)),
        end=plane.point(c, plane.through(arc.end)),
        kind=arc.kind,
        feed_rate=arc.feed_rate,
        source_index=arc.source_index,
    )


def _retrace_arc(arc: Arc, offset: float) -> Arc:
    plane = arc.plane
    r = tip_radius(arc.radius, offset)
    lead = arc.direction.sign * lead_angle(r, offset)
    c = plane.project(arc.center)

    def tip(point):
        a = heading(plane.project(point) - c) + lead
        return plane.point(c + r * unit_vector(a), plane.through(point))

    return Arc(
        start=tip(arc.start),
        end=tip(arc.end),
        center=arc.center,
        direction=arc.direction,
        plane=plane,
        kind=arc.kind,
        feed_rate=arc.feed_rate,
        source_index=arc.source_index,
    )


def _first_heading(path: Path, offset: float, tolerance: float) -> Optional[float]:
    for seg in path:
        if isinstance(seg, Swivel):
            return seg.from_angle
        if isinstance(seg, Arc):
            if _collapses(seg, offset, tolerance):
                continue
            return start_angle(_retrace_arc(seg, offset), path.plane, tolerance)
        if is_directional(seg, path.plane, tolerance):
            return start_angle(seg, path.plane, tolerance)
    return None


def sample_segment(segment: Segment, plane: Plane, resolution: float = 0.1) -> np.ndarray:
    """In-plane sample points along *segment*, spaced at most *resolution*."""
    if isinstance(segment, Swivel):
        return plane.project(segment.point)[np.newaxis, :]
    if isinstance(segment, Line):
        a, b = plane.project(segment.start), plane.project(segment.end)
        n = max(1, int(math.ceil(np.linalg.norm(b - a) / resolution)))
        t = np.linspace(0.0, 1.0, n + 1)[:, np.newaxis]
        return a + t * (b - a)
    length = abs(segment.sweep) * segment.radius
    n = max(2, int(math.ceil(length / resolution)))
    c = plane.project(segment.center)
    a0 = heading(plane.project(segment.start) - c)
    angles = a0 + np.linspace(0.0, segment.sweep, n + 1)
    return c + segment.radius * np.column_stack([np.cos(angles), np.sin(angles)])


def linearize(path: Path, resolution: float = 0.1) -> LineString:
    """Polyline through every segment of *path*, in order."""
    chunks = [sample_segment(seg, path.plane, resolution) for seg in path]
    if not chunks:
        return LineString()
    coords = np.vstack(chunks)
    if len(coords) == 1:
        coords = np.vstack([coords, coords])
    return LineString(coords)


def reproduction_error(
    tip_path: Path,
    pivot_path: Path,
    offset: float,
    resolution: float = 0.1,
) -> float:
    """Largest distance between *tip_path* and the tip traced by *pivot_path*."""
    traced = retrace(pivot_path, offset)
    if tip_path.is_empty and traced.is_empty:
        return 0.0
    return float(linearize(tip_path, resolution).hausdorff_distance(
        linearize(traced, resolution)))
