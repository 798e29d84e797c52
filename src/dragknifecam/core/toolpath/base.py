"""Core toolpath data structures.

A :class:`Path` is an ordered list of motion segments in one working plane.
On input it describes where the blade *tip* must go; after the transform it
describes where the machine must drive the knife *pivot*.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Union

import numpy as np

from ..errors import TransformIssue
from ..geometry import (
    EPSILON,
    ArcDirection,
    Plane,
    Point,
    arc_sweep,
    arc_tangent,
    heading,
    norm,
    normalize,
    signed_sweep,
    unit_vector,
)


class MotionKind(Enum):
    """Type of CNC motion."""
    RAPID = "rapid"          # G0: blade lifted, full speed
    FEED = "feed"            # G1/G2/G3: cutting feed
    SWIVEL = "swivel"        # in-place blade reorientation, not a cut


@dataclass(frozen=True)
class Line:
    """Straight move from *start* to *end*."""

    start: Point
    end: Point
    kind: MotionKind = MotionKind.FEED
    feed_rate: Optional[float] = None  # None: rapid or modal feed unknown
    source_index: Optional[int] = field(default=None, compare=False)

    def planar_length(self, plane: Plane = Plane.XY) -> float:
        return plane.planar_distance(self.start, self.end)

    @property
    def length(self) -> float:
        return self.start.distance_to(self.end)

    def direction(self, plane: Plane = Plane.XY, tolerance: float = EPSILON) -> np.ndarray:
        """Unit in-plane travel direction.

        Raises DegenerateGeometryError for moves with no in-plane extent
        (plunges, retracts and zero-length moves).
        """
        return normalize(plane.project(self.end) - plane.project(self.start), tolerance)


@dataclass(frozen=True)
class Arc:
    """Circular (optionally helical) move about *center* in *plane*.

    *center* shares the through-axis coordinate of *start*; the through-axis
    is interpolated linearly from start to end.
    """

    start: Point
    end: Point
    center: Point
    direction: ArcDirection = ArcDirection.CCW
    plane: Plane = Plane.XY
    kind: MotionKind = MotionKind.FEED
    feed_rate: Optional[float] = None
    source_index: Optional[int] = field(default=None, compare=False)

    @property
    def radius(self) -> float:
        return self.plane.planar_distance(self.center, self.start)

    @property
    def end_radius(self) -> float:
        return self.plane.planar_distance(self.center, self.end)

    @property
    def sweep(self) -> float:
        """Signed angular extent in radians (positive counter-clockwise)."""
        p = self.plane
        return arc_sweep(p.project(self.center), p.project(self.start),
                         p.project(self.end), self.direction)

    def tangent_at(self, point: Point, tolerance: float = EPSILON) -> np.ndarray:
        p = self.plane
        return arc_tangent(p.project(self.center), p.project(point), self.direction, tolerance)

    def point_at(self, fraction: float) -> Point:
        """Point reached after *fraction* (0..1) of the sweep."""
        p = self.plane
        c = p.project(self.center)
        a0 = heading(p.project(self.start) - c)
        uv = c + self.radius * unit_vector(a0 + fraction * self.sweep)
        through = p.through(self.start) + fraction * (p.through(self.end) - p.through(self.start))
        return p.point(uv, through)


@dataclass(frozen=True)
class Swivel:
    """In-place reorientation of the blade at a sharp junction.

    The blade rotates about *point* while the tip stays there, turning the
    trailing direction from *from_angle* to *to_angle* in *direction*.  The
    carriage meanwhile travels a circle of radius *offset* about *point*,
    see :meth:`as_arc`.
    """

    point: Point
    from_angle: float
    to_angle: float
    direction: ArcDirection
    offset: float
    plane: Plane = Plane.XY
    feed_rate: Optional[float] = None
    lift_height: Optional[float] = None   # through-axis height during the swivel
    kind: MotionKind = MotionKind.SWIVEL
    source_index: Optional[int] = field(default=None, compare=False)

    @property
    def start(self) -> Point:
        return self.point

    @property
    def end(self) -> Point:
        return self.point

    @property
    def sweep(self) -> float:
        return signed_sweep(self.from_angle, self.to_angle, self.direction)

    @property
    def carriage_start(self) -> Point:
        return self.plane.translate(self.point, -self.offset * unit_vector(self.from_angle))

    @property
    def carriage_end(self) -> Point:
        return self.plane.translate(self.point, -self.offset * unit_vector(self.to_angle))

    def as_arc(self) -> Arc:
        """The carriage motion as an arc about the junction point."""
        return Arc(
            start=self.carriage_start,
            end=self.carriage_end,
            center=self.point,
            direction=self.direction,
            plane=self.plane,
            kind=MotionKind.SWIVEL,
            feed_rate=self.feed_rate,
            source_index=self.source_index,
        )


Segment = Union[Line, Arc, Swivel]


def start_angle(segment: Segment, plane: Plane = Plane.XY,
                tolerance: float = EPSILON) -> Optional[float]:
    """Travel heading at the start of *segment*, None when it has none."""
    if isinstance(segment, Swivel):
        return segment.to_angle
    if isinstance(segment, Arc):
        return heading(segment.tangent_at(segment.start, tolerance))
    if segment.planar_length(plane) <= tolerance:
        return None
    return heading(segment.direction(plane, tolerance))


def end_angle(segment: Segment, plane: Plane = Plane.XY,
              tolerance: float = EPSILON) -> Optional[float]:
    """Travel heading at the end of *segment*, None when it has none."""
    if isinstance(segment, Swivel):
        return segment.to_angle
    if isinstance(segment, Arc):
        return heading(segment.tangent_at(segment.end, tolerance))
    return start_angle(segment, plane, tolerance)


@dataclass
class Path:
    """An ordered sequence of motion segments in a single working plane."""

    segments: list[Segment] = field(default_factory=list)
    plane: Plane = Plane.XY
    issues: list[TransformIssue] = field(default_factory=list)

    def append(self, segment: Segment) -> None:
        self.segments.append(segment)

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __getitem__(self, index: int) -> Segment:
        return self.segments[index]

    @property
    def is_empty(self) -> bool:
        return len(self.segments) == 0

    @property
    def swivels(self) -> list[Swivel]:
        return [s for s in self.segments if isinstance(s, Swivel)]

    @property
    def moves(self) -> list[Segment]:
        """Segments other than swivels."""
        return [s for s in self.segments if not isinstance(s, Swivel)]

    @property
    def cut_length(self) -> float:
        """Planar length of all feed moves."""
        total = 0.0
        for seg in self.segments:
            if seg.kind is not MotionKind.FEED:
                continue
            if isinstance(seg, Arc):
                total += abs(seg.sweep) * seg.radius
            else:
                total += seg.planar_length(self.plane)
        return total


def is_directional(segment: Segment, plane: Plane = Plane.XY,
                   tolerance: float = EPSILON) -> bool:
    """True when *segment* defines a travel direction of its own."""
    if isinstance(segment, Swivel):
        return False
    if isinstance(segment, Arc):
        return segment.radius > tolerance and norm(
            plane.project(segment.end) - plane.project(segment.start)) > tolerance
    return segment.planar_length(plane) > tolerance
