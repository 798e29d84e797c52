"""Planar vector math shared by the offset and swivel stages.

Points are stored as full 3-D machine coordinates.  All direction work
happens in the active working plane, which is treated as an abstract 2-D
frame (first axis, second axis) plus a through-axis.  Vectors in that frame
are plain ``numpy`` arrays of shape ``(2,)``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .errors import DegenerateGeometryError

EPSILON = 1e-9


@dataclass(frozen=True)
class Point:
    """An absolute machine position in millimetres."""

    x: float
    y: float
    z: float = 0.0

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def distance_to(self, other: Point) -> float:
        return math.dist(self.as_tuple(), other.as_tuple())


class ArcDirection(Enum):
    """Rotation sense of an arc, keyed by its G-code word."""

    CW = "G2"
    CCW = "G3"

    @property
    def sign(self) -> int:
        """+1 for counter-clockwise, -1 for clockwise."""
        return 1 if self is ArcDirection.CCW else -1

    @classmethod
    def from_sign(cls, value: float) -> ArcDirection:
        return cls.CW if value < 0 else cls.CCW


class Plane(Enum):
    """Working plane, keyed by its G-code modal word.

    ``axes`` lists the Point attributes for (first axis, second axis,
    through-axis).  The orderings keep each plane right-handed, so
    counter-clockwise always means the G3 sense.
    """

    XY = "G17"
    ZX = "G18"
    YZ = "G19"

    @property
    def axes(self) -> tuple[str, str, str]:
        return _PLANE_AXES[self]

    @property
    def gcode_modal(self) -> str:
        return self.value

    @property
    def axis_words(self) -> tuple[str, str]:
        first, second, _ = self.axes
        return first.upper(), second.upper()

    @property
    def through_word(self) -> str:
        return self.axes[2].upper()

    @property
    def center_words(self) -> tuple[str, str]:
        first, second, _ = self.axes
        return _CENTER_WORDS[first], _CENTER_WORDS[second]

    def project(self, point: Point) -> np.ndarray:
        """In-plane coordinates of *point*."""
        first, second, _ = self.axes
        return np.array([getattr(point, first), getattr(point, second)], dtype=float)

    def through(self, point: Point) -> float:
        return float(getattr(point, self.axes[2]))

    def point(self, uv, through: float) -> Point:
        """Build a Point from in-plane coordinates and a through-axis value."""
        first, second, third = self.axes
        coords = {first: float(uv[0]), second: float(uv[1]), third: float(through)}
        return Point(**coords)

    def translate(self, point: Point, vector) -> Point:
        """Move *point* by an in-plane *vector*, keeping its through-axis."""
        return self.point(self.project(point) + np.asarray(vector, dtype=float),
                          self.through(point))

    def planar_distance(self, a: Point, b: Point) -> float:
        return norm(self.project(b) - self.project(a))


_PLANE_AXES = {
    Plane.XY: ("x", "y", "z"),
    Plane.ZX: ("z", "x", "y"),
    Plane.YZ: ("y", "z", "x"),
}

_CENTER_WORDS = {"x": "I", "y": "J", "z": "K"}


# ---------------------------------------------------------------------------
# Vector helpers
# ---------------------------------------------------------------------------


def norm(v) -> float:
    return float(math.hypot(v[0], v[1]))


def normalize(v, tolerance: float = EPSILON) -> np.ndarray:
    """Unit vector along *v*.

    Raises
    ------
    DegenerateGeometryError:
        If *v* is shorter than *tolerance*; there is no direction to return.
    """
    length = norm(v)
    if length <= tolerance:
        raise DegenerateGeometryError(f"cannot normalize a vector of length {length:.3g}")
    return np.asarray(v, dtype=float) / length


def dot(a, b) -> float:
    return float(a[0] * b[0] + a[1] * b[1])


def cross(a, b) -> float:
    """Scalar (z) component of the planar cross product."""
    return float(a[0] * b[1] - a[1] * b[0])


def rotate(v, angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, -s], [s, c]]) @ np.asarray(v, dtype=float)


def perpendicular(v, direction: ArcDirection = ArcDirection.CCW) -> np.ndarray:
    """*v* turned a quarter turn in the given rotation sense."""
    if direction is ArcDirection.CCW:
        return np.array([-v[1], v[0]], dtype=float)
    return np.array([v[1], -v[0]], dtype=float)


def unit_vector(angle: float) -> np.ndarray:
    return np.array([math.cos(angle), math.sin(angle)])


def heading(v) -> float:
    """Angle of *v* in radians, counter-clockwise from the first axis."""
    return math.atan2(v[1], v[0])


def wrap_angle(angle: float) -> float:
    """Map *angle* into (-pi, pi]."""
    wrapped = math.fmod(angle + math.pi, 2.0 * math.pi)
    if wrapped <= 0.0:
        wrapped += 2.0 * math.pi
    return wrapped - math.pi


def signed_sweep(from_angle: float, to_angle: float, direction: ArcDirection) -> float:
    """Rotation from *from_angle* to *to_angle* travelling in *direction*.

    The result lies in [0, 2*pi) for CCW and (-2*pi, 0] for CW.
    """
    if direction is ArcDirection.CCW:
        return (to_angle - from_angle) % (2.0 * math.pi)
    return -((from_angle - to_angle) % (2.0 * math.pi))


# ---------------------------------------------------------------------------
# Arc helpers
# ---------------------------------------------------------------------------


def arc_tangent(center, at, direction: ArcDirection, tolerance: float = EPSILON) -> np.ndarray:
    """Unit tangent of travel at in-plane point *at* on an arc about *center*.

    The tangent is the radius vector turned a quarter turn in the arc's
    rotation sense.
    """
    radial = np.asarray(at, dtype=float) - np.asarray(center, dtype=float)
    if norm(radial) <= tolerance:
        raise DegenerateGeometryError("arc has zero radius")
    return perpendicular(normalize(radial, tolerance), direction)


def arc_sweep(center, start, end, direction: ArcDirection) -> float:
    """Signed angular extent of the arc from *start* to *end* about *center*."""
    a0 = heading(np.asarray(start, dtype=float) - center)
    a1 = heading(np.asarray(end, dtype=float) - center)
    return signed_sweep(a0, a1, direction)


def arc_point(center, radius: float, angle: float) -> np.ndarray:
    return np.asarray(center, dtype=float) + radius * unit_vector(angle)
