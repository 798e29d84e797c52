"""Read G-code programs into tip paths.

Only motion (G0-G3) becomes path segments.  Every source line is kept so
the post-processor can reinject non-motion commands verbatim and in order.
Coordinates are resolved to absolute millimetres; the working plane is
fixed by the first plane selection and may not change once motion starts.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path as FilePath
from typing import Optional

from ..core.geometry import ArcDirection, Plane, Point, norm
from ..core.toolpath.base import Arc, Line, MotionKind, Path
from ..core.units import Units

_COMMENT = re.compile(r"\([^)]*\)|;.*$")
_WORD = re.compile(r"([A-Za-z])\s*([-+]?(?:\d+\.?\d*|\.\d+))")

_MOTION = {0, 1, 2, 3}
_PLANES = {17: Plane.XY, 18: Plane.ZX, 19: Plane.YZ}
# words that belong to the motion itself; anything else is carried along
_MOTION_LETTERS = set("GXYZIJKFN")

FULL_CIRCLE_TOLERANCE = 1e-6


class GCodeParseError(ValueError):
    """A line the reader cannot turn into motion."""

    def __init__(self, line: int, message: str):
        super().__init__(f"line {line}: {message}")
        self.line = line


@dataclass
class ProgramLine:
    """One source line.  *motion* is True when it produced segments."""

    number: int
    text: str
    motion: bool = False


@dataclass
class Program:
    """A parsed program: the tip path plus every source line."""

    path: Path
    lines: list[ProgramLine] = field(default_factory=list)
    extras: dict[int, str] = field(default_factory=dict)  # line -> carried words
    units: Units = Units.MM

    def passthrough(self) -> list[ProgramLine]:
        return [ln for ln in self.lines if not ln.motion]


@dataclass
class GCodeState:
    """Modal state while reading."""

    units: Units = Units.MM
    absolute: bool = True
    plane: Plane = Plane.XY
    plane_locked: bool = False
    motion: Optional[int] = None
    feed_rate: Optional[float] = None  # mm/min
    position: Point = field(default_factory=lambda: Point(0.0, 0.0, 0.0))

    def target(self, words: dict[str, float]) -> Point:
        coords = {}
        for axis in ("x", "y", "z"):
            current = getattr(self.position, axis)
            value = words.get(axis.upper())
            if value is None:
                coords[axis] = current
            elif self.absolute:
                coords[axis] = self.units.to_mm(value)
            else:
                coords[axis] = current + self.units.to_mm(value)
        return Point(**coords)


def strip_comments(text: str) -> str:
    return _COMMENT.sub(" ", text).strip()


def tokenize(text: str) -> list[tuple[str, float]]:
    """Letter/value words of *text*, comments removed."""
    return [(letter.upper(), float(value)) for letter, value in _WORD.findall(strip_comments(text))]


def parse_gcode(text: str, plane: Optional[Plane] = None) -> Program:
    """Parse G-code *text* into a Program.

    Parameters
    ----------
    plane:
        Force a working plane instead of taking it from G17/G18/G19.

    Raises
    ------
    GCodeParseError:
        For R-form arcs, arcs without a centre, or a plane change after
        motion has started.
    """
    state = GCodeState()
    if plane is not None:
        state.plane = plane
        state.plane_locked = True
    segments: list = []
    program = Program(path=Path())
    units_seen = False

    for number, raw in enumerate(text.splitlines(), start=1):
        line = ProgramLine(number, raw)
        program.lines.append(line)
        words = tokenize(raw)
        if not words:
            continue

        g_codes = [v for letter, v in words if letter == "G"]
        named = {letter: v for letter, v in words if letter != "G"}
        home = False
        for g in g_codes:
            code = int(g) if float(g).is_integer() else g
            if code in _MOTION:
                state.motion = code
            elif code in _PLANES:
                _select_plane(state, _PLANES[code], number, bool(segments))
            elif code in (20, 21):
                state.units = Units.from_gcode(code)
                if not units_seen:
                    program.units = state.units
                    units_seen = True
            elif code == 90:
                state.absolute = True
            elif code == 91:
                state.absolute = False
            elif code == 28:
                home = True

        if "F" in named:
            state.feed_rate = state.units.to_mm(named["F"])

        if home:
            state.position = Point(0.0, 0.0, 0.0)
            continue

        has_axes = any(k in named for k in ("X", "Y", "Z"))
        if state.motion is None or not has_axes:
            continue

        new = _motion_segments(state, named, number)
        if not new:
            continue
        segments.extend(new)
        line.motion = True
        state.position = new[-1].end
        extra = " ".join(f"{letter}{value:g}" for letter, value in words
                         if letter not in _MOTION_LETTERS)
        if extra:
            program.extras[number] = extra

    program.path = Path(segments=segments, plane=state.plane)
    return program


def load_gcode(path: FilePath, plane: Optional[Plane] = None) -> Program:
    """Read and parse a G-code file."""
    path = FilePath(path)
    if not path.exists():
        raise FileNotFoundError(f"G-code file not found: {path}")
    return parse_gcode(path.read_text(), plane)


def _select_plane(state: GCodeState, plane: Plane, number: int, started: bool) -> None:
    if plane is state.plane:
        return
    if started or state.plane_locked:
        raise GCodeParseError(
            number, f"switching to {plane.name} plane mid-path is not supported")
    state.plane = plane


def _motion_segments(state: GCodeState, words: dict[str, float], number: int) -> list:
    start = state.position
    end = state.target(words)
    if state.motion == 0:
        return [Line(start, end, MotionKind.RAPID, None, number)]
    if state.motion == 1:
        return [Line(start, end, MotionKind.FEED, state.feed_rate, number)]

    if "R" in words:
        raise GCodeParseError(number, "R-form arcs are not supported, use I/J/K")
    plane = state.plane
    first, second = plane.center_words
    if first not in words and second not in words:
        raise GCodeParseError(number, "arc without a centre offset")
    offset = (state.units.to_mm(words.get(first, 0.0)),
              state.units.to_mm(words.get(second, 0.0)))
    center = plane.translate(start, offset)
    direction = ArcDirection.CW if state.motion == 2 else ArcDirection.CCW

    def arc(a: Point, b: Point) -> Arc:
        return Arc(a, b, center, direction, plane, MotionKind.FEED, state.feed_rate, number)

    c = plane.project(center)
    radius = plane.planar_distance(center, start)
    if radius <= FULL_CIRCLE_TOLERANCE:
        return [arc(start, end)]
    to_end = plane.project(end) - c
    reach = norm(to_end)
    if reach > 0:
        # snap the programmed end point onto the circle
        end = plane.point(c + to_end / reach * radius, plane.through(end))

    if plane.planar_distance(start, end) > FULL_CIRCLE_TOLERANCE:
        return [arc(start, end)]

    # full circle: two half turns
    half = plane.point(2 * c - plane.project(start),
                       (plane.through(start) + plane.through(end)) / 2.0)
    second_center = plane.point(c, plane.through(half))
    return [
        arc(start, half),
        Arc(half, end, second_center, direction, plane, MotionKind.FEED,
            state.feed_rate, number),
    ]
