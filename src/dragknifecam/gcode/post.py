"""Dragknife post-processor.

Turns a pivot path back into G-code, interleaving the source program's
non-motion lines in their original order.  Output is always absolute
millimetres.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from pathlib import Path as FilePath
from typing import Optional

from ..core.geometry import Point
from ..core.toolpath.base import Arc, Line, MotionKind, Path, Segment, Swivel
from .gcode_writer import arc, comment, linear, rapid
from .parser import Program, ProgramLine, strip_comments

# modal words the output preamble takes over
_MODAL_WORDS = re.compile(r"(?<![A-Z])G\s*0*(?:20|21|90|91)(?![\d.])", re.IGNORECASE)
_SPINDLE_ON = re.compile(r"(?<![A-Z])M\s*0*3(?![\d.])", re.IGNORECASE)
_RESETS_STATE = re.compile(r"[GF]", re.IGNORECASE)
_RESETS_POSITION = re.compile(r"(?<![A-Z])G\s*(?:28|30|92)(?![\d.])", re.IGNORECASE)

POSITION_TOLERANCE = 1e-6


@dataclass
class PostProcessorConfig:
    """Output options."""

    skip_m3: bool = True
    header: Optional[str] = "dragknife pivot path"


class DragknifePostProcessor:
    """Generate G-code for a transformed path."""

    def __init__(self, config: Optional[PostProcessorConfig] = None):
        self.config = config or PostProcessorConfig()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(self, program: Program, path: Path, output: FilePath) -> None:
        """Write the G-code for *path* to *output*."""
        lines = self.get_lines(program, path)
        FilePath(output).write_text("\n".join(lines) + "\n")

    def get_lines(self, program: Program, path: Path) -> list[str]:
        """Return the G-code lines for *path*.

        Segments are matched to source lines through ``source_index``;
        every non-motion source line ahead of a segment's line is emitted
        before it.
        """
        self._plane = path.plane
        self._feed: Optional[float] = None        # modal F on the machine
        self._cut_feed: Optional[float] = None    # last cutting feed seen
        self._through: Optional[float] = None     # modal through-axis value
        self._position: Optional[Point] = None    # None: not known
        self._tagged: set[int] = set()
        self._extras = program.extras

        lines: list[str] = []
        if self.config.header:
            lines.append(comment(self.config.header))
        lines.append("G21 G90")
        lines.append(path.plane.gcode_modal)

        pending = list(program.lines)
        for seg in path:
            if seg.source_index is not None:
                while pending and pending[0].number <= seg.source_index:
                    self._flush(pending.pop(0), lines)
            lines.extend(self._segment(seg))
        for line in pending:
            self._flush(line, lines)
        return lines

    # ------------------------------------------------------------------
    # Source lines
    # ------------------------------------------------------------------

    def clean(self, text: str) -> Optional[str]:
        """Passthrough text with modal words removed, None if nothing is left."""
        if not text.strip():
            return ""
        cleaned = _MODAL_WORDS.sub("", text)
        if self.config.skip_m3:
            cleaned = _SPINDLE_ON.sub("", cleaned)
        cleaned = " ".join(cleaned.split())
        return cleaned or None

    def _flush(self, line: ProgramLine, out: list[str]) -> None:
        if line.motion:
            return
        text = self.clean(line.text)
        if text is None:
            return
        out.append(text)
        words = strip_comments(text)
        if _RESETS_STATE.search(words):
            # the machine state is no longer known
            self._feed = None
            self._through = None
        if _RESETS_POSITION.search(words):
            self._position = None

    # ------------------------------------------------------------------
    # Motion
    # ------------------------------------------------------------------

    def _segment(self, seg: Segment) -> list[str]:
        if isinstance(seg, Swivel):
            return self._swivel(seg)
        if seg.feed_rate is not None and seg.kind is MotionKind.FEED:
            self._cut_feed = seg.feed_rate
        out = self._bridge(seg.start)
        self._position = seg.end
        if isinstance(seg, Arc):
            text = self._arc(seg, self._feed_word(self._cut_feed))
        elif seg.kind is MotionKind.RAPID:
            text = rapid(**self._axes(seg.end))
        else:
            text = linear(**self._axes(seg.end), f=self._feed_word(self._cut_feed))
        out.append(self._tag(seg, text))
        return out

    def _swivel(self, swivel: Swivel) -> list[str]:
        plane = self._plane
        word = plane.axes[2]
        junction = plane.through(swivel.point)
        out = self._bridge(swivel.carriage_start)
        if swivel.lift_height is not None:
            out.append(linear(**{word: swivel.lift_height},
                              f=self._feed_word(swivel.feed_rate)))
            self._through = swivel.lift_height
        carriage = swivel.as_arc()
        if swivel.lift_height is not None:
            carriage = replace(carriage, end=plane.point(plane.project(carriage.end),
                                                         swivel.lift_height))
        out.append(self._arc(carriage, self._feed_word(swivel.feed_rate)))
        if swivel.lift_height is not None:
            out.append(linear(**{word: junction}))
            self._through = junction
        self._position = swivel.carriage_end
        return out

    def _bridge(self, start: Point) -> list[str]:
        """Move to *start* unless the machine is already there."""
        if self._position is None:
            return [rapid(**self._axes(start))]
        if start.distance_to(self._position) > POSITION_TOLERANCE:
            # a skipped or clamped segment left a gap
            return [linear(**self._axes(start), f=self._feed_word(self._cut_feed))]
        return []

    def _arc(self, seg: Arc, feed: Optional[float]) -> str:
        plane = self._plane
        offset = plane.project(seg.center) - plane.project(seg.start)
        first, second = plane.center_words
        centre = {first.lower(): float(offset[0]), second.lower(): float(offset[1])}
        return arc(seg.direction, **self._axes(seg.end), **centre, f=feed)

    def _axes(self, point: Point) -> dict:
        """Planar axes always, the through-axis only when it changes."""
        first, second, third = self._plane.axes
        words = {first: getattr(point, first), second: getattr(point, second)}
        through = getattr(point, third)
        if self._through is None or abs(through - self._through) > 1e-9:
            words[third] = through
            self._through = through
        return words

    def _feed_word(self, feed: Optional[float]) -> Optional[float]:
        """F value to emit, None when the modal feed already matches."""
        if feed is None or feed == self._feed:
            return None
        self._feed = feed
        return feed

    def _tag(self, seg: Line | Arc, text: str) -> str:
        """Append the carried words of the source line to its first move."""
        index = seg.source_index
        if index is None or index in self._tagged or index not in self._extras:
            return text
        self._tagged.add(index)
        extra = self.clean(self._extras[index])
        return f"{text} {extra}" if extra else text
