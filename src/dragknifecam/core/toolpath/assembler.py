"""Stitch offset segments and swivels into the output path."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from ..errors import TransformIssue
from ..geometry import Plane
from .base import Path, Segment
from .swivel import Junction


@dataclass(frozen=True)
class SegmentOffset:
    """Result of offsetting tip segment *index*.

    *pivot* is None when the segment was skipped.  The headings are the tip's
    travel directions at either end, None for moves without one.
    """

    index: int
    tip: Segment
    pivot: Optional[Segment]
    start_angle: Optional[float] = None
    end_angle: Optional[float] = None
    issue: Optional[TransformIssue] = None


def assemble(
    offsets: Iterable[SegmentOffset],
    junctions: Mapping[int, Junction],
    plane: Plane = Plane.XY,
) -> Path:
    """Walk *offsets* in order, inserting each junction's swivel ahead of
    the segment it belongs to.

    Motion kind and feed rate travel with each pivot segment unchanged.
    """
    path = Path(plane=plane)
    for item in offsets:
        junction = junctions.get(item.index)
        if junction is not None and junction.swivel is not None:
            path.append(junction.swivel)
        if item.pivot is not None:
            path.append(item.pivot)
        if item.issue is not None:
            path.issues.append(item.issue)
    return path
