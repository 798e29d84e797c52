"""Dragknife path transform: tip path in, pivot path out.

The transform is a pure function of the input path, the knife offset and
the corner threshold.  Segments are offset one by one, junctions between
segments that carry a travel direction are checked for sharp turns, and the
assembler inserts a swivel ahead of every sharp junction.

Moves without an in-plane direction of their own (plunges, retracts) keep
the blade where it is: they are offset along the carried heading, which is
the end heading of the last directional segment, or the start heading of
the first one when none has been seen yet.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Optional

from ..config.settings import (
    DegeneratePolicy,
    DragknifeConfig,
    InfeasiblePolicy,
    check_offset,
    check_threshold,
)
from .errors import (
    DegenerateGeometryError,
    DisconnectedPathError,
    InfeasibleOffsetError,
    IssueKind,
    TransformIssue,
    TransformWarning,
)
from .geometry import Plane
from .toolpath.assembler import SegmentOffset, assemble
from .toolpath.base import (
    Arc,
    Path,
    Segment,
    Swivel,
    end_angle,
    is_directional,
    start_angle,
)
from .toolpath.offset import offset_arc, offset_line, stationary
from .toolpath.swivel import Junction, JunctionState, analyze_junction, synthesize_swivel

log = logging.getLogger(__name__)


def transform(
    path: Path,
    offset_distance: float,
    corner_threshold: float,
    config: Optional[DragknifeConfig] = None,
) -> Path:
    """Convert a tip path into the pivot path the machine must follow.

    Parameters
    ----------
    path:
        Tip path; consecutive segments must be connected.
    offset_distance:
        Distance from the knife pivot to the blade tip (mm).
    corner_threshold:
        Direction changes larger than this (degrees) get a swivel.
    config:
        Policies, tolerances, swivel feed and lift.  Its own
        ``knife_offset`` / ``corner_threshold`` are ignored here.

    Returns
    -------
    A new Path.  Recoverable per-segment problems are listed in its
    ``issues`` and reported as :class:`TransformWarning`.

    Raises
    ------
    ValueError:
        For an invalid offset, threshold or configuration.
    DisconnectedPathError:
        If consecutive segments do not meet.
    InfeasibleOffsetError:
        For an arc whose offset is not a finite, positive-radius arc under
        the ``error`` policy.
    """
    cfg = config or DragknifeConfig()
    check_offset(offset_distance)
    check_threshold(corner_threshold)
    cfg.validate()
    check_connectivity(path, cfg.connect_tolerance)

    plane = path.plane
    tol = cfg.length_tolerance
    threshold = math.radians(corner_threshold)

    carried = _initial_heading(path, tol)
    previous: Optional[Segment] = None
    offsets: list[SegmentOffset] = []
    junctions: dict[int, Junction] = {}

    for index, tip in enumerate(path):
        item = _offset_segment(index, tip, offset_distance, carried, plane, cfg)
        offsets.append(item)
        if item.start_angle is None:
            continue

        if previous is not None:
            junction = analyze_junction(
                index, tip.start, carried, item.start_angle,
                threshold, cfg.angle_tolerance,
            )
            if junction.state is JunctionState.SWIVEL_REQUIRED:
                junction = synthesize_swivel(
                    junction,
                    offset_distance,
                    plane,
                    previous=previous,
                    following=tip,
                    feed_rate=_swivel_feed(cfg, previous, tip),
                    lift_height=cfg.lift.height_for(plane.through(tip.start)),
                )
                junctions[index] = junction
        previous = tip
        carried = item.end_angle

    result = assemble(offsets, junctions, plane)
    for issue in result.issues:
        warnings.warn(str(issue), TransformWarning, stacklevel=2)
    log.debug(
        "transformed %d segments: %d swivels, %d issues",
        len(path), len(junctions), len(result.issues),
    )
    return result


def transform_with_config(path: Path, config: DragknifeConfig) -> Path:
    """:func:`transform` using the offset and threshold stored in *config*."""
    return transform(path, config.knife_offset, config.corner_threshold, config)


def check_connectivity(path: Path, tolerance: float) -> None:
    """Raise DisconnectedPathError at the first gap between segments."""
    for index in range(1, len(path)):
        if isinstance(path[index], Swivel) or isinstance(path[index - 1], Swivel):
            raise ValueError("input path already contains swivels")
        gap = path[index - 1].end.distance_to(path[index].start)
        if gap > tolerance:
            raise DisconnectedPathError(
                f"segment {index} starts {gap:.4g} mm away from the end of segment {index - 1}",
                index=index,
            )


def _initial_heading(path: Path, tolerance: float) -> Optional[float]:
    """Start heading of the first segment that has one.

    The blade is assumed to start aligned with its first cut.
    """
    for seg in path:
        if is_directional(seg, path.plane, tolerance):
            return start_angle(seg, path.plane, tolerance)
    return None


def _offset_segment(
    index: int,
    tip: Segment,
    distance: float,
    carried: Optional[float],
    plane: Plane,
    cfg: DragknifeConfig,
) -> SegmentOffset:
    tol = cfg.length_tolerance
    if isinstance(tip, Swivel):
        raise ValueError("input path already contains swivels")

    try:
        if isinstance(tip, Arc):
            return _offset_arc(index, tip, distance, cfg)
        if tip.length <= tol:
            raise DegenerateGeometryError("line has zero length", index)
        if tip.planar_length(plane) <= tol:
            # plunge / retract: blade keeps its heading
            pivot = tip if carried is None else offset_line(tip, distance, plane, carried, tol)
            return SegmentOffset(index, tip, pivot)
        heading = start_angle(tip, plane, tol)
        return SegmentOffset(index, tip, offset_line(tip, distance, plane, tolerance=tol),
                             heading, heading)
    except DegenerateGeometryError as exc:
        issue = TransformIssue("warning", IssueKind.DEGENERATE, str(exc), index)
        if cfg.degenerate_policy is DegeneratePolicy.SKIP:
            return SegmentOffset(index, tip, None, issue=issue)
        return SegmentOffset(index, tip, stationary(tip, tip.start, plane, distance, carried),
                             issue=issue)


def _offset_arc(index: int, tip: Arc, distance: float, cfg: DragknifeConfig) -> SegmentOffset:
    tol = cfg.length_tolerance
    try:
        pivot = offset_arc(tip, distance, tol)
        issue = None
    except InfeasibleOffsetError as exc:
        if cfg.infeasible_policy is InfeasiblePolicy.ERROR:
            raise InfeasibleOffsetError(str(exc), index) from exc
        pivot = None
        clamped = min(distance, tip.radius)
        if cfg.infeasible_policy is InfeasiblePolicy.CLAMP and clamped < distance:
            try:
                pivot = offset_arc(tip, clamped, tol)
                message = f"{exc}; offset clamped to {clamped:.4g}"
            except InfeasibleOffsetError:
                pivot = None
        if pivot is None:
            pivot = tip
            message = f"{exc}; arc passed through unmodified"
        issue = TransformIssue("warning", IssueKind.INFEASIBLE, message, index)
    return SegmentOffset(
        index, tip, pivot,
        start_angle(tip, tip.plane, tol),
        end_angle(tip, tip.plane, tol),
        issue,
    )


def _swivel_feed(cfg: DragknifeConfig, previous: Segment, following: Segment) -> Optional[float]:
    if cfg.swivel_feed_rate is not None:
        return cfg.swivel_feed_rate
    if following.feed_rate is not None:
        return following.feed_rate
    return previous.feed_rate
