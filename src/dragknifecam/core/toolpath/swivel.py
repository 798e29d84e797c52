"""Junction analysis and swivel synthesis.

At every junction the trailing direction required at the end of one
segment is compared with the direction required at the start of the next.
When the change exceeds the corner threshold the blade has to be turned in
place before the next cut, otherwise it would drag a rounded corner.

Per junction the analysis moves through
``NO_SWIVEL`` | ``SWIVEL_REQUIRED`` -> ``SWIVEL_SYNTHESIZED``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from ..geometry import ArcDirection, Plane, Point, signed_sweep, wrap_angle
from .base import Arc, Segment, Swivel

log = logging.getLogger(__name__)


class JunctionState(Enum):
    NO_SWIVEL = "no-swivel-needed"
    SWIVEL_REQUIRED = "swivel-required"
    SWIVEL_SYNTHESIZED = "swivel-synthesized"


@dataclass(frozen=True)
class Junction:
    """The meeting point ahead of segment *index* of the tip path."""

    index: int
    point: Point
    from_angle: float
    to_angle: float
    state: JunctionState = JunctionState.NO_SWIVEL
    swivel: Optional[Swivel] = None

    @property
    def turn(self) -> float:
        """Magnitude of the shortest direction change, radians."""
        return abs(wrap_angle(self.to_angle - self.from_angle))


def analyze_junction(
    index: int,
    point: Point,
    from_angle: float,
    to_angle: float,
    threshold: float,
    angle_tolerance: float = 1e-6,
) -> Junction:
    """Classify a junction; *threshold* is in radians."""
    junction = Junction(index, point, from_angle, to_angle)
    if junction.turn > max(threshold, angle_tolerance):
        return replace(junction, state=JunctionState.SWIVEL_REQUIRED)
    return junction


def swivel_direction(
    from_angle: float,
    to_angle: float,
    previous: Optional[Segment] = None,
    following: Optional[Segment] = None,
) -> ArcDirection:
    """Rotation sense for a swivel.

    An arc neighbour fixes the sense: the preceding arc wins, then the
    following one.  Between straight moves the shorter rotation is taken;
    an exact reversal turns counter-clockwise.
    """
    if isinstance(previous, Arc):
        return previous.direction
    if isinstance(following, Arc):
        return following.direction
    return ArcDirection.from_sign(wrap_angle(to_angle - from_angle))


def synthesize_swivel(
    junction: Junction,
    offset: float,
    plane: Plane = Plane.XY,
    previous: Optional[Segment] = None,
    following: Optional[Segment] = None,
    feed_rate: Optional[float] = None,
    lift_height: Optional[float] = None,
) -> Junction:
    """Attach the swivel for a junction in ``SWIVEL_REQUIRED`` state."""
    if junction.state is not JunctionState.SWIVEL_REQUIRED:
        raise ValueError(f"junction {junction.index} does not require a swivel")
    direction = swivel_direction(junction.from_angle, junction.to_angle, previous, following)
    swivel = Swivel(
        point=junction.point,
        from_angle=junction.from_angle,
        to_angle=junction.to_angle,
        direction=direction,
        offset=offset,
        plane=plane,
        feed_rate=feed_rate,
        lift_height=lift_height,
        source_index=getattr(following, "source_index", None),
    )
    log.debug(
        "swivel before segment %d: %.2f deg %s",
        junction.index,
        math.degrees(signed_sweep(junction.from_angle, junction.to_angle, direction)),
        direction.name,
    )
    return replace(junction, state=JunctionState.SWIVEL_SYNTHESIZED, swivel=swivel)
