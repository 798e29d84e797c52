"""Dragknife engine settings (persisted to disk)."""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class LiftMode(Enum):
    RELATIVE = "relative"    # height above the junction's through-axis value
    ABSOLUTE = "absolute"    # fixed through-axis height


class DegeneratePolicy(Enum):
    SKIP = "skip"
    PASSTHROUGH = "passthrough"


class InfeasiblePolicy(Enum):
    CLAMP = "clamp"
    PASSTHROUGH = "passthrough"
    ERROR = "error"


@dataclass
class LiftConfig:
    """How far the blade is raised while it swivels."""

    mode: LiftMode = LiftMode.RELATIVE
    height: float = 1.0

    def height_for(self, through: float) -> Optional[float]:
        """Through-axis height to swivel at, or None to swivel in the cut."""
        if self.mode is LiftMode.ABSOLUTE:
            return self.height
        if self.height == 0.0:
            return None
        return through + self.height


@dataclass
class DragknifeConfig:
    """Engine parameters, serialized to ~/.dragknifecam/settings.json.

    Distances are millimetres, feed rates mm/min, ``corner_threshold``
    degrees.
    """

    knife_offset: float = 1.0
    corner_threshold: float = 10.0
    swivel_feed_rate: Optional[float] = 300.0   # None: reuse the adjacent feed
    lift: LiftConfig = field(default_factory=LiftConfig)
    degenerate_policy: DegeneratePolicy = DegeneratePolicy.PASSTHROUGH
    infeasible_policy: InfeasiblePolicy = InfeasiblePolicy.CLAMP

    # Tolerances
    connect_tolerance: float = 1e-3   # consecutive segments must meet within this
    length_tolerance: float = 1e-6    # shorter moves / radii count as zero
    angle_tolerance: float = 1e-6     # radians; smaller direction changes are none

    skip_m3: bool = True              # drop spindle-start M3 from the output

    @property
    def corner_threshold_rad(self) -> float:
        return math.radians(self.corner_threshold)

    def validate(self) -> None:
        """Raise ValueError for parameters the engine cannot work with."""
        check_offset(self.knife_offset)
        check_threshold(self.corner_threshold)
        if self.swivel_feed_rate is not None and self.swivel_feed_rate <= 0:
            raise ValueError("swivel_feed_rate must be positive")
        for name in ("connect_tolerance", "length_tolerance", "angle_tolerance"):
            if not getattr(self, name) > 0:
                raise ValueError(f"{name} must be positive")

    def to_dict(self) -> dict:
        d = asdict(self)
        d["lift"]["mode"] = self.lift.mode.value
        d["degenerate_policy"] = self.degenerate_policy.value
        d["infeasible_policy"] = self.infeasible_policy.value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> DragknifeConfig:
        d = {k: v for k, v in d.items() if k in cls.__dataclass_fields__}
        if "lift" in d:
            lift = dict(d["lift"])
            if "mode" in lift:
                lift["mode"] = LiftMode(lift["mode"])
            d["lift"] = LiftConfig(**lift)
        if "degenerate_policy" in d:
            d["degenerate_policy"] = DegeneratePolicy(d["degenerate_policy"])
        if "infeasible_policy" in d:
            d["infeasible_policy"] = InfeasiblePolicy(d["infeasible_policy"])
        return cls(**d)

    @staticmethod
    def default_path() -> Path:
        return Path.home() / ".dragknifecam" / "settings.json"

    def save(self, path: Optional[Path] = None) -> Path:
        p = path or self.default_path()
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(self.to_dict(), indent=2))
        return p

    @classmethod
    def load(cls, path: Optional[Path] = None) -> DragknifeConfig:
        p = path or cls.default_path()
        if p.exists():
            return cls.from_dict(json.loads(p.read_text()))
        return cls()


def check_offset(offset: float) -> None:
    if not math.isfinite(offset) or offset < 0:
        raise ValueError(f"knife offset must be a finite non-negative distance, got {offset}")


def check_threshold(threshold: float) -> None:
    if not math.isfinite(threshold) or not 0.0 <= threshold <= 180.0:
        raise ValueError(f"corner threshold must lie in [0, 180] degrees, got {threshold}")
