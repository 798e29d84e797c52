"""Pivot path validation and sanity checks.

Checks a transformed path before it is written out: swivels must leave the
blade tip where it is, arcs must be real circles, feed rates must stay
within the machine maximum and, when the tip path is known, retracing the
pivot path must reproduce it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..core.simulate import reproduction_error
from ..core.toolpath.base import Arc, Path, Swivel


@dataclass
class PathLimits:
    """Acceptance limits for a pivot path."""

    max_feed: Optional[float] = None  # mm/min, None: unchecked
    tolerance: float = 1e-3           # mm, geometric agreement
    resolution: float = 0.1           # mm, sampling step for the deviation check


@dataclass
class ValidationIssue:
    """A single validation problem found in the path."""

    severity: str  # "error" or "warning"
    message: str
    index: Optional[int] = None  # position in the validated path


@dataclass
class ValidationResult:
    """Result of validating a path."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(i.severity == "error" for i in self.issues)

    @property
    def has_warnings(self) -> bool:
        return any(i.severity == "warning" for i in self.issues)

    @property
    def is_ok(self) -> bool:
        return len(self.issues) == 0


def validate_path(
    path: Path,
    limits: Optional[PathLimits] = None,
    tip_path: Optional[Path] = None,
    offset: Optional[float] = None,
) -> ValidationResult:
    """Check a pivot *path* against *limits*.

    Checks performed:
    - Swivels keep the tip still and join their neighbours
    - Arcs have a radius and both endpoints on the circle
    - Feed rates within the machine maximum
    - Path is non-empty
    - Issues recorded by the transform
    - Retracing the path reproduces *tip_path* (when given with *offset*)
    """
    limits = limits or PathLimits()
    result = ValidationResult()
    tol = limits.tolerance
    plane = path.plane

    if path.is_empty:
        result.issues.append(ValidationIssue(
            "warning",
            "Path is empty, no G-code will be generated",
        ))
        return result

    for index, seg in enumerate(path):
        if isinstance(seg, Swivel):
            if seg.start.distance_to(seg.end) > tol:
                result.issues.append(ValidationIssue(
                    "error", "swivel moves the blade tip", index))
            if index > 0 and plane.planar_distance(path[index - 1].end, seg.carriage_start) > tol:
                result.issues.append(ValidationIssue(
                    "warning", "swivel does not start where the previous move ends", index))
            if index + 1 < len(path) and plane.planar_distance(
                    seg.carriage_end, path[index + 1].start) > tol:
                result.issues.append(ValidationIssue(
                    "warning", "swivel does not end where the next move starts", index))

        elif isinstance(seg, Arc):
            if seg.radius <= tol:
                result.issues.append(ValidationIssue(
                    "error", f"arc radius {seg.radius:.4g} is zero", index))
            elif abs(seg.end_radius - seg.radius) > tol:
                result.issues.append(ValidationIssue(
                    "error",
                    f"arc end radius {seg.end_radius:.4f} differs from "
                    f"start radius {seg.radius:.4f}",
                    index,
                ))

        # Feed rate check
        if (limits.max_feed is not None and seg.feed_rate is not None
                and seg.feed_rate > limits.max_feed):
            result.issues.append(ValidationIssue(
                "warning",
                f"Feed {seg.feed_rate:.1f} exceeds machine max ({limits.max_feed:.1f})",
                index,
            ))

    for issue in path.issues:
        result.issues.append(ValidationIssue(issue.severity, str(issue)))

    if tip_path is not None and offset is not None:
        error = reproduction_error(tip_path, path, offset, limits.resolution)
        if error > tol:
            # clamped or passed-through segments are expected to deviate
            severity = "warning" if path.issues else "error"
            result.issues.append(ValidationIssue(
                severity,
                f"retraced tip path deviates by {error:.4f} mm "
                f"(tolerance {tol:.4f})",
            ))

    return result
