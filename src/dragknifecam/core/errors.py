"""Exception types and per-segment diagnostics for the offset engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TransformError(Exception):
    """Base class for every failure raised by the path transform."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class DegenerateGeometryError(TransformError):
    """Zero-length line, zero-radius arc or zero-sweep arc."""


class InfeasibleOffsetError(TransformError):
    """The knife offset cannot be applied to the segment."""


class DisconnectedPathError(TransformError):
    """Consecutive segments do not meet within the connectivity tolerance."""


class IssueKind(Enum):
    DEGENERATE = "degenerate geometry"
    INFEASIBLE = "infeasible offset"


@dataclass(frozen=True)
class TransformIssue:
    """A recoverable problem found while transforming one segment."""

    severity: str  # "error" or "warning"
    kind: IssueKind
    message: str
    index: Optional[int] = None

    def __str__(self) -> str:
        where = f"segment {self.index}: " if self.index is not None else ""
        return f"{where}{self.kind.value}: {self.message}"


class TransformWarning(UserWarning):
    """Emitted for every recoverable per-segment issue."""
