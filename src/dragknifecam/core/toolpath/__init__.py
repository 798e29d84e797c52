"""Toolpath data structures and the per-stage offset machinery."""

from .base import Arc, Line, MotionKind, Path, Segment, Swivel

__all__ = ["Arc", "Line", "MotionKind", "Path", "Segment", "Swivel"]
