"""Low-level G-code line formatting helpers."""

from __future__ import annotations

from typing import Optional

from ..core.geometry import ArcDirection


def fmt(value: float, decimals: int = 4) -> str:
    """Format a float for G-code, stripping trailing zeros."""
    text = f"{value:.{decimals}f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _axes(parts: list[str], x, y, z) -> None:
    if x is not None:
        parts.append(f"X{fmt(x)}")
    if y is not None:
        parts.append(f"Y{fmt(y)}")
    if z is not None:
        parts.append(f"Z{fmt(z)}")


def rapid(
    x: Optional[float] = None,
    y: Optional[float] = None,
    z: Optional[float] = None,
) -> str:
    """G0 rapid traverse."""
    parts = ["G0"]
    _axes(parts, x, y, z)
    return " ".join(parts)


def linear(
    x: Optional[float] = None,
    y: Optional[float] = None,
    z: Optional[float] = None,
    f: Optional[float] = None,
) -> str:
    """G1 linear interpolation."""
    parts = ["G1"]
    _axes(parts, x, y, z)
    if f is not None:
        parts.append(f"F{fmt(f, 1)}")
    return " ".join(parts)


def arc(
    direction: ArcDirection,
    x: Optional[float] = None,
    y: Optional[float] = None,
    z: Optional[float] = None,
    i: Optional[float] = None,
    j: Optional[float] = None,
    k: Optional[float] = None,
    f: Optional[float] = None,
) -> str:
    """G2/G3 circular interpolation; I/J/K are relative to the start point."""
    parts = [direction.value]
    _axes(parts, x, y, z)
    for letter, value in (("I", i), ("J", j), ("K", k)):
        if value is not None:
            parts.append(f"{letter}{fmt(value)}")
    if f is not None:
        parts.append(f"F{fmt(f, 1)}")
    return " ".join(parts)


def comment(text: str) -> str:
    """Wrap *text* in a parenthetical comment."""
    # nested parens are not allowed inside a comment
    cleaned = text.replace("(", "").replace(")", "")
    return f"({cleaned})"
