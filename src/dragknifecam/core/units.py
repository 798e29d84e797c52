"""Unit system enum and conversion helpers.

The offset engine works in millimetres; programs written in inches are
converted on the way in.
"""

from enum import Enum


class Units(Enum):
    INCH = "inch"
    MM = "mm"

    def to_mm(self, value: float) -> float:
        if self is Units.MM:
            return value
        return value * 25.4

    def from_mm(self, value: float) -> float:
        if self is Units.MM:
            return value
        return value / 25.4

    def label(self) -> str:
        return "in" if self is Units.INCH else "mm"

    @property
    def gcode_modal(self) -> str:
        """G-code modal group 6 word."""
        return "G20" if self is Units.INCH else "G21"

    @classmethod
    def from_gcode(cls, number: int) -> "Units":
        if number == 20:
            return cls.INCH
        if number == 21:
            return cls.MM
        raise ValueError(f"G{number} is not a unit selection")
