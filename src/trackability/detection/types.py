"""
Shared feature container used by all detectors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Feature:
    """A detected corner in normalized image coordinates."""

    x: float  # column / width, in [0, 1]
    y: float  # row / height, in [0, 1]
    scale: float = 1.0
    orientation: float = 0.0  # radians
    strength: float = 0.0  # in [0, 1]
    descriptor: Optional[Tuple[float, ...]] = None

    def pixel(self, width: int, height: int) -> Tuple[int, int]:
        """Return the (column, row) pixel this feature was detected at."""
        return int(round(self.x * width)), int(round(self.y * height))

    def to_dict(self) -> Dict:
        data = {
            "x": self.x,
            "y": self.y,
            "scale": self.scale,
            "orientation": self.orientation,
            "strength": self.strength,
        }
        if self.descriptor is not None:
            data["descriptor"] = list(self.descriptor)
        return data
