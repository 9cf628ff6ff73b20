"""
ORB-style detection: FAST corners with intensity-centroid orientation and a
compact radial intensity descriptor.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Any, List, Tuple

import numpy as np

from ..raster import as_grayscale_image
from .fast import FASTDetector
from .types import Feature

LOGGER = logging.getLogger(__name__)

DESCRIPTOR_DIRECTIONS = 8
DESCRIPTOR_RADIUS_STEP = 2


class ORBDetector:
    """Oriented FAST with a simplified rotated descriptor."""

    def __init__(self, threshold: int = 15, patch_size: int = 31):
        if patch_size < 3:
            raise ValueError(f"ORB patch size must be at least 3, got {patch_size}")
        self.fast_detector = FASTDetector(threshold, nonmax_suppression=True)
        self.patch_size = patch_size

    @property
    def threshold(self) -> int:
        return self.fast_detector.threshold

    def detect(self, grayscale: Any, width: int, height: int) -> List[Feature]:
        gray = as_grayscale_image(grayscale, width, height)
        corners = self.fast_detector.detect(gray, width, height)

        features = []
        for corner in corners:
            x, y = corner.pixel(width, height)
            orientation = self.orientation(gray, x, y, default=corner.orientation)
            features.append(replace(
                corner,
                orientation=orientation,
                descriptor=self.describe(gray, x, y, orientation),
            ))

        LOGGER.debug("ORB described %d features", len(features))
        return features

    def orientation(self, gray: np.ndarray, x: int, y: int, default: float = 0.0) -> float:
        """Intensity-centroid angle of the patch around (x, y)."""
        height, width = gray.shape
        radius = self.patch_size // 2
        x0, x1 = max(x - radius, 0), min(x + radius, width - 1)
        y0, y1 = max(y - radius, 0), min(y + radius, height - 1)

        patch = gray[y0:y1 + 1, x0:x1 + 1].astype(np.float64)
        dx = np.arange(x0, x1 + 1, dtype=np.float64) - x
        dy = np.arange(y0, y1 + 1, dtype=np.float64) - y

        m00 = patch.sum()
        if m00 <= 0:
            return default
        m10 = (patch * dx[np.newaxis, :]).sum()
        m01 = (patch * dy[:, np.newaxis]).sum()
        return math.atan2(m01 / m00, m10 / m00)

    def describe(self, gray: np.ndarray, x: int, y: int, orientation: float) -> Tuple[float, ...]:
        """
        Average intensity along eight rays rotated by the feature orientation.

        Each ray is sampled at radii 0, 2, 4, ... below half the patch size;
        out-of-image samples contribute nothing.
        """
        height, width = gray.shape
        radius = self.patch_size // 2
        cos_o = math.cos(orientation)
        sin_o = math.sin(orientation)

        descriptor = []
        for i in range(DESCRIPTOR_DIRECTIONS):
            angle = i * math.pi / 4
            total = 0
            for r in range(0, radius, DESCRIPTOR_RADIUS_STEP):
                dx = math.cos(angle) * r
                dy = math.sin(angle) * r
                sx = math.floor(x + dx * cos_o - dy * sin_o + 0.5)
                sy = math.floor(y + dx * sin_o + dy * cos_o + 0.5)
                if 0 <= sx < width and 0 <= sy < height:
                    total += int(gray[sy, sx])
            descriptor.append(total / radius)
        return tuple(descriptor)
