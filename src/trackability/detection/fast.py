"""
FAST (Features from Accelerated Segment Test) corner detection.

Implements the FAST-9 segment test on a 16-pixel Bresenham circle of radius 3
with the 4-point quick reject and optional non-maximum suppression. The test
is evaluated for the whole image at once with shifted numpy views.
"""

from __future__ import annotations

import logging
from typing import Any, List, Tuple

import cv2
import numpy as np

from ..raster import as_grayscale_image
from .types import Feature

LOGGER = logging.getLogger(__name__)

# (dx, dy) offsets of the radius-3 Bresenham circle, clockwise from below
CIRCLE_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (0, 3),
    (1, 3),
    (2, 2),
    (3, 1),
    (3, 0),
    (3, -1),
    (2, -2),
    (1, -3),
    (0, -3),
    (-1, -3),
    (-2, -2),
    (-3, -1),
    (-3, 0),
    (-3, 1),
    (-2, 2),
    (-1, 3),
)
QUICK_TEST_POSITIONS = (0, 4, 8, 12)
QUICK_TEST_MIN_AGREEMENT = 3
ARC_LENGTH = 9
MARGIN = 3
NMS_RADIUS = 3
MAX_SCORE = len(CIRCLE_OFFSETS) * 255


class FASTDetector:
    """FAST-9 corner detector."""

    def __init__(self, threshold: int = 20, nonmax_suppression: bool = True):
        if threshold < 0:
            raise ValueError(f"FAST threshold must be non-negative, got {threshold}")
        self.threshold = threshold
        self.nonmax_suppression = nonmax_suppression

    def detect(self, grayscale: Any, width: int, height: int) -> List[Feature]:
        """Detect corners and return them in row-major order."""
        gray = as_grayscale_image(grayscale, width, height)
        corners, scores = self.score_map(gray)

        if self.nonmax_suppression:
            keep = corners & self._local_maxima(scores)
        else:
            keep = corners

        rows, cols = np.nonzero(keep)
        features = [
            Feature(
                x=col / width,
                y=row / height,
                scale=1.0,
                orientation=0.0,
                strength=float(scores[row, col]) / MAX_SCORE,
            )
            for row, col in zip(rows.tolist(), cols.tolist())
        ]

        LOGGER.debug(
            "FAST found %d corners (%d before suppression) in %dx%d image",
            len(features),
            int(corners.sum()),
            width,
            height,
        )
        return features

    def score_map(self, gray: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Run the segment test over every interior pixel.

        Returns:
            (corner_mask, scores) both shaped like ``gray``. Scores are the sum
            of absolute circle differences and zero for non-corners.
        """
        height, width = gray.shape
        corners = np.zeros((height, width), dtype=bool)
        scores = np.zeros((height, width), dtype=np.float32)
        if height <= 2 * MARGIN or width <= 2 * MARGIN:
            return corners, scores

        image = gray.astype(np.int16)
        center = image[MARGIN:height - MARGIN, MARGIN:width - MARGIN]
        ring = np.stack([
            image[MARGIN + dy:height - MARGIN + dy, MARGIN + dx:width - MARGIN + dx]
            for dx, dy in CIRCLE_OFFSETS
        ])

        brighter = ring > center + self.threshold
        darker = ring < center - self.threshold

        quick = QUICK_TEST_POSITIONS
        passes_quick = (
            (brighter[list(quick)].sum(axis=0) >= QUICK_TEST_MIN_AGREEMENT)
            | (darker[list(quick)].sum(axis=0) >= QUICK_TEST_MIN_AGREEMENT)
        )
        is_corner = passes_quick & (self._has_arc(brighter) | self._has_arc(darker))

        score = np.abs(ring - center).sum(axis=0)
        corners[MARGIN:height - MARGIN, MARGIN:width - MARGIN] = is_corner
        scores[MARGIN:height - MARGIN, MARGIN:width - MARGIN] = np.where(is_corner, score, 0)
        return corners, scores

    @staticmethod
    def _has_arc(flags: np.ndarray) -> np.ndarray:
        """True where some rotation of the circle has ARC_LENGTH set flags in a row."""
        count = flags.shape[0]
        wrapped = np.concatenate([flags, flags[:ARC_LENGTH - 1]], axis=0)
        found = np.zeros(flags.shape[1:], dtype=bool)
        for start in range(count):
            found |= np.logical_and.reduce(wrapped[start:start + ARC_LENGTH], axis=0)
        return found

    @staticmethod
    def _local_maxima(scores: np.ndarray) -> np.ndarray:
        """True where no neighbour in the suppression window scores strictly higher."""
        size = 2 * NMS_RADIUS + 1
        window_max = cv2.dilate(scores, np.ones((size, size), dtype=np.uint8))
        return scores >= window_max
