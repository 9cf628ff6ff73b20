"""
Harris corner detection from the Sobel gradient structure tensor.
"""

from __future__ import annotations

import logging
from typing import Any, List, Tuple

import cv2
import numpy as np

from ..raster import as_grayscale_image
from .types import Feature

LOGGER = logging.getLogger(__name__)

SOBEL_X = np.array([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]], dtype=np.float64)
SOBEL_Y = np.array([[-1, -2, -1], [0, 0, 0], [1, 2, 1]], dtype=np.float64)
WINDOW_SIZE = 3


class HarrisDetector:
    """
    Harris corner detector.

    The response is computed on raw 8-bit gradients, so strong corners give
    responses far above 1.0. Strength is ``min(R, 1.0)``: every such corner
    saturates at exactly 1.0 and ranking among them falls back to detection
    order.
    """

    def __init__(self, k: float = 0.04, threshold: float = 0.01):
        if threshold < 0:
            raise ValueError(f"Harris threshold must be non-negative, got {threshold}")
        self.k = k
        self.threshold = threshold

    def detect(self, grayscale: Any, width: int, height: int) -> List[Feature]:
        gray = as_grayscale_image(grayscale, width, height)
        if width < WINDOW_SIZE or height < WINDOW_SIZE:
            return []

        ix, iy = self.gradients(gray)
        response = self.response(ix, iy)

        offset = WINDOW_SIZE // 2
        mask = np.zeros(response.shape, dtype=bool)
        mask[offset:height - offset, offset:width - offset] = (
            response[offset:height - offset, offset:width - offset] > self.threshold
        )

        rows, cols = np.nonzero(mask)
        orientations = np.arctan2(iy[rows, cols], ix[rows, cols])
        strengths = np.minimum(response[rows, cols], 1.0)

        features = [
            Feature(
                x=col / width,
                y=row / height,
                scale=1.0,
                orientation=float(angle),
                strength=float(strength),
            )
            for row, col, angle, strength in zip(
                rows.tolist(), cols.tolist(), orientations.tolist(), strengths.tolist()
            )
        ]
        LOGGER.debug("Harris found %d corners in %dx%d image", len(features), width, height)
        return features

    @staticmethod
    def gradients(gray: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Sobel gradients, zero on the one-pixel image border."""
        image = gray.astype(np.float64)
        ix = cv2.filter2D(image, cv2.CV_64F, SOBEL_X)
        iy = cv2.filter2D(image, cv2.CV_64F, SOBEL_Y)
        for grad in (ix, iy):
            grad[0, :] = 0
            grad[-1, :] = 0
            grad[:, 0] = 0
            grad[:, -1] = 0
        return ix, iy

    def response(self, ix: np.ndarray, iy: np.ndarray) -> np.ndarray:
        """Harris response det(M) - k * trace(M)^2 over a 3x3 window."""
        window = np.ones((WINDOW_SIZE, WINDOW_SIZE), dtype=np.float64)
        ixx = cv2.filter2D(ix * ix, cv2.CV_64F, window)
        iyy = cv2.filter2D(iy * iy, cv2.CV_64F, window)
        ixy = cv2.filter2D(ix * iy, cv2.CV_64F, window)

        det = ixx * iyy - ixy * ixy
        trace = ixx + iyy
        return det - self.k * trace * trace
