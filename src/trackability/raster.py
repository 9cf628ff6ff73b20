"""
Raster input handling.

Wraps caller-decoded RGBA pixel buffers and derives the grayscale luminance
images every detector and the evaluator work on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import cv2
import numpy as np

LOGGER = logging.getLogger(__name__)

LUMA_R = 0.299
LUMA_G = 0.587
LUMA_B = 0.114


class InvalidDimensionsError(ValueError):
    """Raised when image dimensions and buffer length disagree."""


def _check_dimensions(width: Any, height: Any) -> None:
    for name, value in (("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise InvalidDimensionsError(f"{name} must be an integer, got {value!r}")
        if value <= 0:
            raise InvalidDimensionsError(f"{name} must be positive, got {value}")


def _as_uint8(buffer: Any) -> np.ndarray:
    if isinstance(buffer, np.ndarray):
        if buffer.dtype != np.uint8:
            raise InvalidDimensionsError(f"Pixel buffer must be uint8, got {buffer.dtype}")
        return buffer.reshape(-1)
    if isinstance(buffer, (bytes, bytearray, memoryview)):
        return np.frombuffer(buffer, dtype=np.uint8)
    return np.asarray(buffer, dtype=np.uint8).reshape(-1)


@dataclass(frozen=True)
class RasterImage:
    """Decoded RGBA image: width, height and interleaved 8-bit RGBA data."""

    width: int
    height: int
    data: Any

    def validate(self) -> None:
        """Raise InvalidDimensionsError if the buffer does not match the size."""
        _check_dimensions(self.width, self.height)
        expected = self.width * self.height * 4
        actual = _as_uint8(self.data).size
        if actual != expected:
            raise InvalidDimensionsError(
                f"RGBA buffer has {actual} bytes, expected {expected} "
                f"for {self.width}x{self.height}"
            )

    def pixels(self) -> np.ndarray:
        """Return the validated pixels as an (height, width, 4) uint8 array."""
        self.validate()
        return _as_uint8(self.data).reshape(self.height, self.width, 4)

    def to_grayscale(self) -> np.ndarray:
        return to_grayscale(self.data, self.width, self.height)

    @classmethod
    def from_array(cls, image: np.ndarray) -> RasterImage:
        """
        Build an RGBA raster from an OpenCV-style image.

        Accepts HxW grayscale, HxWx3 BGR or HxWx4 BGRA uint8 arrays.
        """
        if image is None or image.size == 0:
            raise InvalidDimensionsError("Image cannot be empty.")
        image = np.asarray(image)
        if image.dtype != np.uint8:
            raise InvalidDimensionsError(f"Image must be uint8, got {image.dtype}")

        if image.ndim == 2:
            rgba = cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
        elif image.ndim == 3 and image.shape[2] == 3:
            rgba = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
        elif image.ndim == 3 and image.shape[2] == 4:
            rgba = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
        else:
            raise InvalidDimensionsError(f"Unsupported image shape {image.shape}")

        height, width = rgba.shape[:2]
        return cls(width=int(width), height=int(height), data=np.ascontiguousarray(rgba))


def to_grayscale(buffer: Any, width: int, height: int) -> np.ndarray:
    """Convert an RGBA buffer to an (height, width) uint8 luminance image.

    Uses round(0.299R + 0.587G + 0.114B) with halves rounded up; alpha is
    ignored.
    """
    _check_dimensions(width, height)
    flat = _as_uint8(buffer)
    expected = width * height * 4
    if flat.size != expected:
        raise InvalidDimensionsError(
            f"RGBA buffer has {flat.size} bytes, expected {expected} for {width}x{height}"
        )

    rgba = flat.reshape(height, width, 4).astype(np.float64)
    luma = LUMA_R * rgba[..., 0] + LUMA_G * rgba[..., 1] + LUMA_B * rgba[..., 2]
    return np.clip(np.floor(luma + 0.5), 0, 255).astype(np.uint8)


def as_grayscale_image(grayscale: Any, width: int, height: int) -> np.ndarray:
    """Return grayscale data as a validated (height, width) uint8 array."""
    _check_dimensions(width, height)
    flat = _as_uint8(grayscale)
    if flat.size != width * height:
        raise InvalidDimensionsError(
            f"Grayscale buffer has {flat.size} values, expected {width * height} "
            f"for {width}x{height}"
        )
    return flat.reshape(height, width)
