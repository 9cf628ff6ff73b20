"""
Feature detection front end for marker images.

Supported detectors:
- FAST (segment test, graduated strengths)
- Harris (structure tensor response, saturating strengths)
- ORB (FAST + orientation + radial descriptor)
- Hybrid (default: FAST and Harris merged, duplicates removed)

Every mode ends by ranking features by strength and keeping at most
``max_features`` of them.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields
from enum import Enum
from operator import attrgetter
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..raster import RasterImage, as_grayscale_image
from .fast import FASTDetector
from .harris import HarrisDetector
from .orb import ORBDetector
from .types import Feature

LOGGER = logging.getLogger(__name__)

DUPLICATE_DISTANCE = 0.01
OPTIMIZATION_GRID_SIZE = 16


class DetectorType(Enum):
    """Supported feature detector types."""
    FAST = "fast"
    HARRIS = "harris"
    ORB = "orb"
    HYBRID = "hybrid"  # FAST + Harris, merged


class QualityPreset(Enum):
    """Detection presets trading feature count against speed."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    AUTO = "auto"  # Chosen from the image pixel count


# preset -> (max_features, corner threshold)
QUALITY_SETTINGS: Dict[QualityPreset, Tuple[int, int]] = {
    QualityPreset.HIGH: (1000, 10),
    QualityPreset.MEDIUM: (500, 15),
    QualityPreset.LOW: (250, 20),
}
AUTO_HIGH_MAX_PIXELS = 500_000
AUTO_MEDIUM_MAX_PIXELS = 2_000_000


def resolve_quality(
    quality: Union[str, QualityPreset],
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> QualityPreset:
    """Resolve a preset name, choosing a concrete preset for ``auto``."""
    try:
        preset = QualityPreset(quality.value if isinstance(quality, QualityPreset) else str(quality).lower())
    except ValueError:
        raise ValueError(f"Unknown quality preset '{quality}'") from None

    if preset is not QualityPreset.AUTO:
        return preset
    if width is None or height is None:
        raise ValueError("Quality 'auto' needs the image width and height")

    pixels = width * height
    if pixels < AUTO_HIGH_MAX_PIXELS:
        return QualityPreset.HIGH
    if pixels < AUTO_MEDIUM_MAX_PIXELS:
        return QualityPreset.MEDIUM
    return QualityPreset.LOW


@dataclass
class FeatureDetectionOptions:
    """Configuration for feature detection."""

    # Detector selection: 'fast', 'harris', 'orb', 'hybrid'
    algorithm: str = "hybrid"
    max_features: int = 500

    # FAST-specific
    fast_threshold: int = 20
    nonmax_suppression: bool = True

    # Harris-specific
    harris_k: float = 0.04
    harris_threshold: float = 0.01

    # ORB-specific
    orb_threshold: int = 15
    orb_patch_size: int = 31

    def __post_init__(self):
        name = self.algorithm.value if isinstance(self.algorithm, DetectorType) else str(self.algorithm).lower()
        if name not in {dtype.value for dtype in DetectorType}:
            LOGGER.warning("Unknown detector type '%s', using hybrid", self.algorithm)
            name = DetectorType.HYBRID.value
        self.algorithm = name

        if isinstance(self.max_features, bool) or int(self.max_features) != self.max_features or self.max_features < 1:
            raise ValueError(f"max_features must be a positive integer, got {self.max_features}")
        self.max_features = int(self.max_features)
        if self.fast_threshold < 0 or self.orb_threshold < 0:
            raise ValueError("FAST/ORB thresholds must be non-negative")
        if self.harris_threshold < 0:
            raise ValueError("Harris threshold must be non-negative")
        if self.orb_patch_size < 3:
            raise ValueError(f"orb_patch_size must be at least 3, got {self.orb_patch_size}")

    @property
    def detector_type(self) -> DetectorType:
        return DetectorType(self.algorithm)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> FeatureDetectionOptions:
        """Build options from a config block, ignoring unrelated keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in dict(config or {}).items() if k in known})

    @classmethod
    def for_quality(
        cls,
        quality: Union[str, QualityPreset],
        width: Optional[int] = None,
        height: Optional[int] = None,
        **overrides: Any,
    ) -> FeatureDetectionOptions:
        """Options for a quality preset; keyword overrides win over the preset."""
        preset = resolve_quality(quality, width, height)
        max_features, threshold = QUALITY_SETTINGS[preset]
        settings: Dict[str, Any] = {
            "max_features": max_features,
            "fast_threshold": threshold,
            "orb_threshold": threshold,
        }
        settings.update(overrides)
        return cls.from_config(settings)


class FeatureDetectorFactory:
    """Factory mapping a detector type to a configured detector."""

    @staticmethod
    def create(detector_type: Union[str, DetectorType], options: FeatureDetectionOptions):
        """Return an object exposing ``detect(grayscale, width, height)``."""
        dtype = detector_type if isinstance(detector_type, DetectorType) else DetectorType(detector_type)

        if dtype is DetectorType.FAST:
            return FASTDetector(options.fast_threshold, options.nonmax_suppression)
        elif dtype is DetectorType.HARRIS:
            return HarrisDetector(options.harris_k, options.harris_threshold)
        elif dtype is DetectorType.ORB:
            return ORBDetector(options.orb_threshold, options.orb_patch_size)
        return HybridFeatureDetector(options)


def _coerce_options(
    options: Union[FeatureDetectionOptions, Dict[str, Any], None],
) -> FeatureDetectionOptions:
    if options is None:
        return FeatureDetectionOptions()
    if isinstance(options, FeatureDetectionOptions):
        return options
    return FeatureDetectionOptions.from_config(options)


def _bucket(feature: Feature, cell: float) -> Tuple[int, int]:
    return math.floor(feature.x / cell), math.floor(feature.y / cell)


def merge_features(
    primary: Sequence[Feature],
    secondary: Iterable[Feature],
    min_distance: float = DUPLICATE_DISTANCE,
) -> List[Feature]:
    """
    Keep every primary feature plus the secondary features that have no
    primary feature closer than ``min_distance`` (normalized units).

    Duplicates within the same list are never removed.
    """
    merged = list(primary)
    if min_distance <= 0:
        merged.extend(secondary)
        return merged

    buckets: Dict[Tuple[int, int], List[Feature]] = {}
    for feature in primary:
        buckets.setdefault(_bucket(feature, min_distance), []).append(feature)

    for candidate in secondary:
        bx, by = _bucket(candidate, min_distance)
        duplicate = any(
            math.sqrt((other.x - candidate.x) ** 2 + (other.y - candidate.y) ** 2) < min_distance
            for nx in (bx - 1, bx, bx + 1)
            for ny in (by - 1, by, by + 1)
            for other in buckets.get((nx, ny), ())
        )
        if not duplicate:
            merged.append(candidate)
    return merged


def rank_features(features: Iterable[Feature], max_features: int) -> List[Feature]:
    """Strongest first; equal strengths keep their incoming order."""
    ranked = sorted(features, key=attrgetter("strength"), reverse=True)
    return ranked[:max_features]


def optimize_features(features: Iterable[Feature], grid_size: int = OPTIMIZATION_GRID_SIZE) -> List[Feature]:
    """
    Thin features to the strongest one per cell of a ``grid_size`` grid.

    Cells are returned in order of their first feature, so ranked input stays
    ranked.
    """
    if grid_size < 1:
        raise ValueError(f"grid_size must be positive, got {grid_size}")

    best: Dict[Tuple[int, int], Feature] = {}
    for feature in features:
        key = (
            min(math.floor(feature.x * grid_size), grid_size - 1),
            min(math.floor(feature.y * grid_size), grid_size - 1),
        )
        existing = best.get(key)
        if existing is None or feature.strength > existing.strength:
            best[key] = feature
    return list(best.values())


class HybridFeatureDetector:
    """Dispatches to the configured detector and ranks the result."""

    def __init__(self, options: Union[FeatureDetectionOptions, Dict[str, Any], None] = None):
        self.options = _coerce_options(options)

    def detect(
        self,
        grayscale: Any,
        width: int,
        height: int,
        options: Union[FeatureDetectionOptions, Dict[str, Any], None] = None,
    ) -> List[Feature]:
        opts = _coerce_options(options) if options is not None else self.options
        gray = as_grayscale_image(grayscale, width, height)
        dtype = opts.detector_type

        if dtype is DetectorType.HYBRID:
            fast_features = FeatureDetectorFactory.create(DetectorType.FAST, opts).detect(gray, width, height)
            harris_features = FeatureDetectorFactory.create(DetectorType.HARRIS, opts).detect(gray, width, height)
            features = merge_features(fast_features, harris_features)
            LOGGER.debug(
                "Hybrid merge: %d FAST + %d Harris -> %d features",
                len(fast_features),
                len(harris_features),
                len(features),
            )
        else:
            features = FeatureDetectorFactory.create(dtype, opts).detect(gray, width, height)

        return rank_features(features, opts.max_features)


def detect_features(
    raster: RasterImage,
    options: Union[FeatureDetectionOptions, Dict[str, Any], None] = None,
) -> List[Feature]:
    """Detect features in a decoded RGBA raster."""
    opts = _coerce_options(options)
    gray = raster.to_grayscale()
    features = HybridFeatureDetector(opts).detect(gray, raster.width, raster.height)
    LOGGER.debug(
        "detect_features: %d features (%s, max %d) in %dx%d raster",
        len(features),
        opts.algorithm,
        opts.max_features,
        raster.width,
        raster.height,
    )
    return features
