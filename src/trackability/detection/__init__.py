"""
Detection subpackage.

Corner detectors implemented directly on numpy arrays:
- FAST (FAST-9 segment test with non-maximum suppression)
- Harris (Sobel structure tensor)
- ORB (oriented FAST with a radial descriptor)
- Hybrid (default, FAST + Harris with duplicate removal)
"""

from .fast import FASTDetector
from .feature import (
    DetectorType,
    FeatureDetectionOptions,
    FeatureDetectorFactory,
    HybridFeatureDetector,
    QualityPreset,
    detect_features,
    merge_features,
    optimize_features,
    rank_features,
    resolve_quality,
)
from .harris import HarrisDetector
from .orb import ORBDetector
from .types import Feature

__all__ = [
    "DetectorType",
    "FASTDetector",
    "Feature",
    "FeatureDetectionOptions",
    "FeatureDetectorFactory",
    "HarrisDetector",
    "HybridFeatureDetector",
    "ORBDetector",
    "QualityPreset",
    "detect_features",
    "merge_features",
    "optimize_features",
    "rank_features",
    "resolve_quality",
]
