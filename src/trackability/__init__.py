"""
trackability - AR marker trackability engine.

This package provides functionality for:
- Grayscale conversion of decoded RGBA marker images
- Corner detection (FAST, Harris, ORB, hybrid)
- Tracking-quality evaluation with recommendations
- Marker analysis for upload validation
"""

from .detection import (
    DetectorType,
    FASTDetector,
    Feature,
    FeatureDetectionOptions,
    HarrisDetector,
    HybridFeatureDetector,
    ORBDetector,
    QualityPreset,
    detect_features,
)
from .evaluator import (
    FeatureDistribution,
    ImageStatistics,
    TrackingEvaluator,
    TrackingQuality,
    compute_statistics,
    generate_detailed_report,
    summarize_distribution,
)
from .marker_analysis import MarkerAnalysis, MarkerAnalysisOptions, MarkerAnalyzer
from .raster import InvalidDimensionsError, RasterImage, to_grayscale

__version__ = "0.1.0"

__all__ = [
    # Raster
    "InvalidDimensionsError",
    "RasterImage",
    "to_grayscale",
    # Detection
    "DetectorType",
    "FASTDetector",
    "Feature",
    "FeatureDetectionOptions",
    "HarrisDetector",
    "HybridFeatureDetector",
    "ORBDetector",
    "QualityPreset",
    "detect_features",
    # Evaluation
    "FeatureDistribution",
    "ImageStatistics",
    "TrackingEvaluator",
    "TrackingQuality",
    "compute_statistics",
    "generate_detailed_report",
    "summarize_distribution",
    # Marker analysis
    "MarkerAnalysis",
    "MarkerAnalysisOptions",
    "MarkerAnalyzer",
]
