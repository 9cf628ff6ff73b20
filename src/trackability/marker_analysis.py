"""
Marker image analysis.

Runs feature detection and tracking-quality evaluation for an uploaded marker
image, the way an upload-validation step consumes the engine.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Union

from .detection import (
    Feature,
    FeatureDetectionOptions,
    detect_features,
    optimize_features,
    resolve_quality,
)
from .evaluator import SUITABLE_OVERALL, TrackingEvaluator, TrackingQuality
from .raster import RasterImage

LOGGER = logging.getLogger(__name__)


@dataclass
class MarkerAnalysisOptions:
    """Configuration for marker analysis."""

    quality: str = "medium"  # 'low', 'medium', 'high', 'auto'
    algorithm: str = "hybrid"
    evaluate_quality: bool = True
    optimize_for_performance: bool = False
    optimization_grid_size: int = 16
    low_quality_threshold: int = 50
    detailed_report: bool = False

    def __post_init__(self):
        # Rejects unknown preset names
        resolve_quality(self.quality, 1, 1)
        if self.optimization_grid_size < 1:
            raise ValueError("optimization_grid_size must be positive")


@dataclass
class MarkerAnalysis:
    """Result of analysing one marker image."""

    features: List[Feature]
    quality: Optional[TrackingQuality] = None
    report: Optional[str] = None
    feature_count: int = 0
    processing_time_ms: float = 0.0
    algorithm: str = ""
    quality_preset: str = ""
    width: int = 0
    height: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_trackable(self) -> bool:
        return self.quality is not None and self.quality.overall >= SUITABLE_OVERALL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "features": [f.to_dict() for f in self.features],
            "quality": self.quality.to_dict() if self.quality is not None else None,
            "report": self.report,
            "metadata": {
                "feature_count": self.feature_count,
                "processing_time_ms": self.processing_time_ms,
                "algorithm": self.algorithm,
                "quality_preset": self.quality_preset,
                "image_width": self.width,
                "image_height": self.height,
                **self.metadata,
            },
        }


class MarkerAnalyzer:
    """Detects features in a marker image and scores its trackability."""

    def __init__(self, options: Union[MarkerAnalysisOptions, Dict[str, Any], None] = None):
        if isinstance(options, MarkerAnalysisOptions):
            self.options = options
        else:
            known = {f.name for f in fields(MarkerAnalysisOptions)}
            self.options = MarkerAnalysisOptions(**{
                k: v for k, v in dict(options or {}).items() if k in known
            })
        self.evaluator = TrackingEvaluator()

        LOGGER.info(
            "MarkerAnalyzer initialized: algorithm=%s, quality=%s",
            self.options.algorithm,
            self.options.quality,
        )

    def detection_options(self, width: int, height: int) -> FeatureDetectionOptions:
        """Detection options for an image of the given size."""
        return FeatureDetectionOptions.for_quality(
            self.options.quality,
            width,
            height,
            algorithm=self.options.algorithm,
        )

    def analyze(self, raster: RasterImage) -> MarkerAnalysis:
        """Analyse a decoded RGBA marker image."""
        start = time.perf_counter()
        raster.validate()

        preset = resolve_quality(self.options.quality, raster.width, raster.height)
        detection_options = self.detection_options(raster.width, raster.height)
        features = detect_features(raster, detection_options)

        quality = None
        report = None
        if self.options.evaluate_quality:
            quality = self.evaluator.evaluate(raster, features)
            if quality.overall < self.options.low_quality_threshold:
                LOGGER.warning(
                    "Low tracking quality detected (%d/100): %s",
                    quality.overall,
                    "; ".join(quality.recommendations),
                )
            if self.options.detailed_report:
                report = self.evaluator.generate_detailed_report(quality)

        if self.options.optimize_for_performance:
            kept = optimize_features(features, self.options.optimization_grid_size)
            LOGGER.debug("Grid optimization kept %d of %d features", len(kept), len(features))
            features = kept

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        return MarkerAnalysis(
            features=features,
            quality=quality,
            report=report,
            feature_count=len(features),
            processing_time_ms=round(elapsed_ms, 3),
            algorithm=detection_options.algorithm,
            quality_preset=preset.value,
            width=raster.width,
            height=raster.height,
            metadata={"max_features": detection_options.max_features},
        )
