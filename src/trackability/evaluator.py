"""
Tracking-quality evaluation for marker images.

Combines image statistics (entropy, contrast), the spatial distribution and
strength of detected features, and local pattern uniqueness into a 0-100
trackability score with recommendations.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Sequence

import numpy as np

from .detection.types import Feature
from .raster import RasterImage

LOGGER = logging.getLogger(__name__)

# Distribution grid
DISTRIBUTION_GRID_SIZE = 8
COVERAGE_WEIGHT = 0.6
UNIFORMITY_WEIGHT = 0.4

# Strength
AVERAGE_STRENGTH_WEIGHT = 0.4
TOP_STRENGTH_WEIGHT = 0.6
TOP_FRACTION = 0.25

# Uniqueness patches
PATCH_SIZE = 16
PATCH_STEP = PATCH_SIZE // 2
PATCH_SAMPLE_STEP = 4
INTENSITY_BUCKET = 32

# Derived scores
FEATURE_COUNT_DIVISOR = 3
FEATURE_STRENGTH_WEIGHT = 0.5
ENTROPY_SCALE = 14
STABILITY_COUNT_NORM = 100
STABILITY_COUNT_WEIGHT = 30
STABILITY_CONTRAST_WEIGHT = 25
STABILITY_ENTROPY_NORM = 7
STABILITY_ENTROPY_WEIGHT = 20
STABILITY_DISTRIBUTION_WEIGHT = 0.25

# Overall
OVERALL_WEIGHTS = {
    "feature_score": 0.25,
    "uniqueness_score": 0.20,
    "texture_score": 0.20,
    "contrast_score": 0.15,
    "stability_score": 0.20,
}

# Recommendation thresholds (on rounded scores)
MIN_FEATURE_SCORE = 50
MIN_CONTRAST_SCORE = 40
MIN_TEXTURE_SCORE = 40
MIN_UNIQUENESS_SCORE = 50
MIN_STABILITY_SCORE = 60
EXCELLENT_OVERALL = 80
SUITABLE_OVERALL = 75

RECOMMEND_FEATURES = "Add more detail or patterns to the image"
RECOMMEND_CONTRAST = "Increase the contrast of the image"
RECOMMEND_TEXTURE = "Use an image with richer texture or patterns"
RECOMMEND_UNIQUENESS = "Choose a more distinctive image with fewer repeated patterns"
RECOMMEND_STABILITY = "Use a sharper, more detailed image to improve tracking stability"
RECOMMEND_EXCELLENT = "This image should deliver excellent tracking performance"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class ImageStatistics:
    """Global intensity statistics of a grayscale image."""

    mean: float
    std: float
    entropy: float  # bits
    contrast: float  # Michelson, in [0, 1]
    histogram: List[int] = field(default_factory=list)


@dataclass
class FeatureDistribution:
    """Summary of how features spread over an 8x8 grid."""

    coverage: float  # percent of non-empty cells
    uniformity: float  # min / max count over non-empty cells
    grid: List[List[int]] = field(default_factory=list)


@dataclass
class TrackingQuality:
    """Trackability report for one marker image."""

    overall: int
    feature_score: int
    uniqueness_score: int
    texture_score: int
    contrast_score: int
    stability_score: int
    recommendations: List[str] = field(default_factory=list)

    @property
    def grade(self) -> str:
        return grade_for_score(self.overall)

    def to_dict(self) -> Dict:
        return asdict(self)


def compute_statistics(gray: np.ndarray) -> ImageStatistics:
    """Mean, population std, histogram, entropy and Michelson contrast."""
    values = np.asarray(gray, dtype=np.uint8).ravel()
    count = values.size
    if count == 0:
        raise ValueError("Cannot compute statistics of an empty image")

    mean = int(values.sum(dtype=np.int64)) / count
    centred = values.astype(np.float64) - mean
    std = math.sqrt(float((centred * centred).sum()) / count)

    histogram = np.bincount(values, minlength=256)
    probabilities = histogram[histogram > 0] / count
    entropy = float((probabilities * np.log2(1.0 / probabilities)).sum())

    low, high = int(values.min()), int(values.max())
    contrast = (high - low) / (high + low) if high > low else 0.0

    return ImageStatistics(
        mean=mean,
        std=std,
        entropy=entropy,
        contrast=contrast,
        histogram=histogram.tolist(),
    )


def _feature_grid(features: Sequence[Feature], grid_size: int = DISTRIBUTION_GRID_SIZE) -> np.ndarray:
    grid = np.zeros((grid_size, grid_size), dtype=np.int64)
    if not features:
        return grid
    xs = np.array([f.x for f in features], dtype=np.float64)
    ys = np.array([f.y for f in features], dtype=np.float64)
    cols = np.clip(np.floor(xs * grid_size).astype(np.int64), 0, grid_size - 1)
    rows = np.clip(np.floor(ys * grid_size).astype(np.int64), 0, grid_size - 1)
    np.add.at(grid, (rows, cols), 1)
    return grid


def summarize_distribution(features: Iterable[Feature]) -> FeatureDistribution:
    """Coverage percentage, min/max cell uniformity and the raw grid."""
    grid = _feature_grid(list(features))
    occupied = grid[grid > 0]
    coverage = occupied.size / grid.size * 100
    uniformity = float(occupied.min() / occupied.max()) if occupied.size else 0.0
    return FeatureDistribution(coverage=coverage, uniformity=uniformity, grid=grid.tolist())


def grade_for_score(score: float) -> str:
    if score >= 90:
        return "Excellent"
    if score >= 75:
        return "Good"
    if score >= 60:
        return "Fair"
    if score >= 40:
        return "Poor"
    return "Very Poor"


_REPORT_SECTIONS = (
    ("Feature quality", "feature_score", "Number and strength of detectable feature points"),
    ("Uniqueness", "uniqueness_score", "Distinctiveness of local image patterns"),
    ("Texture", "texture_score", "Level of detail and complexity in the image"),
    ("Contrast", "contrast_score", "Difference between light and dark regions"),
    ("Predicted stability", "stability_score", "Expected stability during live tracking"),
)


def generate_detailed_report(quality: TrackingQuality) -> str:
    """Render a plain-text report with a grade for every score."""
    lines = [
        "=== AR Tracking Quality Report ===",
        "",
        f"Overall: {quality.overall}/100 ({grade_for_score(quality.overall)})",
        "",
        "Scores:",
    ]
    for label, attr, description in _REPORT_SECTIONS:
        score = getattr(quality, attr)
        lines.append(f"- {label}: {score}/100 ({grade_for_score(score)})")
        lines.append(f"  {description}")
        lines.append("")

    lines.append("Recommendations:")
    if quality.recommendations:
        lines.extend(f"* {item}" for item in quality.recommendations)
    else:
        lines.append("* none")
    lines.append("")

    lines.append("Verdict:")
    if quality.overall >= SUITABLE_OVERALL:
        lines.append("This image is suitable for AR tracking.")
    else:
        lines.append("Consider the recommendations above to improve tracking quality.")
    return "\n".join(lines)


class TrackingEvaluator:
    """Scores how reliably a marker image will track in a live AR session."""

    def evaluate(self, raster: RasterImage, features: Iterable[Feature]) -> TrackingQuality:
        gray = raster.to_grayscale()
        features = list(features)
        height, width = gray.shape

        statistics = compute_statistics(gray)
        distribution_score = self.distribution_score(features)
        strength_score = self.strength_score(features)
        uniqueness_score = self.uniqueness_score(gray)

        count = len(features)
        feature_score = min(count / FEATURE_COUNT_DIVISOR + strength_score * FEATURE_STRENGTH_WEIGHT, 100)
        texture_score = min(statistics.entropy * ENTROPY_SCALE, 100)
        contrast_score = min(statistics.contrast * 100, 100)
        stability_score = self.stability_score(count, statistics, distribution_score)

        raw = {
            "feature_score": feature_score,
            "uniqueness_score": uniqueness_score,
            "texture_score": texture_score,
            "contrast_score": contrast_score,
            "stability_score": stability_score,
        }
        overall = _round_half_up(sum(raw[name] * weight for name, weight in OVERALL_WEIGHTS.items()))

        quality = TrackingQuality(
            overall=min(max(overall, 0), 100),
            **{name: _round_half_up(value) for name, value in raw.items()},
        )
        quality.recommendations = self.recommendations(quality)

        LOGGER.debug(
            "Evaluated %dx%d image with %d features: overall=%d entropy=%.3f contrast=%.3f",
            width,
            height,
            count,
            quality.overall,
            statistics.entropy,
            statistics.contrast,
        )
        return quality

    # ------------------------------------------------------------------ #
    # Component scores
    # ------------------------------------------------------------------ #
    @staticmethod
    def distribution_score(features: Sequence[Feature]) -> float:
        """Grid coverage and evenness of the features, 0-100."""
        if not features:
            return 0.0

        grid = _feature_grid(features)
        cells = grid.size
        coverage = np.count_nonzero(grid) / cells
        max_count = int(grid.max())
        if max_count > 0:
            uniformity = 1 - (max_count - len(features) / cells) / max_count
        else:
            uniformity = 0.0
        return (coverage * COVERAGE_WEIGHT + uniformity * UNIFORMITY_WEIGHT) * 100

    @staticmethod
    def strength_score(features: Sequence[Feature]) -> float:
        """Blend of mean strength and mean top-quartile strength, 0-100."""
        if not features:
            return 0.0

        strengths = sorted((f.strength for f in features), reverse=True)
        average = sum(strengths) / len(strengths)
        top = strengths[:max(1, math.floor(len(strengths) * TOP_FRACTION))]
        top_average = sum(top) / len(top)
        return min((average * AVERAGE_STRENGTH_WEIGHT + top_average * TOP_STRENGTH_WEIGHT) * 100, 100)

    @staticmethod
    def uniqueness_score(gray: np.ndarray) -> float:
        """Share of distinct quantized 16x16 patches, 0-100."""
        height, width = gray.shape
        theoretical_max = (width // PATCH_STEP) * (height // PATCH_STEP)
        if theoretical_max == 0:
            return 0.0

        levels = gray // INTENSITY_BUCKET
        patterns = set()
        for y in range(0, height - PATCH_SIZE, PATCH_STEP):
            for x in range(0, width - PATCH_SIZE, PATCH_STEP):
                patch = levels[y:y + PATCH_SIZE:PATCH_SAMPLE_STEP, x:x + PATCH_SIZE:PATCH_SAMPLE_STEP]
                patterns.add(patch.tobytes())

        return min(len(patterns) / theoretical_max, 1) * 100

    @staticmethod
    def stability_score(count: int, statistics: ImageStatistics, distribution_score: float) -> float:
        """Predicted live-tracking stability, 0-100."""
        count_factor = min(count / STABILITY_COUNT_NORM, 1) * STABILITY_COUNT_WEIGHT
        contrast_factor = statistics.contrast * STABILITY_CONTRAST_WEIGHT
        entropy_factor = min(statistics.entropy / STABILITY_ENTROPY_NORM, 1) * STABILITY_ENTROPY_WEIGHT
        distribution_factor = distribution_score * STABILITY_DISTRIBUTION_WEIGHT
        return min(count_factor + contrast_factor + entropy_factor + distribution_factor, 100)

    @staticmethod
    def recommendations(quality: TrackingQuality) -> List[str]:
        advice = []
        if quality.feature_score < MIN_FEATURE_SCORE:
            advice.append(RECOMMEND_FEATURES)
        if quality.contrast_score < MIN_CONTRAST_SCORE:
            advice.append(RECOMMEND_CONTRAST)
        if quality.texture_score < MIN_TEXTURE_SCORE:
            advice.append(RECOMMEND_TEXTURE)
        if quality.uniqueness_score < MIN_UNIQUENESS_SCORE:
            advice.append(RECOMMEND_UNIQUENESS)
        if quality.stability_score < MIN_STABILITY_SCORE:
            advice.append(RECOMMEND_STABILITY)

        if not advice and quality.overall > EXCELLENT_OVERALL:
            advice.append(RECOMMEND_EXCELLENT)
        return advice

    def generate_detailed_report(self, quality: TrackingQuality) -> str:
        return generate_detailed_report(quality)
