"""
Tests for tracking-quality evaluation.
"""

import os
import sys
import unittest

import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))
sys.path.append(os.path.dirname(__file__))

from trackability.detection import Feature, detect_features  # type: ignore
from trackability.evaluator import (  # type: ignore
    RECOMMEND_CONTRAST,
    RECOMMEND_EXCELLENT,
    RECOMMEND_FEATURES,
    RECOMMEND_STABILITY,
    RECOMMEND_TEXTURE,
    RECOMMEND_UNIQUENESS,
    ImageStatistics,
    TrackingEvaluator,
    TrackingQuality,
    compute_statistics,
    generate_detailed_report,
    grade_for_score,
    summarize_distribution,
)
from trackability.raster import InvalidDimensionsError, RasterImage  # type: ignore
from synthetic import feature_rich_image, noise_raster, solid_raster  # type: ignore


def grid_features(per_axis=8, strength=0.5):
    """One feature in the centre of every distribution cell."""
    step = 1.0 / per_axis
    return [
        Feature((col + 0.5) * step, (row + 0.5) * step, strength=strength)
        for row in range(per_axis)
        for col in range(per_axis)
    ]


class TestImageStatistics(unittest.TestCase):
    """Global statistics of the grayscale image."""

    def test_two_level_image(self):
        gray = np.array([[0, 0], [255, 255]], dtype=np.uint8)
        stats = compute_statistics(gray)

        self.assertAlmostEqual(stats.mean, 127.5)
        self.assertAlmostEqual(stats.std, 127.5)
        self.assertAlmostEqual(stats.entropy, 1.0)
        self.assertAlmostEqual(stats.contrast, 1.0)
        self.assertEqual(len(stats.histogram), 256)
        self.assertEqual(stats.histogram[0], 2)
        self.assertEqual(stats.histogram[255], 2)

    def test_uniform_image(self):
        stats = compute_statistics(np.full((10, 10), 77, dtype=np.uint8))
        self.assertEqual(stats.mean, 77.0)
        self.assertEqual(stats.std, 0.0)
        self.assertEqual(stats.entropy, 0.0)
        self.assertEqual(stats.contrast, 0.0)

    def test_histogram_sums_to_pixel_count(self):
        rng = np.random.default_rng(12)
        gray = rng.integers(0, 256, (37, 23), dtype=np.uint8)
        stats = compute_statistics(gray)
        self.assertEqual(sum(stats.histogram), 37 * 23)
        self.assertAlmostEqual(stats.std, float(gray.std()))

    def test_michelson_contrast(self):
        gray = np.array([[50, 150]], dtype=np.uint8)
        self.assertAlmostEqual(compute_statistics(gray).contrast, 0.5)

    def test_empty_image_rejected(self):
        with self.assertRaises(ValueError):
            compute_statistics(np.zeros((0, 0), dtype=np.uint8))


class TestComponentScores(unittest.TestCase):
    """Individual sub-scores."""

    def test_distribution_single_cell(self):
        features = [Feature(0.01, 0.01, strength=0.5)] * 4
        self.assertAlmostEqual(TrackingEvaluator.distribution_score(features), 100 / 64)

    def test_distribution_full_grid(self):
        self.assertAlmostEqual(TrackingEvaluator.distribution_score(grid_features()), 100.0)

    def test_distribution_edge_coordinates_clamped(self):
        features = [Feature(1.0, 1.0), Feature(0.0, 0.0)]
        score = TrackingEvaluator.distribution_score(features)
        # (1.0, 1.0) lands in the last cell rather than past it
        self.assertAlmostEqual(score, (2 / 64 * 0.6 + 2 / 64 * 0.4) * 100)

    def test_strength_score(self):
        features = [Feature(0.1, 0.1, strength=s) for s in (0.5, 1.0, 0.0, 0.5)]
        self.assertAlmostEqual(TrackingEvaluator.strength_score(features), 80.0)

    def test_strength_score_single_feature(self):
        self.assertAlmostEqual(TrackingEvaluator.strength_score([Feature(0.5, 0.5, strength=0.3)]), 30.0)

    def test_no_features_score_zero(self):
        self.assertEqual(TrackingEvaluator.distribution_score([]), 0.0)
        self.assertEqual(TrackingEvaluator.strength_score([]), 0.0)

    def test_uniqueness_uniform_image(self):
        gray = np.full((64, 64), 10, dtype=np.uint8)
        self.assertAlmostEqual(TrackingEvaluator.uniqueness_score(gray), 100 / 64)

    def test_uniqueness_small_image(self):
        self.assertEqual(TrackingEvaluator.uniqueness_score(np.zeros((7, 40), dtype=np.uint8)), 0.0)

    def test_uniqueness_random_windows_distinct(self):
        rng = np.random.default_rng(6)
        gray = rng.integers(0, 256, (64, 64), dtype=np.uint8)
        score = TrackingEvaluator.uniqueness_score(gray)
        # 6x6 window origins fit in 64x64, against a theoretical 8x8
        self.assertAlmostEqual(score, 36 / 64 * 100)

    def test_stability_score(self):
        stats = ImageStatistics(mean=0, std=0, entropy=3.5, contrast=0.4)
        score = TrackingEvaluator.stability_score(50, stats, 40.0)
        self.assertAlmostEqual(score, 15 + 10 + 10 + 10)
        capped = TrackingEvaluator.stability_score(1000, ImageStatistics(0, 0, 8, 1.0), 100)
        self.assertEqual(capped, 100)


class TestRecommendations(unittest.TestCase):
    """Recommendation rules and ordering."""

    def make_quality(self, score, overall):
        return TrackingQuality(
            overall=overall,
            feature_score=score,
            uniqueness_score=score,
            texture_score=score,
            contrast_score=score,
            stability_score=score,
        )

    def test_all_rules_in_order(self):
        advice = TrackingEvaluator.recommendations(self.make_quality(10, 10))
        self.assertEqual(
            advice,
            [
                RECOMMEND_FEATURES,
                RECOMMEND_CONTRAST,
                RECOMMEND_TEXTURE,
                RECOMMEND_UNIQUENESS,
                RECOMMEND_STABILITY,
            ],
        )

    def test_positive_message(self):
        self.assertEqual(TrackingEvaluator.recommendations(self.make_quality(90, 90)), [RECOMMEND_EXCELLENT])

    def test_no_message_at_eighty(self):
        self.assertEqual(TrackingEvaluator.recommendations(self.make_quality(80, 80)), [])

    def test_thresholds_are_strict(self):
        quality = TrackingQuality(
            overall=70,
            feature_score=50,
            uniqueness_score=50,
            texture_score=40,
            contrast_score=40,
            stability_score=59,
        )
        self.assertEqual(TrackingEvaluator.recommendations(quality), [RECOMMEND_STABILITY])


class TestTrackingEvaluator(unittest.TestCase):
    """End-to-end evaluation."""

    def setUp(self):
        self.evaluator = TrackingEvaluator()

    def test_solid_gray(self):
        raster = solid_raster(256, 256, 128)
        features = detect_features(raster)
        quality = self.evaluator.evaluate(raster, features)

        self.assertEqual(features, [])
        self.assertEqual(quality.feature_score, 0)
        self.assertEqual(quality.contrast_score, 0)
        self.assertEqual(quality.texture_score, 0)
        self.assertLessEqual(quality.uniqueness_score, 1)
        self.assertLessEqual(quality.stability_score, 1)
        self.assertLessEqual(quality.overall, 5)
        self.assertIn(RECOMMEND_FEATURES, quality.recommendations)
        self.assertIn(RECOMMEND_CONTRAST, quality.recommendations)

    def test_random_noise(self):
        raster = noise_raster(256, 256)
        features = detect_features(raster)
        quality = self.evaluator.evaluate(raster, features)

        self.assertGreater(len(features), 100)
        self.assertGreaterEqual(quality.texture_score, 95)
        self.assertGreaterEqual(quality.contrast_score, 90)
        self.assertEqual(quality.feature_score, 100)
        self.assertGreater(quality.overall, 70)

    def test_zero_features_full_report(self):
        raster = RasterImage.from_array(feature_rich_image())
        quality = self.evaluator.evaluate(raster, [])

        self.assertEqual(quality.feature_score, 0)
        self.assertGreater(quality.texture_score, 0)
        self.assertIn(RECOMMEND_FEATURES, quality.recommendations)
        self.assertTrue(0 <= quality.overall <= 100)

    def test_scores_are_bounded_integers(self):
        rasters = [
            solid_raster(16, 16, 0),
            solid_raster(40, 24, 255),
            noise_raster(48, 32, seed=1),
            RasterImage.from_array(feature_rich_image()),
        ]
        for raster in rasters:
            quality = self.evaluator.evaluate(raster, detect_features(raster))
            for value in (
                quality.overall,
                quality.feature_score,
                quality.uniqueness_score,
                quality.texture_score,
                quality.contrast_score,
                quality.stability_score,
            ):
                self.assertIsInstance(value, int)
                self.assertTrue(0 <= value <= 100)

    def test_idempotent(self):
        raster = RasterImage.from_array(feature_rich_image())
        features = detect_features(raster)
        first = self.evaluator.evaluate(raster, features)
        second = self.evaluator.evaluate(raster, features)
        self.assertEqual(first, second)

    def test_uniform_grid_features(self):
        raster = noise_raster(64, 64, seed=4)
        quality = self.evaluator.evaluate(raster, grid_features(strength=1.0))
        # 64 / 3 + 100 * 0.5
        self.assertEqual(quality.feature_score, 71)

    def test_invalid_raster(self):
        with self.assertRaises(InvalidDimensionsError):
            self.evaluator.evaluate(RasterImage(width=3, height=3, data=bytes(35)), [])

    def test_to_dict(self):
        quality = self.evaluator.evaluate(solid_raster(32, 32), [])
        data = quality.to_dict()
        self.assertEqual(data["overall"], quality.overall)
        self.assertEqual(data["recommendations"], quality.recommendations)


class TestReporting(unittest.TestCase):
    """Grades, distribution summary and detailed report."""

    def test_grades(self):
        self.assertEqual(grade_for_score(95), "Excellent")
        self.assertEqual(grade_for_score(90), "Excellent")
        self.assertEqual(grade_for_score(75), "Good")
        self.assertEqual(grade_for_score(60), "Fair")
        self.assertEqual(grade_for_score(40), "Poor")
        self.assertEqual(grade_for_score(39), "Very Poor")

    def test_summarize_distribution(self):
        summary = summarize_distribution(grid_features())
        self.assertAlmostEqual(summary.coverage, 100.0)
        self.assertAlmostEqual(summary.uniformity, 1.0)
        self.assertEqual(len(summary.grid), 8)
        self.assertEqual(sum(map(sum, summary.grid)), 64)

        empty = summarize_distribution([])
        self.assertEqual(empty.coverage, 0.0)
        self.assertEqual(empty.uniformity, 0.0)

    def test_summarize_uneven_distribution(self):
        features = [Feature(0.05, 0.05)] * 4 + [Feature(0.95, 0.95)]
        summary = summarize_distribution(features)
        self.assertAlmostEqual(summary.coverage, 2 / 64 * 100)
        self.assertAlmostEqual(summary.uniformity, 0.25)

    def test_detailed_report(self):
        quality = TrackingQuality(
            overall=82,
            feature_score=91,
            uniqueness_score=77,
            texture_score=65,
            contrast_score=45,
            stability_score=20,
            recommendations=[RECOMMEND_STABILITY],
        )
        report = generate_detailed_report(quality)

        self.assertIn("Overall: 82/100 (Good)", report)
        self.assertIn("Feature quality: 91/100 (Excellent)", report)
        self.assertIn("Uniqueness: 77/100 (Good)", report)
        self.assertIn("Texture: 65/100 (Fair)", report)
        self.assertIn("Contrast: 45/100 (Poor)", report)
        self.assertIn("Predicted stability: 20/100 (Very Poor)", report)
        self.assertIn(RECOMMEND_STABILITY, report)
        self.assertIn("suitable for AR tracking", report)
        self.assertEqual(TrackingEvaluator().generate_detailed_report(quality), report)

    def test_report_for_poor_image(self):
        quality = TrackingEvaluator().evaluate(solid_raster(32, 32), [])
        report = generate_detailed_report(quality)
        self.assertIn("Consider the recommendations above", report)


if __name__ == "__main__":
    unittest.main()
