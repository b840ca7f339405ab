"""
Tests for grid sampling of Gabor responses.

Run with: pytest tests/test_gabor_extract.py -v
"""

import numpy as np
import pytest

from sketch_bovw.errors import ConfigurationError
from sketch_bovw.Filter_bank import FilterBank
from sketch_bovw.Gabor_extract import extract_features, extract_grid_features, grid_steps


def coded_images(k, rows, cols):
    """Filtered stand-ins whose pixel value encodes (orientation, row, col)."""
    r, c = np.mgrid[0:rows, 0:cols]
    return [(d * 100000 + r * 1000 + c).astype(np.float32) for d in range(k)]


# =============================================================================
# GRID STEPS
# =============================================================================

class TestGridSteps:

    def test_reference_geometry(self):
        assert grid_steps((280, 280), 28, 8) == (9, 9)

    def test_non_square_image(self):
        assert grid_steps((100, 200), 4, 4) == (24, 49)

    def test_window_larger_than_image(self):
        with pytest.raises(ConfigurationError):
            grid_steps((10, 40), 2, 12)

    def test_zero_step_rejected(self):
        with pytest.raises(ConfigurationError):
            grid_steps((10, 10), 3, 8)

    @pytest.mark.parametrize("points,window", [(0, 8), (-2, 8), (4, 0)])
    def test_non_positive_parameters(self, points, window):
        with pytest.raises(ConfigurationError):
            grid_steps((100, 100), points, window)


# =============================================================================
# FEATURE LAYOUT
# =============================================================================

class TestExtractGridFeatures:

    def test_layout_orientation_row_column(self):
        k, rows, cols, points, window = 2, 20, 30, 2, 3
        images = coded_images(k, rows, cols)
        features = extract_grid_features(images, points, window)

        row_step, col_step = grid_steps((rows, cols), points, window)
        expected = []
        for i in range(points):
            for j in range(points):
                y, x = i * row_step, j * col_step
                vector = []
                for d in range(k):
                    for u in range(window):
                        for v in range(window):
                            vector.append(images[d][y + u, x + v])
                expected.append(vector)

        np.testing.assert_array_equal(features, np.array(expected, dtype=np.float32))

    def test_specific_entries(self):
        features = extract_grid_features(coded_images(2, 20, 30), 2, 3)
        # Second point sits at (0, 13)
        assert features[1, 0] == 13
        assert features[1, 3] == 1013
        assert features[1, 9] == 100013

    def test_inexact_division_stops_short_of_edge(self):
        images = coded_images(1, 23, 23)
        features = extract_grid_features(images, 4, 3)
        assert features.shape == (16, 9)
        # Last sample starts at 15, its patch ends at row/col 17 < 22
        assert features[-1, -1] == 17 * 1000 + 17

    def test_mismatched_shapes_rejected(self):
        images = [np.zeros((20, 20), np.float32), np.zeros((20, 21), np.float32)]
        with pytest.raises(ConfigurationError):
            extract_grid_features(images, 2, 3)

    def test_no_images_rejected(self):
        with pytest.raises(ConfigurationError):
            extract_grid_features([], 2, 3)

    def test_output_is_contiguous_float32(self):
        features = extract_grid_features(coded_images(3, 30, 30), 3, 4)
        assert features.dtype == np.float32
        assert features.flags['C_CONTIGUOUS']


# =============================================================================
# FULL EXTRACTION
# =============================================================================

class TestExtractFeatures:

    def test_reference_scenario_280(self):
        rng = np.random.default_rng(1)
        image = rng.uniform(0, 255, (280, 280)).astype(np.float32)
        features = extract_features(image, FilterBank(k=8), point_per_row=28, window_size=8)
        assert features.shape == (784, 512)

    def test_default_bank_is_built_when_missing(self):
        image = np.zeros((60, 60), np.float32)
        features = extract_features(image, None, point_per_row=4, window_size=8)
        assert features.shape == (16, 8 * 8 * 8)

    def test_degenerate_grid_rejected_before_filtering(self):
        class ExplodingBank:
            k = 2

            def apply(self, image, n_jobs=1):
                raise AssertionError("filters should not run")

        with pytest.raises(ConfigurationError):
            extract_features(np.zeros((10, 10)), ExplodingBank(), point_per_row=28, window_size=8)

    def test_parallel_filters_same_features(self):
        rng = np.random.default_rng(2)
        image = rng.uniform(0, 255, (64, 64)).astype(np.float32)
        bank = FilterBank(k=4, kernel_size=7)
        a = extract_features(image, bank, 6, 5, n_jobs=1)
        b = extract_features(image, bank, 6, 5, n_jobs=2)
        np.testing.assert_array_equal(a, b)
