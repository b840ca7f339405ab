#Code by Christopher Kaelin, 2025
# This code is licensed under the MIT License - see the LICENSE file for details.
'''
Dense Gabor features sampled on a fixed point grid.
Each grid point yields one feature vector: a window_size x window_size patch from every
filtered image, orientation-major, then row-major, column-minor.
'''
import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from sketch_bovw import config
from sketch_bovw.errors import ConfigurationError
from sketch_bovw.Filter_bank import FilterBank


def grid_steps(image_shape, point_per_row=config.POINT_PER_ROW, window_size=config.WINDOW_SIZE):
    """
    Row and column step between sample points.
    Steps are floor divisions of (dimension - window_size) by point_per_row, so the last
    samples may stop short of the image edge.
    """
    if point_per_row <= 0:
        raise ConfigurationError(f"point_per_row must be positive, got {point_per_row}")
    if window_size <= 0:
        raise ConfigurationError(f"window_size must be positive, got {window_size}")

    rows, cols = image_shape[:2]
    if window_size > rows or window_size > cols:
        raise ConfigurationError(f"window_size {window_size} exceeds image size {rows}x{cols}")

    row_step = (rows - window_size) // point_per_row
    col_step = (cols - window_size) // point_per_row
    if row_step <= 0 or col_step <= 0:
        raise ConfigurationError(
            f"Degenerate grid for image {rows}x{cols}: {point_per_row} points per row "
            f"with window {window_size} gives steps ({row_step}, {col_step})")
    return row_step, col_step


def extract_grid_features(filtered_images, point_per_row=config.POINT_PER_ROW, window_size=config.WINDOW_SIZE):
    '''Returns a (point_per_row**2, window_size**2 * k) float32 feature matrix.'''
    if len(filtered_images) == 0:
        raise ConfigurationError("No filtered images to sample from")
    shapes = {np.shape(img) for img in filtered_images}
    if len(shapes) != 1:
        raise ConfigurationError(f"Filtered images differ in shape: {sorted(shapes)}")

    stack = np.stack([np.asarray(img, dtype=np.float32) for img in filtered_images])  # (k, H, W)
    if stack.ndim != 3:
        raise ConfigurationError(f"Filtered images must be 2-D, got shape {stack.shape[1:]}")

    row_step, col_step = grid_steps(stack.shape[1:], point_per_row, window_size)
    rows = np.arange(point_per_row) * row_step
    cols = np.arange(point_per_row) * col_step

    # windows[d, i, j] is the patch of orientation d whose top-left corner is (i, j)
    windows = sliding_window_view(stack, (window_size, window_size), axis=(1, 2))
    patches = windows[:, rows][:, :, cols]                 # (k, P, P, w, w)
    patches = patches.transpose(1, 2, 0, 3, 4)             # (P, P, k, w, w)
    k = stack.shape[0]
    return np.ascontiguousarray(patches.reshape(point_per_row * point_per_row, k * window_size * window_size))


def extract_features(image, filter_bank=None, point_per_row=config.POINT_PER_ROW,
                     window_size=config.WINDOW_SIZE, n_jobs=config.N_JOBS):
    '''Filters a grayscale image with the bank and samples the grid features.'''
    if filter_bank is None:
        filter_bank = FilterBank()
    # Reject a degenerate grid before paying for the convolutions
    grid_steps(np.shape(image), point_per_row, window_size)
    filtered = filter_bank.apply(image, n_jobs=n_jobs)
    return extract_grid_features(filtered, point_per_row, window_size)
