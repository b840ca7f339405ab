#Code by Christopher Kaelin, 2025
# This code is licensed under the MIT License - see the LICENSE file for details.
# Term-frequency histograms over the visual word vocabulary.
import numpy as np

from sketch_bovw import config
from sketch_bovw.errors import ConfigurationError


def build_histogram(words, center_count):
    '''
    Counts word occurrences into a new zero-filled int64 vector of length center_count.
    The entries always sum to len(words).
    '''
    if center_count <= 0:
        raise ConfigurationError(f"center_count must be positive, got {center_count}")

    words = np.asarray(words)
    if words.size == 0:
        return np.zeros(center_count, dtype=np.int64)
    if words.ndim != 1 or not np.issubdtype(words.dtype, np.integer):
        raise ValueError(f"Expected a 1-D sequence of integer word indices, got {words.dtype} {words.shape}")
    if words.min() < 0 or words.max() >= center_count:
        raise ValueError(f"Word indices must lie in [0, {center_count}), got range [{words.min()}, {words.max()}]")

    return np.bincount(words.astype(np.int64), minlength=center_count).astype(np.int64)


def generate_bovw_histogram(features, vocabulary, n_jobs=config.N_JOBS):
    '''Quantizes an (F, dim) feature matrix and returns its word histogram.'''
    words = vocabulary.quantize(features, n_jobs=n_jobs)
    return build_histogram(words, vocabulary.center_count)
