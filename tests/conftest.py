"""
Shared fixtures: a tiny synthetic gallery small enough to run the whole pipeline in tests.
"""

import numpy as np
import pytest

from sketch_bovw.Filter_bank import FilterBank
from sketch_bovw.Gabor_extract import extract_features
from sketch_bovw.Histogram_creation import generate_bovw_histogram
from sketch_bovw.Label_map import ViewModelMap
from sketch_bovw.tfidf_retrieval import DocumentIndex
from sketch_bovw.Vocabulary import Vocabulary

SMALL_K = 2
SMALL_KERNEL = 5
SMALL_WINDOW = 4
SMALL_POINTS = 4
SMALL_SIDE = 40


def stripe_images(side=SMALL_SIDE):
    """Five distinct uint8 sketches: horizontal, vertical, diagonal, checker and blank."""
    r, c = np.mgrid[0:side, 0:side]
    patterns = [
        (r // 4) % 2 == 0,
        (c // 4) % 2 == 0,
        ((r + c) // 4) % 2 == 0,
        ((r // 4) + (c // 4)) % 2 == 0,
        np.zeros((side, side), dtype=bool),
    ]
    return [np.where(p, 255, 0).astype(np.uint8) for p in patterns]


def build_world(filter_bank, point_per_row, window_size):
    """
    Vocabulary, document index and view map built from stripe_images().
    Views 0-1 belong to model 7, views 2-4 to model 9.
    """
    images = stripe_images()
    features = [extract_features(img, filter_bank, point_per_row, window_size) for img in images]
    centers = np.vstack([f[[0, 5, 10, 15]] for f in features])
    vocabulary = Vocabulary(centers)

    counts = np.vstack([generate_bovw_histogram(f, vocabulary) for f in features])
    index = DocumentIndex.from_term_counts(counts)
    view_map = ViewModelMap([2, 3], model_ids=[7, 9])
    return {
        'filter_bank': filter_bank,
        'vocabulary': vocabulary,
        'index': index,
        'view_map': view_map,
        'images': images,
        'counts': counts,
        'point_per_row': point_per_row,
        'window_size': window_size,
    }


@pytest.fixture
def small_bank():
    return FilterBank(k=SMALL_K, kernel_size=SMALL_KERNEL)


@pytest.fixture
def small_world(small_bank):
    return build_world(small_bank, SMALL_POINTS, SMALL_WINDOW)
