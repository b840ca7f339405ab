#Code by Christopher Kaelin, 2025
# This code is licensed under the MIT License - see the LICENSE file for details.
'''
Bag of Visual Words retrieval of 3D models from hand-drawn sketches.
Sketch -> Gabor grid features -> visual words -> term histogram -> nearest TF-IDF view -> model.
'''
from collections import namedtuple

import cv2
import numpy as np

from sketch_bovw import config
from sketch_bovw.errors import ConfigurationError, DimensionMismatchError, ImageLoadError
from sketch_bovw.Filter_bank import FilterBank
from sketch_bovw.Gabor_extract import extract_features
from sketch_bovw.Histogram_creation import generate_bovw_histogram
from sketch_bovw.Label_map import load_view_model_map, model_path
from sketch_bovw.tfidf_retrieval import DocumentIndex
from sketch_bovw.Vocabulary import Vocabulary

RetrievalResult = namedtuple('RetrievalResult', ['view_index', 'model_id', 'similarity', 'model_path'])


def load_sketch(path):
    '''Reads an image file as a float32 grayscale array.'''
    image = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if image is None:
        raise ImageLoadError(f"Could not read image: {path}")
    return image.astype(np.float32)


class SketchRetriever:
    """
    Holds the vocabulary, the document index and the view labels for the life of the process
    and answers one sketch query at a time.

    All consistency checks run here, before any query: the feature dimension
    (window_size**2 * k) must equal the vocabulary dimension, the index must have one
    weight per visual word, and the label file must cover exactly the indexed views.
    """

    def __init__(self, vocabulary, index, view_map, filter_bank=None, point_per_row=config.POINT_PER_ROW,
                 window_size=config.WINDOW_SIZE, n_jobs=config.N_JOBS, model_dir=config.MODEL_DIR, verbose=True):
        if filter_bank is None:
            filter_bank = FilterBank()
        if point_per_row <= 0 or window_size <= 0:
            raise ConfigurationError(
                f"point_per_row and window_size must be positive, got {point_per_row} and {window_size}")

        feature_dim = window_size * window_size * filter_bank.k
        if feature_dim != vocabulary.dim:
            raise DimensionMismatchError(
                f"Features have {feature_dim} values ({window_size}x{window_size}x{filter_bank.k}) "
                f"but the vocabulary dimension is {vocabulary.dim}")
        if index.word_count != vocabulary.center_count:
            raise DimensionMismatchError(
                f"Document index has {index.word_count} words, vocabulary has {vocabulary.center_count} centers")
        if view_map.total_views != index.view_count:
            raise ConfigurationError(
                f"Label file declares {view_map.total_views} views, document index holds {index.view_count}")

        self.vocabulary = vocabulary
        self.index = index
        self.view_map = view_map
        self.filter_bank = filter_bank
        self.point_per_row = point_per_row
        self.window_size = window_size
        self.n_jobs = n_jobs
        self.model_dir = model_dir
        self.verbose = verbose

    @classmethod
    def from_files(cls, vocabulary_path, index_path, label_path, verbose=True, **kwargs):
        '''Loads the three persisted inputs once and builds a retriever.'''
        missing = [name for name, path in (('dictionary', vocabulary_path), ('database', index_path),
                                           ('labels', label_path)) if not path]
        if missing:
            raise ConfigurationError(f"Missing required file path(s): {', '.join(missing)}")

        vocabulary = Vocabulary.load(vocabulary_path, verbose=verbose)
        index = DocumentIndex.load(index_path, center_count=vocabulary.center_count, verbose=verbose)
        view_map = load_view_model_map(label_path, verbose=verbose)
        return cls(vocabulary, index, view_map, verbose=verbose, **kwargs)

    @property
    def feature_count(self):
        return self.point_per_row * self.point_per_row

    def features(self, image):
        return extract_features(image, self.filter_bank, self.point_per_row, self.window_size, n_jobs=self.n_jobs)

    def word_histogram(self, image):
        '''Term-frequency vector of a sketch; sums to point_per_row**2.'''
        return generate_bovw_histogram(self.features(image), self.vocabulary, n_jobs=self.n_jobs)

    def retrieve(self, image):
        counts = self.word_histogram(image)
        view_index, similarity = self.index.find_nearest(counts, n_jobs=self.n_jobs)
        model_id = self.view_map.resolve(view_index)
        if self.verbose:
            print(f"Matched view {view_index} (similarity {similarity:.4f}) -> model {model_id}")
        return RetrievalResult(view_index, model_id, similarity, model_path(model_id, self.model_dir))

    def retrieve_file(self, path):
        if self.verbose:
            print(f"Loading sketch from: {path}")
        return self.retrieve(load_sketch(path))
