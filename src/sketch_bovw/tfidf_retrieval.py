#Code by Christopher Kaelin, 2025
# This code is licensed under the MIT License - see the LICENSE file for details.
'''
TF-IDF document index over rendered model views and the nearest-view lookup.

Index file (HDF5):
    attrs   format="sketch-bovw-tfidf", format_version=1, weighting="tfidf-smooth-l2"
    idf     float32 (center_count,)
    weights float32 (view_count, center_count)

Weighting, fixed by the offline builder and applied again to every query:
    idf_j = ln((1 + n_views) / (1 + df_j)) + 1
    w     = l2_normalize(counts * idf)
This is sklearn's TfidfTransformer(norm='l2', smooth_idf=True, sublinear_tf=False).
Views are compared by cosine similarity, i.e. the dot product of the normalized vectors.
'''
import os
import h5py
import numpy as np
from joblib import Parallel, delayed, effective_n_jobs
from sklearn.feature_extraction.text import TfidfTransformer
from sklearn.preprocessing import normalize

from sketch_bovw import config
from sketch_bovw.errors import ConfigurationError, DimensionMismatchError, EmptyCorpusError, IndexFormatError


def _scores(weights, query):
    # A row's score depends only on that row, so identical views always score identically
    return np.multiply(weights, query, dtype=np.float64).sum(axis=1)


def _best_in_block(weights, query, start, stop):
    scores = _scores(weights[start:stop], query)
    local = int(np.argmax(scores))  # first maximum wins inside the block
    return float(scores[local]), start + local


class DocumentIndex:
    """
    Weighted view vectors plus the corpus IDF needed to weigh a query the same way.

    Args:
        weights: (view_count, center_count) L2-normalized TF-IDF vectors
        idf: (center_count,) inverse document frequencies
    """

    def __init__(self, weights, idf):
        weights = np.array(weights, dtype=np.float32)
        idf = np.array(idf, dtype=np.float64)
        if idf.ndim != 1 or idf.shape[0] == 0:
            raise ConfigurationError(f"idf must be a non-empty vector, got shape {idf.shape}")
        if weights.ndim == 1 and weights.size == 0:
            weights = weights.reshape(0, idf.shape[0])
        if weights.ndim != 2:
            raise ConfigurationError(f"weights must be a 2-D matrix, got shape {weights.shape}")
        if weights.shape[1] != idf.shape[0]:
            raise DimensionMismatchError(
                f"weights have {weights.shape[1]} words per view but idf has {idf.shape[0]}")
        weights.setflags(write=False)
        idf.setflags(write=False)
        self._weights = weights
        self._idf = idf

    @property
    def weights(self):
        return self._weights

    @property
    def idf(self):
        return self._idf

    @property
    def view_count(self):
        return self._weights.shape[0]

    @property
    def word_count(self):
        return self._idf.shape[0]

    def __len__(self):
        return self.view_count

    def __repr__(self):
        return f"DocumentIndex(view_count={self.view_count}, word_count={self.word_count})"

    # --- Query ---
    def weigh(self, counts):
        '''Turns a raw word count vector into its L2-normalized TF-IDF vector.'''
        counts = np.asarray(counts, dtype=np.float64)
        if counts.ndim != 1:
            raise ConfigurationError(f"Expected a 1-D count vector, got shape {counts.shape}")
        if counts.shape[0] != self.word_count:
            raise DimensionMismatchError(
                f"Query has {counts.shape[0]} words, index expects {self.word_count}")
        # normalize() leaves an all-zero vector as zeros
        return normalize((counts * self._idf).reshape(1, -1), norm='l2')[0]

    def similarities(self, counts):
        '''Cosine similarity of the query against every stored view.'''
        if self.view_count == 0:
            raise EmptyCorpusError("Document index holds no views")
        return _scores(self._weights, self.weigh(counts))

    def find_nearest(self, counts, n_jobs=config.N_JOBS):
        """
        Linear scan for the most similar view.

        Returns (view_index, similarity). Ties go to the lowest view index; with several workers the
        corpus is split into contiguous blocks and the block winners are reduced on (-similarity, index),
        so the answer does not depend on the partitioning.
        """
        if self.view_count == 0:
            raise EmptyCorpusError("Document index holds no views")
        query = self.weigh(counts)

        blocks = min(self.view_count, max(1, effective_n_jobs(n_jobs)))
        bounds = np.linspace(0, self.view_count, blocks + 1).astype(int)
        spans = [(int(start), int(stop)) for start, stop in zip(bounds[:-1], bounds[1:]) if stop > start]

        if len(spans) == 1:
            winners = [_best_in_block(self._weights, query, *spans[0])]
        else:
            winners = Parallel(n_jobs=n_jobs, prefer="threads")(
                delayed(_best_in_block)(self._weights, query, start, stop) for start, stop in spans)

        similarity, view_index = min(winners, key=lambda w: (-w[0], w[1]))
        return view_index, similarity

    # --- Offline builder contract ---
    @classmethod
    def from_term_counts(cls, term_counts):
        '''Builds an index from a (view_count, center_count) matrix of raw word counts.'''
        term_counts = np.asarray(term_counts, dtype=np.float64)
        if term_counts.ndim != 2 or term_counts.shape[0] == 0 or term_counts.shape[1] == 0:
            raise ConfigurationError(f"Need a non-empty (views, words) count matrix, got shape {term_counts.shape}")
        if np.any(term_counts < 0):
            raise ConfigurationError("Term counts must be non-negative")

        transformer = TfidfTransformer(norm='l2', use_idf=True, smooth_idf=True, sublinear_tf=False)
        weights = transformer.fit_transform(term_counts)
        if hasattr(weights, 'toarray'):  # sparse result
            weights = weights.toarray()
        return cls(weights, transformer.idf_)

    def save(self, path):
        directory = os.path.dirname(os.fspath(path))
        if directory:
            os.makedirs(directory, exist_ok=True)
        with h5py.File(path, 'w') as hf:
            hf.attrs['format'] = config.INDEX_FORMAT
            hf.attrs['format_version'] = config.INDEX_FORMAT_VERSION
            hf.attrs['weighting'] = config.INDEX_WEIGHTING
            hf.create_dataset('idf', data=self._idf.astype(np.float32))
            hf.create_dataset('weights', data=self._weights)

    @classmethod
    def load(cls, path, center_count=None, verbose=True):
        '''
        Reads an index file written by save() or the offline builder.
        center_count, when given, must equal the index's word count.
        '''
        if not path:
            raise ConfigurationError("Missing document index file path")
        if verbose:
            print(f"Loading TF-IDF index from: {path}")
        if not os.path.isfile(path):
            raise IndexFormatError(f"Document index file not found: {path}")

        try:
            with h5py.File(path, 'r') as hf:
                fmt = hf.attrs.get('format')
                version = hf.attrs.get('format_version')
                weighting = hf.attrs.get('weighting')
                if isinstance(fmt, bytes):
                    fmt = fmt.decode()
                if isinstance(weighting, bytes):
                    weighting = weighting.decode()
                if fmt != config.INDEX_FORMAT:
                    raise IndexFormatError(f"{path} is not a {config.INDEX_FORMAT} file (format={fmt!r})")
                if version is None or int(version) != config.INDEX_FORMAT_VERSION:
                    raise IndexFormatError(
                        f"{path} has format_version {version}, expected {config.INDEX_FORMAT_VERSION}")
                if weighting != config.INDEX_WEIGHTING:
                    raise IndexFormatError(f"{path} uses weighting {weighting!r}, expected {config.INDEX_WEIGHTING!r}")
                if 'idf' not in hf or 'weights' not in hf:
                    raise IndexFormatError(f"{path} is missing the 'idf' or 'weights' dataset")
                idf = hf['idf'][()]
                weights = hf['weights'][()]
        except IndexFormatError:
            raise
        except OSError as e:
            raise IndexFormatError(f"Cannot read document index {path}: {e}") from e

        try:
            index = cls(weights, idf)
        except ConfigurationError as e:
            raise IndexFormatError(f"Corrupt document index {path}: {e}") from e

        if center_count is not None and index.word_count != center_count:
            raise DimensionMismatchError(
                f"Document index has {index.word_count} words, vocabulary has {center_count} centers")
        if verbose:
            print(f"  Loaded {index.view_count} views x {index.word_count} words")
        return index
