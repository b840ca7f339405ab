#Code by Christopher Kaelin, 2025
# This code is licensed under the MIT License - see the LICENSE file for details.
'''
Visual word vocabulary: the k-means centers produced by the offline builder.
File layout (little-endian): int32 center_count, int32 dim, then center_count * dim float32 values, center-major.
'''
import os
import numpy as np
from joblib import Parallel, delayed

from sketch_bovw import config
from sketch_bovw.errors import ConfigurationError, DimensionMismatchError, VocabularyFormatError

HEADER_SIZE = 2 * config.VOCABULARY_HEADER_DTYPE.itemsize


def _nearest_block(centers, block):
    # Exact differences rather than the |x|^2 - 2xc + |c|^2 expansion keep ties and zero distances exact
    diff = block.astype(np.float64)[:, None, :] - centers[None]
    distances = np.einsum('ijk,ijk->ij', diff, diff)
    return np.argmin(distances, axis=1)  # argmin returns the first (lowest) index on ties


class Vocabulary:
    """
    Read-only set of cluster centers.

    Args:
        centers: (center_count, dim) array-like of floats
    """

    def __init__(self, centers):
        centers = np.array(centers, dtype=np.float32)
        if centers.ndim != 2:
            raise ConfigurationError(f"Centers must be a 2-D array, got shape {centers.shape}")
        if centers.shape[0] <= 0 or centers.shape[1] <= 0:
            raise ConfigurationError(f"Vocabulary needs center_count > 0 and dim > 0, got {centers.shape}")
        centers.setflags(write=False)
        self._centers = centers

    @property
    def centers(self):
        return self._centers

    @property
    def center_count(self):
        return self._centers.shape[0]

    @property
    def dim(self):
        return self._centers.shape[1]

    def __len__(self):
        return self.center_count

    def __repr__(self):
        return f"Vocabulary(center_count={self.center_count}, dim={self.dim})"

    def check_dim(self, dim):
        if dim != self.dim:
            raise DimensionMismatchError(f"Feature dimension {dim} does not match vocabulary dimension {self.dim}")

    def nearest_center(self, feature):
        '''Returns (index, squared distance) of the closest center; ties go to the lowest index.'''
        feature = np.asarray(feature, dtype=np.float32)
        if feature.ndim != 1:
            raise ConfigurationError(f"Expected a single feature vector, got shape {feature.shape}")
        self.check_dim(feature.shape[0])

        diff = self._centers.astype(np.float64) - feature
        distances = np.einsum('ij,ij->i', diff, diff)
        index = int(np.argmin(distances))
        return index, float(distances[index])

    def quantize(self, features, n_jobs=config.N_JOBS):
        """
        Maps each row of an (F, dim) feature matrix to its nearest center index.

        Rows are independent, so the matrix is cut into blocks that can run on worker threads;
        each block writes only its own slice of the result.
        """
        features = np.asarray(features, dtype=np.float32)
        if features.ndim != 2:
            raise ConfigurationError(f"Expected an (F, dim) feature matrix, got shape {features.shape}")
        self.check_dim(features.shape[1])

        if features.shape[0] == 0:
            return np.zeros(0, dtype=np.int64)

        block_rows = max(1, config.QUANTIZE_CHUNK_ELEMENTS // (self.center_count * self.dim))
        blocks = [features[start:start + block_rows] for start in range(0, features.shape[0], block_rows)]

        if n_jobs == 1:
            words = [_nearest_block(self._centers, block) for block in blocks]
        else:
            words = Parallel(n_jobs=n_jobs, prefer="threads")(
                delayed(_nearest_block)(self._centers, block) for block in blocks)
        return np.concatenate(words).astype(np.int64)

    # --- Persistence ---
    @classmethod
    def load(cls, path, verbose=True):
        '''Reads a vocabulary file; a truncated or inconsistent file is never partially used.'''
        if not path:
            raise ConfigurationError("Missing vocabulary file path")
        if verbose:
            print(f"Loading vocabulary from: {path}")
        try:
            with open(path, 'rb') as f:
                raw = f.read()
        except OSError as e:
            raise VocabularyFormatError(f"Cannot read vocabulary file {path}: {e}") from e

        if len(raw) < HEADER_SIZE:
            raise VocabularyFormatError(f"Vocabulary file {path} is truncated: {len(raw)} bytes, header needs {HEADER_SIZE}")

        center_count, dim = (int(v) for v in np.frombuffer(raw, dtype=config.VOCABULARY_HEADER_DTYPE, count=2))
        if center_count <= 0 or dim <= 0:
            raise VocabularyFormatError(f"Vocabulary file {path} has invalid header center_count={center_count}, dim={dim}")

        expected = center_count * dim * config.VOCABULARY_DTYPE.itemsize
        payload = len(raw) - HEADER_SIZE
        if payload != expected:
            raise VocabularyFormatError(
                f"Vocabulary file {path} holds {payload} bytes of centers, expected {expected} "
                f"for {center_count} x {dim}")

        centers = np.frombuffer(raw, dtype=config.VOCABULARY_DTYPE, offset=HEADER_SIZE).reshape(center_count, dim)
        vocabulary = cls(centers)
        if verbose:
            print(f"  Vocabulary shape: {centers.shape}")
        return vocabulary

    def save(self, path):
        save_vocabulary(path, self._centers)


def save_vocabulary(path, centers):
    '''Writes centers in the offline builder's binary layout.'''
    centers = np.asarray(centers, dtype=config.VOCABULARY_DTYPE)
    if centers.ndim != 2 or centers.shape[0] <= 0 or centers.shape[1] <= 0:
        raise ConfigurationError(f"Cannot save centers of shape {centers.shape}")
    directory = os.path.dirname(os.fspath(path))
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, 'wb') as f:
        f.write(np.array(centers.shape, dtype=config.VOCABULARY_HEADER_DTYPE).tobytes())
        f.write(np.ascontiguousarray(centers).tobytes())
