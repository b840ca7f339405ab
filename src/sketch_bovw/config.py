#Code by Christopher Kaelin, 2025
# This code is licensed under the MIT License - see the LICENSE file for details.
'''
Default parameters for the sketch retrieval pipeline.
The vocabulary and the TF-IDF index are built offline with these same values, so changing
the Gabor or grid settings here means rebuilding both files.
'''
import os
import numpy as np

# --- Gabor Filter Bank ---
FILTER_COUNT = 8       # (k) Number of orientations spread over [0, pi)
KERNEL_SIZE = 15
SIGMA = 4.0
THETA = 0.0            # Orientation of the first kernel
LAMBDA = 10.0          # Wavelength of the sinusoid
GAMMA = 0.5            # Spatial aspect ratio
PSI = np.pi * 0.5      # Phase offset

# --- Grid Sampling ---
WINDOW_SIZE = 8        # Patch side per sample point
POINT_PER_ROW = 28     # Sample points per image axis

# --- Parallelism ---
N_JOBS = 1             # 1 = sequential, -1 = all cores
QUANTIZE_CHUNK_ELEMENTS = 1 << 22 # Upper bound on (rows x centers x dim) per distance block

# --- Persisted Files ---
VOCABULARY_HEADER_DTYPE = np.dtype('<i4')
VOCABULARY_DTYPE = np.dtype('<f4')
INDEX_FORMAT = "sketch-bovw-tfidf"
INDEX_FORMAT_VERSION = 1
INDEX_WEIGHTING = "tfidf-smooth-l2"

# --- Models ---
MODEL_DIR = os.environ.get("SKETCH_MODEL_DIR", "models_ply")
MODEL_FILE_PATTERN = "m{model_id}.ply"
