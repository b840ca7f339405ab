#Code by Christopher Kaelin, 2025
# This code is licensed under the MIT License - see the LICENSE file for details.
from sketch_bovw.bovw import RetrievalResult, SketchRetriever, load_sketch
from sketch_bovw.Filter_bank import FilterBank
from sketch_bovw.Gabor_extract import extract_features, extract_grid_features, grid_steps
from sketch_bovw.Histogram_creation import build_histogram
from sketch_bovw.Label_map import ViewModelMap, load_view_model_map, model_path
from sketch_bovw.tfidf_retrieval import DocumentIndex
from sketch_bovw.Vocabulary import Vocabulary, save_vocabulary

__version__ = "0.1.0"
