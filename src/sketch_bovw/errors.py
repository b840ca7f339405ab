#Code by Christopher Kaelin, 2025
# This code is licensed under the MIT License - see the LICENSE file for details.
'''
Exceptions raised by the sketch retrieval pipeline.
Configuration and file errors are fatal at start-up, query errors are raised per lookup.
'''


class SketchRetrievalError(Exception):
    pass


# --- Configuration errors ---
class ConfigurationError(SketchRetrievalError, ValueError):
    '''Bad parameters, missing paths or a degenerate sampling grid.'''


class DimensionMismatchError(ConfigurationError):
    '''Feature, vocabulary and index dimensions do not agree.'''


# --- I/O errors ---
class DataFileError(SketchRetrievalError, IOError):
    pass


class VocabularyFormatError(DataFileError):
    pass


class IndexFormatError(DataFileError):
    pass


class LabelFormatError(DataFileError):
    pass


class ImageLoadError(DataFileError):
    pass


# --- Query-time errors ---
class QueryError(SketchRetrievalError, LookupError):
    pass


class EmptyCorpusError(QueryError):
    '''The document index holds no views.'''


class ViewIndexOutOfRangeError(QueryError):
    '''A view index lies outside every model group of the label file.'''
