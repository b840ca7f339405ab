#Code by Christopher Kaelin, 2025
# This code is licensed under the MIT License - see the LICENSE file for details.
'''
Maps a matched view index back to the 3D model it was rendered from.

Label file: whitespace-delimited integers, "model_count view_count" followed by model_count entries.
    view_count > 0  -> each entry is a model id owning view_count consecutive views
    view_count == 0 -> each entry is a "model_id views" pair, views may differ per model
'''
import os
import numpy as np

from sketch_bovw import config
from sketch_bovw.errors import ConfigurationError, LabelFormatError, ViewIndexOutOfRangeError


class ViewModelMap:
    """
    Contiguous groups of views, one per model, in label file order.

    Args:
        view_counts: views per model, all positive
        model_ids: identifier of each model; defaults to 0..len(view_counts)-1
    """

    def __init__(self, view_counts, model_ids=None):
        view_counts = np.asarray(view_counts, dtype=np.int64).reshape(-1)
        if view_counts.size == 0:
            raise ConfigurationError("A view-to-model map needs at least one model")
        if np.any(view_counts <= 0):
            raise ConfigurationError(f"Every model needs a positive view count, got {view_counts.tolist()}")
        if model_ids is None:
            model_ids = range(view_counts.size)
        model_ids = tuple(int(m) for m in model_ids)
        if len(model_ids) != view_counts.size:
            raise ConfigurationError(f"{len(model_ids)} model ids for {view_counts.size} view counts")

        self._view_counts = tuple(int(c) for c in view_counts)
        self._model_ids = model_ids
        # boundaries[i] is one past the last view of model i
        self._boundaries = np.cumsum(view_counts)
        self._boundaries.setflags(write=False)

    @property
    def model_ids(self):
        return self._model_ids

    @property
    def view_counts(self):
        return self._view_counts

    @property
    def total_views(self):
        return int(self._boundaries[-1])

    def __len__(self):
        return len(self._model_ids)

    def __repr__(self):
        return f"ViewModelMap(models={len(self)}, total_views={self.total_views})"

    def group_of(self, view_index):
        '''Position of the model group holding view_index.'''
        view_index = int(view_index)
        if view_index < 0 or view_index >= self.total_views:
            raise ViewIndexOutOfRangeError(
                f"View index {view_index} is outside the {self.total_views} views declared for {len(self)} models")
        return int(np.searchsorted(self._boundaries, view_index, side='right'))

    def resolve(self, view_index):
        '''Model id owning view_index.'''
        return self._model_ids[self.group_of(view_index)]

    def views_of(self, model_id):
        '''range of view indices rendered from model_id (first group if the id repeats).'''
        try:
            group = self._model_ids.index(int(model_id))
        except ValueError:
            raise KeyError(f"Unknown model id {model_id}") from None
        stop = int(self._boundaries[group])
        return range(stop - self._view_counts[group], stop)


def parse_label_text(text, source="<labels>"):
    tokens = text.split()
    try:
        values = [int(t) for t in tokens]
    except ValueError as e:
        raise LabelFormatError(f"Non-integer token in label file {source}: {e}") from e

    if len(values) < 2:
        raise LabelFormatError(f"Label file {source} is missing the 'model_count view_count' header")
    model_count, view_count = values[0], values[1]
    body = values[2:]
    if model_count <= 0:
        raise LabelFormatError(f"Label file {source} declares {model_count} models")
    if view_count < 0:
        raise LabelFormatError(f"Label file {source} has a negative view count marker {view_count}")

    if view_count > 0:
        # Uniform layout: one model id per model
        if len(body) != model_count:
            raise LabelFormatError(f"Label file {source} lists {len(body)} model ids, header declares {model_count}")
        model_ids = body
        view_counts = [view_count] * model_count
    else:
        # Variable layout: (model id, views) pairs
        if len(body) != 2 * model_count:
            raise LabelFormatError(
                f"Label file {source} lists {len(body)} values, expected {2 * model_count} 'model_id views' pairs")
        model_ids = body[0::2]
        view_counts = body[1::2]

    try:
        return ViewModelMap(view_counts, model_ids)
    except ConfigurationError as e:
        raise LabelFormatError(f"Invalid label file {source}: {e}") from e


def load_view_model_map(path, verbose=True):
    if not path:
        raise ConfigurationError("Missing label file path")
    if verbose:
        print(f"Loading view labels from: {path}")
    try:
        with open(path, 'r') as f:
            text = f.read()
    except OSError as e:
        raise LabelFormatError(f"Cannot read label file {path}: {e}") from e
    view_map = parse_label_text(text, source=path)
    if verbose:
        print(f"  {len(view_map)} models, {view_map.total_views} views")
    return view_map


def model_path(model_id, model_dir=config.MODEL_DIR):
    '''Path of the PLY file for a model id, e.g. <model_dir>/m87.ply.'''
    return os.path.join(model_dir, config.MODEL_FILE_PATTERN.format(model_id=model_id))
