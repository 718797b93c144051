# utils.py

import math
import numpy as np

class RunningMean:
    """Accumulates a (weighted) mean while ignoring non-finite samples."""
    def __init__(self):
        self.total = 0.0
        self.weight = 0.0
        self.skipped = 0

    def update(self, value: float, weight: float = 1.0) -> bool:
        if not math.isfinite(value):
            self.skipped += 1
            return False
        self.total += value * weight
        self.weight += weight
        return True

    @property
    def mean(self) -> float:
        return self.total / self.weight if self.weight > 0 else 0.0


def glorot_uniform(fan_in, fan_out, rng) -> np.ndarray:
    limit = math.sqrt(6.0 / (fan_in + fan_out))
    return rng.uniform(-limit, limit, size=(fan_in, fan_out))

def clip(values, magnitude):
    return np.clip(values, -magnitude, magnitude)

def masked_softmax(logits, mask=None, illegal_logit=-1e9) -> np.ndarray:
    logits = np.asarray(logits, dtype=float)
    if mask is None:
        adjusted = logits
    else:
        mask = np.asarray(mask)
        if not np.any(mask == 1):
            return np.zeros_like(logits)
        adjusted = np.where(mask == 1, logits, illegal_logit)
    exps = np.exp(adjusted - np.max(adjusted))
    return exps / np.sum(exps)

def copy_matrix(matrix) -> np.ndarray:
    return np.array(matrix, dtype=float, copy=True)

def copy_matrices(matrices):
    return [copy_matrix(m) for m in matrices]

def shape_of(matrix):
    """(rows, cols) of a weight matrix given as an array or nested list; cols is None for empty rows."""
    if isinstance(matrix, np.ndarray):
        return tuple(matrix.shape) if matrix.ndim == 2 else (matrix.shape[0] if matrix.ndim else 0, None)
    rows = len(matrix)
    cols = len(matrix[0]) if rows and hasattr(matrix[0], '__len__') else None
    if cols is not None and any(len(row) != cols for row in matrix):
        cols = None
    return rows, cols

def _convert_to_json_serializable(obj):
    """Recursively converts objects to be JSON serializable."""
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.float32, np.float64, np.int8, np.int16, np.int32, np.int64)):
        return obj.item()
    if isinstance(obj, tuple) and hasattr(obj, '_fields'): # Check for namedtuple
        return {field: _convert_to_json_serializable(getattr(obj, field)) for field in obj._fields}
    if isinstance(obj, (list, tuple)):
        return [_convert_to_json_serializable(item) for item in obj]
    if isinstance(obj, dict):
        return {key: _convert_to_json_serializable(value) for key, value in obj.items()}
    return obj
