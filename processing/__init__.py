"""
Processing package for the State Award-Wins Maps

Input loading, polygon flattening and the dataset joiner.
"""

__version__ = "0.1.0"

from .data_utils import load_attribute_table, sanitize_column_names
from .errors import InputError, KeySetMismatchError, PipelineError
from .geometry import flatten_polygons, load_state_boundaries
from .joiner import CONUS_BBOX, drop_holes, filter_bbox, join, join_and_filter, validate_keys

__all__ = [
    "CONUS_BBOX",
    "InputError",
    "KeySetMismatchError",
    "PipelineError",
    "drop_holes",
    "filter_bbox",
    "flatten_polygons",
    "join",
    "join_and_filter",
    "load_attribute_table",
    "load_state_boundaries",
    "sanitize_column_names",
    "validate_keys",
]
