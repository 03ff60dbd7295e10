from ._logging import mark_time, once, preserve_log_level, silence_log
from .common import MAGPIE_REPORT_PATH, package_data_path
from .labeled_array import (
    AxisNotFoundError,
    LabeledArray,
    LabelNotFoundError,
    ShapeMismatchError,
)
from .node import LEVELS, aggregate_locations, cell_region_map, location_groups

__all__ = [
    "LEVELS",
    "MAGPIE_REPORT_PATH",
    "AxisNotFoundError",
    "LabelNotFoundError",
    "LabeledArray",
    "ShapeMismatchError",
    "aggregate_locations",
    "cell_region_map",
    "location_groups",
    "mark_time",
    "once",
    "package_data_path",
    "preserve_log_level",
    "silence_log",
]
