"""Atomic reporting operations for carbon stocks.

These are used as tasks in a :class:`genno.Computer`; see :func:`.prepare_computer`.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from magpie_report.util.labeled_array import LabeledArray
from magpie_report.util.node import aggregate_locations

from . import carbonstock

if TYPE_CHECKING:
    from genno.types import AnyQuantity

    from .source import ResultSource

log = logging.getLogger(__name__)

__all__ = [
    "aggregate",
    "location_mapping",
    "make_output_path",
    "stock",
    "sum_axes",
    "to_quantity",
    "write_report",
]

sum_axes = carbonstock.sum_axes


def aggregate(
    arr: LabeledArray, mapping: Optional[Mapping[str, str]], *, level: str = "cell"
) -> LabeledArray:
    """Aggregate `arr` to `level` using a location `mapping`.

    See :func:`.aggregate_locations`.
    """
    return aggregate_locations(arr, level, mapping)


def location_mapping(source: "ResultSource") -> Optional[dict[str, str]]:
    """Return the mapping from locations to regions stored in `source`, if any."""
    return source.get_mapping("cell")


def make_output_path(config: Mapping, name: Union[str, Path]) -> Path:
    """Return a path under the "output_dir" Path from the computer configuration.

    The directory is created if it does not exist.
    """
    result = Path(config["output_dir"]).joinpath(name)
    result.parent.mkdir(parents=True, exist_ok=True)
    return result


def stock(
    source: "ResultSource",
    cshare: Optional[LabeledArray],
    *,
    cc: bool = True,
    cc_year: int = 1995,
    regrowth: bool = True,
) -> LabeledArray:
    """Carbon stock from `source`, optionally reconstructed.

    See :func:`.carbonstock.stock`.
    """
    return carbonstock.stock(source, cc, cc_year, regrowth, cshare)


def to_quantity(arr: LabeledArray) -> "AnyQuantity":
    """Convert `arr` to :class:`genno.Quantity`, for use with :mod:`genno` operators."""
    return arr.to_quantity()


def write_report(arr: LabeledArray, path: Union[str, Path]) -> Path:
    """Write `arr` to `path` and return the path."""
    carbonstock.write(arr, path)
    return Path(path)
