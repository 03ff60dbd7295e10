"""Utilities for locations and regions."""

import logging
import re
from collections import defaultdict
from collections.abc import Mapping, Sequence
from typing import Optional

from .labeled_array import LabeledArray

log = logging.getLogger(__name__)

#: Levels of spatial aggregation:
#:
#: - "cell": no aggregation.
#: - "reg": sum of cells within each region.
#: - "glo": sum of all cells, labelled :data:`GLOBAL`.
#: - "regglo": both "reg" and "glo".
LEVELS = ("cell", "reg", "glo", "regglo")

#: Label for the global total.
GLOBAL = "GLO"

#: Expression for cell labels like "AFR.1" or "AFR_12".
CELL_EXPR = re.compile(r"(?P<region>.+?)[._](?P<number>\d+)")


def cell_region_map(
    cells: Sequence[str], mapping: Optional[Mapping[str, str]] = None
) -> dict[str, str]:
    """Return a mapping from each of `cells` to the region containing it.

    If `mapping` is given, it is used directly. Otherwise the region is inferred from
    each cell label, e.g. "AFR.1" is in the region "AFR".

    Raises
    ------
    ValueError
        if a region cannot be determined for any of `cells`.
    """
    result = {}
    for cell in cells:
        if mapping is not None:
            try:
                result[cell] = mapping[cell]
            except KeyError:
                raise ValueError(f"No region for cell {cell!r} in mapping")
        elif match := CELL_EXPR.fullmatch(str(cell)):
            result[cell] = match.group("region")
        else:
            raise ValueError(f"Couldn't infer region from cell label {cell!r}")
    return result


def location_groups(
    level: str,
    cells: Sequence[str],
    mapping: Optional[Mapping[str, str]] = None,
    dim: str = "j",
) -> Mapping[str, Mapping[str, list[str]]]:
    """Return groups for aggregating `cells` to `level`.

    The result is suitable for use with :func:`genno.operator.aggregate`.
    """
    if level not in LEVELS:
        raise ValueError(f"Unknown level {level!r}; expected one of {LEVELS}")

    groups: dict[str, list[str]] = {}
    if level in ("reg", "regglo"):
        members = defaultdict(list)
        for cell, region in cell_region_map(cells, mapping).items():
            members[region].append(cell)
        groups.update(sorted(members.items()))
    if level in ("glo", "regglo"):
        groups[GLOBAL] = list(cells)

    return {dim: groups}


def aggregate_locations(
    arr: LabeledArray,
    level: str,
    mapping: Optional[Mapping[str, str]] = None,
    weight: Optional[LabeledArray] = None,
    *,
    dim: str = "j",
    target: str = "i",
) -> LabeledArray:
    """Aggregate `arr` along the location axis `dim` to `level`.

    Without `weight`, values are summed. With `weight`, the result is the weighted mean
    :math:`Σ(x·w) / Σw`; where the weights sum to zero, the result holds no value. A
    group that includes a location with no value also has no value.

    The aggregated axis is renamed to `target`. For `level` "cell", `arr` is returned
    unchanged.
    """
    from genno.operator import aggregate

    if level == "cell":
        return arr

    groups = location_groups(level, arr.coords[dim], mapping, dim=dim)
    log.info(
        f"Aggregate {len(arr.coords[dim])} locations to {len(groups[dim])} at "
        f"level={level!r}"
    )

    def _total(x: LabeledArray) -> LabeledArray:
        qty = aggregate(x.to_quantity(), groups, False)
        return LabeledArray.from_quantity(qty).transpose(*x.dims)

    def _agg(x: LabeledArray) -> LabeledArray:
        # genno skips missing values; count them separately
        n_missing = _total(x.missing())
        total = _total(x.fill_missing(0.0))
        return LabeledArray(total.data.where(n_missing.data == 0))

    if weight is None:
        result = _agg(arr)
    else:
        result = _agg(arr * weight) / _agg(weight)

    return result.rename({dim: target})
