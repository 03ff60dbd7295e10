"""Dense numeric arrays with named, labelled axes.

:class:`LabeledArray` wraps a :class:`xarray.DataArray` and exposes the small set of
operations used to reconstruct and aggregate carbon stocks:

- selection by label (:meth:`~LabeledArray.select`);
- arithmetic with alignment by axis *name* (:meth:`~LabeledArray.multiply`, etc.);
- reduction by sum over named axes (:meth:`~LabeledArray.sum`);
- construction of modified copies (:meth:`~LabeledArray.set_all`,
  :meth:`~LabeledArray.assign`).

Instances are never modified in place. Cells that hold no value (for instance, the
result of a division by zero) are stored as NaN and reported by
:meth:`~LabeledArray.missing`.
"""

import logging
import operator
from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Optional, Union

import numpy as np
import pandas as pd
import xarray as xr

if TYPE_CHECKING:
    from genno.types import AnyQuantity

__all__ = [
    "AxisNotFoundError",
    "LabelNotFoundError",
    "LabeledArray",
    "ShapeMismatchError",
]

log = logging.getLogger(__name__)

Labels = Union[Hashable, Sequence[Hashable]]


class AxisNotFoundError(KeyError):
    """An axis name does not appear on a :class:`LabeledArray`."""


class LabelNotFoundError(KeyError):
    """One or more labels do not appear along an axis of a :class:`LabeledArray`."""


class ShapeMismatchError(ValueError):
    """Values cannot be broadcast into the selected part of a :class:`LabeledArray`."""


def _as_list(labels: Labels) -> list:
    if isinstance(labels, (str, int, np.integer)) or not isinstance(labels, Iterable):
        return [labels]
    return list(labels)


def _divide(a, b):
    """`a` / `b`, with no value where `b` is zero or has no value."""
    with np.errstate(divide="ignore", invalid="ignore"):
        result = a / b
    if isinstance(b, xr.DataArray):
        return result.where((b != 0) & b.notnull())
    return result if b != 0 else xr.full_like(result, np.nan)


class LabeledArray:
    """Numeric array with named axes, each with an ordered set of labels.

    Parameters
    ----------
    data :
        One of:

        - :class:`xarray.DataArray`, used directly.
        - :class:`pandas.Series` with a (Multi)Index; each index level becomes an axis.
          Combinations of labels absent from the index hold no value.
        - A scalar or nested sequence of numbers, in which case `coords` is required.
    coords :
        Mapping from axis names to labels, in axis order.
    name :
        Optional name for the array.

    Raises
    ------
    ValueError
        if any axis has duplicate labels.
    """

    __slots__ = ("_data",)

    _data: xr.DataArray

    def __init__(
        self,
        data: Any = np.nan,
        coords: Optional[Mapping[str, Sequence[Hashable]]] = None,
        *,
        name: Optional[str] = None,
    ) -> None:
        if isinstance(data, LabeledArray):
            da = data._data
        elif isinstance(data, xr.DataArray):
            da = data
        elif isinstance(data, pd.Series):
            da = xr.DataArray.from_series(data)
        else:
            coords = {k: list(v) for k, v in (coords or {}).items()}
            values = np.asarray(data, dtype=float)
            if values.ndim == 0:
                values = np.full(tuple(map(len, coords.values())), float(values))
            da = xr.DataArray(
                values, coords=list(coords.items()), dims=list(coords.keys())
            )

        for dim in da.dims:
            labels = da.coords[dim].values
            if len(set(labels)) != len(labels):
                raise ValueError(f"Duplicate labels along axis {dim!r}")

        da = da.astype(float)
        if name is not None:
            da = da.rename(name)
        object.__setattr__(self, "_data", da)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    # Properties

    @property
    def data(self) -> xr.DataArray:
        """The underlying :class:`xarray.DataArray` (a copy)."""
        return self._data.copy()

    @property
    def dims(self) -> tuple[str, ...]:
        """Axis names, in order."""
        return tuple(map(str, self._data.dims))

    @property
    def coords(self) -> dict[str, list]:
        """Mapping from axis names to lists of labels."""
        return {d: self._data.coords[d].values.tolist() for d in self.dims}

    @property
    def name(self) -> Optional[str]:
        return self._data.name  # type: ignore [return-value]

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self._data.shape)

    @property
    def values(self) -> np.ndarray:
        """Cell values as a :class:`numpy.ndarray` (a copy)."""
        return self._data.values.copy()

    def __repr__(self) -> str:
        axes = ", ".join(f"{d}: {n}" for d, n in zip(self.dims, self.shape))
        return f"<LabeledArray {self.name or ''}({axes})>"

    # Checks

    def _check_axis(self, axis: str) -> None:
        if axis not in self._data.dims:
            raise AxisNotFoundError(f"No axis {axis!r} among {self.dims}")

    def _check_labels(self, axis: str, labels: Iterable[Hashable]) -> None:
        self._check_axis(axis)
        existing = set(self._data.coords[axis].values)
        missing = [label for label in labels if label not in existing]
        if missing:
            raise LabelNotFoundError(f"Label(s) {missing!r} not found on axis {axis!r}")

    # Selection

    def select(
        self, axis: str, labels: Labels, *, invert: bool = False
    ) -> "LabeledArray":
        """Restrict `axis` to `labels`.

        If `labels` is a single (scalar) label and `invert` is :any:`False`, the axis is
        dropped from the result. Otherwise the axis is kept, with labels in their
        existing order.

        Parameters
        ----------
        invert :
            If :any:`True`, select all labels *except* `labels`.

        Raises
        ------
        AxisNotFoundError
            if `axis` is not an axis of the array.
        LabelNotFoundError
            if any of `labels` does not appear along `axis`.
        """
        as_list = _as_list(labels)
        self._check_labels(axis, as_list)

        if invert:
            exclude = set(as_list)
            keep = [x for x in self._data.coords[axis].values if x not in exclude]
            return LabeledArray(self._data.sel({axis: keep}))
        elif len(as_list) == 1 and as_list[0] is labels:
            return LabeledArray(self._data.sel({axis: labels}, drop=True))
        else:
            return LabeledArray(self._data.sel({axis: as_list}))

    def at(self, **labels: Hashable) -> float:
        """Return the value of the single cell identified by `labels` on every axis."""
        for axis, label in labels.items():
            self._check_labels(axis, [label])
        if set(labels) != set(self.dims):
            raise AxisNotFoundError(f"Need one label for each of {self.dims}")
        return float(self._data.sel(labels).values)

    # Arithmetic

    def _binary(self, other, op: Callable) -> "LabeledArray":
        if isinstance(other, LabeledArray):
            a_dims, b_dims = set(self.dims), set(other.dims)
            if not (a_dims <= b_dims or b_dims <= a_dims):
                raise AxisNotFoundError(
                    f"Cannot align axes {self.dims} and {other.dims}: neither is a "
                    "subset of the other"
                )
            a, b = xr.align(self._data, other._data, join="inner")
        else:
            a, b = self._data, float(other)
        return LabeledArray(op(a, b))

    def add(self, other: Union["LabeledArray", float]) -> "LabeledArray":
        """Elementwise sum; see :meth:`multiply` for alignment."""
        return self._binary(other, operator.add)

    def subtract(self, other: Union["LabeledArray", float]) -> "LabeledArray":
        """Elementwise difference; see :meth:`multiply` for alignment."""
        return self._binary(other, operator.sub)

    def multiply(self, other: Union["LabeledArray", float]) -> "LabeledArray":
        """Elementwise product with `other`.

        Axes are aligned by name, not position. The axes of one operand must equal, or
        be a subset of, the axes of the other; the operand with fewer axes is broadcast
        over the rest. Along shared axes, the result has the labels common to both
        operands.

        Raises
        ------
        AxisNotFoundError
            if neither operand's axes are a subset of the other's.
        """
        return self._binary(other, operator.mul)

    def divide(self, other: Union["LabeledArray", float]) -> "LabeledArray":
        """Elementwise quotient; alignment as for :meth:`multiply`.

        Cells where the divisor is zero or holds no value hold no value in the result.
        """

        return self._binary(other, _divide)

    __add__ = add
    __sub__ = subtract
    __mul__ = multiply
    __truediv__ = divide
    __radd__ = add
    __rmul__ = multiply

    def __rsub__(self, other: float) -> "LabeledArray":
        return self._binary(other, lambda a, b: b - a)

    def __rtruediv__(self, other: float) -> "LabeledArray":
        return self._binary(other, lambda a, b: _divide(b, a))

    # Reduction and shaping

    def sum(self, *axes: str) -> "LabeledArray":
        """Sum over one or more named `axes`; these are removed from the result.

        With no `axes`, sum over all axes. A sum that includes a cell with no value has
        no value.
        """
        for axis in axes:
            self._check_axis(axis)
        return LabeledArray(
            self._data.sum(dim=list(axes) if axes else None, skipna=False)
        )

    def expand(self, axis: str, labels: Sequence[Hashable]) -> "LabeledArray":
        """Broadcast over a new `axis` with `labels`; the new axis is first."""
        if axis in self._data.dims:
            raise ValueError(f"Axis {axis!r} already exists")
        return LabeledArray(self._data.expand_dims({axis: list(labels)}).copy())

    def transpose(self, *axes: str) -> "LabeledArray":
        for axis in axes:
            self._check_axis(axis)
        return LabeledArray(self._data.transpose(*axes))

    def rename(self, mapping: Mapping[str, str]) -> "LabeledArray":
        """Rename axes according to `mapping`; names not on the array are ignored."""
        mapping = {k: v for k, v in mapping.items() if k in self._data.dims}
        return LabeledArray(self._data.rename(mapping)) if mapping else self

    def round(self, decimals: int = 0) -> "LabeledArray":
        return LabeledArray(self._data.round(decimals))

    def missing(self) -> "LabeledArray":
        """1.0 where a cell holds no value; otherwise 0.0."""
        return LabeledArray(self._data.isnull().astype(float))

    def fill_missing(self, value: float) -> "LabeledArray":
        """Replace cells that hold no value with `value`."""
        return LabeledArray(self._data.fillna(value))

    # Construction of modified copies

    def set_all(self, value: float) -> "LabeledArray":
        """Return an array of identical axes and labels with every cell `value`."""
        return LabeledArray(xr.full_like(self._data, value, dtype=float))

    def assign(
        self,
        selectors: Mapping[str, Labels],
        value: Union["LabeledArray", float],
    ) -> "LabeledArray":
        """Return a copy with the cells matched by `selectors` replaced by `value`.

        Parameters
        ----------
        selectors :
            Mapping from axis names to one or more labels. Axes not mentioned are
            selected in full.
        value :
            Scalar, or array broadcast into the selected box. Every axis of `value` must
            be an axis of the array, and must have (at least) the selected labels; any
            other labels are ignored.

        Raises
        ------
        AxisNotFoundError, LabelNotFoundError
            for invalid `selectors`.
        ShapeMismatchError
            if `value` does not fit the selected box.
        """
        indexers = {}
        for axis, labels in selectors.items():
            indexers[axis] = _as_list(labels)
            self._check_labels(axis, indexers[axis])

        if any(len(v) == 0 for v in indexers.values()):
            return self  # Nothing selected

        target = self._data.loc[indexers]

        if isinstance(value, LabeledArray):
            extra = set(value.dims) - set(self.dims)
            if extra:
                raise ShapeMismatchError(
                    f"Value has axes {sorted(extra)} not present on target {self.dims}"
                )
            v = value._data
            for dim in v.dims:
                wanted = target.coords[dim].values
                have = set(v.coords[dim].values)
                if missing := [x for x in wanted if x not in have]:
                    raise ShapeMismatchError(
                        f"Value lacks label(s) {missing!r} on axis {dim!r}"
                    )
                v = v.sel({dim: list(wanted)})
            values: Any = v.broadcast_like(target).transpose(*target.dims).values
        else:
            values = float(value)

        result = self._data.copy(deep=True)
        result.loc[indexers] = values
        return LabeledArray(result)

    # Comparison and conversion

    def equals(self, other: "LabeledArray") -> bool:
        """:any:`True` if `other` has the same axes, labels, and values.

        The order of axes and of labels along each axis is ignored. Cells with no value
        compare equal to one another.
        """
        if set(self.dims) != set(other.dims):
            return False
        coords = self.coords
        if any(set(coords[d]) != set(other.coords[d]) for d in self.dims):
            return False
        return self._data.equals(other._data.transpose(*self.dims).sel(coords))

    def to_series(self) -> pd.Series:
        return self._data.to_series()

    def to_quantity(self) -> "AnyQuantity":
        """Convert to :class:`genno.Quantity`."""
        import genno

        return genno.Quantity(self._data.to_series(), name=self.name)

    @classmethod
    def from_quantity(cls, qty: "AnyQuantity") -> "LabeledArray":
        """Convert from :class:`genno.Quantity`."""
        return cls(qty.to_series())
