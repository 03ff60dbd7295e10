"""Access to items in a model results archive."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from magpie_report.util.labeled_array import LabeledArray

__all__ = [
    "DIMS",
    "DirectorySource",
    "MemorySource",
    "MissingInputError",
    "ResultSource",
]

log = logging.getLogger(__name__)

#: Mapping from set names used as index names in results archives to short axis names.
DIMS = {
    "ag_pools": "c_pools",
    "cell": "j",
    "land_ag": "land",
    "t_all": "t",
}

Item = Union[LabeledArray, list]


class MissingInputError(KeyError):
    """A required item is not present in a results archive."""


class ResultSource(ABC):
    """Provider of named items, arrays or sets, from one model run.

    Subclasses implement :meth:`_get`.
    """

    def get(self, name: str, quiet: bool = False) -> Optional[Item]:
        """Return the item `name`.

        Arrays are returned as :class:`.LabeledArray`, with axes renamed according to
        :data:`DIMS`; sets are returned as :class:`list`.

        Parameters
        ----------
        quiet :
            If :any:`True`, return :any:`None` for a missing item.

        Raises
        ------
        MissingInputError
            if `name` is missing and `quiet` is :any:`False`.
        """
        result = self._get(name)
        if result is None:
            if quiet:
                log.debug(f"No item {name!r}")
                return None
            raise MissingInputError(f"Required item {name!r} not found in {self}")
        elif isinstance(result, LabeledArray):
            result = result.rename(DIMS)
        return result

    def get_level(self, name: str, quiet: bool = False) -> Optional[LabeledArray]:
        """Like :meth:`get`, selecting the "level" attribute of a model variable.

        Items without a "type" axis are returned as-is.
        """
        result = self.get(name, quiet=quiet)
        if isinstance(result, LabeledArray) and "type" in result.dims:
            result = result.select("type", "level")
        return result  # type: ignore [return-value]

    def get_mapping(self, name: str = "cell") -> Optional[dict[str, str]]:
        """Return a mapping from a 2-dimensional set `name`, if any.

        For instance, the set "cell" has entries (region, cell); the result maps each
        cell to its region. If the set is absent or not 2-dimensional, return
        :any:`None`.
        """
        items = self.get(name, quiet=True)
        if not isinstance(items, list) or not items or not all(
            isinstance(x, tuple) and len(x) == 2 for x in items
        ):
            return None
        return {str(child): str(parent) for parent, child in items}

    def __contains__(self, name: str) -> bool:
        return self._get(name) is not None

    @abstractmethod
    def _get(self, name: str) -> Optional[Item]:
        """Return the item `name`, or :any:`None` if it does not exist."""


class MemorySource(ResultSource):
    """Results held in memory as a mapping from names to items."""

    def __init__(self, data: Optional[Mapping[str, Item]] = None) -> None:
        self.data = dict(data or {})

    def __repr__(self) -> str:
        return f"<MemorySource with {len(self.data)} items>"

    def _get(self, name: str) -> Optional[Item]:
        return self.data.get(name)


class DirectorySource(ResultSource):
    """Results stored as one file per item in a directory.

    Files are named :file:`{name}.csv` or :file:`{name}.csv.gz`. A file with a "value"
    column holds an array, indexed by all the other columns. A file without a "value"
    column holds a set: a list of the entries of its single column, or of tuples if it
    has several columns.
    """

    #: File name suffixes, in order of preference.
    suffixes = (".csv", ".csv.gz")

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        if not self.path.is_dir():
            raise NotADirectoryError(self.path)

    def __repr__(self) -> str:
        return f"<DirectorySource {self.path}>"

    def _path(self, name: str) -> Optional[Path]:
        for suffix in self.suffixes:
            if (p := self.path.joinpath(name + suffix)).exists():
                return p
        return None

    def _get(self, name: str) -> Optional[Item]:
        path = self._path(name)
        if path is None:
            return None

        log.debug(f"Read {name!r} from {path}")
        df = pd.read_csv(path)

        if "value" not in df.columns:
            if len(df.columns) == 1:
                return df.iloc[:, 0].tolist()
            return list(df.itertuples(index=False, name=None))

        dims = [c for c in df.columns if c != "value"]
        return LabeledArray(df.set_index(dims)["value"], name=name)

    @staticmethod
    def write(path: Path, name: str, item: Item) -> Path:
        """Write `item` to a file for `name` in the directory `path`."""
        target = path.joinpath(f"{name}.csv")
        if isinstance(item, LabeledArray):
            item.to_series().rename("value").reset_index().to_csv(target, index=False)
        elif len(item) and isinstance(item[0], tuple):
            pd.DataFrame(item).to_csv(target, index=False)
        else:
            pd.DataFrame({name: list(item)}).to_csv(target, index=False)
        return target
