"""Context and settings for :mod:`magpie_report` code."""

import logging
from copy import deepcopy
from dataclasses import fields
from typing import TYPE_CHECKING, Any

from .config import Config

if TYPE_CHECKING:
    import magpie_report.report.config

log = logging.getLogger(__name__)


class Context:
    """Context and settings for :mod:`magpie_report` code.

    A Context holds:

    - :attr:`core`: an instance of :class:`.util.config.Config`. Its fields are also
      available directly as attributes of the Context; for instance, ``ctx.dry_run``
      is ``ctx.core.dry_run``.
    - :attr:`report`: an instance of :class:`.report.Config`.
    - any other keys and values given as keyword arguments.

    Context instances are created explicitly and passed to the code that uses them.
    """

    __slots__ = ("_values",)

    # Internal storage of keys and values
    _values: dict[str, Any]

    #: Names of fields of :class:`.util.config.Config`, aliased to ``core``.
    _alias = frozenset(f.name for f in fields(Config))

    if TYPE_CHECKING:
        core: Config
        report: "magpie_report.report.config.Config"

    def __init__(self, *args, **kwargs):
        from magpie_report.report.config import Config as ReportConfig

        core = {k: kwargs.pop(k) for k in list(kwargs) if k in self._alias}
        kwargs.setdefault("core", Config(**core))
        kwargs.setdefault("report", ReportConfig())

        object.__setattr__(self, "_values", dict(*args, **kwargs))

    def __deepcopy__(self, memo) -> "Context":
        result = Context()
        for k, v in self._values.items():
            result._values[k] = deepcopy(v, memo)
        return result

    def __getattr__(self, name: str) -> Any:
        if name in self._alias:
            return getattr(self._values["core"], name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self._alias:
            setattr(self._values["core"], name, value)
        else:
            self._values[name] = value

    def __getitem__(self, name: str) -> Any:
        return self.__getattr__(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.__setattr__(name, value)

    def __contains__(self, name: str) -> bool:
        return name in self._values or name in self._alias

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self.__getattr__(name)
        except AttributeError:
            return default

    def setdefault(self, name: str, value: Any) -> Any:
        if name not in self:
            self.__setattr__(name, value)
        return self.__getattr__(name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} keys={sorted(self._values)}>"
