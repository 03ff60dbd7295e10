import logging
import os
from collections.abc import Hashable, Iterator, Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional

log = logging.getLogger(__name__)


def _local_data_factory() -> Path:
    """Default for :attr:`.Config.local_data`.

    This is ``$MAGPIE_REPORT_LOCAL_DATA`` if set, else the platform user data directory.
    """
    from platformdirs import user_data_path

    value = os.environ.get("MAGPIE_REPORT_LOCAL_DATA") or user_data_path(
        "magpie-report"
    )
    return Path(value).expanduser().resolve()


@dataclass
class ConfigHelper:
    """Mix-in for dataclasses that hold settings.

    Names given to :meth:`read_file`, :meth:`replace`, and :meth:`from_dict` may use
    spaces or hyphens in place of underscores, so that YAML files can contain, for
    instance, "sum land" for the attribute :py:`sum_land`.
    """

    @classmethod
    def _canonical_name(cls, name: Hashable) -> Optional[str]:
        """Return the attribute for `name`, or :any:`None` if there is none."""
        result = str(name).replace(" ", "_").replace("-", "_")
        return result if result in {f.name for f in fields(cls)} else None

    @classmethod
    def _canonical_items(
        cls, data: Mapping[Hashable, Any], kind: str, fail: str = "raise"
    ) -> Iterator[tuple[str, Any]]:
        for key, value in data.items():
            if name := cls._canonical_name(key):
                yield name, value
                continue

            msg = f"{cls.__name__} has no attribute for {kind} {key!r}"
            if fail == "raise":
                raise ValueError(msg)
            log.info(f"{msg}; ignored")

    def read_file(self, path: Path, fail="raise") -> None:
        """Update settings from the YAML file at `path`.

        The file must contain a single mapping. If `fail` is "raise" (the default),
        keys that match no attribute raise :class:`ValueError`; otherwise they are
        logged and skipped. A mapping given for an attribute that is itself a
        :class:`ConfigHelper` updates that attribute.
        """
        if path.suffix not in (".yaml", ".yml"):
            raise NotImplementedError(f"Read settings from {path.suffix} file")

        import yaml

        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}

        for name, value in self._canonical_items(data, "file section", fail):
            current = getattr(self, name)
            if isinstance(current, ConfigHelper):
                value = current.replace(**value)
            setattr(self, name, value)

    def replace(self, **kwargs):
        """Return a copy with `kwargs` changed, like :func:`dataclasses.replace`."""
        return replace(self, **dict(self._canonical_items(kwargs, "keyword argument")))

    def update(self, **kwargs) -> None:
        """Set attributes from `kwargs`.

        Raises
        ------
        AttributeError
            if any key of `kwargs` is not an attribute.
        """
        for name, value in kwargs.items():
            if not hasattr(self, name):
                raise AttributeError(name)
            setattr(self, name, value)

    @classmethod
    def from_dict(cls, data: Mapping):
        """Create an instance from `data`."""
        return cls(**dict(cls._canonical_items(data, "mapping key")))


@dataclass
class Config(ConfigHelper):
    """Core settings for :mod:`magpie_report`."""

    #: Only describe what would be done.
    dry_run: bool = False

    #: Base path for local data and outputs. Set by the :program:`--local-data` CLI
    #: option or the ``MAGPIE_REPORT_LOCAL_DATA`` environment variable.
    local_data: Path = field(default_factory=_local_data_factory)

    #: Log DEBUG messages and describe reporting tasks.
    verbose: bool = False

    def get_local_path(self, *parts: str, suffix=None) -> Path:
        """Return a path under :attr:`local_data`, optionally with `suffix`."""
        result = self.local_data.joinpath(*parts)
        return result.with_suffix(suffix) if suffix else result

    def handle_cli_args(
        self, local_data: Optional[str] = None, verbose: bool = False
    ) -> None:
        """Store the values of options to the top-level CLI."""
        self.verbose = verbose
        if local_data:
            self.local_data = Path(local_data)
