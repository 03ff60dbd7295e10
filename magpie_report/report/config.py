import logging
from collections.abc import Callable
from dataclasses import InitVar, dataclass, field, fields
from importlib import import_module
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

from magpie_report.util.common import package_data_path
from magpie_report.util.config import ConfigHelper, _local_data_factory

if TYPE_CHECKING:
    import genno

    from magpie_report.util.context import Context

log = logging.getLogger(__name__)

#: Type signature of callback functions referenced by :attr:`.Config.callback` and
#: used by :func:`.prepare_computer`.
Callback = Callable[["genno.Computer", "Context"], None]


@dataclass
class Config(ConfigHelper):
    """Settings for :mod:`magpie_report.report`.

    When initializing a new instance, the `from_file` parameter is respected: settings
    are read from that file, then overridden by any other keyword arguments.
    """

    #: Shorthand to call :func:`use_file` on a new instance.
    from_file: InitVar[Optional[Path]] = package_data_path("report", "default.yaml")

    #: List of callbacks for preparing the :class:`genno.Computer`.
    #:
    #: Each registered function is called by :func:`.prepare_computer`, in order to add
    #: or modify reporting tasks. Callback functions must take two arguments: the
    #: Computer, and a :class:`.Context`.
    callback: list[Callback] = field(default_factory=list)

    #: Path to write reporting outputs when invoked from the command line.
    cli_output: Optional[Path] = None

    #: Key for the quantity or computation to report.
    key: str = "carbonstock"

    #: Directory for output.
    output_dir: Path = field(
        default_factory=lambda: _local_data_factory().joinpath("report")
    )

    #: Level of spatial aggregation; one of :data:`.node.LEVELS`.
    level: str = "cell"

    #: Sum over the carbon pool axis.
    sum_cpool: bool = True

    #: Sum over the land type axis.
    sum_land: bool = True

    #: :any:`False` to remove the effect of climate change on carbon stocks.
    cc: bool = True

    #: Year at which carbon densities are fixed when :attr:`cc` is :any:`False`.
    cc_year: int = 1995

    #: :any:`False` to also disregard regrowth; only used if :attr:`cc` is
    #: :any:`False`.
    regrowth: bool = True

    def __post_init__(self, from_file) -> None:
        if from_file is None:
            return

        # Values explicitly given to the constructor take precedence over the file
        defaults = type(self)(from_file=None)
        explicit = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) != getattr(defaults, f.name)
        }
        self.use_file(from_file)
        for name, value in explicit.items():
            setattr(self, name, value)

    def carbonstock_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for :func:`.carbonstock`."""
        return dict(
            level=self.level,
            sum_cpool=self.sum_cpool,
            sum_land=self.sum_land,
            cc=self.cc,
            cc_year=self.cc_year,
            regrowth=self.regrowth,
        )

    def register(self, name_or_callback: Union[Callback, str]) -> Optional[str]:
        """Register a :attr:`callback` function for :func:`.prepare_computer`.

        Parameters
        ----------
        name_or_callback
            If a callable (function), it is used directly. If a string, it names a
            module that contains a function named ``callback``.
        """
        if isinstance(name_or_callback, str):
            name = name_or_callback
            callback = import_module(name).callback
        else:
            callback = name_or_callback
            name = callback.__name__

        if callback in self.callback:
            log.info(f"Already registered: {callback}")
            return None

        self.callback.append(callback)
        return name

    def set_output_dir(self, arg: Optional[Path]) -> None:
        """Set :attr:`output_dir`, the output directory."""
        if arg:
            self.output_dir = Path(arg).expanduser()

    def use_file(self, file_path: Union[str, Path, None]) -> None:
        """Update settings from a (YAML) file at `file_path`.

        Parameters
        ----------
        file_path : PathLike, optional
            This may be:

            1. The complete path to any existing file.
            2. A stem like "default" or "other". This is interpreted as referring to a
               file named, for instance, :file:`default.yaml` within the package data
               directory :file:`data/report/`.
        """
        if file_path is None:
            return

        # A complete path, or a stem of a file in the package data
        candidates = (
            Path(file_path),
            package_data_path("report", file_path).with_suffix(".yaml"),
        )
        for path in candidates:
            if path.exists():
                break
        else:
            raise FileNotFoundError(f"Reporting configuration in '{file_path}(.yaml)'")

        log.info(f"Read reporting configuration from {path}")
        self.read_file(path)

    def mkdir(self) -> None:
        """Ensure the :attr:`output_dir` exists."""
        if self.output_dir:
            self.output_dir.mkdir(exist_ok=True, parents=True)
