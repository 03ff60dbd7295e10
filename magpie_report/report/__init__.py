import logging
from collections.abc import Callable
from contextlib import nullcontext
from importlib import import_module
from typing import TYPE_CHECKING, Any, Optional, Union

from genno import ComputationError, Computer

from magpie_report.util._logging import mark_time, silence_log

from . import key as K
from . import operator
from .carbonstock import carbonstock
from .config import Config
from .source import DirectorySource, MemorySource, MissingInputError, ResultSource

if TYPE_CHECKING:
    from magpie_report.util.context import Context

__all__ = [
    "Config",
    "DirectorySource",
    "MemorySource",
    "MissingInputError",
    "ResultSource",
    "carbonstock",
    "prepare_computer",
    "register",
    "report",
]

log = logging.getLogger(__name__)

#: List of callbacks for preparing the Computer.
CALLBACKS: list[Callable] = []


def register(name_or_callback: Union[Callable, str]) -> Optional[str]:
    """Register a callback function for :func:`prepare_computer`.

    Each registered function is called by :func:`prepare_computer`, in order to add or
    modify reporting tasks. Callback functions must take two arguments: the Computer,
    and a :class:`.Context`:

    .. code-block:: python

        from genno import Computer
        from magpie_report import Context
        from magpie_report.report import register

        def cb(c: Computer, ctx: Context):
            # Modify `c` by calling its methods ...
            pass

        register(cb)

    Parameters
    ----------
    name_or_callback
        If a string, this may be a submodule of :mod:`.magpie_report`, in which case the
        function ``magpie_report.{name}.report.callback`` is used. Or, it may be a
        fully-resolved package/module name, in which case ``{name}.callback`` is used.
        If a callable (function), it is used directly.
    """
    if isinstance(name_or_callback, str):
        candidates = [name_or_callback, f"magpie_report.{name_or_callback}.report"]
        mod = None
        for name in candidates:
            try:
                mod = import_module(name)
            except ModuleNotFoundError:
                continue
            else:
                break
        if mod is None:
            raise ModuleNotFoundError(" or ".join(candidates))
        callback = mod.callback
    else:
        callback = name_or_callback
        name = callback.__name__

    if callback in CALLBACKS:
        log.info(f"Already registered: {callback}")
        return None

    CALLBACKS.append(callback)
    return name


def log_before(context: "Context", c: Computer, key) -> None:
    log.info(f"Prepare to report {'(DRY RUN)' if context.core.dry_run else ''}")
    log.info(key)
    log.log(
        logging.INFO
        if (context.core.dry_run or context.core.verbose)
        else logging.DEBUG,
        "\n" + c.describe(key),
    )
    mark_time()


def report(context: "Context", source: ResultSource) -> Any:
    """Report carbon stocks from `source`.

    Parameters
    ----------
    context : Context
        The code responds to:

        - :attr:`.dry_run`: if :obj:`True`, reporting is prepared but nothing is done.
        - :py:`context.report`, which is an instance of :class:`.report.Config`; see
          there for available configuration settings.

    Returns
    -------
    Any
        The result of computing :attr:`.Config.key`: a :class:`.LabeledArray`, or the
        path of the output file if :attr:`.Config.cli_output` is set. :any:`None` if
        :attr:`.dry_run` is set.

    Raises
    ------
    MissingInputError
        if `source` lacks an item required for the result. Other errors raised by
        reporting tasks are also raised directly, not wrapped by :mod:`genno`.
    """
    with nullcontext() if context.core.verbose else silence_log("genno"):
        c, key = prepare_computer(context, source)

    log_before(context, c, key)

    if context.core.dry_run:
        return None

    try:
        result = c.get(key)
    except ComputationError as e:
        # Raise the error from the failed task, e.g. MissingInputError
        raise e._exc from e

    # Display information about the result
    log.info(f"Result:\n\n{result}\n")
    mark_time()

    return result


def prepare_computer(context: "Context", source: ResultSource) -> tuple[Computer, str]:
    """Return a :class:`genno.Computer` and `key` prepared to report from `source`.

    Parameters
    ----------
    context : Context
        The code responds to :py:`context.report`, which is an instance of
        :class:`.report.Config`.
    source : .ResultSource
        Results of one model run.

    Returns
    -------
    genno.Computer
        Computer prepared with carbon stock calculations.

        If :attr:`.cli_output` is given, a task with the key "cli-output" is added that
        writes the :attr:`.Config.key` to that path.
    str
        Same as :attr:`.Config.key`, or "cli-output".
    """
    log.info("Prepare computer")

    c = Computer()
    c.graph["source"] = source
    c.graph["config"]["output_dir"] = context.report.output_dir
    c.graph.setdefault(K.cshare, None)

    # Apply callbacks which define additional reporting computations
    for callback in CALLBACKS + context.report.callback:
        callback(c, context)

    key = context.report.key
    if key not in c:
        raise KeyError(f"No reporting task for key {key!r}")

    if context.report.cli_output:
        # Add a new task that writes `key` to the specified file
        key = c.add(
            "cli-output", operator.write_report, key, path=context.report.cli_output
        )

    log.info("…done")

    return c, key


def defaults(c: Computer, context: "Context") -> None:
    """Add the carbon stock tasks, using the settings of :py:`context.report`."""
    config = context.report

    c.add(K.mapping, operator.location_mapping, "source")
    c.add(
        K.full,
        operator.stock,
        "source",
        K.cshare,
        cc=config.cc,
        cc_year=config.cc_year,
        regrowth=config.regrowth,
    )
    c.add(
        K.summed,
        operator.sum_axes,
        K.full,
        sum_land=config.sum_land,
        sum_cpool=config.sum_cpool,
    )
    c.add(K.result, operator.aggregate, K.summed, K.mapping, level=config.level)
    c.add(K.quantity, operator.to_quantity, K.result)

    # File output under the output directory
    c.add(K.path, operator.make_output_path, "config", "carbonstock.csv")
    c.add(K.file, operator.write_report, K.result, K.path)


register(defaults)
