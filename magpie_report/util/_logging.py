"""Logging utilities.

Records from all loggers go through a single :class:`QueueHandler` on the root logger.
A :class:`QueueListener` thread passes them on to two handlers:

- "console", which writes to :data:`sys.stdout`.
- "file", which writes to a file in :func:`platformdirs.user_log_path`. The file is
  only created when the first record is written.

Both are silent until :func:`setup` gives them a level.
"""

import atexit
import logging
import logging.handlers
import sys
from contextlib import contextmanager
from datetime import datetime
from queue import SimpleQueue
from time import process_time
from typing import TYPE_CHECKING, Optional, Union

import colorama

if TYPE_CHECKING:
    from logging import Logger, LogRecord

__all__ = [
    "Formatter",
    "QueueListener",
    "SilenceFilter",
    "StreamHandler",
    "flush",
    "mark_time",
    "once",
    "preserve_log_level",
    "setup",
    "silence_log",
]

log = logging.getLogger(__name__)

#: Name of the top-level package.
PACKAGE = __name__.split(".")[0]

#: Level that no record reaches; used to switch handlers off.
OFF = 99

_HANDLER: dict[str, logging.Handler] = dict()

# Marks recorded by mark_time()
_TIMES: list[float] = []


class Formatter(logging.Formatter):
    """Format records as the logger name without the package, and the message.

    For instance, a record from the logger "magpie_report.report.carbonstock"::

        report.carbonstock  Soil carbon policy: SPLIT_TOP_SUB_SOIL

    Repeated records from the same logger are indented instead of repeating the name.
    With `use_colour`, the name is shown in cyan; warnings and errors in yellow and red.
    """

    def __init__(self, use_colour: bool = True) -> None:
        super().__init__()
        self._last: Optional[str] = None
        self._colour: dict[Union[int, str], str] = {}

        if use_colour:
            colorama.just_fix_windows_console()
            self._colour = {
                "name": colorama.Fore.CYAN,
                logging.WARNING: colorama.Fore.YELLOW,
                logging.ERROR: colorama.Fore.RED,
                logging.CRITICAL: colorama.Fore.RED + colorama.Style.BRIGHT,
                "reset": colorama.Style.RESET_ALL,
            }

    def format(self, record: "LogRecord") -> str:
        name = record.name.removeprefix(f"{PACKAGE}.")
        if name == self._last:
            name = " " * len(name)
        else:
            self._last = name

        c = self._colour.get
        message = record.getMessage()
        if record.levelno >= logging.WARNING:
            message = f"{c(record.levelno, '')}{message}{c('reset', '')}"

        return f"{c('name', '')}{name}{c('reset', '')}  {message}"


class QueueHandler(logging.handlers.QueueHandler):
    listener: "QueueListener"


class QueueListener(logging.handlers.QueueListener):
    """:class:`.logging.QueueListener` that can be flushed."""

    def flush(self) -> None:
        """Handle all records currently in the queue.

        The listener thread is stopped, which processes any pending records, and then
        restarted.
        """
        if self._thread is None:
            return
        self.stop()
        self.start()


class SilenceFilter(logging.Filter):
    """Drop records below `level` from the loggers `names` and their descendants."""

    def __init__(self, names: str, level: int) -> None:
        super().__init__()
        self.names = sorted(names.split())
        self.level = level

    def _match(self, name: str) -> bool:
        return any(name == n or name.startswith(f"{n}.") for n in self.names)

    def filter(self, record: "LogRecord") -> bool:
        return record.levelno >= self.level or not self._match(record.name)


class StreamHandler(logging.StreamHandler):
    """Handler that looks up the :mod:`sys` stream `stream_name` on every write.

    :mod:`click` and :mod:`pytest` temporarily replace :data:`sys.stdout`.
    """

    def __init__(self, stream_name: str = "stdout") -> None:
        logging.Handler.__init__(self)
        self.stream_name = stream_name

    @property
    def stream(self):
        return getattr(sys, self.stream_name)


def mark_time(quiet: bool = False) -> None:
    """Record a time mark; unless `quiet`, log the CPU time since the previous one."""
    _TIMES.append(process_time())
    if quiet or len(_TIMES) < 2:
        return
    log.info(f" +{_TIMES[-1] - _TIMES[-2]:.1f} = {_TIMES[-1]:.1f} seconds")


def once(logger: "Logger", level: int, msg: str, *args, **kwargs) -> None:
    """Log `msg` on `logger` at `level`, unless it was already logged by this function.

    Used for warnings about settings that would otherwise repeat for every call.
    """
    seen = getattr(logger, "_once", None)
    if seen is None:
        seen = set()
        setattr(logger, "_once", seen)
    if msg in seen:
        return
    seen.add(msg)

    kwargs.setdefault("stacklevel", 2)
    logger.log(level, msg, *args, **kwargs)


@contextmanager
def preserve_log_level():
    """Restore the level of the package logger on exit."""
    logger = logging.getLogger(PACKAGE)
    level = logger.level
    try:
        yield
    finally:
        logger.setLevel(level)


def _log_file_path():
    from platformdirs import user_log_path

    # e.g. 2025-10-01T121314
    name = datetime.now().astimezone().strftime("%Y-%m-%dT%H%M%S")
    return user_log_path("magpie-report", ensure_exists=True).joinpath(name)


def _configure() -> None:
    console = _HANDLER["console"] = StreamHandler("stdout")
    console.setFormatter(Formatter())

    file = _HANDLER["file"] = logging.FileHandler(_log_file_path(), delay=True)
    file.setFormatter(Formatter(use_colour=False))

    for h in console, file:
        h.setLevel(OFF)

    queue: SimpleQueue = SimpleQueue()
    handler = _HANDLER["queue"] = QueueHandler(queue)
    handler.listener = QueueListener(queue, console, file, respect_handler_level=True)
    handler.listener.start()
    atexit.register(handler.listener.stop)

    logging.root.addHandler(handler)
    logging.root.setLevel(logging.DEBUG)
    # The levels of the "console" and "file" handlers decide what is shown
    logging.getLogger(PACKAGE).setLevel(logging.NOTSET)
    # genno logs every task it adds at DEBUG
    logging.getLogger("genno").setLevel(logging.INFO)


def setup(
    level: Union[str, int] = OFF, console: bool = True, *, file: bool = False
) -> None:
    """Set up logging.

    Handlers are created on the first call; later calls only change levels.

    Parameters
    ----------
    level :
        Level for messages to the console.
    console :
        If :any:`False`, nothing is logged to the console, regardless of `level`.
    file :
        If :any:`True`, log all messages (at DEBUG and above) to a new file.
    """
    if "queue" not in _HANDLER:
        _configure()

    _HANDLER["console"].setLevel(level if console else OFF)
    _HANDLER["file"].setLevel(logging.DEBUG if file else OFF)

    if file:
        path = getattr(_HANDLER["file"], "baseFilename")
        log.info(f"Log to {path}")


def flush() -> None:
    """Handle all queued log records."""
    _HANDLER["queue"].listener.flush()  # type: ignore [attr-defined]


@contextmanager
def silence_log(names: Optional[str] = None, level: int = logging.ERROR):
    """Context manager to hide records below `level` from some loggers.

    Parameters
    ----------
    names : str, optional
        Space-separated names of loggers. Default: the package logger.
    level : int, optional
        Records at this level and above are still shown.

    Example
    -------
    >>> with silence_log("genno"):
    ...     c = Computer()
    """
    f = SilenceFilter(names or PACKAGE, level)
    log.info(f"Set level={level} for logger(s): {' '.join(f.names)}")

    handlers = list(logging.root.handlers)
    for h in handlers:
        h.addFilter(f)
    try:
        yield
    finally:
        for h in handlers:
            h.removeFilter(f)
        log.info("…restored.")
