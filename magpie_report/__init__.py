from importlib.metadata import PackageNotFoundError, version

from magpie_report.util._logging import setup as setup_logging
from magpie_report.util.config import Config
from magpie_report.util.context import Context
from magpie_report.util.labeled_array import LabeledArray

# Expose utility classes
__all__ = ["Config", "Context", "LabeledArray"]

try:
    __version__ = version("magpie-report")
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed
    __version__ = "999"

# By default, no logging to console/stdout or to file
setup_logging(console=False, file=False)
