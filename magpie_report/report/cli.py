import logging
from pathlib import Path

import click

from magpie_report.util.click import common_params

log = logging.getLogger(__name__)


@click.command(name="report")
@common_params("dry_run level")
@click.option(
    "--config",
    "config_file",
    default="default",
    show_default=True,
    help="Path or stem for reporting config file.",
)
@click.option("--sum-cpool/--no-sum-cpool", default=None, help="Sum carbon pools.")
@click.option("--sum-land/--no-sum-land", default=None, help="Sum land types.")
@click.option(
    "--cc/--no-cc",
    default=None,
    help="Include (default) or remove the effect of climate change on densities.",
)
@click.option("--cc-year", type=int, help="Year at which to fix carbon densities.")
@click.option(
    "--regrowth/--no-regrowth",
    default=None,
    help="With --no-cc, include or disregard regrowth.",
)
@click.option(
    "--output",
    "-o",
    "cli_output",
    metavar="PATH",
    type=click.Path(writable=True, resolve_path=True, path_type=Path),
    help="Write output to PATH (.csv or .xlsx) instead of the console.",
)
@click.argument(
    "path", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.pass_obj
def cli(context, config_file, cli_output, path, **kwargs):
    """Report carbon stocks from model results in PATH.

    PATH is a directory with one .csv file per item, for instance
    ov_carbon_stock.csv.

    --config can give either the absolute path to a reporting configuration file, or
    the stem (i.e. name without .yaml extension) of a file in data/report. Other
    options override the settings from this file.

    If --verbose is given to the top-level CLI, the full description of the steps to
    calculate the result is printed.
    """
    from magpie_report.util._logging import mark_time

    from . import report
    from .config import Config
    from .source import DirectorySource

    # Update the reporting configuration from command-line parameters
    context.report = Config(from_file=config_file, cli_output=cli_output)
    context.report.update(**{k: v for k, v in kwargs.items() if v is not None})

    mark_time()
    report(context, DirectorySource(path))
    mark_time()
