"""Report MAgPIE model results.

Use --help with any command for details, for instance:

    \b
    magpie-report report --help
"""

import logging
import sys
from importlib import import_module
from pathlib import Path

import click

from magpie_report.util._logging import flush, mark_time
from magpie_report.util._logging import setup as setup_logging
from magpie_report.util.click import common_params
from magpie_report.util.context import Context

log = logging.getLogger(__name__)

#: Modules with a click command named ``cli``, added to :func:`main`.
COMMANDS = ["magpie_report.report.cli"]

#: Commands that do not write a log file.
QUIET = {"last-log", "_test"}


def _quiet(click_ctx) -> bool:
    return (
        click_ctx.invoked_subcommand in QUIET
        or "--help" in sys.argv
        or "pytest" in sys.argv[0]
    )


@click.group(help=__doc__)
@click.option("--local-data", type=Path, help="Base path for local data and outputs.")
@common_params("verbose")
@click.pass_context
def main(click_ctx, **kwargs):
    mark_time(quiet=True)

    setup_logging(
        level="DEBUG" if kwargs["verbose"] else "INFO", file=not _quiet(click_ctx)
    )
    log.debug(f"Invoked as: {' '.join(sys.argv)}")

    # Passed to commands decorated with @click.pass_obj
    click_ctx.obj = Context()
    click_ctx.obj.core.handle_cli_args(**kwargs)

    click_ctx.call_on_close(flush)


@main.command("last-log")
def last_log():
    """Print the path of the most recent log file."""
    from platformdirs import user_log_path

    if paths := sorted(user_log_path("magpie-report").glob("*T*")):
        print(paths[-1])


@main.group("_test", hidden=True)
def cli_test_group():
    """Commands used only in tests.

    Tests attach commands to this group with :func:`.temporary_command`.
    """


for name in COMMANDS:
    main.add_command(import_module(name).cli)


if __name__ == "__main__":
    main()
