"""Utilities for the :mod:`click` command line."""

import logging
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional, Union

import click
import click.testing
from click import Choice, Option

from ._logging import preserve_log_level
from .context import Context
from .node import LEVELS

log = logging.getLogger(__name__)


def store_context(context: Union[click.Context, Context], param, value):
    """Parameter callback that sets :py:`param.name` on the :class:`.Context`.

    Use with :py:`expose_value=False` for options that are read from the Context later,
    not by the command function.
    """
    obj = context.obj if isinstance(context, click.Context) else context
    setattr(obj, param.name, value)
    return value


#: Parameters shared by several commands; see :func:`common_params`.
PARAMS = {
    "dry_run": Option(
        ["--dry-run"],
        is_flag=True,
        callback=store_context,
        expose_value=False,
        help="Prepare and describe the calculation, but do not run it.",
    ),
    "level": Option(
        ["--level"],
        type=Choice(LEVELS),
        default=None,
        help="Level of spatial aggregation.",
    ),
    # Handled by the top-level command, before the Context exists
    "verbose": Option(
        ["--verbose", "-v"], is_flag=True, help="Print DEBUG-level log messages."
    ),
}


def common_params(param_names: str):
    """Add the :data:`PARAMS` named in `param_names` to a click command.

    Example
    -------
    >>> @click.command
    ... @common_params("dry_run level")
    ... @click.pass_obj
    ... def mycmd(context, level):
    ...     print(context.dry_run, level)
    """

    def decorator(f):
        # Same storage as click.option(); parameters attach when the command is built
        params = f.__dict__.setdefault("__click_params__", [])
        params.extend(PARAMS[name] for name in reversed(param_names.split()))
        return f

    return decorator


@contextmanager
def temporary_command(group: click.Group, command: click.Command):
    """Attach `command` to `group` within the context."""
    assert command.name is not None
    group.add_command(command)
    try:
        yield
    finally:
        del group.commands[command.name]


@dataclass
class CliRunner:
    """Invoke the CLI command `cli_cmd` in tests, with the environment `env`."""

    cli_cmd: click.Command
    env: Mapping[str, str] = field(default_factory=dict)

    last_result: Optional[click.testing.Result] = field(default=None, init=False)

    def invoke(self, args, **kwargs) -> click.testing.Result:
        runner = click.testing.CliRunner(env=self.env)
        with preserve_log_level():
            self.last_result = runner.invoke(self.cli_cmd, args, **kwargs)
        return self.last_result

    def assert_exit_0(self, args=None, **kwargs) -> click.testing.Result:
        """Invoke with `args`, and check that the command succeeded.

        Without `args`, the result of the previous :meth:`invoke` is checked.

        Raises
        ------
        RuntimeError
            if the exit code is not 0. The exception from the command is chained.
        """
        __tracebackhide__ = True

        result = self.invoke(args, **kwargs) if args is not None else self.last_result
        assert result is not None

        if result.exit_code != 0:
            print(f"{result.exit_code = }", f"{result.output = }", sep="\n")
            raise RuntimeError(result.exit_code) from result.exception

        return result
