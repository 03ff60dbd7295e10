"""Basic tests of the command line utilities."""

import click

from magpie_report.cli import cli_test_group
from magpie_report.util.click import common_params, temporary_command


def test_common_params(magpie_cli):
    """--dry-run is stored on the Context; --level is passed to the command."""

    @click.command("common-params")
    @common_params("dry_run level")
    @click.pass_obj
    def func(ctx, level):
        print(f"{ctx.dry_run} {level}")

    with temporary_command(cli_test_group, func):
        result = magpie_cli.assert_exit_0(["_test", func.name, "--dry-run"])
        assert "True None" in result.output.splitlines()

        result = magpie_cli.assert_exit_0(["_test", func.name, "--level=regglo"])
        assert "False regglo" in result.output.splitlines()

        # Invalid choice
        result = magpie_cli.invoke(["_test", func.name, "--level=country"])
        assert 2 == result.exit_code

    # Command is removed from the group
    assert func.name not in cli_test_group.commands


def test_local_data(magpie_cli, tmp_path):
    """--local-data given to the top-level CLI is stored on the Context."""

    @click.command("local-data")
    @click.pass_obj
    def func(ctx):
        print(ctx.local_data)

    with temporary_command(cli_test_group, func):
        result = magpie_cli.assert_exit_0(
            [f"--local-data={tmp_path}", "_test", "local-data"]
        )

    assert str(tmp_path) in result.output.splitlines()
