import logging
import re

import click
import pytest

from magpie_report.cli import cli_test_group
from magpie_report.util._logging import mark_time, once, silence_log
from magpie_report.util.click import temporary_command


def test_mark_time(caplog):
    # Call 3 times
    mark_time()  # Will only log if already called during the course of another test
    mark_time()
    mark_time()

    # Either 2 or 3 records
    assert len(caplog.records) in (2, 3)

    # Each message matches the expected format
    assert all(re.match(r" \+\d+\.\d = \d+\.\d seconds", m) for m in caplog.messages)


def test_once(caplog):
    log = logging.getLogger("magpie_report.tests.once")

    for _ in range(3):
        once(log, logging.WARNING, "Only once")

    assert ["Only once"] == caplog.messages


@pytest.mark.parametrize("k", range(3))
def test_flush(magpie_cli, k):
    """All records emitted by a command reach the console before the CLI exits."""
    N = 1_000

    @click.command("log-many")
    def func():
        log = logging.getLogger("magpie_report.report")
        for i in range(N):
            log.info(f"{k = } {i = }")

    with temporary_command(cli_test_group, func):
        result = magpie_cli.assert_exit_0(["_test", "log-many"])

    # The last record is present
    assert result.output.rstrip().endswith(f"{N - 1}"), result.output[-200:]


def test_silence_log(caplog):
    # An example logger
    log = logging.getLogger("magpie_report.report")

    msg = "Here's a warning!"

    # pytest caplog fixture picks up warning messages
    log.warning(msg)
    assert [msg] == caplog.messages

    caplog.clear()

    # silence_log() hides the messages
    with silence_log():
        log.warning(msg)

    assert [
        "Set level=40 for logger(s): magpie_report",
        "…restored.",
    ] == caplog.messages
    caplog.clear()

    # After the "with" block, logging is restored
    log.warning(msg)
    assert [msg] == caplog.messages
