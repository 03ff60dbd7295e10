"""Utilities for testing :mod:`magpie_report`.

This module is a :mod:`pytest` plugin; use it with :program:`pytest -p
magpie_report.testing`, or via the ``addopts`` setting in :file:`pyproject.toml`.
"""

import logging
import os
from copy import deepcopy
from pathlib import Path

import pytest

from magpie_report.report import sim
from magpie_report.report.carbonstock import SoilPolicy
from magpie_report.util.context import Context

log = logging.getLogger(__name__)


# Fixtures


@pytest.fixture(scope="session")
def tmp_env(tmp_path_factory):
    """A copy of :data:`os.environ` with ``MAGPIE_REPORT_LOCAL_DATA`` set.

    The variable points to a temporary, empty directory :file:`/data/` under the
    :ref:`pytest tmp_path directory <pytest:tmp_path>`.
    """
    result = os.environ.copy()
    result["MAGPIE_REPORT_LOCAL_DATA"] = str(tmp_path_factory.mktemp("data"))
    yield result


@pytest.fixture(scope="session")
def session_context(tmp_env):
    """A :class:`.Context` that does not affect the user/developer's filesystem.

    :attr:`.Config.local_data` and the reporting output directory are set to the
    temporary directory from :func:`tmp_env`.
    """
    local_data = Path(tmp_env["MAGPIE_REPORT_LOCAL_DATA"])

    ctx = Context(local_data=local_data)
    ctx.report.set_output_dir(local_data.joinpath("report"))

    yield ctx


@pytest.fixture(scope="function")
def test_context(request, session_context):
    """A copy of :func:`session_context` scoped to one test function."""
    yield deepcopy(session_context)


@pytest.fixture
def magpie_cli(session_context, tmp_env):
    """A :class:`.CliRunner` object that invokes the :program:`magpie-report` CLI.

    NB this requires the :func:`tmp_env` fixture, so that commands invoked do not
    write to the user's local data directory.
    """
    from magpie_report import cli
    from magpie_report.util.click import CliRunner

    yield CliRunner(cli.main, env=tmp_env)


@pytest.fixture
def example_source():
    """A :class:`.MemorySource` with the items from :func:`.sim.example`."""
    yield sim.to_source(sim.example())


@pytest.fixture(params=list(SoilPolicy), ids=lambda p: p.name.lower())
def policy(request) -> SoilPolicy:
    """Each of the :class:`.SoilPolicy` values."""
    return request.param
