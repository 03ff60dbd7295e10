from copy import deepcopy

import pytest

from magpie_report import Context
from magpie_report.report.config import Config as ReportConfig
from magpie_report.util.config import Config


class TestContext:
    def test_init(self, tmp_path) -> None:
        c = Context(local_data=tmp_path, foo="bar")

        assert isinstance(c.core, Config)
        assert isinstance(c.report, ReportConfig)

        # Core fields are aliased
        assert tmp_path == c.local_data == c.core.local_data
        # Other keyword arguments are stored
        assert "bar" == c.foo == c["foo"]

        assert "<Context keys=['core', 'foo', 'report']>" == repr(c)

    def test_attributes(self) -> None:
        c = Context()

        c.dry_run = True
        assert c.core.dry_run is True

        c["baz"] = 1
        assert "baz" in c and "dry_run" in c
        assert 1 == c.get("baz")
        assert None is c.get("qux")
        assert 2 == c.setdefault("qux", 2)
        assert 2 == c.setdefault("qux", 3)

        with pytest.raises(AttributeError):
            c.quux

    def test_deepcopy(self, test_context) -> None:
        c = deepcopy(test_context)

        c.report.level = "glo"
        c.verbose = True

        assert "cell" == test_context.report.level
        assert test_context.verbose is False
