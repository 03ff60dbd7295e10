from dataclasses import dataclass, field
from pathlib import Path

import pytest

from magpie_report.util.config import Config, ConfigHelper


class TestConfigHelper:
    @pytest.fixture
    def cls(self) -> type:
        """A class which inherits from ConfigHelper."""

        @dataclass
        class Config(ConfigHelper):
            foo_1: int = 1
            foo_2: str = ""
            foo_3: bool = True

        return Config

    @pytest.fixture
    def cls2(self, cls) -> type:
        """A class with an attribute that is also a ConfigHelper."""

        @dataclass
        class Config2(ConfigHelper):
            bar_1: float = 0.01
            subconfig_a: cls = field(default_factory=cls)  # type: ignore [valid-type]

        return Config2

    @pytest.fixture
    def c(self, cls):
        return cls(foo_1=99, foo_2="bar", foo_3=False)

    def test_canonical_name(self, cls):
        assert "foo_1" == cls._canonical_name("foo 1")
        assert "foo_2" == cls._canonical_name("foo-2")
        assert "foo_3" == cls._canonical_name("foo_3")
        assert None is cls._canonical_name("foo 4")

    def test_from_dict(self, cls, c):
        values = {"foo 1": 99, "foo-2": "bar", "foo_3": False}
        assert c == cls.from_dict(values)

        values.update(foo_4=3.14)
        with pytest.raises(ValueError):
            cls.from_dict(values)

    def test_read_file(self, caplog, tmp_path, cls, cls2, c):
        # Write a YAML snippet to file
        yaml_path = tmp_path.joinpath("config.yaml")
        yaml_path.write_text(
            """
foo 1: 99

foo-2: bar

foo_3: false

foo_4: 3.14
            """
        )

        obj1 = cls()
        # Method runs
        obj1.read_file(yaml_path, fail=False)
        # Values are read
        assert c == obj1, obj1
        # Messages are logged
        assert [
            "Config has no attribute for file section 'foo_4'; ignored"
        ] == caplog.messages

        # With fail="raise", the unknown section raises an exception
        with pytest.raises(ValueError, match="no attribute for file section 'foo_4'"):
            cls().read_file(yaml_path)

        yaml_path.write_text(
            """
bar_1: 3.14
subconfig a:
  foo 1: 99
  foo-2: bar
  foo_3: false
            """
        )

        # Nested ConfigHelper is updated recursively
        obj2 = cls2()
        obj2.read_file(yaml_path)
        assert 3.14 == obj2.bar_1
        assert c == obj2.subconfig_a

        with pytest.raises(NotImplementedError):
            cls().read_file(yaml_path.with_suffix(".xlsx"))

    def test_replace(self, c):
        result = c.replace(foo_2="baz")
        assert result is not c
        assert "baz" == result.foo_2

    def test_update(self, c):
        c.update(foo_2="baz")
        assert "baz" == c.foo_2

        with pytest.raises(AttributeError):
            c.update(foo_4="")


class TestConfig:
    def test_local_data(self, monkeypatch, tmp_path) -> None:
        monkeypatch.setenv("MAGPIE_REPORT_LOCAL_DATA", str(tmp_path))
        c = Config()
        assert tmp_path.resolve() == c.local_data

        assert tmp_path.resolve().joinpath("a", "b.csv") == c.get_local_path(
            "a", "b", suffix=".csv"
        )

    def test_handle_cli_args(self, tmp_path) -> None:
        c = Config()
        c.handle_cli_args(local_data=str(tmp_path), verbose=True)

        assert Path(tmp_path) == c.local_data
        assert c.verbose is True
