import pandas as pd
import pytest
from genno import Computer

from magpie_report.report.operator import (
    aggregate,
    location_mapping,
    make_output_path,
    stock,
    to_quantity,
    write_report,
)


@pytest.fixture
def c() -> Computer:
    return Computer()


def test_aggregate(example_source) -> None:
    s = stock(example_source, None).sum("land").sum("c_pools")

    assert s is aggregate(s, None)

    result = aggregate(s, location_mapping(example_source), level="reg")
    assert ["R1"] == result.coords["i"]
    assert 54.0 == result.at(i="R1", t=1995)


def test_make_output_path(tmp_path, c):
    # Set the output_dir configuration attribute
    c.graph["config"]["output_dir"] = tmp_path

    # Add a computation that invokes make_output_path
    c.add("test", make_output_path, "config", "foo/bar.csv")

    # Returns the correct path; the parent directory is created
    assert tmp_path.joinpath("foo", "bar.csv") == c.get("test")
    assert tmp_path.joinpath("foo").is_dir()


def test_stock(example_source) -> None:
    result = stock(example_source, None, cc=False, cc_year=2000)
    # Densities fixed at their 2000 values
    assert 40.0 == result.at(j="A", t=1995, land="crop", c_pools="vegc")


def test_to_quantity(example_source) -> None:
    qty = to_quantity(stock(example_source, None))
    assert {"j", "t", "land", "c_pools"} == set(qty.dims)
    assert "carbon stock" == qty.name


@pytest.mark.parametrize("suffix", [".csv", ".xlsx"])
def test_write_report(tmp_path, example_source, suffix) -> None:
    s = stock(example_source, None).sum("land").sum("c_pools")
    path = tmp_path.joinpath(f"carbonstock{suffix}")

    assert path == write_report(s, path)

    if suffix == ".csv":
        df = pd.read_csv(path, comment="#")
    else:
        df = pd.read_excel(path)
    assert s.values.sum() == df.iloc[:, -1].sum()
