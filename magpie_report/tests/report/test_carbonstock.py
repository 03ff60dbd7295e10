"""Tests of :mod:`magpie_report.report.carbonstock`."""

import numpy as np
import pandas as pd
import pytest
import xarray as xr

from magpie_report.report import sim
from magpie_report.report.carbonstock import (
    ReconstructionContext,
    SoilPolicy,
    carbonstock,
    collapse_regrowth,
    reconstruct_stock,
    stock,
    sum_axes,
)
from magpie_report.report.source import MissingInputError
from magpie_report.util.labeled_array import LabeledArray, ShapeMismatchError


def assert_stock(result: LabeledArray, expected: xr.DataArray) -> None:
    """`result` has the same axes, labels, and values (to 3 d.p.) as `expected`."""
    __tracebackhide__ = True
    exp = LabeledArray(expected)
    assert set(exp.dims) == set(result.dims)
    actual = result.data.transpose(*exp.dims).sel(exp.coords).values
    np.testing.assert_allclose(actual, exp.values, atol=1e-3)


@pytest.fixture
def data(policy) -> dict:
    return sim.age_class_data(policy)


class TestExample:
    """The minimal example from :func:`.sim.example`."""

    def test_cell(self, example_source) -> None:
        result = carbonstock(example_source, sum_cpool=False, sum_land=False)

        assert {"j", "t", "land", "c_pools"} == set(result.dims)
        assert 20.0 == result.at(j="A", t=1995, land="crop", c_pools="vegc")
        assert 10.0 == result.at(j="A", t=1995, land="crop", c_pools="soilc")
        assert 5.0 == result.at(j="A", t=1995, land="past", c_pools="vegc")
        assert 5.0 == result.at(j="A", t=1995, land="past", c_pools="soilc")

        # Carbon densities doubled
        assert 40.0 == result.at(j="A", t=2000, land="crop", c_pools="vegc")

    def test_sum(self, example_source) -> None:
        result = carbonstock(example_source, sum_land=False)
        assert 30.0 == result.at(j="A", t=1995, land="crop")
        assert 10.0 == result.at(j="A", t=1995, land="past")

        result = carbonstock(example_source)
        assert ("j", "t") == result.dims
        assert 40.0 == result.at(j="A", t=1995)

    def test_no_cc(self, example_source) -> None:
        with_cc = carbonstock(example_source, cc=True)
        result = carbonstock(example_source, cc=False)

        # Same in the reference year; densities fixed thereafter
        assert with_cc.select("t", 1995).equals(result.select("t", 1995))
        assert 40.0 == result.at(j="A", t=2000)
        assert 80.0 == with_cc.at(j="A", t=2000)

    @pytest.mark.parametrize("level", ["reg", "glo", "regglo"])
    def test_level(self, example_source, level) -> None:
        cell = carbonstock(example_source)
        result = carbonstock(example_source, level=level)

        assert {"i", "t"} == set(result.dims)
        # Aggregate totals equal the total of all cells
        for label in result.coords["i"]:
            assert cell.sum("j").equals(result.select("i", label))
        assert 54.0 == result.at(i=result.coords["i"][0], t=1995)

    def test_file(self, example_source, tmp_path) -> None:
        path = tmp_path.joinpath("carbonstock.csv")

        carbonstock(example_source, file=path)

        assert path.exists()
        df = pd.read_csv(path, comment="#")
        # Values in the last column: 54 in 1995 and 108 in 2000
        assert 162.0 == df.iloc[:, -1].sum()

    def test_missing(self, tmp_path) -> None:
        data = sim.example()
        data.pop("fm_carbon_density")
        source = sim.to_source(data)
        path = tmp_path.joinpath("carbonstock.csv")

        # Base stock is available
        carbonstock(source)

        # Reconstruction is not possible; nothing is written
        with pytest.raises(MissingInputError, match="fm_carbon_density"):
            carbonstock(source, file=path, cc=False)
        assert not path.exists()


class TestReconstructStock:
    def test_policy(self, policy, data) -> None:
        ctx = ReconstructionContext.from_source(sim.to_source(data))
        assert policy is SoilPolicy.from_context(ctx)

    def test_no_fix_density(self, data) -> None:
        ctx = ReconstructionContext.from_source(sim.to_source(data))
        assert ctx.stock is reconstruct_stock(ctx, fix_density=False)

    def test_idempotent(self, policy, data) -> None:
        """Repeated reconstruction from the same context gives equal results."""
        ctx = ReconstructionContext.from_source(sim.to_source(data))

        assert reconstruct_stock(ctx).equals(reconstruct_stock(ctx))
        assert reconstruct_stock(ctx, allow_regrowth=False).equals(
            reconstruct_stock(ctx, allow_regrowth=False)
        )

    def test_constant_density(self, policy) -> None:
        """Without climate change, the reconstruction equals the base stock."""
        data = sim.age_class_data(policy, climate_change=False)
        ctx = ReconstructionContext.from_source(sim.to_source(data))

        result = reconstruct_stock(ctx)

        assert_stock(result, data["ov_carbon_stock"].sel(type="level", drop=True))

    def test_fixed_density(self, policy, data) -> None:
        ctx = ReconstructionContext.from_source(sim.to_source(data), 1995)

        result = reconstruct_stock(ctx)

        # Same axes and labels as the base stock
        assert ctx.stock.coords == result.coords
        assert_stock(result, sim.stock_from(data, policy, year=1995))

        # Base stock is unchanged in the reference year, and differs thereafter
        base = ctx.stock
        assert base.select("t", 1995).equals(result.select("t", 1995))
        assert not base.select("t", 2005).equals(result.select("t", 2005))

    def test_reference_year(self, policy, data) -> None:
        ctx = ReconstructionContext.from_source(sim.to_source(data), 2005)
        result = reconstruct_stock(ctx)
        assert_stock(result, sim.stock_from(data, policy, year=2005))

    def test_no_regrowth(self, policy, data) -> None:
        ctx = ReconstructionContext.from_source(sim.to_source(data))

        result = reconstruct_stock(ctx, allow_regrowth=False)

        assert_stock(result, sim.stock_from(data, policy, year=1995, regrowth=False))

        # Land types without age classes are not affected
        with_regrowth = reconstruct_stock(ctx)
        for lt in "crop", "past", "urban", "primforest":
            assert with_regrowth.select("land", lt).equals(result.select("land", lt))

    def test_fallback(self, caplog, data) -> None:
        """Without an age-class area table, stock is density × area."""
        data.pop("p35_other")
        ctx = ReconstructionContext.from_source(sim.to_source(data))

        result = reconstruct_stock(ctx)

        assert "No age-class data for 'other'; use density × area" in caplog.messages

        density = data["fm_carbon_density"].sel(t=1995, land="other", drop=True)
        area = data["ov_land"].sel(type="level", land="other", drop=True)
        expected = density * area
        # Pools other than soil carbon, where that is modelled separately
        pools = ctx.density_ac.coords["c_pools"]
        actual = result.select("land", "other").select("c_pools", pools)
        assert_stock(actual, expected.sel(c_pools=pools))

    def test_fallback_single_age_class(self) -> None:
        """All area in one age class, at the simple density, matches the fallback."""
        data = sim.age_class_data(SoilPolicy.SIMPLE_AGGREGATED_SOIL)
        density = data["fm_carbon_density"].sel(land="other", drop=True)
        area = data["ov_land"].sel(type="level", land="other", drop=True)

        table = xr.zeros_like(data["p35_other"])
        table.loc[dict(ac="ac10")] = area.transpose("t", "j").values
        data.update(
            p35_other=table,
            pm_carbon_density_ac=density.expand_dims(ac=sim.COORDS["ac"]),
        )
        ctx = ReconstructionContext.from_source(sim.to_source(data))
        by_age_class = reconstruct_stock(ctx).select("land", "other")

        data.pop("p35_other")
        ctx = ReconstructionContext.from_source(sim.to_source(data))
        fallback = reconstruct_stock(ctx).select("land", "other")

        assert by_age_class.equals(fallback)
        assert_stock(fallback, (density.sel(t=1995, drop=True) * area))

    def test_missing_pool(self) -> None:
        """An age-class density without one of the pools of the stock is an error."""
        data = sim.age_class_data(SoilPolicy.SIMPLE_AGGREGATED_SOIL)
        density = data["pm_carbon_density_ac"]
        data["pm_carbon_density_ac"] = density.sel(c_pools=["vegc", "soilc"])
        ctx = ReconstructionContext.from_source(sim.to_source(data))

        with pytest.raises(ShapeMismatchError, match="litc"):
            reconstruct_stock(ctx)

    def test_dynamic_cshare(self) -> None:
        policy = SoilPolicy.DYNAMIC_COHORT_SOIL_SHARE
        data = sim.age_class_data(policy)
        source = sim.to_source(data)

        # A carbon share given directly takes precedence over the one in `source`
        ones = xr.ones_like(data["cshare"])
        ctx = ReconstructionContext.from_source(source, cshare=LabeledArray(ones))
        result = reconstruct_stock(ctx)

        assert_stock(result, sim.stock_from(dict(data, cshare=ones), policy, 1995))

        # Missing carbon share values are taken as 1.0
        nan = LabeledArray(xr.full_like(data["cshare"], np.nan))
        ctx = ReconstructionContext.from_source(source, cshare=nan)
        assert result.equals(reconstruct_stock(ctx))

    def test_split_soil_missing(self) -> None:
        data = sim.age_class_data(SoilPolicy.SPLIT_TOP_SUB_SOIL)
        data.pop("i59_subsoilc_density")
        ctx = ReconstructionContext.from_source(sim.to_source(data))

        with pytest.raises(MissingInputError, match="Top- and sub-soil"):
            reconstruct_stock(ctx)

    def test_context_missing(self, example_source) -> None:
        with pytest.raises(MissingInputError, match="requires 'land'"):
            ReconstructionContext(
                stock=example_source.get_level("ov_carbon_stock"),
                land=None,  # type: ignore [arg-type]
                density=example_source.get("fm_carbon_density"),
            )

        data = sim.example()
        data.pop("ov_land")
        with pytest.raises(MissingInputError, match="ov_land"):
            ReconstructionContext.from_source(sim.to_source(data))


def test_collapse_regrowth() -> None:
    table = LabeledArray(
        [[1.0, 2.0, 3.0], [4.0, 0.0, 6.0]],
        dict(j=["A", "B"], ac=["ac0", "ac5", "ac10"]),
    )

    result = collapse_regrowth(table)

    assert [[3.0, 0.0, 3.0], [4.0, 0.0, 6.0]] == result.values.tolist()
    # Total area is conserved
    assert table.sum("ac").equals(result.sum("ac"))

    # A single age class is unchanged
    single = table.select("ac", ["ac0"])
    assert single is collapse_regrowth(single)


def test_stock(example_source) -> None:
    result = stock(example_source)
    assert "carbon stock" == result.name
    assert ("j", "t", "land", "c_pools") == result.dims

    # Without the model stock, no result
    data = sim.example()
    data.pop("ov_carbon_stock")
    with pytest.raises(MissingInputError, match="ov_carbon_stock"):
        stock(sim.to_source(data))


def test_sum_axes(example_source) -> None:
    s = stock(example_source)

    assert ("j", "t", "land", "c_pools") == sum_axes(s, False, False).dims
    assert ("j", "t", "c_pools") == sum_axes(s, sum_cpool=False).dims
    assert ("j", "t", "land") == sum_axes(s, sum_land=False).dims
    assert ("j", "t") == sum_axes(s).dims
