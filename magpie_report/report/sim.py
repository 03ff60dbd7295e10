"""Simulated results archives for testing :mod:`~magpie_report.report`."""

import logging
from collections.abc import Mapping, Sequence
from typing import Optional

import numpy as np
import xarray as xr

from magpie_report.util.labeled_array import LabeledArray

from .carbonstock import AGE_CLASS_LAND, SoilPolicy
from .source import DirectorySource, MemorySource

__all__ = [
    "COORDS",
    "age_class_data",
    "example",
    "stock_from",
    "to_source",
]

log = logging.getLogger(__name__)

#: Labels of simulated data.
COORDS: Mapping[str, list] = dict(
    j=["R1.1", "R1.2", "R2.1"],
    t=[1995, 2000, 2005],
    land=["crop", "past", "forestry", "primforest", "secdforest", "urban", "other"],
    c_pools=["vegc", "litc", "soilc"],
    ac=["ac0", "ac5", "ac10"],
    type32=["aff", "plant"],
    when=["before", "after"],
    type=["level", "marginal"],
)

#: Land types with dynamic soil carbon.
POOLS59 = ["crop", "past", "forestry", "secdforest", "other"]


def _array(rng: np.random.Generator, *dims: str, **coords) -> xr.DataArray:
    """Random integer values from 1 to 9, with `dims` from :data:`COORDS`."""
    coords = {d: coords.get(d, COORDS[d]) for d in dims}
    shape = tuple(map(len, coords.values()))
    return xr.DataArray(
        rng.integers(1, 10, size=shape).astype(float), coords=coords, dims=dims
    )


def _with_type(da: xr.DataArray) -> xr.DataArray:
    """Add a "type" dimension to a model variable: the level, and zero marginals."""
    return xr.concat([da, xr.zeros_like(da)], dim="type").assign_coords(
        type=COORDS["type"]
    )


def age_class_data(
    policy: SoilPolicy = SoilPolicy.SIMPLE_AGGREGATED_SOIL,
    climate_change: bool = True,
    seed: int = 1,
) -> dict[str, xr.DataArray | list]:
    """Generate the items of a results archive with age-class resolved land.

    Parameters
    ----------
    policy :
        Treatment of soil carbon. This determines whether the age-class densities
        include the "soilc" pool, and which soil-related items are generated.
    climate_change :
        If :any:`True`, carbon densities increase by 50% in each period after the
        first. Otherwise they are constant over time.
    seed :
        For the random number generator.

    Returns
    -------
    dict
        Mapping from item names to :class:`xarray.DataArray` or (for sets)
        :class:`list`. Use :func:`to_source` to obtain a :class:`.ResultSource`.
    """
    rng = np.random.default_rng(seed)

    # Factors for carbon densities, by period
    factor = xr.DataArray(
        [(1.0 + 0.5 * i) if climate_change else 1.0 for i in range(len(COORDS["t"]))],
        coords={"t": COORDS["t"]},
        dims="t",
    )

    data: dict = {}

    # Areas by age class
    data["p32_land"] = _array(rng, "t", "j", "type32", "ac")
    data["p35_secdforest"] = _array(rng, "t", "j", "ac", "when")
    data["p35_other"] = _array(rng, "t", "j", "ac")

    # Land area: random, except for age-class resolved land types
    land = _array(rng, "j", "t", "land")
    for lt, value in (
        ("forestry", data["p32_land"].sum(["type32", "ac"])),
        ("secdforest", data["p35_secdforest"].sel(when="after").sum("ac")),
        ("other", data["p35_other"].sum("ac")),
    ):
        land.loc[dict(land=lt)] = value.transpose("j", "t").values
    data["ov_land"] = _with_type(land)

    # Carbon densities
    ac_pools = COORDS["c_pools"]
    if policy is not SoilPolicy.SIMPLE_AGGREGATED_SOIL:
        ac_pools = ac_pools[:2]

    def density(*dims, **coords) -> xr.DataArray:
        # Drawn once for all periods, then scaled by `factor`
        return (_array(rng, *dims, **coords) * factor).transpose("t", *dims)

    data["fm_carbon_density"] = density("j", "land", "c_pools")
    data["pm_carbon_density_ac"] = density("j", "ac", "c_pools", c_pools=ac_pools)
    data["p32_carbon_density_ac"] = density(
        "j", "type32", "ac", "c_pools", c_pools=ac_pools
    )

    if policy is SoilPolicy.SPLIT_TOP_SUB_SOIL:
        data["i59_topsoilc_density"] = density("j")
        data["i59_subsoilc_density"] = density("j")
    elif policy is SoilPolicy.DYNAMIC_COHORT_SOIL_SHARE:
        data["ov59_som_pool"] = _with_type(_array(rng, "j", "t", "land", land=POOLS59))
        data["pools59"] = list(POOLS59)
        data["cshare"] = xr.DataArray(
            rng.choice(
                [0.5, 0.75, 1.0],
                size=(len(COORDS["j"]), len(COORDS["t"]), len(POOLS59)),
            ),
            coords=dict(j=COORDS["j"], t=COORDS["t"], land=POOLS59),
            dims=("j", "t", "land"),
        )

    data["ov_carbon_stock"] = _with_type(stock_from(data, policy))
    data["cell"] = [(c.split(".")[0], c) for c in COORDS["j"]]

    return data


def _collapse(table: xr.DataArray) -> xr.DataArray:
    young = table.isel(ac=slice(None, -1)).sum("ac")
    result = xr.zeros_like(table)
    result.loc[dict(ac=COORDS["ac"][0])] = young.values
    result.loc[dict(ac=COORDS["ac"][-1])] = table.isel(ac=-1).values
    return result


def stock_from(
    data: Mapping[str, xr.DataArray],
    policy: SoilPolicy,
    year: Optional[int] = None,
    regrowth: bool = True,
) -> xr.DataArray:
    """Compute carbon stock from simulated `data`.

    Parameters
    ----------
    year :
        If given, use carbon densities from this period for all periods.
    regrowth :
        If :any:`False`, collapse age-class resolved areas to the youngest and oldest
        age classes.

    Returns
    -------
    xarray.DataArray
        with dimensions (j, t, land, c_pools).
    """

    def density(name: str) -> xr.DataArray:
        return data[name] if year is None else data[name].sel(t=year, drop=True)

    def put(land_type: str, pools: Sequence[str], value: xr.DataArray) -> None:
        value = value.sel(c_pools=list(pools)) if "c_pools" in value.dims else value
        if "c_pools" not in value.dims:
            value = value.expand_dims(c_pools=list(pools))
        result.loc[dict(land=land_type, c_pools=list(pools))] = value.transpose(
            "j", "t", "c_pools"
        ).values

    area = data["ov_land"].sel(type="level", drop=True)
    result = density("fm_carbon_density") * area
    result = result.transpose("j", "t", "land", "c_pools")

    soil = ["soilc"]
    ag = ["vegc", "litc"]

    if policy is SoilPolicy.SPLIT_TOP_SUB_SOIL:
        top, sub = density("i59_topsoilc_density"), density("i59_subsoilc_density")
        put("crop", soil, (top + sub) * area.sel(land="crop"))
    elif policy is SoilPolicy.DYNAMIC_COHORT_SOIL_SHARE:
        for lt in data["pools59"]:
            value = (
                density("fm_carbon_density").sel(land=lt, c_pools=soil)
                * data["cshare"].sel(land=lt)
                * area.sel(land=lt)
            )
            put(lt, soil, value)

    pools = COORDS["c_pools"] if policy is SoilPolicy.SIMPLE_AGGREGATED_SOIL else ag
    for lt, name in AGE_CLASS_LAND.items():
        table = data[name]
        if "when" in table.dims:
            table = table.sel(when="after", drop=True)
        if not regrowth:
            table = _collapse(table)
        dens = density(
            "p32_carbon_density_ac" if lt == "forestry" else "pm_carbon_density_ac"
        )
        value = (dens * table).sum([d for d in ("ac", "type32") if d in table.dims])
        put(lt, pools, value.broadcast_like(area.sel(land=lt)))

    return result


def example() -> dict[str, xr.DataArray | list]:
    """Items for a minimal example with two locations and two land types.

    Carbon densities double from 1995 to 2000.

    ========= ===== ===== =======
    Location  Land  Area  Density
    ========= ===== ===== =======
    A         crop  10    vegc 2, soilc 1
    A         past  5     vegc 1, soilc 1
    B         crop  2     vegc 2, soilc 1
    B         past  4     vegc 1, soilc 1
    ========= ===== ===== =======
    """
    coords = dict(
        j=["A", "B"], t=[1995, 2000], land=["crop", "past"], c_pools=["vegc", "soilc"]
    )
    area = xr.DataArray(
        [[[10.0, 5.0]] * 2, [[2.0, 4.0]] * 2],
        coords={k: coords[k] for k in ("j", "t", "land")},
        dims=("j", "t", "land"),
    )
    density = xr.DataArray(
        [[[2.0, 1.0], [1.0, 1.0]]] * 2,
        coords={k: coords[k] for k in ("j", "land", "c_pools")},
        dims=("j", "land", "c_pools"),
    ) * xr.DataArray([1.0, 2.0], coords={"t": coords["t"]}, dims="t")
    density = density.transpose("t", "j", "land", "c_pools")

    return {
        "ov_land": _with_type(area),
        "fm_carbon_density": density,
        "ov_carbon_stock": _with_type(
            (density * area).transpose("j", "t", "land", "c_pools")
        ),
        "cell": [("R1", "A"), ("R1", "B")],
    }


def to_source(data: Mapping[str, xr.DataArray | list], path=None):
    """Return a :class:`.MemorySource` with `data`.

    If `path` is given, items are written to files in that directory, and a
    :class:`.DirectorySource` is returned instead.
    """
    items = {
        k: LabeledArray(v, name=k) if isinstance(v, xr.DataArray) else v
        for k, v in data.items()
    }
    if path is None:
        return MemorySource(items)

    for name, item in items.items():
        DirectorySource.write(path, name, item)
    log.info(f"Wrote {len(items)} items to {path}")
    return DirectorySource(path)
