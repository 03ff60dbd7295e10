"""Carbon stocks by land type and carbon pool.

The stock is read from the results archive of a model run. Optionally, it is
reconstructed with carbon densities held fixed at a reference year, which removes the
effect of climate change on stocks and leaves only the effect of land-use and land
management. See :func:`reconstruct_stock` and :func:`carbonstock`.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union, cast

from magpie_report.util._logging import once
from magpie_report.util.labeled_array import LabeledArray
from magpie_report.util.node import aggregate_locations

from .source import MissingInputError

if TYPE_CHECKING:
    from .source import ResultSource

__all__ = [
    "AGE_CLASS_LAND",
    "ReconstructionContext",
    "SoilPolicy",
    "carbonstock",
    "collapse_regrowth",
    "reconstruct_stock",
    "stock",
    "sum_axes",
    "write",
]

log = logging.getLogger(__name__)

#: Land types for which carbon stock is always the product of density and area.
SIMPLE_LAND = ("crop", "past", "urban", "primforest")

#: Land types with area resolved by age class, and the names of the respective
#: age-class area tables in a results archive.
AGE_CLASS_LAND = {
    "forestry": "p32_land",
    "secdforest": "p35_secdforest",
    "other": "p35_other",
}

#: Above-ground carbon pools: vegetation and litter.
AG_POOLS = ("vegc", "litc")

#: Soil carbon pool.
SOIL = "soilc"

#: Axes kept when summing age-class resolved stocks.
STOCK_AXES = {"j", "t", "c_pools"}


class SoilPolicy(Enum):
    """Treatment of soil carbon in the model run that is reconstructed."""

    #: Soil carbon is one pool with a density per land type and age class, like the
    #: other pools.
    SIMPLE_AGGREGATED_SOIL = auto()
    #: Soil carbon is modelled separately; for cropland it is the sum of top-soil and
    #: sub-soil densities.
    SPLIT_TOP_SUB_SOIL = auto()
    #: Soil carbon is modelled dynamically; the stock of each land type in the soil
    #: model is scaled by a carbon share ("cshare").
    DYNAMIC_COHORT_SOIL_SHARE = auto()

    @classmethod
    def from_context(cls, ctx: "ReconstructionContext") -> "SoilPolicy":
        """Identify the policy from the contents of `ctx`."""
        if ctx.density_ac is None or SOIL in ctx.density_ac.coords["c_pools"]:
            return cls.SIMPLE_AGGREGATED_SOIL
        elif ctx.dynamic_soil:
            return cls.DYNAMIC_COHORT_SOIL_SHARE
        elif ctx.topsoil_density is None or ctx.subsoil_density is None:
            raise MissingInputError(
                "Top- and sub-soil carbon densities are required for soil carbon "
                "modelled outside the age-class density table"
            )
        return cls.SPLIT_TOP_SUB_SOIL


@dataclass(frozen=True)
class ReconstructionContext:
    """Inputs for reconstructing the carbon stock of one model run.

    Arrays use the axes: `j` (location), `t` (time), `land` (land type), `c_pools`
    (carbon pool), `ac` (age class), and optionally `type32` (forestry type) and
    `when` (before/after optimization).
    """

    #: Base carbon stock, (j, t, land, c_pools).
    stock: LabeledArray
    #: Land area, (j, t, land).
    land: LabeledArray
    #: Carbon density, (t, j, land, c_pools).
    density: LabeledArray
    #: Year at which densities are fixed.
    reference_year: int = 1995
    #: Age-class resolved carbon density, (t, j, ac, c_pools).
    density_ac: Optional[LabeledArray] = None
    #: Age-class resolved carbon density of forestry, (t, j, type32, ac, c_pools).
    density_forestry_ac: Optional[LabeledArray] = None
    #: Age-class resolved area of land types in :data:`AGE_CLASS_LAND`, (j, t, ac).
    land_ac: Mapping[str, Optional[LabeledArray]] = field(default_factory=dict)
    #: Top-soil and sub-soil carbon densities of cropland, (t, j).
    topsoil_density: Optional[LabeledArray] = None
    subsoil_density: Optional[LabeledArray] = None
    #: :any:`True` if soil carbon was modelled dynamically.
    dynamic_soil: bool = False
    #: Land types covered by the dynamic soil model.
    soil_land: Sequence[str] = ()
    #: Share of soil carbon retained, (j, t, land).
    cshare: Optional[LabeledArray] = None

    def __post_init__(self) -> None:
        for name in ("stock", "land", "density"):
            if getattr(self, name) is None:
                raise MissingInputError(f"Reconstruction requires {name!r}")

    @classmethod
    def from_source(
        cls,
        source: "ResultSource",
        reference_year: int = 1995,
        cshare: Optional[LabeledArray] = None,
    ) -> "ReconstructionContext":
        """Collect inputs from `source`.

        If `cshare` is not given, it is read from the item "cshare" of `source`, if any.

        Raises
        ------
        MissingInputError
            if any of the base stock, land area, or carbon density are missing.
        """
        dynamic_soil = source.get("ov59_som_pool", quiet=True) is not None

        if dynamic_soil and cshare is None:
            cshare = source.get("cshare", quiet=True)  # type: ignore [assignment]

        return cls(
            stock=source.get_level("ov_carbon_stock"),  # type: ignore [arg-type]
            land=source.get_level("ov_land"),  # type: ignore [arg-type]
            density=source.get("fm_carbon_density"),  # type: ignore [arg-type]
            reference_year=reference_year,
            density_ac=source.get("pm_carbon_density_ac", quiet=True),  # type: ignore
            density_forestry_ac=source.get(  # type: ignore [arg-type]
                "p32_carbon_density_ac", quiet=True
            ),
            land_ac={
                lt: source.get(name, quiet=True)  # type: ignore [misc]
                for lt, name in AGE_CLASS_LAND.items()
            },
            topsoil_density=source.get(  # type: ignore [arg-type]
                "i59_topsoilc_density", quiet=True
            ),
            subsoil_density=source.get(  # type: ignore [arg-type]
                "i59_subsoilc_density", quiet=True
            ),
            dynamic_soil=dynamic_soil,
            soil_land=tuple(source.get("pools59", quiet=True) or ()),  # type: ignore
            cshare=cshare,
        )


def collapse_regrowth(table: LabeledArray, axis: str = "ac") -> LabeledArray:
    """Remove regrowth from an age-class resolved area `table`.

    The area in all age classes except the oldest is moved to the youngest; the
    intermediate age classes are set to zero. The total area is unchanged.
    """
    labels = table.coords[axis]
    if len(labels) < 2:
        return table

    young = table.select(axis, labels[-1:], invert=True).sum(axis)
    return table.assign({axis: labels[1:-1]}, 0.0).assign({axis: labels[:1]}, young)


def _freeze(
    arr: Optional[LabeledArray], year: int, time: Sequence
) -> Optional[LabeledArray]:
    """Broadcast the values of `arr` at `year` over all periods in `time`."""
    if arr is None or "t" not in arr.dims:
        return arr
    return arr.select("t", year).expand("t", time).transpose(*arr.dims)


class _Builder:
    """Accumulate per-land-type results in a zero-valued copy of the base stock."""

    def __init__(self, ctx: ReconstructionContext, time: Sequence) -> None:
        self.ctx = ctx
        self.result = ctx.stock.set_all(0.0)
        self.pools = ctx.stock.coords["c_pools"]
        self.land_types = ctx.stock.coords["land"]

        year = ctx.reference_year
        log.info(f"Fix carbon densities at t={year}")
        self.density = _freeze(ctx.density, year, time)
        self.density_ac = _freeze(ctx.density_ac, year, time)
        self.density_forestry_ac = _freeze(ctx.density_forestry_ac, year, time)
        self.topsoil = _freeze(ctx.topsoil_density, year, time)
        self.subsoil = _freeze(ctx.subsoil_density, year, time)

    def area(self, land_type: str) -> LabeledArray:
        return self.ctx.land.select("land", land_type)

    def put(self, land_type: str, value: LabeledArray, pools=None) -> None:
        """Write `value` into the box for `land_type` and `pools` (default: all).

        Raises
        ------
        .ShapeMismatchError
            if `value` lacks any of the pools.
        """
        include = [p for p in self.pools if pools is None or p in pools]
        if include:
            self.result = self.result.assign(
                {"land": land_type, "c_pools": include}, value
            )

    def simple(self, land_type: str, pools=None) -> None:
        """Stock of `land_type` in `pools` as density × area."""
        density = self.density.select("land", land_type)  # type: ignore [union-attr]
        self.put(land_type, density * self.area(land_type), pools)

    def soil_split(self, land_type: str) -> None:
        if land_type == "crop":
            value = (self.topsoil + self.subsoil) * self.area(land_type)  # type: ignore
            self.put(land_type, value, [SOIL])
        else:
            self.simple(land_type, [SOIL])

    def soil_dynamic(self, land_type: str) -> None:
        if land_type not in self.ctx.soil_land:
            self.simple(land_type, [SOIL])
            return

        density = self.density.select("land", land_type)  # type: ignore [union-attr]
        density = density.select("c_pools", [SOIL])
        share = self.ctx.cshare
        if share is not None and "land" in share.dims:
            share = (
                share.select("land", land_type)
                if land_type in share.coords["land"]
                else None
            )

        if share is None:
            once(log, logging.WARNING, f"No carbon share for {land_type!r}; use 1.0")
            value = density * self.area(land_type)
        else:
            value = density * share.fill_missing(1.0) * self.area(land_type)
        self.put(land_type, value, [SOIL])

    def age_class(self, land_type: str, allow_regrowth: bool, pools) -> None:
        """Stock of `land_type` from age-class resolved density and area."""
        table = self.ctx.land_ac.get(land_type)
        density = self.density_ac
        if land_type == "forestry" and self.density_forestry_ac is not None:
            density = self.density_forestry_ac

        if table is None or density is None:
            log.info(f"No age-class data for {land_type!r}; use density × area")
            self.simple(land_type, pools)
            return

        if "when" in table.dims:
            table = table.select("when", "after")
        if not allow_regrowth:
            table = collapse_regrowth(table)
        if extra := [d for d in table.dims if d not in density.dims]:
            # e.g. forestry types, without a matching density
            table = table.sum(*extra)

        product = density * table
        value = product.sum(*[d for d in product.dims if d not in STOCK_AXES])
        self.put(land_type, value, pools)


def reconstruct_stock(
    ctx: ReconstructionContext,
    fix_density: bool = True,
    allow_regrowth: bool = True,
) -> LabeledArray:
    """Reconstruct the carbon stock in `ctx`.

    Parameters
    ----------
    fix_density :
        If :any:`False`, return :attr:`.ReconstructionContext.stock` unchanged.
        Otherwise, recompute the stock with all carbon densities fixed at
        :attr:`.ReconstructionContext.reference_year`.
    allow_regrowth :
        If :any:`False`, disregard the ageing of land in age-class resolved land types;
        see :func:`collapse_regrowth`.

    Returns
    -------
    LabeledArray
        with the same axes and labels as the base stock: (j, t, land, c_pools), rounded
        to 3 decimal places.
    """
    if not fix_density:
        return ctx.stock

    policy = SoilPolicy.from_context(ctx)
    log.info(f"Soil carbon policy: {policy.name}")

    b = _Builder(ctx, ctx.stock.coords["t"])
    land_types = b.land_types

    # Land types other than those with age classes
    for lt in filter(land_types.__contains__, SIMPLE_LAND):
        match policy, lt:
            case SoilPolicy.SIMPLE_AGGREGATED_SOIL, _:
                b.simple(lt)
            case SoilPolicy.SPLIT_TOP_SUB_SOIL, "crop":
                b.simple(lt, AG_POOLS)
            case SoilPolicy.SPLIT_TOP_SUB_SOIL, _:
                b.simple(lt)
            case SoilPolicy.DYNAMIC_COHORT_SOIL_SHARE, _:
                b.simple(lt, AG_POOLS)

    # Soil carbon, where modelled separately from the age-class densities
    for lt in land_types:
        match policy:
            case SoilPolicy.SPLIT_TOP_SUB_SOIL if lt == "crop" or lt in AGE_CLASS_LAND:
                b.soil_split(lt)
            case SoilPolicy.DYNAMIC_COHORT_SOIL_SHARE:
                b.soil_dynamic(lt)

    # Land types with age classes
    pools = None if policy is SoilPolicy.SIMPLE_AGGREGATED_SOIL else AG_POOLS
    for lt in filter(land_types.__contains__, AGE_CLASS_LAND):
        b.age_class(lt, allow_regrowth, pools)

    return b.result.round(3)


def carbonstock(
    source: "ResultSource",
    file: Union[str, Path, None] = None,
    level: str = "cell",
    sum_cpool: bool = True,
    sum_land: bool = True,
    cc: bool = True,
    cc_year: int = 1995,
    regrowth: bool = True,
    cshare: Optional[LabeledArray] = None,
    mapping: Optional[Mapping[str, str]] = None,
) -> LabeledArray:
    """Report carbon stocks from `source`.

    Parameters
    ----------
    file :
        If given, path of a :file:`.csv` or :file:`.xlsx` file to which the result is
        written.
    level :
        Level of spatial aggregation; one of :data:`.node.LEVELS`.
    sum_cpool :
        Sum over the carbon pool axis.
    sum_land :
        Sum over the land type axis.
    cc :
        If :any:`False`, remove the effect of climate change on carbon densities by
        fixing them at `cc_year`; see :func:`reconstruct_stock`.
    regrowth :
        If :any:`False`, also disregard regrowth. Only used with :py:`cc=False`.
    cshare :
        Share of soil carbon retained, for runs with dynamic soil carbon. If not given,
        the item "cshare" from `source` is used.
    mapping :
        Mapping from locations to regions, used for `level` other than "cell".

    Returns
    -------
    LabeledArray
        Carbon stock.
    """
    result = stock(source, cc, cc_year, regrowth, cshare)
    result = sum_axes(result, sum_land, sum_cpool)

    if level != "cell" and mapping is None:
        mapping = source.get_mapping("cell")
    result = aggregate_locations(result, level, mapping)

    if file is not None:
        write(result, file)

    return result


def stock(
    source: "ResultSource",
    cc: bool = True,
    cc_year: int = 1995,
    regrowth: bool = True,
    cshare: Optional[LabeledArray] = None,
) -> LabeledArray:
    """Carbon stock from `source` by location, time, land type, and carbon pool.

    See :func:`carbonstock` for the parameters.
    """
    if cc:
        if not regrowth:
            once(log, logging.WARNING, "regrowth=False has no effect with cc=True")
        # Not quiet: a missing item raises MissingInputError
        result = cast(LabeledArray, source.get_level("ov_carbon_stock"))
    else:
        ctx = ReconstructionContext.from_source(source, cc_year, cshare)
        result = reconstruct_stock(ctx, fix_density=True, allow_regrowth=regrowth)

    return LabeledArray(result.round(3), name="carbon stock")


def sum_axes(
    arr: LabeledArray, sum_land: bool = True, sum_cpool: bool = True
) -> LabeledArray:
    """Sum `arr` over the land type and/or carbon pool axes."""
    if sum_land:
        arr = arr.sum("land")
    if sum_cpool:
        arr = arr.sum("c_pools")
    return arr


def write(arr: LabeledArray, path: Union[str, Path]) -> None:
    """Write `arr` to `path` using :func:`genno.operator.write_report`."""
    from genno.operator import write_report

    log.info(f"Write to {path}")
    write_report(arr.to_quantity(), Path(path))
