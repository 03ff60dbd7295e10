"""Keys for setting up reporting tasks."""

#: Carbon stock by location, time, land type, and carbon pool.
full = "carbonstock full"

#: Carbon stock, summed over land types and/or carbon pools per the configuration.
summed = "carbonstock summed"

#: Carbon stock at the configured level of spatial aggregation.
result = "carbonstock"

#: Path and file output for :data:`result` under the output directory.
path = "carbonstock path"
file = "carbonstock file"

#: Mapping from locations to regions.
mapping = "mapping"

#: Share of soil carbon retained; :any:`None` unless provided by a callback.
cshare = "cshare"

#: :data:`result` as a :class:`genno.Quantity`, for use with :mod:`genno` operators.
quantity = "carbonstock quantity"
