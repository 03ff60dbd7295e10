from pathlib import Path

#: Root directory of the :mod:`magpie_report` package.
MAGPIE_REPORT_PATH = Path(__file__).parents[1]


def package_data_path(*parts) -> Path:
    """Return a path under :file:`magpie_report/data/`, installed with the package.

    `parts` (:class:`str` or :class:`~pathlib.Path`) are joined to the base path.
    """
    return MAGPIE_REPORT_PATH.joinpath("data", *parts)
