# src/cyclestats/config.py

"""
Package-wide defaults. Every value here can be overridden per call through
the matching keyword argument in :mod:`cyclestats.api`.
"""

from typing import Dict, Literal, Tuple

import pandas as pd

DEFAULT_ALPHA: float = 0.05

# rows further than OUTLIER_WIDTH sample sd from their group mean are dropped
OUTLIER_WIDTH: float = 2.0

# relative singular-value tolerance for the design-matrix rank check
RANK_TOL: float = 1e-10

MONTH_LEVELS: Tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
DAY_LEVELS: Tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
PERIOD_LEVELS: Tuple[str, str] = ("pre_covid", "covid")

# first day of the UK stay-at-home order
LOCKDOWN_START = pd.Timestamp("2020-03-23")

ColumnKind = Literal["numeric", "integer", "categorical", "date", "binary"]

HIRES_SCHEMA: Dict[str, ColumnKind] = {
    "date": "date",
    "Hires": "numeric",
    "day": "categorical",
    "month": "categorical",
    "year": "integer",
}
