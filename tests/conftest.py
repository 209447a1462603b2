import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def hires_df():
    """Two years of synthetic daily hires with one policy indicator."""
    rng = np.random.RandomState(7)
    dates = pd.date_range("2019-01-01", "2020-12-31", freq="D")
    n = len(dates)
    wfh = np.asarray(dates >= pd.Timestamp("2020-03-23")).astype(int)
    doy = dates.dayofyear.to_numpy()
    base = 30000 + 4000 * np.sin(2 * np.pi * doy / 365.0)
    hires = base - 9000 * wfh + rng.normal(0, 2500, size=n)
    return pd.DataFrame({
        "date": dates,
        "Hires": np.clip(hires, 0, None),
        "wfh": wfh,
        "day": dates.strftime("%a"),
        "month": dates.strftime("%b"),
        "year": dates.year.astype("int64"),
    })
