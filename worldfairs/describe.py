"""
Descriptive statistics on the cleaned table:
  * grouped sums (for the bar charts)
  * Pearson correlation of the response with each predictor
"""
from __future__ import annotations

import numpy as np
import pandas as pd
from scipy import stats

from .errors import NotComputable


def aggregate_by(df: pd.DataFrame, key: str, value: str) -> list[tuple[object, float]]:
    """
    Sum `value` per `key`, largest first. Missing values count as zero;
    rows with a missing key are not grouped.
    """
    values = pd.to_numeric(df[value], errors="coerce").fillna(0)
    sums = values.groupby(df[key]).sum()
    # Stable sort keeps first-seen order among equal sums
    sums = sums.sort_values(ascending=False, kind="mergesort")
    return [(k, float(v)) for k, v in sums.items()]


def _paired(x: pd.Series, y: pd.Series) -> tuple[np.ndarray, np.ndarray]:
    pair = pd.concat([pd.to_numeric(x, errors="coerce"), pd.to_numeric(y, errors="coerce")], axis=1).dropna()
    return pair.iloc[:, 0].to_numpy(dtype=float), pair.iloc[:, 1].to_numpy(dtype=float)


def pearson_test(x: pd.Series, y: pd.Series) -> tuple[float, float]:
    """Pearson r and its two-sided p-value. Raises NotComputable on degenerate input."""
    a, b = _paired(x, y)
    if len(a) < 2:
        raise NotComputable(f"Need at least 2 paired values to correlate {x.name} and {y.name}, got {len(a)}")
    for arr, name in ((a, x.name), (b, y.name)):
        if np.ptp(arr) == 0:
            raise NotComputable(f"Column {name!r} has zero variance; correlation is undefined")
    if len(a) == 2:
        # pearsonr has no p-value for n=2; r is exactly +/-1
        return float(np.sign((a[1] - a[0]) * (b[1] - b[0]))), 1.0
    r, p = stats.pearsonr(a, b)
    return float(np.clip(r, -1.0, 1.0)), float(p)


def pearson(x: pd.Series, y: pd.Series) -> float:
    return pearson_test(x, y)[0]


def correlation_table(df: pd.DataFrame, response: str, predictors: list[str]) -> pd.DataFrame:
    """
    One row per predictor: r and p against the response.
    NotComputable pairs are reported as NaN, not raised.
    """
    rows = []
    for col in predictors:
        try:
            r, p = pearson_test(df[col], df[response])
        except NotComputable:
            r, p = np.nan, np.nan
        rows.append({"predictor": col, "r": r, "p_value": p, "n": int(df[[col, response]].dropna().shape[0])})
    return pd.DataFrame(rows, columns=["predictor", "r", "p_value", "n"])
