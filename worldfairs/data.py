"""
Loading and cleaning of the world's fairs table.

- load_fairs: read the CSV (URL or path), coerce the numeric columns, add a row id
- clean_fairs: keep only rows with all four modelling columns present
"""
from __future__ import annotations

import numpy as np
import pandas as pd

from .errors import DataUnavailable


REQUIRED_COLUMNS = ["cost", "visitors", "area", "attending_countries"]
CATEGORY_COLUMNS = ["country", "category"]


def load_fairs(source: str) -> pd.DataFrame:
    try:
        df = pd.read_csv(source)
    except (OSError, ValueError) as exc:
        # URLError/HTTPError are OSErrors, ParserError/EmptyDataError are ValueErrors
        raise DataUnavailable(f"Could not read dataset from {source}: {exc}") from exc

    missing = [c for c in REQUIRED_COLUMNS + CATEGORY_COLUMNS if c not in df.columns]
    if missing:
        raise DataUnavailable(f"Dataset at {source} is missing required columns: {missing}")

    for c in REQUIRED_COLUMNS:
        df[c] = pd.to_numeric(df[c], errors="coerce")

    # Stable row id, used to report influential observations
    if "id" not in df.columns:
        df.insert(0, "id", np.arange(1, len(df) + 1, dtype=np.int64))

    return df


def clean_fairs(raw: pd.DataFrame, required: list[str] | None = None) -> pd.DataFrame:
    """Rows where every required numeric column is non-null, original order kept."""
    required = REQUIRED_COLUMNS if required is None else required
    return raw.dropna(subset=required).copy()
