from typing import Iterable

import pandas as pd


def assert_required_columns(df, required: Iterable[str]) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}; available: {df.columns.astype(str).tolist()}")


def assert_numeric_columns(df, columns: Iterable[str]) -> None:
    """Raise ValueError naming any column that pandas does not hold as numeric."""

    bad = [c for c in columns if not pd.api.types.is_numeric_dtype(df[c])]
    if bad:
        raise ValueError(f"Columns must be numeric (count, population, weight): {bad}")
