from __future__ import annotations

from typing import Dict, Iterable, Mapping

import numpy as np
import pandas as pd

from .validate import assert_required_columns


def parse_filters(items: Iterable[str]) -> Dict[str, str]:
    """Parse ["ER=Negative", "Race=Non-Hispanic White"] into a column -> value dict.

    Only the first '=' separates column from value, so values may contain '='.
    """

    out: Dict[str, str] = {}
    for item in items:
        col, sep, value = item.partition("=")
        col = col.strip()
        if not sep or not col:
            raise ValueError(f"Malformed filter {item!r}; expected COLUMN=VALUE.")
        if col in out and out[col] != value.strip():
            raise ValueError(f"Conflicting filters for column {col!r}: {out[col]!r} vs {value.strip()!r}.")
        out[col] = value.strip()
    return out


def select_strata(df: pd.DataFrame, filters: Mapping[str, str]) -> np.ndarray:
    """Positional indices of rows whose columns all equal the requested values.

    Values are compared as stripped strings so numeric codes read from a
    spreadsheet ("1", 1, 1.0) are matched the same way. Missing cells never match.
    """

    assert_required_columns(df, list(filters))
    mask = np.ones(len(df), dtype=bool)
    for col, value in filters.items():
        s = df[col]
        mask &= s.notna().to_numpy() & s.map(_as_text).eq(value).to_numpy()
    return np.flatnonzero(mask)


def _as_text(v) -> str:
    if isinstance(v, (float, np.floating)) and float(v).is_integer():
        return str(int(v))
    return str(v).strip()
