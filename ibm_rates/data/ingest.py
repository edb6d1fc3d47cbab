from pathlib import Path
from typing import Optional

import pandas as pd


def load_stratified_table(path: Path, nrows: Optional[int] = None) -> pd.DataFrame:
    """Read a registry extract with one row per stratum (xlsx/xls or csv)."""

    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in {".xlsx", ".xls"}:
        return pd.read_excel(path, nrows=nrows)
    if suffix == ".csv":
        return pd.read_csv(path, nrows=nrows)
    raise ValueError(f"Unsupported table format {suffix!r} for {path}; expected .xlsx, .xls or .csv.")
