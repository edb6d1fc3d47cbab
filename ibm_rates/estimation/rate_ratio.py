from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy import stats


@dataclass(frozen=True)
class RatioInterval:
    estimate: float
    lower: Optional[float]
    upper: Optional[float]
    se_log: float


def _finite_or_none(x: float) -> Optional[float]:
    return float(x) if np.isfinite(x) else None


def delta_lognormal_ratio(dsr1: float, var1: float, dsr2: float, var2: float, *, alpha: float = 0.05) -> RatioInterval:
    """Ratio dsr2 / dsr1 with a delta-method CI built on the log scale.

    se(log RR) = sqrt(var1 / dsr1^2 + var2 / dsr2^2). Bounds that are not
    finite (a zero or undefined rate in either group) come back as None.
    """

    with np.errstate(divide="ignore", invalid="ignore"):
        rr = np.float64(dsr2) / np.float64(dsr1)
        se_log = np.sqrt(np.float64(var1) / np.float64(dsr1) ** 2 + np.float64(var2) / np.float64(dsr2) ** 2)
        z = stats.norm.ppf(1.0 - alpha / 2.0)
        log_rr = np.log(rr)
        lower = np.exp(log_rr - z * se_log)
        upper = np.exp(log_rr + z * se_log)

    return RatioInterval(
        estimate=float(rr),
        lower=_finite_or_none(lower),
        upper=_finite_or_none(upper),
        se_log=float(se_log),
    )
