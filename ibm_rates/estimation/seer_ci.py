"""SEER small-sample confidence intervals for directly standardized rates.

Both methods treat the standardized rate as a weighted sum of Poisson counts
and approximate its distribution with a scaled chi-square (gamma) law:

- Fay–Feuer: the upper bound adds the largest per-stratum weight, which keeps
  the interval conservative when counts are sparse or zero.
- Tiwari: the upper bound adds the average weight over the strata that carry
  information, giving a slightly tighter upper limit.

The lower bound is the same for both methods.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy import stats

from ibm_rates.config import CI_METHODS


@dataclass(frozen=True)
class RateInterval:
    lower: Optional[float]
    upper: Optional[float]

    @property
    def defined(self) -> bool:
        return self.lower is not None and self.upper is not None

    def scaled(self, factor: float) -> "RateInterval":
        return RateInterval(
            lower=None if self.lower is None else self.lower * factor,
            upper=None if self.upper is None else self.upper * factor,
        )


UNDEFINED_INTERVAL = RateInterval(lower=None, upper=None)


def _correction_terms(w_i: np.ndarray, ok: np.ndarray, method: str) -> tuple[float, float]:
    if method == "fayfeuer":
        finite = w_i[np.isfinite(w_i)]
        w_m = float(finite.max()) if finite.size else np.nan
        return w_m, w_m * w_m

    vals = w_i[ok]
    vals = vals[~np.isnan(vals)]
    if vals.size == 0:
        return np.nan, np.nan
    return float(vals.mean()), float(np.mean(vals * vals))


def seer_rate_interval(
    counts,
    pop,
    std_w_norm,
    *,
    alpha: float = 0.05,
    method: str = "fayfeuer",
) -> RateInterval:
    """Two-sided (1 - alpha) interval for an unscaled standardized rate.

    std_w_norm are the normalized standard weights stdpop_i / sum(stdpop); the
    SEER per-stratum weight is then w_i = std_w_norm_i / pop_i.

    Returns an interval with both bounds None when the rate, the variance or a
    correction term is non-finite, or when the rate or variance is not positive.
    """

    if method not in CI_METHODS:
        raise ValueError(f"Unknown CI method {method!r}; expected one of {list(CI_METHODS)}.")

    c = np.asarray(counts, dtype=float)
    p = np.asarray(pop, dtype=float)
    w = np.asarray(std_w_norm, dtype=float)
    if c.size == 0:
        return UNDEFINED_INTERVAL

    with np.errstate(divide="ignore", invalid="ignore"):
        w_i = w / p
        rate = float(np.sum((c / p) * w))
        v = float(np.sum((w_i * w_i) * c))

    # Strata with neither population nor events carry no information for the Tiwari average.
    ok = (p > 0) | (c > 0)
    w_m, z = _correction_terms(w_i, ok, method)

    if not all(np.isfinite([rate, v, w_m, z])) or rate <= 0 or v <= 0:
        return UNDEFINED_INTERVAL

    df_lo = 2.0 * rate * rate / v
    lower = (v / (2.0 * rate)) * stats.chi2.ppf(alpha / 2.0, df_lo)

    df_hi = 2.0 * (rate + w_m) ** 2 / (v + z)
    upper = ((v + z) / (2.0 * (rate + w_m))) * stats.chi2.ppf(1.0 - alpha / 2.0, df_hi)

    return RateInterval(lower=float(lower), upper=float(upper))
