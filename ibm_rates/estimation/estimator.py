"""Age-adjusted IBM rates for two groups and the rate ratio between them.

Both groups are standardized to group 1's normalized weights, following the
SEER convention that compared rates share one standard population. Rate CIs
use the SEER small-sample methods (Fay–Feuer or Tiwari); the ratio CI uses the
delta method on the log scale.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ibm_rates.config import (
    ALPHA,
    CI_METHOD,
    CI_METHOD_LABELS,
    CI_METHODS,
    COUNT_COL,
    NORMALIZE_WEIGHTS,
    POP_COL,
    RATIO_CI_METHOD_LABEL,
    RATIO_MEASURE_PREFIX,
    SCALE,
    WEIGHT_COL,
    WEIGHT_TOLERANCE,
)
from ibm_rates.data.validate import assert_numeric_columns, assert_required_columns
from ibm_rates.errors import (
    EmptyInputError,
    InvalidWeightError,
    MismatchedLengthError,
    StandardWeightMismatchWarning,
)
from ibm_rates.estimation.dsr import dsr_components, normalize_weights as _normalize_weights
from ibm_rates.estimation.rate_ratio import delta_lognormal_ratio
from ibm_rates.estimation.seer_ci import seer_rate_interval


@dataclass(frozen=True)
class StratumVectors:
    counts: np.ndarray
    pop: np.ndarray
    weight: np.ndarray

    def __post_init__(self) -> None:
        for name in ("counts", "pop", "weight"):
            object.__setattr__(self, name, np.asarray(getattr(self, name), dtype=float))
        if not (self.counts.size == self.pop.size == self.weight.size):
            raise MismatchedLengthError(
                "counts, pop and weight must have equal length "
                f"(got {self.counts.size}, {self.pop.size}, {self.weight.size})."
            )

    def __len__(self) -> int:
        return int(self.counts.size)

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        rows,
        *,
        count_col: str = COUNT_COL,
        pop_col: str = POP_COL,
        weight_col: str = WEIGHT_COL,
    ) -> "StratumVectors":
        """Extract one group's strata from df.

        rows is either a boolean mask over df or a sequence of positional indices.
        """

        assert_required_columns(df, [count_col, pop_col, weight_col])
        assert_numeric_columns(df, [count_col, pop_col, weight_col])
        rows = np.asarray(rows)
        if rows.dtype == bool:
            if rows.size != len(df):
                raise ValueError(f"Boolean row mask has length {rows.size}; expected {len(df)}.")
            rows = np.flatnonzero(rows)
        rows = rows.astype(int, copy=False)
        subset = df.iloc[rows]
        return cls(
            counts=subset[count_col].to_numpy(dtype=float),
            pop=subset[pop_col].to_numpy(dtype=float),
            weight=subset[weight_col].to_numpy(dtype=float),
        )


@dataclass(frozen=True)
class RateResult:
    group_label: str
    stratum_count: int
    dsr: float
    variance: float
    rate_per_scale: float
    ci_low: Optional[float]
    ci_high: Optional[float]
    ci_method_label: str


@dataclass(frozen=True)
class RatioResult:
    measure_label: str
    estimate: float
    ci_low: Optional[float]
    ci_high: Optional[float]
    ci_method_label: str = RATIO_CI_METHOD_LABEL


@dataclass(frozen=True)
class IBMResult:
    rates: Tuple[RateResult, RateResult]
    ratio: RatioResult
    scale: float
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def rate_column(self) -> str:
        if self.scale == 1e5:
            return "Rate_per1e5"
        return f"Rate_per{self.scale:g}"

    def rates_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "Group": [r.group_label for r in self.rates],
                "Strata_n": [r.stratum_count for r in self.rates],
                "DSR": [r.dsr for r in self.rates],
                "Var_DSR": [r.variance for r in self.rates],
                self.rate_column: [r.rate_per_scale for r in self.rates],
                "Rate_CI_low": pd.array([r.ci_low for r in self.rates], dtype="Float64"),
                "Rate_CI_high": pd.array([r.ci_high for r in self.rates], dtype="Float64"),
                "CI_method": [r.ci_method_label for r in self.rates],
            }
        )

    def ratio_frame(self) -> pd.DataFrame:
        rr = self.ratio
        return pd.DataFrame(
            {
                "Measure": [rr.measure_label],
                "Estimate": [rr.estimate],
                "CI_low": pd.array([rr.ci_low], dtype="Float64"),
                "CI_high": pd.array([rr.ci_high], dtype="Float64"),
                "CI_method": [rr.ci_method_label],
            }
        )


def _check_arguments(alpha: float, scale: float, ci_method: str) -> None:
    if ci_method not in CI_METHODS:
        raise ValueError(f"Unknown ci_method {ci_method!r}; expected one of {list(CI_METHODS)}.")
    if not (0.0 < float(alpha) < 1.0):
        raise ValueError(f"alpha must be in (0, 1) (got {alpha}).")
    if not np.isfinite(scale) or scale <= 0:
        raise ValueError(f"scale must be a positive finite number (got {scale}).")


def _validate_groups(group1: StratumVectors, group2: StratumVectors) -> list[str]:
    if len(group1) == 0:
        raise EmptyInputError("Group 1 selects 0 strata for this subset.")
    if len(group2) == 0:
        raise EmptyInputError("Group 2 selects 0 strata for this subset.")
    if len(group1) != len(group2):
        raise MismatchedLengthError(
            f"Groups must have the same number of strata (got {len(group1)} and {len(group2)})."
        )
    if not (np.all(np.isfinite(group1.weight)) and np.all(np.isfinite(group2.weight))):
        raise InvalidWeightError("Non-finite weights.")

    notes = []
    max_diff = float(np.max(np.abs(group1.weight - group2.weight)))
    if max_diff > WEIGHT_TOLERANCE:
        msg = (
            "Standard weights differ between groups "
            f"(max abs difference {max_diff:.3g}); using group 1's weights."
        )
        warnings.warn(msg, StandardWeightMismatchWarning, stacklevel=3)
        notes.append(msg)
    return notes


def compute_dsr_and_rr(
    group1: StratumVectors,
    group2: StratumVectors,
    *,
    label_group1: str,
    label_group2: str,
    subset_label: str,
    alpha: float = ALPHA,
    scale: float = SCALE,
    normalize_weights: bool = NORMALIZE_WEIGHTS,
    ci_method: str = CI_METHOD,
) -> IBMResult:
    _check_arguments(alpha, scale, ci_method)
    notes = _validate_groups(group1, group2)

    std_w_norm = _normalize_weights(group1.weight) if normalize_weights else group1.weight

    g1 = dsr_components(group1.counts, group1.pop, std_w_norm, normalize_weights=False)
    g2 = dsr_components(group2.counts, group2.pop, std_w_norm, normalize_weights=False)

    ci1 = seer_rate_interval(group1.counts, group1.pop, std_w_norm, alpha=alpha, method=ci_method).scaled(scale)
    ci2 = seer_rate_interval(group2.counts, group2.pop, std_w_norm, alpha=alpha, method=ci_method).scaled(scale)
    ci_label = CI_METHOD_LABELS[ci_method]

    rr = delta_lognormal_ratio(g1.dsr, g1.variance, g2.dsr, g2.variance, alpha=alpha)

    rates = (
        RateResult(
            group_label=label_group1,
            stratum_count=len(group1),
            dsr=g1.dsr,
            variance=g1.variance,
            rate_per_scale=g1.dsr * scale,
            ci_low=ci1.lower,
            ci_high=ci1.upper,
            ci_method_label=ci_label,
        ),
        RateResult(
            group_label=label_group2,
            stratum_count=len(group2),
            dsr=g2.dsr,
            variance=g2.variance,
            rate_per_scale=g2.dsr * scale,
            ci_low=ci2.lower,
            ci_high=ci2.upper,
            ci_method_label=ci_label,
        ),
    )
    ratio = RatioResult(
        measure_label=f"{RATIO_MEASURE_PREFIX}{subset_label}",
        estimate=rr.estimate,
        ci_low=rr.lower,
        ci_high=rr.upper,
    )
    return IBMResult(rates=rates, ratio=ratio, scale=float(scale), warnings=tuple(notes))


def compute_dsr_and_rr_for_subset(
    df: pd.DataFrame,
    idx1: Sequence,
    idx2: Sequence,
    label_group1: str,
    label_group2: str,
    subset_label: str,
    count_col: str = COUNT_COL,
    pop_col: str = POP_COL,
    weight_col: str = WEIGHT_COL,
    alpha: float = ALPHA,
    scale: float = SCALE,
    normalize_weights: bool = NORMALIZE_WEIGHTS,
    ci_method: str = CI_METHOD,
) -> IBMResult:
    """Rates and rate ratio for two row selections of a stratified table.

    idx1 / idx2 select the strata of each group (positional indices or boolean
    masks); rows must be aligned stratum-for-stratum between the groups.
    """

    cols = dict(count_col=count_col, pop_col=pop_col, weight_col=weight_col)
    group1 = StratumVectors.from_frame(df, idx1, **cols)
    group2 = StratumVectors.from_frame(df, idx2, **cols)
    return compute_dsr_and_rr(
        group1,
        group2,
        label_group1=label_group1,
        label_group2=label_group2,
        subset_label=subset_label,
        alpha=alpha,
        scale=scale,
        normalize_weights=normalize_weights,
        ci_method=ci_method,
    )
