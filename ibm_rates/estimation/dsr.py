from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ibm_rates.errors import EmptyInputError, InvalidWeightError, MismatchedLengthError


@dataclass(frozen=True)
class GroupEstimate:
    dsr: float
    variance: float
    standard_error: float
    weights: np.ndarray


def _normalize(weight) -> np.ndarray:
    w = np.asarray(weight, dtype=float)
    total = float(np.sum(w))
    if not np.isfinite(total) or total <= 0:
        raise InvalidWeightError(f"Weights must sum to a positive finite value (got {total}).")
    return w / total


def normalize_weights(weight) -> np.ndarray:
    """Return weight / sum(weight).

    Raises InvalidWeightError when the sum is not a finite positive number.
    """

    return _normalize(weight)


def dsr_components(counts, pop, weight, *, normalize_weights: bool = True) -> GroupEstimate:
    """Directly standardized rate and its Poisson variance for one group.

    dsr = sum(count_i / pop_i * w_i), variance = sum(count_i / pop_i^2 * w_i^2).

    Zero populations are not trapped here; they surface as inf/nan in the result.
    """

    c = np.asarray(counts, dtype=float)
    p = np.asarray(pop, dtype=float)
    w = np.asarray(weight, dtype=float)

    if not (c.size == p.size == w.size):
        raise MismatchedLengthError(
            f"counts, pop and weight must have equal length (got {c.size}, {p.size}, {w.size})."
        )
    if c.size == 0:
        raise EmptyInputError("Selected strata are empty (length 0).")

    if normalize_weights:
        w = _normalize(w)

    with np.errstate(divide="ignore", invalid="ignore"):
        dsr = float(np.sum((c / p) * w))
        variance = float(np.sum((c / (p * p)) * (w * w)))

    return GroupEstimate(
        dsr=dsr,
        variance=variance,
        standard_error=float(np.sqrt(variance)) if variance >= 0 else np.nan,
        weights=w,
    )
