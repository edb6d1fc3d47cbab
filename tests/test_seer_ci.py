import numpy as np
import pytest
from scipy import stats

from ibm_rates.estimation.seer_ci import RateInterval, seer_rate_interval


COUNTS = np.array([5, 30, 80])
POP = np.array([2e4, 5e4, 1e5])
STD_W = np.array([0.2, 0.3, 0.5])


@pytest.mark.parametrize("method", ["fayfeuer", "tiwari"])
def test_single_stratum_matches_exact_poisson_interval(method):
    k, n = 100, 1e6
    ci = seer_rate_interval([k], [n], [1.0], alpha=0.05, method=method)

    assert ci.defined
    assert ci.lower == pytest.approx(0.5 * stats.chi2.ppf(0.025, 2 * k) / n, rel=1e-9)
    assert ci.upper == pytest.approx(0.5 * stats.chi2.ppf(0.975, 2 * (k + 1)) / n, rel=1e-9)


def test_fay_feuer_by_formula():
    w_i = STD_W / POP
    rate = float(np.sum(COUNTS / POP * STD_W))
    v = float(np.sum(w_i**2 * COUNTS))
    w_m = float(w_i.max())
    z = w_m**2

    ci = seer_rate_interval(COUNTS, POP, STD_W, alpha=0.05, method="fayfeuer")

    expected_lo = v / (2 * rate) * stats.chi2.ppf(0.025, 2 * rate**2 / v)
    expected_hi = (v + z) / (2 * (rate + w_m)) * stats.chi2.ppf(0.975, 2 * (rate + w_m) ** 2 / (v + z))
    assert ci.lower == pytest.approx(expected_lo, rel=1e-12)
    assert ci.upper == pytest.approx(expected_hi, rel=1e-12)
    assert ci.lower < rate < ci.upper


def test_zero_over_zero_stratum_makes_rate_nan_and_interval_undefined():
    counts = np.array([5, 30, 80, 0])
    pop = np.array([2e4, 5e4, 1e5, 0.0])
    std_w = np.array([0.2, 0.3, 0.5, 0.0])

    ci = seer_rate_interval(counts, pop, std_w, method="tiwari")
    reference = seer_rate_interval(COUNTS, POP, STD_W, method="tiwari")

    assert not ci.defined
    assert reference.defined


def test_tiwari_averages_only_strata_with_population_or_events():
    # Second stratum: no events and no positive population, so it is left out of the average.
    counts = [5, 0]
    pop = [100.0, -5.0]
    std_w = [0.5, 0.5]

    ci = seer_rate_interval(counts, pop, std_w, alpha=0.05, method="tiwari")

    rate = 5 / 100 * 0.5
    v = (0.5 / 100) ** 2 * 5
    w_m, z = 0.005, 0.005**2
    expected_hi = (v + z) / (2 * (rate + w_m)) * stats.chi2.ppf(0.975, 2 * (rate + w_m) ** 2 / (v + z))
    assert ci.defined
    assert ci.lower == pytest.approx(v / (2 * rate) * stats.chi2.ppf(0.025, 2 * rate**2 / v), rel=1e-12)
    assert ci.upper == pytest.approx(expected_hi, rel=1e-12)

    w_all = np.array([0.005, -0.1])
    m_all, z_all = float(w_all.mean()), float(np.mean(w_all**2))
    unmasked_hi = (v + z_all) / (2 * (rate + m_all)) * stats.chi2.ppf(0.975, 2 * (rate + m_all) ** 2 / (v + z_all))
    assert ci.upper != pytest.approx(unmasked_hi, rel=1e-6)


def test_fay_feuer_upper_bound_at_least_tiwari():
    rng = np.random.default_rng(7)
    for _ in range(30):
        n = int(rng.integers(2, 10))
        counts = rng.integers(0, 40, size=n)
        counts[0] = max(counts[0], 1)
        pop = rng.uniform(1e3, 2e5, size=n)
        std_w = rng.uniform(0.01, 1.0, size=n)
        std_w = std_w / std_w.sum()

        ff = seer_rate_interval(counts, pop, std_w, method="fayfeuer")
        tw = seer_rate_interval(counts, pop, std_w, method="tiwari")
        assert ff.defined and tw.defined
        assert ff.lower == pytest.approx(tw.lower)
        assert ff.upper >= tw.upper - 1e-15
        assert (ff.upper - ff.lower) >= (tw.upper - tw.lower) - 1e-15


@pytest.mark.parametrize("method", ["fayfeuer", "tiwari"])
def test_zero_events_give_undefined_interval(method):
    ci = seer_rate_interval([0, 0, 0], POP, STD_W, method=method)
    assert ci == RateInterval(lower=None, upper=None)
    assert not ci.defined


@pytest.mark.parametrize("method", ["fayfeuer", "tiwari"])
def test_zero_population_with_events_is_undefined_not_an_error(method):
    ci = seer_rate_interval([5, 30, 80], [0.0, 5e4, 1e5], STD_W, method=method)
    assert ci.lower is None and ci.upper is None


def test_empty_input_is_undefined():
    assert not seer_rate_interval([], [], []).defined


def test_unknown_method_rejected():
    with pytest.raises(ValueError):
        seer_rate_interval(COUNTS, POP, STD_W, method="wilson")


def test_scaled_keeps_undefined_bounds():
    assert RateInterval(None, None).scaled(1e5) == RateInterval(None, None)
    scaled = RateInterval(1e-5, 2e-5).scaled(1e5)
    assert scaled.lower == pytest.approx(1.0)
    assert scaled.upper == pytest.approx(2.0)


def test_narrower_alpha_widens_interval():
    ci95 = seer_rate_interval(COUNTS, POP, STD_W, alpha=0.05)
    ci90 = seer_rate_interval(COUNTS, POP, STD_W, alpha=0.10)
    assert ci95.lower < ci90.lower
    assert ci95.upper > ci90.upper
