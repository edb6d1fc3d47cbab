import math

import pytest
from scipy import stats

from ibm_rates.estimation.rate_ratio import delta_lognormal_ratio


def test_ratio_by_hand():
    rr = delta_lognormal_ratio(0.01, 1e-6, 0.02, 4e-6, alpha=0.05)
    z = stats.norm.ppf(0.975)
    se = math.sqrt(1e-6 / 0.01**2 + 4e-6 / 0.02**2)

    assert rr.estimate == pytest.approx(2.0)
    assert rr.se_log == pytest.approx(se)
    assert rr.lower == pytest.approx(2.0 * math.exp(-z * se))
    assert rr.upper == pytest.approx(2.0 * math.exp(z * se))


def test_swapping_groups_inverts_ratio_and_bounds():
    a = delta_lognormal_ratio(3.0e-5, 2.9e-13, 6.6e-5, 2.8e-12)
    b = delta_lognormal_ratio(6.6e-5, 2.8e-12, 3.0e-5, 2.9e-13)

    assert b.estimate == pytest.approx(1.0 / a.estimate)
    assert math.log(b.estimate) == pytest.approx(-math.log(a.estimate))
    assert b.lower == pytest.approx(1.0 / a.upper)
    assert b.upper == pytest.approx(1.0 / a.lower)


def test_zero_reference_rate_gives_undefined_bounds():
    rr = delta_lognormal_ratio(0.0, 0.0, 0.02, 4e-6)
    assert math.isinf(rr.estimate)
    assert rr.lower is None
    assert rr.upper is None
