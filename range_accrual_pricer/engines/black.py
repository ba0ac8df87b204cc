"""Vectorized Black (lognormal forward) formulas, undiscounted.

Every function broadcasts over numpy arrays. Standard deviations are floored
at ``MIN_STD_DEV`` and strikes at ``MIN_STRIKE`` so the logarithms stay in
their domain.
"""

import numpy as np
from scipy.stats import norm

MIN_STD_DEV = 1.0e-12
MIN_STRIKE = 1.0e-14


def _d1_d2(forward, strike, std_dev):
    forward = np.asarray(forward, dtype=float)
    strike = np.maximum(np.asarray(strike, dtype=float), MIN_STRIKE)
    std_dev = np.maximum(np.asarray(std_dev, dtype=float), MIN_STD_DEV)
    d1 = (np.log(forward / strike) + 0.5 * std_dev * std_dev) / std_dev
    return d1, d1 - std_dev


def black_call(forward, strike, std_dev):
    """Undiscounted Black call: F N(d1) - K N(d2)."""
    d1, d2 = _d1_d2(forward, strike, std_dev)
    return forward * norm.cdf(d1) - np.asarray(strike, dtype=float) * norm.cdf(d2)


def cash_or_nothing_call(forward, strike, std_dev):
    """Probability N(d2) that the forward ends above ``strike``."""
    _, d2 = _d1_d2(forward, strike, std_dev)
    return norm.cdf(d2)


def vega_std_dev(forward, strike, std_dev):
    """Derivative of the undiscounted call w.r.t. the standard deviation."""
    d1, _ = _d1_d2(forward, strike, std_dev)
    return np.asarray(forward, dtype=float) * norm.pdf(d1)
