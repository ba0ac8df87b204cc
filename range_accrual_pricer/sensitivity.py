"""Sensitivity sweeps for the range accrual coupon price.

The functions return ``pandas.DataFrame`` objects in a *wide* format: the first
column is the x-axis, and each additional column is a scenario label.

Scenarios are lists of ``(label, pricer)`` tuples. The coupon passed in only
provides the period, index and conventions; strikes and pricer are swapped for
each point of the sweep.
"""

from dataclasses import replace

import numpy as np
import pandas as pd

from .engines.bgm import RangeAccrualPricerByBgm


def price_vs_lower_strike(coupon, scenarios, lower_strikes, curve, upper_strike=None):
    """Price as a function of the lower strike (upper strike fixed)."""
    upper = coupon.upper_strike if upper_strike is None else float(upper_strike)
    rows = []
    for k in lower_strikes:
        c = coupon.with_strikes(float(k), upper)
        row = {"lower_strike": float(k)}
        for label, pricer in scenarios:
            row[label] = c.with_pricer(pricer).price(curve)
        rows.append(row)
    return pd.DataFrame(rows)


def price_vs_upper_strike(coupon, scenarios, upper_strikes, curve, lower_strike=None):
    """Price as a function of the upper strike (lower strike fixed)."""
    lower = coupon.lower_strike if lower_strike is None else float(lower_strike)
    rows = []
    for k in upper_strikes:
        c = coupon.with_strikes(lower, float(k))
        row = {"upper_strike": float(k)}
        for label, pricer in scenarios:
            row[label] = c.with_pricer(pricer).price(curve)
        rows.append(row)
    return pd.DataFrame(rows)


def price_vs_correlation(coupon, scenarios, correlations, curve):
    """Price as a function of the BGM correlation between the two forwards."""
    rows = []
    for rho in correlations:
        row = {"correlation": float(rho)}
        for label, pricer in scenarios:
            bumped = RangeAccrualPricerByBgm(
                pricer.smile_on_expiry,
                pricer.smile_on_payment,
                replace(pricer.config, correlation=float(rho)),
            )
            row[label] = coupon.with_pricer(bumped).price(curve)
        rows.append(row)
    return pd.DataFrame(rows)


def is_monotonic(values, increasing=True, strict=False, tolerance=0.0):
    """Check the ordering of a sequence of prices.

    ``tolerance`` relaxes non-strict checks only: a step against the expected
    direction no larger than ``tolerance`` is accepted.
    """
    diffs = np.diff(np.asarray(values, dtype=float))
    if not increasing:
        diffs = -diffs
    if strict:
        return bool(np.all(diffs > 0.0))
    return bool(np.all(diffs >= -tolerance))
