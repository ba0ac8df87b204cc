"""Smile sections: implied volatility by strike for a single exercise date.

Two variants are provided:

- :class:`FlatSmileSection`, a constant volatility for every strike;
- :class:`InterpolatedSmileSection`, piecewise-linear over a strike grid with
  flat extrapolation beyond the first and last strikes.

Both accept scalars or numpy arrays of strikes, so the pricer can evaluate a
whole observation schedule at once.
"""

import abc

import numpy as np
import QuantLib as ql

from .errors import SmileSectionError
from .utils import DateUtils


class SmileSection(abc.ABC):
    """Date-anchored smile.

    Parameters
    ----------
    exercise_date : QuantLib.Date or date-like
        Expiry the smile refers to.
    day_counter : QuantLib.DayCounter
        Converts (reference date, exercise date) into the exercise time.
    reference_date : QuantLib.Date, optional
        Defaults to the QuantLib evaluation date at construction time.
    atm_level : float, optional
        ATM forward, informational only.
    """

    def __init__(self, exercise_date, day_counter, reference_date=None, atm_level=None):
        if reference_date is None:
            reference_date = ql.Settings.instance().evaluationDate
        self._exercise_date = DateUtils.to_ql_date(exercise_date)
        self._reference_date = DateUtils.to_ql_date(reference_date)
        self._day_counter = day_counter
        self._atm_level = None if atm_level is None else float(atm_level)

        if self._exercise_date <= self._reference_date:
            raise SmileSectionError(
                f"exercise date {DateUtils.to_iso(self._exercise_date)} is not after "
                f"the reference date {DateUtils.to_iso(self._reference_date)}"
            )
        self._exercise_time = float(
            day_counter.yearFraction(self._reference_date, self._exercise_date)
        )

    def exercise_date(self):
        return self._exercise_date

    def reference_date(self):
        return self._reference_date

    def exercise_time(self):
        return self._exercise_time

    def day_counter(self):
        return self._day_counter

    def atm_level(self):
        return self._atm_level

    @abc.abstractmethod
    def min_strike(self):
        raise NotImplementedError

    @abc.abstractmethod
    def max_strike(self):
        raise NotImplementedError

    @abc.abstractmethod
    def _volatility(self, strikes):
        """Volatility for a float64 array of strikes (same shape)."""
        raise NotImplementedError

    def volatility(self, strike):
        k = np.asarray(strike, dtype=float)
        vol = self._volatility(k)
        if k.ndim == 0:
            return float(vol)
        return vol

    def variance(self, strike):
        vol = self.volatility(strike)
        return vol * vol * self._exercise_time

    def std_dev(self, strike):
        return self.volatility(strike) * np.sqrt(self._exercise_time)


class FlatSmileSection(SmileSection):
    """Same volatility for every strike."""

    def __init__(self, exercise_date, vol, day_counter, reference_date=None, atm_level=None):
        super().__init__(exercise_date, day_counter, reference_date, atm_level)
        vol = float(vol)
        if not np.isfinite(vol) or vol <= 0.0:
            raise SmileSectionError(f"flat volatility must be positive, got {vol}")
        self._vol = vol

    def min_strike(self):
        return 0.0

    def max_strike(self):
        return float("inf")

    def _volatility(self, strikes):
        return np.full_like(strikes, self._vol)


class InterpolatedSmileSection(SmileSection):
    """Linear interpolation over a strike grid.

    ``values`` are standard deviations by default (``kind="std_dev"``), as in
    smile exports where the exercise time is already folded in; pass
    ``kind="volatility"`` for implied volatilities. Strikes outside the grid
    get the boundary value.
    """

    def __init__(
        self,
        exercise_date,
        strikes,
        values,
        day_counter,
        reference_date=None,
        atm_level=None,
        kind="std_dev",
    ):
        super().__init__(exercise_date, day_counter, reference_date, atm_level)

        strikes = np.array(strikes, dtype=float)
        values = np.array(values, dtype=float)
        if strikes.ndim != 1 or strikes.size == 0:
            raise SmileSectionError("strike grid must be a non-empty 1-d sequence")
        if strikes.shape != values.shape:
            raise SmileSectionError(
                f"{strikes.size} strikes but {values.size} smile values"
            )
        if strikes.size > 1 and np.any(np.diff(strikes) <= 0.0):
            raise SmileSectionError("strikes must be strictly increasing")
        if not np.all(np.isfinite(values)) or np.any(values <= 0.0):
            raise SmileSectionError("smile values must be positive and finite")

        kind = str(kind).lower()
        if kind in ("std_dev", "stddev", "std_devs"):
            vols = values / np.sqrt(self.exercise_time())
        elif kind in ("vol", "volatility"):
            vols = values
        else:
            raise SmileSectionError(f"unknown smile value kind: {kind!r}")

        self._strikes = strikes
        self._vols = vols
        self._strikes.setflags(write=False)
        self._vols.setflags(write=False)

    def strikes(self):
        return self._strikes

    def volatilities(self):
        return self._vols

    def min_strike(self):
        return float(self._strikes[0])

    def max_strike(self):
        return float(self._strikes[-1])

    def _volatility(self, strikes):
        # np.interp extrapolates flat
        return np.interp(strikes, self._strikes, self._vols)
