import logging

import numpy as np

from ..config import PricerConfiguration
from ..errors import PricingError, SmileSectionError
from ..utils import DateUtils
from .base import RangeAccrualPricer
from .black import black_call, cash_or_nothing_call, vega_std_dev

logger = logging.getLogger(__name__)

# Digitals outside [-tol, 1 + tol] are treated as a broken smile.
DIGITAL_TOLERANCE = 0.05


class RangeAccrualPricerByBgm(RangeAccrualPricer):
    """Range accrual pricer in a two-forward lognormal (BGM) setup.

    The fixing observed at ``U`` inside the accrual period ``[S, T]`` is
    described through the forwards fixing at ``S`` and ``T``, with the
    interpolation weights ``p = (U - S) / (T - S)`` and ``q = 1 - p``:

    - volatility ``q*lambda_S + p*lambda_T`` up to ``S`` and ``lambda_T`` after;
    - log-forward drift from the change to the measure paying the coupon
      fixing at ``T`` (including the ``-lambda**2 / 2`` terms),
      evaluated with at-the-money volatilities and the correlation between the
      two forwards.

    ``lambda_S`` comes from ``smile_on_expiry`` and ``lambda_T`` from
    ``smile_on_payment``. Each corridor barrier is a digital priced either by a
    call spread of width ``config.call_spread_width`` or analytically, with a
    smile-slope correction when ``config.with_smile`` is set.
    """

    def __init__(self, smile_on_expiry, smile_on_payment, config=None):
        self.smile_on_expiry = smile_on_expiry
        self.smile_on_payment = smile_on_payment
        self.config = config if config is not None else PricerConfiguration()

        if smile_on_expiry.exercise_date() > smile_on_payment.exercise_date():
            raise SmileSectionError(
                "expiry smile exercise date "
                f"{DateUtils.to_iso(smile_on_expiry.exercise_date())} is after the "
                "payment smile exercise date "
                f"{DateUtils.to_iso(smile_on_payment.exercise_date())}"
            )

    @property
    def correlation(self):
        return self.config.correlation

    def validate(self, coupon):
        if self.smile_on_expiry.exercise_date() > coupon.accrual_start_date:
            raise SmileSectionError(
                "expiry smile exercise date is after the accrual start date "
                f"{DateUtils.to_iso(coupon.accrual_start_date)}"
            )
        if self.smile_on_payment.exercise_date() < coupon.accrual_end_date:
            raise SmileSectionError(
                "payment smile exercise date is before the accrual end date "
                f"{DateUtils.to_iso(coupon.accrual_end_date)}"
            )

    # ------------------------------------------------------------------
    # Model pieces
    # ------------------------------------------------------------------
    def _weights(self, coupon):
        """Interpolation weights (p, q) and the time spent before/after S."""
        start = coupon.start_time
        times = coupon.observation_times
        span = coupon.end_time - start
        p = (times - start) / span
        q = 1.0 - p
        before = max(start, 0.0)
        after = np.minimum(times - start, times)
        return p, q, before, after

    def _variances(self, strike, p, q, before, after):
        lambda_s = self.smile_on_expiry.volatility(strike)
        lambda_t = self.smile_on_payment.volatility(strike)
        lambda_before = q * lambda_s + p * lambda_t
        return before * lambda_before ** 2 + after * lambda_t ** 2

    def _adjusted_forwards(self, coupon, p, q, before, after):
        """Forward handed to the Black formulas for each observation date.

        The drifts are those of the log-forward, so each carries its own
        ``-lambda**2 / 2`` term.
        """
        fixings = coupon.observation_fixings
        lambda_s = self.smile_on_expiry.volatility(fixings)
        lambda_t = self.smile_on_payment.volatility(fixings)
        lambda_u = q * lambda_s + p * lambda_t
        rho = self.config.correlation

        tau = coupon.accrual_period
        l_t = coupon.terminal_fixing
        convexity = p * tau * l_t / (1.0 + tau * l_t)

        drift_before = (
            convexity * (p * lambda_t ** 2 + q * rho * lambda_s * lambda_t)
            + q * lambda_s ** 2
            + p * rho * lambda_s * lambda_t
            - 0.5 * lambda_u ** 2
        )
        drift_after = (convexity - 0.5) * lambda_t ** 2
        return fixings * np.exp(before * drift_before + after * drift_after)

    # ------------------------------------------------------------------
    # Digitals
    # ------------------------------------------------------------------
    def digital_probabilities(self, coupon, strike):
        strike = float(strike)
        n = coupon.observation_times.size
        if strike <= self.config.minus_infinity_strike:
            return np.ones(n)

        p, q, before, after = self._weights(coupon)
        forwards = self._adjusted_forwards(coupon, p, q, before, after)
        width = self.config.call_spread_width
        previous_strike = strike - 0.5 * width
        next_strike = strike + 0.5 * width

        if self.config.by_call_spread:
            if self.config.with_smile:
                previous_var = self._variances(previous_strike, p, q, before, after)
                next_var = self._variances(next_strike, p, q, before, after)
            else:
                previous_var = next_var = self._variances(strike, p, q, before, after)
            previous_call = black_call(forwards, previous_strike, np.sqrt(previous_var))
            next_call = black_call(forwards, next_strike, np.sqrt(next_var))
            result = (previous_call - next_call) / width
        else:
            std_dev = np.sqrt(self._variances(strike, p, q, before, after))
            result = cash_or_nothing_call(forwards, strike, std_dev)
            if self.config.with_smile:
                result = result - self._smile_correction(
                    forwards, strike, std_dev, p, q, before, after
                )

        self._check(result, strike)
        return result

    def _smile_correction(self, forwards, strike, std_dev, p, q, before, after):
        """Vega times the slope of the total standard deviation in strike."""
        width = self.config.call_spread_width
        previous_sd = np.sqrt(self._variances(strike - 0.5 * width, p, q, before, after))
        next_sd = np.sqrt(self._variances(strike + 0.5 * width, p, q, before, after))
        slope = (next_sd - previous_sd) / width
        return vega_std_dev(forwards, strike, std_dev) * slope

    def _check(self, result, strike):
        if not np.all(np.isfinite(result)):
            raise PricingError(f"non-finite digital at strike {strike}")
        low, high = float(np.min(result)), float(np.max(result))
        if low < -DIGITAL_TOLERANCE or high > 1.0 + DIGITAL_TOLERANCE:
            raise PricingError(
                f"digital at strike {strike} outside [0, 1]: min={low:.6f} max={high:.6f}"
            )
        if low < 0.0 or high > 1.0:
            logger.debug(
                "digital at strike %s slightly outside [0, 1]: min=%.3e max=%.6f",
                strike,
                low,
                high,
            )
