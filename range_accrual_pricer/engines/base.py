import abc
import logging

import numpy as np

from ..errors import PricingError

logger = logging.getLogger(__name__)

# Largest negative in-range probability silently floored at zero.
RANGE_PROBABILITY_TOLERANCE = 1.0e-10


class RangeAccrualPricer(abc.ABC):
    """Abstract pricing strategy for :class:`RangeAccrualCoupon`.

    A concrete pricer only provides the probability that the observed fixing
    ends above a strike at each observation date. Everything else (corridor
    probability, day-count weighting, rate and discounted price) is shared.

    Pricers hold no per-coupon state: the same instance can price any number
    of coupons.
    """

    @abc.abstractmethod
    def digital_probabilities(self, coupon, strike):
        """Probability P(fixing >= strike) per observation date (numpy array)."""
        raise NotImplementedError

    def validate(self, coupon):
        """Hook to reject coupons the pricer cannot handle."""

    def in_range_probabilities(self, coupon):
        """P(lower <= fixing < upper) per observation date."""
        self.validate(coupon)
        lower = self.digital_probabilities(coupon, coupon.lower_strike)
        upper = self.digital_probabilities(coupon, coupon.upper_strike)
        result = lower - upper
        worst = float(np.min(result))
        if worst < -RANGE_PROBABILITY_TOLERANCE:
            raise PricingError(
                f"digital above upper strike {coupon.upper_strike} exceeds digital "
                f"above lower strike {coupon.lower_strike} (difference {worst:.3e})"
            )
        return np.maximum(result, 0.0)

    def expected_accrual_fraction(self, coupon):
        """Day-count weighted expected fraction of in-range days."""
        weights = coupon.observation_weights
        probabilities = self.in_range_probabilities(coupon)
        return float(np.dot(weights, probabilities) / np.sum(weights))

    def swaplet_rate(self, coupon):
        fraction = self.expected_accrual_fraction(coupon)
        fixing = coupon.index_fixing()
        rate = (coupon.gearing * fixing + coupon.spread) * fraction
        logger.debug(
            "range accrual [%s, %s]: fixing=%.10f fraction=%.10f rate=%.10f",
            coupon.lower_strike,
            coupon.upper_strike,
            fixing,
            fraction,
            rate,
        )
        return rate

    def swaplet_price(self, coupon):
        """Rate times accrual, discounted on the index forwarding curve."""
        curve = coupon.index.forwardingTermStructure()
        discount = float(curve.discount(coupon.payment_date))
        return self.swaplet_rate(coupon) * coupon.accrual_period * discount
