import logging

import QuantLib as ql

from .engines import RangeAccrualPricerByBgm
from .instruments import RangeAccrualCoupon, observation_schedule

logger = logging.getLogger(__name__)


class MasterPricer:
    """High-level orchestrator.

    Responsibilities
    ----------------
    - Build the range accrual coupon of the configured period for any corridor
    - Build the BGM pricers for every smile set x replication method
    - Provide: calculate() (rate, price) and metrics() (curve delta/gamma via
      bump-and-reprice)

    Notes
    -----
    The curve bump is a parallel zero-rate shift of ``cfg.risk_bump_bps``
    applied by relinking ``ts_base``; the index is projected on the same
    handle, so fixings move with the bump.
    """

    def __init__(self, ts_base, index, smiles, cfg):
        """Create a pricer.

        Parameters
        ----------
        ts_base : QuantLib.RelinkableYieldTermStructureHandle
            Forwarding and discounting curve.
        index : QuantLib.IborIndex
            Index projected on ``ts_base``.
        smiles : dict
            ``{label: (smile_on_expiry, smile_on_payment)}``.
        cfg : AppConfig
            Scenario constants and numerical knobs.
        """
        self.ts_base = ts_base
        self.index = index
        self.smiles = dict(smiles)
        self.cfg = cfg
        self._keep_alive = []

        self.observation_dates = observation_schedule(
            cfg.start_date,
            cfg.end_date,
            frequency=cfg.observations_frequency,
            calendar=index.fixingCalendar(),
            convention=cfg.observations_convention,
        )

    def coupon(self, lower_strike=None, upper_strike=None, pricer=None):
        """Range accrual coupon on the configured period (infinite corridor by default)."""
        cfg = self.cfg
        return RangeAccrualCoupon(
            payment_date=cfg.end_date,
            nominal=cfg.nominal,
            index=self.index,
            accrual_start_date=cfg.start_date,
            accrual_end_date=cfg.end_date,
            fixing_days=cfg.fixing_days,
            day_counter=self.index.dayCounter(),
            gearing=cfg.gearing,
            spread=cfg.spread,
            observation_schedule=self.observation_dates,
            lower_strike=cfg.infinite_lower_strike if lower_strike is None else lower_strike,
            upper_strike=cfg.infinite_upper_strike if upper_strike is None else upper_strike,
            pricer=pricer,
        )

    def scenarios(self):
        """List of (label, pricer) for every smile set and replication."""
        out = []
        for smile_label, (on_expiry, on_payment) in self.smiles.items():
            for by_call_spread in (True, False):
                method = "call spread" if by_call_spread else "digital"
                pricer = RangeAccrualPricerByBgm(
                    on_expiry,
                    on_payment,
                    self.cfg.pricer_configuration(by_call_spread=by_call_spread),
                )
                out.append((f"{smile_label} / {method}", pricer))
        return out

    def calculate(self, pricer, lower_strike=None, upper_strike=None):
        """Return (rate, price) of the coupon for a corridor."""
        c = self.coupon(lower_strike, upper_strike, pricer)
        return c.rate(), c.price(self.ts_base)

    def _shifted_price(self, base, shift, pricer, lower_strike, upper_strike):
        shifted = ql.ZeroSpreadedTermStructure(
            ql.YieldTermStructureHandle(base), ql.QuoteHandle(ql.SimpleQuote(shift))
        )
        shifted.enableExtrapolation()
        # The handle only references the curve; hold it until the bump is done.
        self._keep_alive.append(shifted)
        self.ts_base.linkTo(shifted)
        return self.calculate(pricer, lower_strike, upper_strike)[1]

    def metrics(self, pricer, lower_strike=None, upper_strike=None):
        """Return (price, delta, gamma) w.r.t. a parallel zero-rate shift.

        Delta and gamma are per unit of rate (divide by 10000 for bp units).
        """
        _, p0 = self.calculate(pricer, lower_strike, upper_strike)

        dy = float(self.cfg.risk_bump_bps) / 10000.0
        if abs(dy) < 1e-12:
            return float(p0), 0.0, 0.0

        base = self.ts_base.currentLink()
        self._keep_alive = []
        try:
            p_up = self._shifted_price(base, dy, pricer, lower_strike, upper_strike)
            p_dn = self._shifted_price(base, -dy, pricer, lower_strike, upper_strike)
        finally:
            self.ts_base.linkTo(base)

        delta = (p_up - p_dn) / (2.0 * dy)
        gamma = (p_up + p_dn - 2.0 * p0) / (dy ** 2)
        logger.debug("metrics: price=%.10f delta=%.6f gamma=%.6f", p0, delta, gamma)
        return float(p0), float(delta), float(gamma)
