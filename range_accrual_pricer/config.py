from dataclasses import dataclass
import warnings

import numpy as np
import QuantLib as ql

from .errors import ParameterError


@dataclass(frozen=True)
class PricerConfiguration:
    """Numerical setup of :class:`RangeAccrualPricerByBgm`.

    Parameters
    ----------
    correlation : float
        Correlation between the forward rates fixing at the coupon start and
        at the payment date. Must lie in [-1, 1].
    with_smile : bool
        If False, each digital is priced off the volatility at its own strike
        with no smile-slope term.
    by_call_spread : bool
        Replicate the corridor digitals with a call spread (True) or with the
        analytic digital plus smile correction (False).
    call_spread_width : float
        Distance between the two strikes of the call spread. It is also the
        bump used to differentiate the smile, and strikes below half of it are
        treated as a barrier at minus infinity.
    """

    correlation: float = 1.0
    with_smile: bool = True
    by_call_spread: bool = True
    call_spread_width: float = 1.0e-4

    def __post_init__(self):
        if not np.isfinite(self.correlation) or abs(self.correlation) > 1.0:
            raise ParameterError(
                f"correlation must lie in [-1, 1], got {self.correlation}"
            )
        if not self.call_spread_width > 0.0:
            raise ParameterError(
                f"call spread width must be positive, got {self.call_spread_width}"
            )

    @property
    def minus_infinity_strike(self):
        return 0.5 * self.call_spread_width


class AppConfig:
    """Central configuration object.

    All scenario constants and numerical knobs used by the analysis script and
    the regression tests live here, so a run can be reproduced from a single
    snapshot (see ``reporting.save_config_snapshot``).

    Parameters
    ----------
    val_date : QuantLib.Date
        Evaluation date for QuantLib.
    flat_vol : float
        Volatility of the flat smile sections.
    correlation : float
        Default correlation handed to the BGM pricer.

    Notes
    -----
    The "infinite" corridor is finite on purpose: a lower strike just above
    zero and an upper strike of 100%. Both keep the replication inside the
    domain of the lognormal model.
    """

    def __init__(self, val_date, flat_vol=0.10, correlation=1.0):
        self.val_date = val_date
        self.flat_vol = float(flat_vol)
        self.correlation = float(correlation)

        # ----------------
        # Coupon
        # ----------------
        self.nominal = 1.0
        self.gearing = 1.0
        self.spread = 0.0
        self.start_date = ql.Date(6, ql.March, 2017)
        self.end_date = ql.Date(6, ql.September, 2017)
        self.fixing_days = 2
        self.index_tenor = "6M"

        # ----------------
        # Observation schedule
        # ----------------
        self.observations_frequency = ql.Daily
        self.observations_convention = ql.ModifiedFollowing

        # ----------------
        # Corridor
        # ----------------
        self.infinite_lower_strike = 1.0e-9
        self.infinite_upper_strike = 1.0

        # ----------------
        # Replication
        # ----------------
        self.with_smile = True
        self.call_spread_width = 1.0e-4

        # ----------------
        # Regression tolerances
        # ----------------
        self.rate_tolerance = 2.0e-8
        self.price_tolerance = 2.0e-4

        # Parallel zero-rate bump used by MasterPricer.metrics
        self.risk_bump_bps = 1.0

        # ----------------
        # Global flags
        # ----------------
        self.suppress_warnings = True

    def pricer_configuration(self, by_call_spread=True, correlation=None):
        """Build a :class:`PricerConfiguration` from the configured knobs."""
        return PricerConfiguration(
            correlation=self.correlation if correlation is None else float(correlation),
            with_smile=bool(self.with_smile),
            by_call_spread=bool(by_call_spread),
            call_spread_width=float(self.call_spread_width),
        )

    def apply_global_settings(self):
        """Set the QuantLib evaluation date and the warning filters."""
        ql.Settings.instance().evaluationDate = self.val_date
        if self.suppress_warnings:
            warnings.filterwarnings("ignore", category=RuntimeWarning)
