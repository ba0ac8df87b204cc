"""Range accrual coupon pricer package (QuantLib).

This package provides:
- Market loaders (zero curve, Euribor index, smile sections)
- Range accrual coupons on a daily observation schedule, and legs of them
- A BGM-style pricer replicating the corridor by call spreads or digitals
- Orchestrator for rate, price and curve sensitivities, plus strike sweeps
"""

from .config import AppConfig, PricerConfiguration
from .engines import RangeAccrualPricer, RangeAccrualPricerByBgm
from .instruments import RangeAccrualCoupon, observation_schedule, range_accrual_leg
from .market import MarketLoader
from .pricer import MasterPricer
from .smile import FlatSmileSection, InterpolatedSmileSection, SmileSection
