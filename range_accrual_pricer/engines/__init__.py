from .base import RangeAccrualPricer
from .bgm import RangeAccrualPricerByBgm
