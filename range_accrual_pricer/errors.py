"""Exceptions raised by the range accrual pricer.

All of them signal violated preconditions; pricing is deterministic, so none
of them is worth retrying.
"""


class RangeAccrualError(ValueError):
    """Base class for range accrual errors."""


class InvalidCorridorError(RangeAccrualError):
    """Corridor bounds are malformed (lower strike >= upper strike)."""


class ScheduleError(RangeAccrualError):
    """Observation schedule incompatible with the coupon period."""


class SmileSectionError(RangeAccrualError):
    """Smile section misconfigured or misaligned with the coupon dates."""


class ParameterError(RangeAccrualError):
    """Pricer parameter out of its domain (e.g. correlation outside [-1, 1])."""


class PricingError(RangeAccrualError):
    """Numerical evaluation produced a meaningless result."""
