from dataclasses import dataclass, field, replace
from functools import cached_property

import numpy as np
import QuantLib as ql

from .errors import InvalidCorridorError, PricingError, ScheduleError
from .utils import DateUtils, target_calendar, unique_dates

_CURVE_CACHE = (
    "accrual_period",
    "reference_date",
    "start_time",
    "end_time",
    "observation_times",
    "observation_weights",
    "observation_fixings",
    "terminal_fixing",
)


def observation_schedule(
    start_date,
    end_date,
    frequency=ql.Daily,
    calendar=None,
    convention=ql.ModifiedFollowing,
    date_generation=ql.DateGeneration.Forward,
    end_of_month=False,
):
    """Build the observation dates of a range accrual period.

    Dates are generated with ``QuantLib.Schedule``; dates rolled onto the same
    business day are kept once.
    """
    if calendar is None:
        calendar = target_calendar()
    sch = ql.Schedule(
        DateUtils.to_ql_date(start_date),
        DateUtils.to_ql_date(end_date),
        DateUtils.ensure_period(frequency),
        calendar,
        convention,
        convention,
        date_generation,
        bool(end_of_month),
    )
    return tuple(unique_dates(list(sch)))


@dataclass(frozen=True)
class RangeAccrualCoupon:
    """Floating coupon accruing only while the index fixing sits in a corridor.

    The coupon pays ``(gearing * L + spread) * fraction`` per unit of accrual,
    where ``L`` is its own index fixing and ``fraction`` the expected share of
    observed days (day-count weighted) with the fixing inside
    ``[lower_strike, upper_strike]``.

    Notes
    -----
    - ``observation_schedule`` is a ``QuantLib.Schedule`` or any sequence of
      dates. It must start on the accrual start date and end on the accrual
      end date; every date but the last is an observation.
    - The pricer is part of the coupon. ``with_pricer`` and ``with_strikes``
      return modified copies.
    - Curve-dependent inputs (projected fixings, times) are computed once per
      instance.
    """

    payment_date: object
    nominal: float
    index: object  # QuantLib.IborIndex
    accrual_start_date: object
    accrual_end_date: object
    fixing_days: int
    day_counter: object
    gearing: float
    spread: float
    observation_schedule: object
    lower_strike: float
    upper_strike: float
    pricer: object = None
    ref_period_start: object = None
    ref_period_end: object = None
    observation_dates: tuple = field(init=False, repr=False)

    def __post_init__(self):
        set_ = object.__setattr__
        for name in ("payment_date", "accrual_start_date", "accrual_end_date"):
            set_(self, name, DateUtils.to_ql_date(getattr(self, name)))
        if self.ref_period_start is None:
            set_(self, "ref_period_start", self.accrual_start_date)
        if self.ref_period_end is None:
            set_(self, "ref_period_end", self.accrual_end_date)
        set_(self, "ref_period_start", DateUtils.to_ql_date(self.ref_period_start))
        set_(self, "ref_period_end", DateUtils.to_ql_date(self.ref_period_end))
        set_(self, "nominal", float(self.nominal))
        set_(self, "gearing", float(self.gearing))
        set_(self, "spread", float(self.spread))
        set_(self, "lower_strike", float(self.lower_strike))
        set_(self, "upper_strike", float(self.upper_strike))
        set_(self, "fixing_days", int(self.fixing_days))

        if not self.lower_strike < self.upper_strike:
            raise InvalidCorridorError(
                f"lower strike {self.lower_strike} must be below upper strike {self.upper_strike}"
            )
        if self.accrual_start_date >= self.accrual_end_date:
            raise ScheduleError("accrual start date must precede accrual end date")

        dates = [DateUtils.to_ql_date(d) for d in self.observation_schedule]
        if len(dates) < 2:
            raise ScheduleError("observation schedule needs at least start and end dates")
        if any(b <= a for a, b in zip(dates, dates[1:])):
            raise ScheduleError("observation dates must be strictly increasing")
        if dates[0] != self.accrual_start_date:
            raise ScheduleError(
                f"observation schedule starts on {DateUtils.to_iso(dates[0])}, "
                f"accrual starts on {DateUtils.to_iso(self.accrual_start_date)}"
            )
        if dates[-1] != self.accrual_end_date:
            raise ScheduleError(
                f"observation schedule ends on {DateUtils.to_iso(dates[-1])}, "
                f"accrual ends on {DateUtils.to_iso(self.accrual_end_date)}"
            )
        set_(self, "observation_schedule", tuple(dates))
        set_(self, "observation_dates", tuple(dates[:-1]))

    # ---------------------------------------------------------------------
    # Copies
    # ---------------------------------------------------------------------
    def _copy(self, **changes):
        new = replace(self, **changes)
        # Curve-dependent values do not depend on strikes or pricer
        for name in _CURVE_CACHE:
            if name in self.__dict__:
                new.__dict__[name] = self.__dict__[name]
        return new

    def with_pricer(self, pricer):
        return self._copy(pricer=pricer)

    def with_strikes(self, lower_strike, upper_strike):
        return self._copy(lower_strike=lower_strike, upper_strike=upper_strike)

    # ---------------------------------------------------------------------
    # Conventions
    # ---------------------------------------------------------------------
    def _fixing_date_for(self, d):
        return self.index.fixingCalendar().advance(d, -self.fixing_days, ql.Days, ql.Preceding)

    @property
    def fixing_date(self):
        return self._fixing_date_for(self.accrual_start_date)

    def index_fixing(self):
        """Index fixing of the coupon itself (projected if in the future)."""
        return float(self.index.fixing(self.fixing_date))

    @cached_property
    def accrual_period(self):
        return float(
            self.day_counter.yearFraction(
                self.accrual_start_date,
                self.accrual_end_date,
                self.ref_period_start,
                self.ref_period_end,
            )
        )

    @cached_property
    def reference_date(self):
        return self.index.forwardingTermStructure().referenceDate()

    def _time(self, d):
        return float(self.day_counter.yearFraction(self.reference_date, d))

    @cached_property
    def start_time(self):
        return self._time(self.accrual_start_date)

    @cached_property
    def end_time(self):
        return self._time(self.accrual_end_date)

    @cached_property
    def observation_times(self):
        times = np.array([self._time(d) for d in self.observation_dates])
        times.setflags(write=False)
        return times

    @cached_property
    def observation_weights(self):
        """Day-count fraction covered by each observation."""
        dates = self.observation_schedule
        weights = np.array(
            [float(self.day_counter.yearFraction(a, b)) for a, b in zip(dates, dates[1:])]
        )
        weights.setflags(write=False)
        return weights

    @cached_property
    def observation_fixings(self):
        """Projected index fixing observed on each observation date."""
        fixings = np.array(
            [float(self.index.fixing(self._fixing_date_for(d))) for d in self.observation_dates]
        )
        fixings.setflags(write=False)
        return fixings

    @cached_property
    def terminal_fixing(self):
        """Projected index fixing for the period starting at accrual end."""
        return float(self.index.fixing(self._fixing_date_for(self.accrual_end_date)))

    # ---------------------------------------------------------------------
    # Valuation
    # ---------------------------------------------------------------------
    def rate(self):
        if self.pricer is None:
            raise PricingError("no pricer attached to the range accrual coupon")
        return float(self.pricer.swaplet_rate(self))

    def amount(self):
        return self.rate() * self.nominal * self.accrual_period

    def price(self, curve):
        """Discounted amount on ``curve`` (term structure or handle)."""
        return self.amount() * float(curve.discount(self.payment_date))


def _per_period(value, n, name):
    if isinstance(value, (list, tuple)):
        if len(value) != n:
            raise ValueError(f"{name}: expected {n} values, got {len(value)}")
        return list(value)
    return [value] * n


def range_accrual_leg(
    schedule,
    index,
    nominal,
    lower_strike,
    upper_strike,
    day_counter=None,
    fixing_days=None,
    gearing=1.0,
    spread=0.0,
    observations_frequency=ql.Daily,
    observations_convention=ql.ModifiedFollowing,
    payment_convention=ql.ModifiedFollowing,
    pricers=None,
):
    """Build a list of range accrual coupons over a coupon schedule.

    Scalar arguments apply to every period; lists give one value per period.
    ``pricers`` is a single pricer, a list of pricers or None.
    """
    dates = [DateUtils.to_ql_date(d) for d in schedule]
    n = len(dates) - 1
    if n < 1:
        raise ScheduleError("coupon schedule needs at least two dates")

    calendar = index.fixingCalendar()
    if day_counter is None:
        day_counter = index.dayCounter()
    fixing_days = index.fixingDays() if fixing_days is None else fixing_days

    nominals = _per_period(nominal, n, "nominal")
    lowers = _per_period(lower_strike, n, "lower_strike")
    uppers = _per_period(upper_strike, n, "upper_strike")
    gearings = _per_period(gearing, n, "gearing")
    spreads = _per_period(spread, n, "spread")
    pricer_list = _per_period(pricers, n, "pricers")

    leg = []
    for i in range(n):
        start, end = dates[i], dates[i + 1]
        obs = observation_schedule(
            start,
            end,
            frequency=observations_frequency,
            calendar=calendar,
            convention=observations_convention,
        )
        leg.append(
            RangeAccrualCoupon(
                payment_date=calendar.adjust(end, payment_convention),
                nominal=nominals[i],
                index=index,
                accrual_start_date=start,
                accrual_end_date=end,
                fixing_days=fixing_days,
                day_counter=day_counter,
                gearing=gearings[i],
                spread=spreads[i],
                observation_schedule=obs,
                lower_strike=lowers[i],
                upper_strike=uppers[i],
                pricer=pricer_list[i],
            )
        )
    return leg


def leg_npv(leg, curve):
    """Sum of the discounted coupon amounts paid after the curve reference date."""
    ref = curve.referenceDate()
    return float(sum(c.price(curve) for c in leg if c.payment_date > ref))
