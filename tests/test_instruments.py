import dataclasses

import numpy as np
import pytest
import QuantLib as ql

from range_accrual_pricer import RangeAccrualPricerByBgm, observation_schedule, range_accrual_leg
from range_accrual_pricer.errors import InvalidCorridorError, PricingError, ScheduleError
from range_accrual_pricer.instruments import RangeAccrualCoupon, leg_npv

START = ql.Date(6, ql.March, 2017)
END = ql.Date(6, ql.September, 2017)


def make_coupon(index, **overrides):
    kwargs = dict(
        payment_date=END,
        nominal=1.0,
        index=index,
        accrual_start_date=START,
        accrual_end_date=END,
        fixing_days=2,
        day_counter=index.dayCounter(),
        gearing=1.0,
        spread=0.0,
        observation_schedule=observation_schedule(START, END, calendar=index.fixingCalendar()),
        lower_strike=0.01,
        upper_strike=0.05,
    )
    kwargs.update(overrides)
    return RangeAccrualCoupon(**kwargs)


class TestObservationSchedule:
    def test_business_days_only(self):
        cal = ql.TARGET()
        dates = observation_schedule(START, END, calendar=cal)
        assert dates[0] == START
        assert dates[-1] == END
        assert all(b > a for a, b in zip(dates, dates[1:]))
        assert all(cal.isBusinessDay(d) for d in dates)
        # every TARGET business day of [START, END] exactly once
        assert len(dates) == cal.businessDaysBetween(START, END, True, True)

    def test_holidays_are_skipped(self):
        dates = observation_schedule(START, END)
        assert ql.Date(14, ql.April, 2017) not in dates  # Good Friday
        assert ql.Date(1, ql.May, 2017) not in dates
        assert ql.Date(18, ql.April, 2017) in dates

    def test_weekly_frequency(self):
        dates = observation_schedule(START, END, frequency="1W")
        assert dates[0] == START
        assert dates[-1] == END
        assert len(dates) < 30


class TestRangeAccrualCoupon:
    def test_observation_dates_exclude_end(self, index):
        c = make_coupon(index)
        assert c.observation_dates[0] == START
        assert c.observation_dates[-1] < END
        assert len(c.observation_dates) == len(c.observation_schedule) - 1
        assert c.observation_times.shape == (len(c.observation_dates),)

    def test_weights_sum_to_accrual_period(self, index):
        c = make_coupon(index)
        assert c.accrual_period == pytest.approx(184.0 / 360.0)
        assert np.sum(c.observation_weights) == pytest.approx(c.accrual_period, abs=1e-14)
        assert np.all(c.observation_weights > 0.0)

    def test_fixing_dates(self, index):
        c = make_coupon(index)
        assert c.fixing_date == ql.Date(2, ql.March, 2017)
        assert c.index_fixing() == pytest.approx(index.fixing(ql.Date(2, ql.March, 2017)))
        assert c.terminal_fixing == pytest.approx(index.fixing(ql.Date(4, ql.September, 2017)))
        assert c.observation_fixings[0] == pytest.approx(c.index_fixing())

    def test_times(self, index):
        c = make_coupon(index)
        assert 0.0 < c.start_time < c.end_time
        assert c.observation_times[0] == pytest.approx(c.start_time)
        assert c.observation_times[-1] < c.end_time

    def test_dates_accept_strings(self, index):
        c = make_coupon(index, payment_date="2017-09-06", accrual_start_date="2017-03-06")
        assert c.payment_date == END
        assert c.accrual_start_date == START

    @pytest.mark.parametrize("lower, upper", [(0.05, 0.05), (0.05, 0.01)])
    def test_invalid_corridor(self, index, lower, upper):
        with pytest.raises(InvalidCorridorError):
            make_coupon(index, lower_strike=lower, upper_strike=upper)

    def test_schedule_must_span_accrual_period(self, index):
        dates = observation_schedule(START, END)
        with pytest.raises(ScheduleError):
            make_coupon(index, observation_schedule=dates[1:])
        with pytest.raises(ScheduleError):
            make_coupon(index, observation_schedule=dates[:-1])
        with pytest.raises(ScheduleError):
            make_coupon(index, observation_schedule=[START])

    def test_schedule_must_increase(self, index):
        dates = list(observation_schedule(START, END))
        dates[1], dates[2] = dates[2], dates[1]
        with pytest.raises(ScheduleError):
            make_coupon(index, observation_schedule=dates)

    def test_rate_needs_pricer(self, index):
        with pytest.raises(PricingError):
            make_coupon(index).rate()

    def test_frozen(self, index):
        c = make_coupon(index)
        with pytest.raises(dataclasses.FrozenInstanceError):
            c.lower_strike = 0.02

    def test_copies_keep_curve_values(self, index, scenarios):
        c = make_coupon(index)
        fixings = c.observation_fixings
        narrow = c.with_strikes(0.02, 0.03)
        assert narrow.observation_fixings is fixings
        assert (narrow.lower_strike, narrow.upper_strike) == (0.02, 0.03)
        assert (c.lower_strike, c.upper_strike) == (0.01, 0.05)

        _, pricer = scenarios[0]
        priced = narrow.with_pricer(pricer)
        assert priced.pricer is pricer
        assert narrow.pricer is None
        assert priced.observation_fixings is fixings


class TestRangeAccrualLeg:
    schedule = [START, END, ql.Date(6, ql.March, 2018)]

    def pricers(self, loader, index):
        out = []
        for start, end in zip(self.schedule, self.schedule[1:]):
            on_expiry, on_payment = loader.flat_smiles(start, end, index.dayCounter())
            out.append(RangeAccrualPricerByBgm(on_expiry, on_payment))
        return out

    def test_structure(self, index):
        leg = range_accrual_leg(self.schedule, index, 100.0, 0.01, [0.05, 0.06])
        assert len(leg) == 2
        assert leg[0].accrual_start_date == START
        assert leg[1].accrual_end_date == ql.Date(6, ql.March, 2018)
        assert leg[1].payment_date == ql.Date(6, ql.March, 2018)
        assert [c.upper_strike for c in leg] == [0.05, 0.06]
        assert all(c.fixing_days == index.fixingDays() for c in leg)
        assert all(c.pricer is None for c in leg)

    def test_per_period_length_mismatch(self, index):
        with pytest.raises(ValueError):
            range_accrual_leg(self.schedule, index, 1.0, 0.01, [0.05, 0.06, 0.07])

    def test_short_schedule(self, index):
        with pytest.raises(ScheduleError):
            range_accrual_leg([START], index, 1.0, 0.01, 0.05)

    def test_npv_is_sum_of_prices(self, loader, index, term_structure):
        leg = range_accrual_leg(
            self.schedule, index, 100.0, 0.01, 0.05, pricers=self.pricers(loader, index)
        )
        prices = [c.price(term_structure) for c in leg]
        assert all(p > 0.0 for p in prices)
        assert leg_npv(leg, term_structure) == pytest.approx(sum(prices))
