import numbers
import re

import QuantLib as ql
import pandas as pd

_PERIOD = re.compile(r"^(\d+)\s*(D|DAYS?|W|WEEKS?|M|MO|MONTHS?|Y|YR|YEARS?)$")
_UNITS = {"D": ql.Days, "W": ql.Weeks, "M": ql.Months, "Y": ql.Years}


def target_calendar():
    """Return the TARGET calendar (Euribor fixings and EUR schedules)."""
    return ql.TARGET()


def unique_dates(dates):
    """Return ``dates`` with consecutive duplicates removed.

    Daily schedules rolled with a business-day convention map week-ends onto
    the following (or preceding) business day; each business day is only
    observed once.
    """
    out = []
    for d in dates:
        if out and d == out[-1]:
            continue
        out.append(d)
    return out


class DateUtils:
    """Conversions between Python/pandas dates, strings and QuantLib types."""

    @staticmethod
    def to_ql_date(d):
        """QuantLib.Date from a QuantLib.Date, a serial number, an ISO string or a date."""
        if isinstance(d, ql.Date):
            return d
        if isinstance(d, numbers.Integral):
            return ql.Date(int(d))
        if isinstance(d, str):
            d = pd.Timestamp(d)
        return ql.Date(d.day, d.month, d.year)

    @staticmethod
    def to_iso(d):
        """ISO string for a QuantLib.Date (used in reports and log lines)."""
        return "%04d-%02d-%02d" % (d.year(), d.month(), d.dayOfMonth())

    @staticmethod
    def parse_period(s):
        """Parse tenors such as '1D', '2W', '6M', '6Mo', '1Yr' or '10 years'."""
        m = _PERIOD.match(str(s).strip().upper())
        if m is None:
            return ql.Period(str(s).strip())
        return ql.Period(int(m.group(1)), _UNITS[m.group(2)[0]])

    @staticmethod
    def ensure_period(tenor):
        """QuantLib.Period from a Period, a tenor string or a Frequency (e.g. ql.Daily)."""
        if isinstance(tenor, ql.Period):
            return tenor
        if isinstance(tenor, str):
            return DateUtils.parse_period(tenor)
        return ql.Period(tenor)
