import logging

import pandas as pd
import QuantLib as ql

from .smile import FlatSmileSection, InterpolatedSmileSection
from .utils import DateUtils

logger = logging.getLogger(__name__)


class MarketLoader:
    """Load market inputs (zero curve, Ibor index, smile sections).

    The loader is permissive regarding column names so the same code runs on
    different curve/smile exports.
    """

    def __init__(self, cfg):
        self.cfg = cfg
        ql.Settings.instance().evaluationDate = cfg.val_date

    def load_curve(self, path, day_count=None, allow_extrapolation=True):
        """Load a zero curve from a CSV and return a relinkable handle.

        The CSV is expected to contain at least:
        - a date column (e.g. 'date')
        - a zero rate column (e.g. 'zero_rate'), continuously compounded

        Rows before the valuation date are dropped. If the first pillar is
        after the valuation date, the valuation date is added with the rate of
        the first pillar.
        """
        day_count = day_count or ql.Actual365Fixed()

        df = pd.read_csv(path)
        col_date = next((c for c in df.columns if "date" in c.lower()), None)
        col_rate = next(
            (c for c in df.columns if "zero" in c.lower() or "rate" in c.lower()),
            None,
        )
        if col_date is None or col_rate is None:
            raise ValueError(
                "zero curve CSV needs a date column ('date') and a rate column ('zero_rate')."
            )

        df[col_date] = pd.to_datetime(df[col_date])
        df = df.sort_values(col_date)

        dates = []
        rates = []
        for _, row in df.iterrows():
            d = DateUtils.to_ql_date(row[col_date].date())
            if d < self.cfg.val_date:
                continue
            dates.append(d)
            rates.append(float(row[col_rate]))

        if not dates:
            raise ValueError(f"no curve pillar on or after the valuation date in {path}")
        if dates[0] != self.cfg.val_date:
            dates.insert(0, self.cfg.val_date)
            rates.insert(0, rates[0])

        curve = ql.ZeroCurve(dates, rates, day_count)
        if allow_extrapolation:
            curve.enableExtrapolation()
        logger.info(
            "zero curve loaded from %s: %d pillars up to %s",
            path,
            len(dates),
            DateUtils.to_iso(dates[-1]),
        )
        return ql.RelinkableYieldTermStructureHandle(curve)

    def ibor_index(self, ts_handle, tenor=None):
        """Euribor index projected on ``ts_handle``."""
        tenor = tenor or self.cfg.index_tenor
        return ql.Euribor(DateUtils.ensure_period(tenor), ts_handle)

    def load_smile_grid(self, path):
        """Load a smile grid exported as strike x standard deviations.

        Returns
        -------
        (strikes, std_devs_on_expiry, std_devs_on_payment) as lists of floats.
        """
        df = pd.read_csv(path)
        col_strike = next((c for c in df.columns if "strike" in c.lower()), None)
        col_expiry = next((c for c in df.columns if "expiry" in c.lower()), None)
        col_payment = next((c for c in df.columns if "payment" in c.lower()), None)
        if col_strike is None or col_expiry is None or col_payment is None:
            raise ValueError(
                "smile CSV needs 'strike', '*expiry*' and '*payment*' columns."
            )
        df = df.dropna(subset=[col_strike, col_expiry, col_payment])
        df = df.sort_values(col_strike)
        logger.info("smile grid loaded from %s: %d strikes", path, len(df))
        return (
            [float(x) for x in df[col_strike]],
            [float(x) for x in df[col_expiry]],
            [float(x) for x in df[col_payment]],
        )

    def flat_smiles(self, expiry_date, payment_date, day_counter, vol=None):
        """Flat smile sections anchored on the expiry and payment dates."""
        vol = self.cfg.flat_vol if vol is None else float(vol)
        return (
            FlatSmileSection(expiry_date, vol, day_counter, reference_date=self.cfg.val_date),
            FlatSmileSection(payment_date, vol, day_counter, reference_date=self.cfg.val_date),
        )

    def interpolated_smiles(self, path, expiry_date, payment_date, day_counter):
        """Interpolated smile sections built from a strike grid CSV."""
        strikes, on_expiry, on_payment = self.load_smile_grid(path)
        return (
            InterpolatedSmileSection(
                expiry_date, strikes, on_expiry, day_counter, reference_date=self.cfg.val_date
            ),
            InterpolatedSmileSection(
                payment_date, strikes, on_payment, day_counter, reference_date=self.cfg.val_date
            ),
        )
