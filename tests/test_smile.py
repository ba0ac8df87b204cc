import numpy as np
import pytest
import QuantLib as ql

from range_accrual_pricer.errors import SmileSectionError
from range_accrual_pricer.smile import FlatSmileSection, InterpolatedSmileSection

REF = ql.Date(6, ql.March, 2007)
EXPIRY = ql.Date(6, ql.March, 2017)
DC = ql.Actual360()
T = 3653.0 / 360.0


class TestFlatSmileSection:
    def test_constant_volatility(self):
        smile = FlatSmileSection(EXPIRY, 0.10, DC, reference_date=REF)
        assert smile.volatility(0.001) == pytest.approx(0.10)
        assert smile.volatility(0.5) == pytest.approx(0.10)
        vols = smile.volatility(np.array([0.01, 0.02, 0.03]))
        assert vols.shape == (3,)
        assert np.allclose(vols, 0.10)

    def test_exercise_time_and_variance(self):
        smile = FlatSmileSection(EXPIRY, 0.10, DC, reference_date=REF)
        assert smile.exercise_time() == pytest.approx(T)
        assert smile.variance(0.03) == pytest.approx(0.01 * T)
        assert smile.std_dev(0.03) == pytest.approx(0.10 * np.sqrt(T))
        assert smile.min_strike() == 0.0
        assert smile.max_strike() == float("inf")

    def test_reference_date_defaults_to_evaluation_date(self):
        smile = FlatSmileSection(EXPIRY, 0.10, DC)
        assert smile.reference_date() == ql.Settings.instance().evaluationDate

    @pytest.mark.parametrize("exercise", [REF, ql.Date(1, ql.January, 2007)])
    def test_exercise_not_after_reference_raises(self, exercise):
        with pytest.raises(SmileSectionError):
            FlatSmileSection(exercise, 0.10, DC, reference_date=REF)

    def test_non_positive_vol_raises(self):
        with pytest.raises(SmileSectionError):
            FlatSmileSection(EXPIRY, 0.0, DC, reference_date=REF)


class TestInterpolatedSmileSection:
    strikes = [0.01, 0.02, 0.03]
    std_devs = [0.30, 0.20, 0.25]

    def smile(self, **kwargs):
        return InterpolatedSmileSection(
            EXPIRY, self.strikes, self.std_devs, DC, reference_date=REF, **kwargs
        )

    def test_nodes_are_std_devs(self):
        smile = self.smile()
        for k, sd in zip(self.strikes, self.std_devs):
            assert smile.volatility(k) == pytest.approx(sd / np.sqrt(T))
            assert smile.std_dev(k) == pytest.approx(sd)

    def test_linear_between_nodes(self):
        smile = self.smile()
        assert smile.std_dev(0.015) == pytest.approx(0.25)
        assert smile.std_dev(0.0275) == pytest.approx(0.2375)

    def test_flat_extrapolation(self):
        smile = self.smile()
        assert smile.std_dev(0.0) == pytest.approx(0.30)
        assert smile.std_dev(1.0) == pytest.approx(0.25)
        assert smile.min_strike() == 0.01
        assert smile.max_strike() == 0.03

    def test_volatility_kind(self):
        smile = self.smile(kind="volatility")
        assert smile.volatility(0.02) == pytest.approx(0.20)

    def test_grid_is_copied_and_read_only(self):
        strikes = np.array(self.strikes)
        smile = InterpolatedSmileSection(EXPIRY, strikes, self.std_devs, DC, reference_date=REF)
        strikes[0] = 0.5
        assert smile.strikes()[0] == 0.01
        assert strikes.flags.writeable
        with pytest.raises(ValueError):
            smile.strikes()[0] = 0.5

    def test_size_mismatch_raises(self):
        with pytest.raises(SmileSectionError):
            InterpolatedSmileSection(EXPIRY, [0.01, 0.02], [0.2], DC, reference_date=REF)

    def test_unsorted_strikes_raise(self):
        with pytest.raises(SmileSectionError):
            InterpolatedSmileSection(EXPIRY, [0.02, 0.01], [0.2, 0.2], DC, reference_date=REF)

    def test_unknown_kind_raises(self):
        with pytest.raises(SmileSectionError):
            self.smile(kind="price")


def test_loaded_smile_grid(smiles):
    on_expiry, on_payment = smiles["interpolated"]
    assert on_expiry.strikes().size == 1000
    assert on_expiry.exercise_date() == ql.Date(6, ql.March, 2017)
    assert on_payment.exercise_date() == ql.Date(6, ql.September, 2017)
    assert on_expiry.min_strike() == pytest.approx(0.003)
    assert on_expiry.max_strike() == pytest.approx(1.002)
    assert np.all(on_payment.volatilities() > 0.0)


def test_atm_level():
    smile = FlatSmileSection(EXPIRY, 0.10, DC, reference_date=REF, atm_level=0.045)
    assert smile.atm_level() == 0.045
    assert FlatSmileSection(EXPIRY, 0.10, DC, reference_date=REF).atm_level() is None
