import os
import sys

import pytest
import QuantLib as ql

# Allow running tests without installing the package.
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from range_accrual_pricer import AppConfig, MarketLoader, MasterPricer  # noqa: E402

DATA_DIR = os.path.join(BASE_DIR, "data")
CURVE_CSV = os.path.join(DATA_DIR, "zero_curve.csv")
SMILE_CSV = os.path.join(DATA_DIR, "smile_std_devs.csv")


@pytest.fixture(scope="session")
def cfg():
    """Scenario of the regression: evaluation 2007-03-06, coupon 2017-03-06 -> 2017-09-06."""
    c = AppConfig(ql.Date(6, ql.March, 2007), flat_vol=0.10, correlation=1.0)
    c.apply_global_settings()
    return c


@pytest.fixture(autouse=True)
def evaluation_date(cfg):
    # Tests share QuantLib's global settings; restore the date every time.
    ql.Settings.instance().evaluationDate = cfg.val_date
    yield
    ql.Settings.instance().evaluationDate = cfg.val_date


@pytest.fixture(scope="session")
def loader(cfg):
    return MarketLoader(cfg)


@pytest.fixture(scope="session")
def term_structure(loader):
    return loader.load_curve(CURVE_CSV)


@pytest.fixture(scope="session")
def index(loader, term_structure):
    return loader.ibor_index(term_structure)


@pytest.fixture(scope="session")
def smiles(cfg, loader, index):
    dc = index.dayCounter()
    return {
        "flat": loader.flat_smiles(cfg.start_date, cfg.end_date, dc),
        "interpolated": loader.interpolated_smiles(SMILE_CSV, cfg.start_date, cfg.end_date, dc),
    }


@pytest.fixture(scope="session")
def master(cfg, term_structure, index, smiles):
    return MasterPricer(term_structure, index, smiles, cfg)


@pytest.fixture(scope="session")
def scenarios(master):
    return master.scenarios()


@pytest.fixture(scope="session")
def infinite_coupon(master):
    return master.coupon()


@pytest.fixture(scope="session")
def curve_csv():
    return CURVE_CSV


@pytest.fixture(scope="session")
def smile_csv():
    return SMILE_CSV
