import logging
from pathlib import Path

import numpy as np
import QuantLib as ql

from range_accrual_pricer.config import AppConfig
from range_accrual_pricer.market import MarketLoader
from range_accrual_pricer.pricer import MasterPricer
from range_accrual_pricer.reporting import (
    maybe_plot_observations,
    maybe_plot_sensitivity,
    maybe_plot_smiles,
    save_config_snapshot,
    save_dataframe,
    save_results_table,
)
from range_accrual_pricer.sensitivity import (
    is_monotonic,
    price_vs_correlation,
    price_vs_lower_strike,
    price_vs_upper_strike,
)


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    # -------------------------------------------------------------------------
    # 0. Inputs
    # -------------------------------------------------------------------------
    val_date = ql.Date(6, ql.March, 2007)
    cfg = AppConfig(val_date, flat_vol=0.10, correlation=1.0)
    cfg.apply_global_settings()

    project_root = Path(__file__).resolve().parent
    data_dir = project_root / "data"
    out_dir = project_root / "outputs"

    curve_csv = data_dir / "zero_curve.csv"
    smile_csv = data_dir / "smile_std_devs.csv"

    # -------------------------------------------------------------------------
    # 1. Load market data
    # -------------------------------------------------------------------------
    print("--- 1. Market data ---")
    loader = MarketLoader(cfg)
    ts = loader.load_curve(str(curve_csv))
    index = loader.ibor_index(ts)
    dc = index.dayCounter()

    smiles = {
        "flat": loader.flat_smiles(cfg.start_date, cfg.end_date, dc),
        "interpolated": loader.interpolated_smiles(str(smile_csv), cfg.start_date, cfg.end_date, dc),
    }

    pricer = MasterPricer(ts, index, smiles, cfg)
    scenarios = pricer.scenarios()

    # -------------------------------------------------------------------------
    # 2. Infinite corridor: the coupon collapses to its index fixing
    # -------------------------------------------------------------------------
    print("\n--- 2. Infinite range ---")
    coupon = pricer.coupon()
    fixing = coupon.index_fixing()
    print(f"index fixing on {coupon.fixing_date}: {fixing:.10f}")
    print(f"{'SCENARIO':<28} | {'RATE':<14} | {'DIFF':<10} | {'PRICE':<12} | {'DELTA':<10}")
    print("-" * 86)

    results = []
    for label, bgm in scenarios:
        rate, _ = pricer.calculate(bgm)
        price, delta, gamma = pricer.metrics(bgm)
        diff = rate - fixing
        print(f"{label:<28} | {rate:<14.10f} | {diff:<10.2e} | {price:<12.8f} | {delta:<10.6f}")
        results.append(
            {
                "scenario": label,
                "rate": rate,
                "index_fixing": fixing,
                "difference": diff,
                "within_tolerance": abs(diff) <= cfg.rate_tolerance,
                "price": price,
                "delta": delta,
                "gamma": gamma,
            }
        )

    # -------------------------------------------------------------------------
    # 3. Strike sweeps
    # -------------------------------------------------------------------------
    print("\n--- 3. Monotonicity ---")
    lower_strikes = [0.005 + k * 0.001 for k in range(1, 100)]
    df_lower = price_vs_lower_strike(coupon, scenarios, lower_strikes, ts, upper_strike=cfg.infinite_upper_strike)

    upper_strikes = [0.006 + k * 0.001 for k in range(1, 95)]
    df_upper = price_vs_upper_strike(coupon, scenarios, upper_strikes, ts, lower_strike=0.004)

    for label, _ in scenarios:
        dec = is_monotonic(df_lower[label], increasing=False, strict=True)
        inc = is_monotonic(df_upper[label], increasing=True)
        print(f"{label:<28} | lower strike decreasing: {dec} | upper strike non-decreasing: {inc}")

    correlations = np.linspace(-1.0, 1.0, 11)
    df_corr = price_vs_correlation(pricer.coupon(0.03, 0.05), scenarios, correlations, ts)

    # -------------------------------------------------------------------------
    # 4. Outputs (CSV + figures)
    # -------------------------------------------------------------------------
    save_results_table(results, out_dir)
    save_config_snapshot(cfg, out_dir)
    save_dataframe(df_lower, out_dir, "sensitivity_price_vs_lower_strike.csv")
    save_dataframe(df_upper, out_dir, "sensitivity_price_vs_upper_strike.csv")
    save_dataframe(df_corr, out_dir, "sensitivity_price_vs_correlation.csv")

    maybe_plot_smiles(smiles, out_dir)
    maybe_plot_observations(pricer.coupon(0.03, 0.05), scenarios, out_dir)
    maybe_plot_sensitivity(
        df_lower,
        out_dir,
        x_col="lower_strike",
        title="Range accrual price vs lower strike (upper = 100%)",
        filename_png="price_vs_lower_strike.png",
    )
    maybe_plot_sensitivity(
        df_upper,
        out_dir,
        x_col="upper_strike",
        title="Range accrual price vs upper strike (lower = 0.4%)",
        filename_png="price_vs_upper_strike.png",
    )
    maybe_plot_sensitivity(
        df_corr,
        out_dir,
        x_col="correlation",
        title="Range accrual price vs correlation (corridor 3%-5%)",
        filename_png="price_vs_correlation.png",
    )

    print(f"\nOutputs written to: {out_dir}")


if __name__ == "__main__":
    main()
