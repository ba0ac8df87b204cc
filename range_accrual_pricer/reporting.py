import json
from pathlib import Path

import numpy as np
import pandas as pd
import QuantLib as ql

from .utils import DateUtils


def ensure_dir(path):
    """Create ``path`` (and parents) if needed and return it as a Path."""
    out = Path(path)
    out.mkdir(parents=True, exist_ok=True)
    return out


def save_dataframe(df, output_dir, filename):
    """Write ``df`` as CSV to ``output_dir/filename`` (no index column)."""
    target = ensure_dir(output_dir) / filename
    df.to_csv(target, index=False)
    return target


def save_results_table(rows, output_dir):
    """Save the scenario results (rate, fixing, price, delta, gamma) as CSV."""
    return save_dataframe(pd.DataFrame(rows), output_dir, "results_summary.csv")


def _snapshot_value(value):
    if isinstance(value, ql.Date):
        return DateUtils.to_iso(value)
    if isinstance(value, (bool, int, float, str)):
        return value
    return None


def save_config_snapshot(cfg, output_dir):
    """Dump the scalar fields of ``cfg`` as JSON; dates are written in ISO format."""
    snapshot = {}
    for name, value in vars(cfg).items():
        value = _snapshot_value(value)
        if value is not None:
            snapshot[name] = value
    target = ensure_dir(output_dir) / "config_snapshot.json"
    target.write_text(json.dumps(snapshot, indent=2, sort_keys=True), encoding="utf-8")
    return target


def _pyplot():
    # matplotlib is an optional extra; plotting is skipped without it
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        return None
    return plt


def _save_figure(plt, fig, output_dir, filename_png):
    fig.tight_layout()
    p = ensure_dir(Path(output_dir) / "figures") / filename_png
    fig.savefig(p, dpi=200)
    plt.close(fig)
    return p


def maybe_plot_smiles(smiles, output_dir, strikes=None, filename_png="smiles.png"):
    """Plot the implied volatility of every smile section against strike.

    Parameters
    ----------
    smiles : dict
        ``{label: (smile_on_expiry, smile_on_payment)}`` as given to
        ``MasterPricer``.
    strikes : array-like, optional
        Strike axis. Defaults to 0.5% .. 15%.
    """
    plt = _pyplot()
    if plt is None:
        return None

    strikes = np.linspace(0.005, 0.15, 150) if strikes is None else np.asarray(strikes, dtype=float)
    fig, ax = plt.subplots()
    for label, sections in smiles.items():
        for name, section in zip(("expiry", "payment"), sections):
            ax.plot(
                strikes,
                section.volatility(strikes),
                linewidth=1.0,
                label=f"{label} ({name}, {DateUtils.to_iso(section.exercise_date())})",
            )
    ax.set_xlabel("Strike")
    ax.set_ylabel("Implied volatility")
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize=8)
    return _save_figure(plt, fig, output_dir, filename_png)


def maybe_plot_observations(coupon, scenarios, output_dir, filename_png="in_range_probabilities.png"):
    """Plot the in-corridor probability of each observation date per scenario."""
    plt = _pyplot()
    if plt is None:
        return None

    x = pd.to_datetime([DateUtils.to_iso(d) for d in coupon.observation_dates])
    fig, ax = plt.subplots()
    for label, pricer in scenarios:
        ax.plot(x, pricer.in_range_probabilities(coupon), linewidth=1.0, label=label)
    ax.set_title(f"Corridor [{coupon.lower_strike:.2%}, {coupon.upper_strike:.2%}]")
    ax.set_ylabel("P(lower <= fixing < upper)")
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize=8)
    fig.autofmt_xdate()
    return _save_figure(plt, fig, output_dir, filename_png)


def maybe_plot_sensitivity(df, output_dir, x_col, title, filename_png, ylabel="Price"):
    """Plot a wide sweep frame: one line per scenario column against ``x_col``."""
    plt = _pyplot()
    if plt is None:
        return None

    fig, ax = plt.subplots()
    df.set_index(x_col).plot(ax=ax, marker="o", markersize=2, linewidth=1.0)
    ax.set_title(title)
    ax.set_ylabel(ylabel)
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize=8)
    return _save_figure(plt, fig, output_dir, filename_png)
