"""Line charts of transfer errors, vote frequencies, metrics history and performance by parameter."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

METRIC_COLUMNS = ["Accuracy", "Precision", "Recall", "F1"]

# column, file stem, axis label, fallback for run i when the column is absent or zero
PARAMETER_CHARTS = [
    ("Theta", "fig_theta", "Attack Control (Θ)", lambda i: i * 0.1),
    ("NPrime", "fig_N", "Number of Compromised Controllers (N′)", lambda i: i + 1.0),
    ("Eta", "fig_eta", "Detection Scale (η)", lambda i: i * 0.1),
]


def _line_chart(values: Sequence[float], title: str, xlabel: str, ylabel: str, save_path: Path) -> Path:
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(range(len(values)), values, marker="o", linewidth=2)
    ax.set_xticks(range(len(values)))
    ax.set_xlabel(xlabel, fontsize=12)
    ax.set_ylabel(ylabel, fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.grid(True, alpha=0.3)

    try:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.tight_layout()
        fig.savefig(save_path, dpi=120)
    finally:
        plt.close(fig)
    return save_path


def plot_average_errors(errors: np.ndarray, save_path: str | Path) -> Path:
    """Average transfer error of each source controller."""
    errors = np.asarray(errors, dtype=np.float64)
    averages = errors.mean(axis=1) if errors.size else np.zeros(len(errors))
    return _line_chart(
        averages.tolist(),
        "Average Transfer Error per Source",
        "Source Controller ID",
        "Average Error",
        Path(save_path),
    )


def plot_vote_frequencies(freq: Mapping[int, int], n_controllers: int, save_path: str | Path) -> Path:
    """Votes received by each controller."""
    values = [float(freq.get(i, 0)) for i in range(n_controllers)]
    return _line_chart(values, "Vote Frequencies per Controller", "Controller ID", "Votes", Path(save_path))


def plot_metrics_history(results_csv: str | Path, save_path: str | Path) -> Path | None:
    """Accuracy, precision, recall and F1 across all logged runs."""
    history = pd.read_csv(results_csv)
    if history.empty:
        return None

    fig, ax = plt.subplots(figsize=(10, 5))
    for column in METRIC_COLUMNS:
        if column in history.columns:
            ax.plot(range(1, len(history) + 1), history[column], marker="o", label=column, linewidth=2)

    ax.set_xlabel("Run", fontsize=12)
    ax.set_ylabel("Score", fontsize=12)
    ax.set_ylim(-0.05, 1.05)
    ax.set_title("Detection Metrics per Run", fontsize=14, fontweight="bold")
    ax.legend(fontsize=10)
    ax.grid(True, alpha=0.3)

    save_path = Path(save_path)
    try:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.tight_layout()
        fig.savefig(save_path, dpi=120)
    finally:
        plt.close(fig)
    return save_path


def _parameter_values(history: pd.DataFrame, column: str, fallback: Callable[[int], float]) -> list[float]:
    if column in history.columns:
        raw = pd.to_numeric(history[column], errors="coerce").fillna(0.0).tolist()
    else:
        raw = [0.0] * len(history)
    return [float(v) if v != 0 else fallback(i) for i, v in enumerate(raw)]


def plot_performance_by_parameter(results_csv: str | Path, out_dir: str | Path) -> dict[str, Path]:
    """
    Detection metrics against Theta, N' and Eta, one chart each.

    Each logged run is one point, labelled with its parameter value. When
    a run has no value for a parameter (column missing or zero), the run
    index stands in: ``0.1 * i`` for Theta and Eta, ``i + 1`` for N'.

    Args:
        results_csv: Metrics log written by ``MetricsWriter``
        out_dir: Directory receiving ``fig_theta.png``, ``fig_N.png``
            and ``fig_eta.png``

    Returns:
        Mapping of parameter column to saved chart, empty when the log
        is missing or holds no valid runs
    """
    results_csv = Path(results_csv)
    if not results_csv.exists():
        logger.warning(f"Metrics log not found: {results_csv}")
        return {}

    history = pd.read_csv(results_csv)
    present = [c for c in METRIC_COLUMNS if c in history.columns]
    if not present:
        logger.warning(f"No metric columns in {results_csv}")
        return {}
    for column in present:
        history[column] = pd.to_numeric(history[column], errors="coerce")
    history = history.dropna(subset=present).reset_index(drop=True)
    if history.empty:
        logger.warning(f"No valid runs in {results_csv}")
        return {}

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    positions = range(len(history))
    saved: dict[str, Path] = {}

    for column, stem, label, fallback in PARAMETER_CHARTS:
        values = _parameter_values(history, column, fallback)

        fig, ax = plt.subplots(figsize=(9, 6))
        for metric in present:
            ax.plot(positions, history[metric], marker="o", label=metric, linewidth=2.6)
        ax.set_xticks(list(positions))
        ax.set_xticklabels([f"{v:.2f}" for v in values])
        ax.set_xlabel(label, fontsize=13)
        ax.set_ylabel("Performance Metrics", fontsize=13)
        ax.set_ylim(0.0, 1.05)
        ax.set_title(f"Performance vs {label}", fontsize=16, fontweight="bold")
        ax.legend(fontsize=12)
        ax.grid(True, alpha=0.3)

        save_path = out_dir / f"{stem}.png"
        try:
            fig.tight_layout()
            fig.savefig(save_path, dpi=100)
        finally:
            plt.close(fig)
        saved[column] = save_path

    logger.info(f"Performance charts saved -> {out_dir}")
    return saved
