"""Optional PNG charts for detection runs."""

from tapd_sdn.reporting.plots import (
    plot_average_errors,
    plot_metrics_history,
    plot_performance_by_parameter,
    plot_vote_frequencies,
)

__all__ = [
    "plot_average_errors",
    "plot_vote_frequencies",
    "plot_metrics_history",
    "plot_performance_by_parameter",
]
