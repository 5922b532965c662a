"""
Tests for result artifacts, cost estimation and plots.

Tests cover:
- Error matrix and vote file formats
- Append-only metrics log (header handling, run ids, parameter columns)
- Cost report components
- PNG chart generation
"""

import numpy as np
import pandas as pd
import pytest

from conftest import ConstantModel
from tapd_sdn.core.scoring import DetectionScorer
from tapd_sdn.exceptions import IOFailureError
from tapd_sdn.pipeline.cost import (
    NORTHBOUND_BYTES,
    communication_bytes,
    compute_units,
    dataset_bytes,
    estimate_cost,
    serialized_bytes,
    timed,
)
from tapd_sdn.pipeline.results import (
    METRICS_HEADER,
    MetricsWriter,
    read_error_matrix,
    write_error_matrix,
    write_votes,
)
from tapd_sdn.reporting.plots import (
    _parameter_values,
    plot_average_errors,
    plot_metrics_history,
    plot_performance_by_parameter,
    plot_vote_frequencies,
)


@pytest.fixture
def stats():
    return DetectionScorer().score({1, 2}, {2, 3}, 4)


# =============================================================================
# Artifact File Tests
# =============================================================================


class TestArtifactFiles:
    """Tests for the matrix and vote writers."""

    def test_error_matrix_format(self, temp_dir):
        path = write_error_matrix([[0.0, 0.125], [1.0, 1 / 3]], temp_dir / "errors_matrix.csv")
        assert path.read_text(encoding="utf-8") == "0.000000,0.125000\n1.000000,0.333333\n"

    def test_error_matrix_roundtrip(self, temp_dir):
        errors = np.array([[0.1, 0.2, 0.3], [0.4, 0.5, 0.6], [0.7, 0.8, 0.9]])
        path = write_error_matrix(errors, temp_dir / "m.csv")
        np.testing.assert_allclose(read_error_matrix(path), errors)

    def test_creates_parent_directories(self, temp_dir):
        path = write_error_matrix([[0.5]], temp_dir / "nested" / "dir" / "m.csv")
        assert path.exists()

    def test_read_missing_matrix(self, temp_dir):
        with pytest.raises(IOFailureError):
            read_error_matrix(temp_dir / "absent.csv")

    def test_votes_format(self, temp_dir):
        path = write_votes([{3, 1}, set(), {0}], temp_dir / "votes_per_source.csv")
        assert path.read_text(encoding="utf-8") == "0: 1 3\n1: \n2: 0\n"

    def test_unwritable_target(self, temp_dir):
        blocker = temp_dir / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        with pytest.raises(IOFailureError):
            write_votes([{0}], blocker / "votes.csv")


# =============================================================================
# MetricsWriter Tests
# =============================================================================


class TestMetricsWriter:
    """Tests for MetricsWriter."""

    def test_header_written_once(self, temp_dir, stats):
        path = temp_dir / "cost_results.csv"
        writer = MetricsWriter(path)
        writer.append(stats)
        writer.append(stats)

        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == ",".join(METRICS_HEADER)
        assert len(lines) == 3
        assert lines[1].split(",")[1:] == ["0.5000", "0.5000", "0.5000", "0.5000"]

    def test_run_ids_strictly_increase(self, temp_dir, stats):
        writer = MetricsWriter(temp_dir / "cost_results.csv")
        ids = [writer.append(stats) for _ in range(5)]
        assert ids == sorted(set(ids))

    def test_explicit_run_id(self, temp_dir, stats):
        path = temp_dir / "cost_results.csv"
        assert MetricsWriter(path).append(stats, run_id=123) == 123
        assert path.read_text(encoding="utf-8").splitlines()[1].startswith("123,")

    def test_parameter_columns(self, temp_dir, stats):
        path = temp_dir / "cost_results.csv"
        writer = MetricsWriter(path, include_parameters=True)
        writer.append(stats, theta=0.2, eta=0.1, n_compromised=1)

        header, row = path.read_text(encoding="utf-8").splitlines()
        assert header == "RunID,Accuracy,Precision,Recall,F1,Theta,Eta,NPrime"
        assert row.split(",")[-3:] == ["0.2000", "0.1000", "1"]

    def test_column_layout_mismatch(self, temp_dir, stats):
        path = temp_dir / "cost_results.csv"
        MetricsWriter(path).append(stats)
        with pytest.raises(IOFailureError):
            MetricsWriter(path, include_parameters=True).append(stats)

    def test_empty_existing_file_gets_header(self, temp_dir, stats):
        path = temp_dir / "cost_results.csv"
        path.write_text("", encoding="utf-8")
        MetricsWriter(path).append(stats)
        assert path.read_text(encoding="utf-8").startswith("RunID,")


# =============================================================================
# Cost Tests
# =============================================================================


class TestCost:
    """Tests for the cost estimate."""

    def test_dataset_bytes(self):
        assert dataset_bytes([np.zeros((10, 3)), np.zeros((5, 3))]) == (30 + 15) * 8

    def test_compute_units(self):
        assert compute_units([np.zeros((8, 2))]) == pytest.approx(8 * 3)
        assert compute_units([np.zeros((0, 2))]) == 0.0

    def test_communication_bytes(self):
        assert communication_bytes(100.0, 3) == NORTHBOUND_BYTES + 900.0

    def test_serialized_bytes(self):
        assert serialized_bytes(None) == 0
        assert serialized_bytes(ConstantModel(1)) > 0

    def test_unpicklable_model(self):
        assert serialized_bytes(lambda x: x) == 0

    def test_timed(self):
        result, elapsed = timed(lambda: 41 + 1)
        assert result == 42
        assert elapsed >= 0.0

    def test_report_total(self):
        report = estimate_cost([np.zeros((4, 2))] * 2, [ConstantModel()] * 2, ec_ms=1.5, oc_ms=0.5)
        data = report.to_dict()
        assert data["dn_bytes"] == 128
        assert data["fc_estimate"] == pytest.approx(
            report.dn_bytes + report.mn_bytes + report.cn_units + report.cf_bytes + 2.0
        )


# =============================================================================
# Plot Tests
# =============================================================================


class TestPlots:
    """Tests for the PNG charts."""

    def test_average_errors_plot(self, temp_dir):
        path = plot_average_errors(np.random.default_rng(0).random((4, 4)), temp_dir / "avg.png")
        assert path.exists()
        assert path.stat().st_size > 0

    def test_vote_frequencies_plot(self, temp_dir):
        path = plot_vote_frequencies({1: 2, 3: 1}, 4, temp_dir / "votes.png")
        assert path.exists()

    def test_metrics_history_plot(self, temp_dir, stats):
        results = temp_dir / "cost_results.csv"
        writer = MetricsWriter(results)
        writer.append(stats)
        writer.append(stats)
        path = plot_metrics_history(results, temp_dir / "metrics_graph.png")
        assert path is not None and path.exists()

    def test_metrics_history_without_rows(self, temp_dir):
        results = temp_dir / "cost_results.csv"
        results.write_text(",".join(METRICS_HEADER) + "\n", encoding="utf-8")
        assert plot_metrics_history(results, temp_dir / "metrics_graph.png") is None

    def test_performance_by_parameter(self, temp_dir, stats):
        results = temp_dir / "cost_results.csv"
        writer = MetricsWriter(results, include_parameters=True)
        writer.append(stats, theta=0.1, eta=0.1, n_compromised=1)
        writer.append(stats, theta=0.3, eta=0.2, n_compromised=2)

        charts = plot_performance_by_parameter(results, temp_dir / "figs")

        assert set(charts) == {"Theta", "NPrime", "Eta"}
        for name in ("fig_theta.png", "fig_N.png", "fig_eta.png"):
            assert (temp_dir / "figs" / name).stat().st_size > 0

    def test_performance_without_parameter_columns(self, temp_dir, stats):
        results = temp_dir / "cost_results.csv"
        writer = MetricsWriter(results)
        writer.append(stats)
        writer.append(stats)
        charts = plot_performance_by_parameter(results, temp_dir / "figs")
        assert charts["NPrime"] == temp_dir / "figs" / "fig_N.png"
        assert charts["NPrime"].exists()

    def test_performance_missing_log(self, temp_dir):
        assert plot_performance_by_parameter(temp_dir / "absent.csv", temp_dir / "figs") == {}
        assert not (temp_dir / "figs").exists()

    def test_performance_header_only(self, temp_dir):
        results = temp_dir / "cost_results.csv"
        results.write_text(",".join(METRICS_HEADER) + "\n", encoding="utf-8")
        assert plot_performance_by_parameter(results, temp_dir / "figs") == {}

    def test_parameter_fallback_uses_run_index(self):
        history = pd.DataFrame({"Theta": [0.2, 0.0, 0.4], "Accuracy": [1.0, 1.0, 1.0]})
        assert _parameter_values(history, "Theta", lambda i: i * 0.1) == pytest.approx([0.2, 0.1, 0.4])
        assert _parameter_values(history, "NPrime", lambda i: i + 1.0) == [1.0, 2.0, 3.0]
