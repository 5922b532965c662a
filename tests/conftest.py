"""Shared pytest fixtures for tapd-sdn tests."""

import sys
import tempfile
from pathlib import Path

import numpy as np
import pytest

# Add src directory to path for imports without installation
_src_path = str(Path(__file__).parent.parent / "src")
if _src_path not in sys.path:
    sys.path.insert(0, _src_path)

from tapd_sdn.config.schema import DetectionConfig  # noqa: E402


# =============================================================================
# Test Doubles
# =============================================================================


class ConstantModel:
    """Predicts the same label for every row."""

    def __init__(self, label=0):
        self.label = label

    def predict(self, X):
        return np.full(len(X), self.label)


class NearestNeighbourModel:
    """1-NN classifier that memorizes its training rows."""

    def __init__(self, X, y):
        self.X = np.asarray(X, dtype=np.float64)
        self.y = np.asarray(y, dtype=np.int64).copy()

    def predict(self, X):
        X = np.asarray(X, dtype=np.float64)
        dists = ((X[:, None, :] - self.X[None, :, :]) ** 2).sum(axis=2)
        return self.y[np.argmin(dists, axis=1)]


class NearestNeighbourTrainer:
    """Deterministic trainer that records every fit call."""

    def __init__(self):
        self.calls = []

    def fit(self, X, y, trees, seed):
        self.calls.append({"rows": len(X), "trees": trees, "seed": seed, "labels": y.copy()})
        return NearestNeighbourModel(X, y)


class NoneTrainer:
    """Trainer that fails to return a model."""

    def fit(self, X, y, trees, seed):
        return None


class RaisingModel:
    """Model whose prediction always fails."""

    def predict(self, X):
        raise RuntimeError("model exploded")


class NaNEvaluator:
    """Evaluator returning NaN for every cell."""

    def error(self, model, features, labels):
        return float("nan")

    def accuracy(self, model, features, labels):
        return float("nan")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def synthetic_flows():
    """Two-class flow features that are linearly separable on two columns."""
    rng = np.random.default_rng(0)
    X = rng.normal(size=(180, 4))
    y = ((X[:, 0] + X[:, 1]) > 0).astype(np.int64)
    return X, y


@pytest.fixture
def nn_trainer():
    """Deterministic nearest-neighbour trainer."""
    return NearestNeighbourTrainer()


@pytest.fixture
def detection_config(temp_dir):
    """Detection config writing into a temporary directory."""
    return DetectionConfig(
        name="test_run",
        n_controllers=6,
        theta=0.2,
        eta=0.1,
        trees=5,
        seed=42,
        output={"output_dir": str(temp_dir / "results")},
    )


@pytest.fixture
def flows_csv(temp_dir, synthetic_flows):
    """CSV dataset with a header row and an 'Attack'/'Normal' label column."""
    X, y = synthetic_flows
    path = temp_dir / "flows.csv"
    lines = ["f0,f1,f2,f3,Label"]
    for row, label in zip(X, y):
        cells = ",".join(f"{v:.6f}" for v in row)
        lines.append(f"{cells},{'Attack' if label else 'Normal'}")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path
