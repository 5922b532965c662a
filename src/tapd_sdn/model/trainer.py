"""
Classifier training adapter.

The detection core only needs a ``Model`` with a batch ``predict``.
``RandomForestTrainer`` provides one with scikit-learn; tests and other
deployments can plug in any object satisfying the ``Trainer`` protocol.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray
from sklearn.ensemble import RandomForestClassifier

from tapd_sdn.exceptions import TrainerFailureError

logger = logging.getLogger(__name__)

# scikit-learn accepts random_state values in [0, 2**32 - 1]
_MAX_SEED = 2**32


@runtime_checkable
class Model(Protocol):
    """Trained classifier mapping feature rows to integer labels."""

    def predict(self, X: NDArray[np.floating[Any]]) -> NDArray[Any]: ...


@runtime_checkable
class Trainer(Protocol):
    """Produces a ``Model`` from a labelled training set."""

    def fit(
        self,
        X: NDArray[np.floating[Any]],
        y: NDArray[np.integer[Any]],
        trees: int,
        seed: int,
    ) -> Model: ...


class RandomForestTrainer:
    """Random forest classifier per controller."""

    def __init__(self, n_jobs: int | None = None, **params: Any) -> None:
        """
        Args:
            n_jobs: Parallel jobs for forest construction
            **params: Extra ``RandomForestClassifier`` keyword arguments
        """
        self.n_jobs = n_jobs
        self.params = params

    def fit(
        self,
        X: NDArray[np.floating[Any]],
        y: NDArray[np.integer[Any]],
        trees: int,
        seed: int,
    ) -> RandomForestClassifier:
        """
        Train a forest of ``trees`` estimators seeded with ``seed``.

        Raises:
            TrainerFailureError: If scikit-learn rejects the data
        """
        if len(np.unique(y)) < 2:
            logger.warning(f"Training on a single class ({np.unique(y).tolist()})")

        model = RandomForestClassifier(
            n_estimators=trees,
            random_state=seed % _MAX_SEED,
            n_jobs=self.n_jobs,
            **self.params,
        )
        try:
            model.fit(X, y)
        except ValueError as e:
            raise TrainerFailureError(f"Random forest training failed: {e}") from e
        return model
