"""
Cross-evaluation of controller models.

Every controller's model is scored against every other controller's
local validation data. The resulting N x N error matrix is the input of
the per-source outlier detector.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

import numpy as np
from numpy.typing import NDArray

from tapd_sdn.exceptions import InputInvalidError, NumericDegenerateError, TrainerFailureError
from tapd_sdn.model.trainer import Model

if TYPE_CHECKING:
    from tapd_sdn.pipeline.partition import ControllerPartition

logger = logging.getLogger(__name__)


class Evaluator:
    """0/1 classification error of an opaque model on labelled data."""

    def error(
        self,
        model: Model,
        features: NDArray[np.floating[Any]],
        labels: NDArray[np.integer[Any]],
    ) -> float:
        """
        Fraction of rows the model gets wrong.

        Predictions outside {0, 1} are counted as incorrect.

        Args:
            model: Object exposing ``predict(X)``
            features: Feature matrix (n_samples, n_features)
            labels: Ground-truth labels (n_samples,)

        Returns:
            Error rate in [0, 1]; 0.0 for an empty matrix

        Raises:
            TrainerFailureError: If prediction fails or is misshapen
        """
        n = len(features)
        if n == 0:
            return 0.0

        try:
            predictions = np.asarray(model.predict(features))
        except Exception as e:
            raise TrainerFailureError(
                f"Model rejected prediction on input of shape {np.shape(features)}: {e}"
            ) from e

        predictions = predictions.reshape(-1) if predictions.ndim > 1 else predictions
        if predictions.shape != (n,):
            raise TrainerFailureError(
                f"Model returned {predictions.shape} predictions for {n} rows",
                details={"expected": n, "received": list(predictions.shape)},
            )

        valid = np.isin(predictions, (0, 1))
        correct = int(np.sum(valid & (predictions == np.asarray(labels))))
        return 1.0 - correct / n

    def accuracy(
        self,
        model: Model,
        features: NDArray[np.floating[Any]],
        labels: NDArray[np.integer[Any]],
    ) -> float:
        """Complement of ``error``."""
        return 1.0 - self.error(model, features, labels)


class TransferMatrixBuilder:
    """
    Builds the N x N transfer error matrix.

    Cells are independent, so they may be evaluated on a thread pool.
    Each task writes only its own cell, and the final matrix is the same
    for any worker count.
    """

    def __init__(self, evaluator: Evaluator | None = None, max_workers: int = 1) -> None:
        """
        Args:
            evaluator: Error evaluator (default ``Evaluator()``)
            max_workers: Threads used for cell evaluation (1 = sequential)
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.evaluator = evaluator or Evaluator()
        self.max_workers = max_workers

    def build(
        self,
        models: Sequence[Model],
        partitions: Sequence[ControllerPartition],
    ) -> NDArray[np.float64]:
        """
        Score ``models[s]`` on ``partitions[d]`` for every (s, d).

        Raises:
            InputInvalidError: If model and partition counts differ
            NumericDegenerateError: If any cell is not finite
        """
        n = len(models)
        if n != len(partitions):
            raise InputInvalidError(
                f"Got {n} models for {len(partitions)} partitions",
            )

        errors = np.zeros((n, n), dtype=np.float64)

        def evaluate_cell(source: int, dest: int) -> None:
            part = partitions[dest]
            errors[source, dest] = self.evaluator.error(
                models[source], part.local_X, part.local_y
            )

        cells = [(s, d) for s in range(n) for d in range(n)]
        if self.max_workers == 1:
            for s, d in cells:
                evaluate_cell(s, d)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                futures = [pool.submit(evaluate_cell, s, d) for s, d in cells]
                for future in futures:
                    future.result()

        if not np.all(np.isfinite(errors)):
            bad = np.argwhere(~np.isfinite(errors)).tolist()
            raise NumericDegenerateError(
                f"Error matrix has {len(bad)} non-finite entries",
                details={"cells": bad},
            )

        logger.info(f"Built {n}x{n} transfer error matrix (mean error {errors.mean():.4f})")
        return errors
