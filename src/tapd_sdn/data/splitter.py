"""Seeded train/test split and controller partitioning."""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
from numpy.typing import NDArray

from tapd_sdn.exceptions import InputInvalidError

logger = logging.getLogger(__name__)


def train_test_split(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.integer[Any]],
    train_fraction: float = 0.8,
    seed: int = 42,
) -> tuple[NDArray[Any], NDArray[Any], NDArray[Any], NDArray[Any]]:
    """
    Shuffle rows and split them into train and held-out test sets.

    Returns:
        Tuple of (train_X, train_y, test_X, test_y)
    """
    if not 0.0 < train_fraction <= 1.0:
        raise ValueError(f"train_fraction must be in (0, 1], got {train_fraction}")
    if len(X) != len(y):
        raise InputInvalidError(f"Feature rows ({len(X)}) and labels ({len(y)}) differ")

    n = len(X)
    order = np.random.default_rng(seed).permutation(n)
    train_size = int(round(n * train_fraction))
    train_idx, test_idx = order[:train_size], order[train_size:]

    logger.info(f"Train rows={len(train_idx)} Test rows={len(test_idx)}")
    return X[train_idx].copy(), y[train_idx].copy(), X[test_idx].copy(), y[test_idx].copy()


class Splitter:
    """
    Deals shuffled rows out to N controllers.

    Partition sizes differ by at most one; the first ``n mod N``
    partitions receive the extra rows.
    """

    def split(
        self,
        X: NDArray[np.floating[Any]],
        y: NDArray[np.integer[Any]],
        n_parts: int,
        seed: int,
    ) -> list[tuple[NDArray[np.float64], NDArray[np.int64]]]:
        """
        Split ``(X, y)`` into ``n_parts`` controller-local datasets.

        Raises:
            InputInvalidError: If ``n_parts`` is not positive or rows and
                labels differ in length
        """
        if n_parts <= 0:
            raise InputInvalidError(f"Number of controllers must be positive, got {n_parts}")
        if len(X) != len(y):
            raise InputInvalidError(f"Feature rows ({len(X)}) and labels ({len(y)}) differ")

        n = len(X)
        order = np.random.default_rng(seed).permutation(n)
        base, rem = divmod(n, n_parts)

        parts = []
        pos = 0
        for i in range(n_parts):
            size = base + (1 if i < rem else 0)
            idx = order[pos : pos + size]
            pos += size
            parts.append((np.array(X[idx], dtype=np.float64), np.array(y[idx], dtype=np.int64)))
        return parts
