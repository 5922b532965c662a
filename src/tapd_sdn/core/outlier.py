"""Per-source IQR outlier detection with a MAD fallback."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from tapd_sdn.core.stats import mad, percentile

logger = logging.getLogger(__name__)


class OutlierDetector:
    """
    Turns one row of the transfer error matrix into a suspect set.

    A destination is suspect when the source model's error on it lies
    strictly above ``q3 + eta * iqr``. Rows without quartile spread fall
    back to ``q3 + eta * mad``.
    """

    def __init__(self, eta: float = 0.1) -> None:
        if eta < 0:
            raise ValueError(f"eta must be non-negative, got {eta}")
        self.eta = eta

    def cutoff(self, row: Sequence[float]) -> float:
        """Outlier cutoff omega for one row."""
        q1 = percentile(row, 25.0)
        q3 = percentile(row, 75.0)
        iqr = q3 - q1
        if iqr <= 0.0:
            return q3 + self.eta * mad(row)
        return q3 + self.eta * iqr

    def detect(self, row: Sequence[float]) -> set[int]:
        """Indices whose value is strictly greater than the cutoff."""
        values = np.asarray(row, dtype=np.float64)
        if values.size == 0:
            return set()
        omega = self.cutoff(values)
        return {int(i) for i in np.flatnonzero(values > omega)}

    def detect_all(self, errors: Sequence[Sequence[float]]) -> list[set[int]]:
        """Apply ``detect`` to every source row."""
        votes = []
        for source, row in enumerate(errors):
            suspects = self.detect(row)
            logger.info(f"Source {source} suspects: {sorted(suspects)}")
            votes.append(suspects)
        return votes
