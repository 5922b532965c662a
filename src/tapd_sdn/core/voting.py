"""
Vote aggregation and confidence weighting.

Each source controller votes for the destinations its outlier detector
flagged. Votes are fused either as plain counts or weighted by the
source's confidence, ``max(0, 1 - mean(E[source]))``, so that a model
that performs poorly everywhere carries less weight.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence, Set

import numpy as np
from numpy.typing import NDArray

from tapd_sdn.exceptions import InputInvalidError

logger = logging.getLogger(__name__)


class VoteAggregator:
    """Fuses per-source suspect sets into per-controller scores."""

    def aggregate(self, votes: Sequence[Set[int]]) -> dict[int, int]:
        """Number of sources that flagged each controller (absent = 0)."""
        freq: Counter[int] = Counter()
        for suspects in votes:
            freq.update(suspects)
        return dict(sorted(freq.items()))

    def weighted_aggregate(
        self,
        votes: Sequence[Set[int]],
        confidence: Sequence[float],
    ) -> dict[int, float]:
        """
        Confidence-weighted vote totals.

        Args:
            votes: Suspect set per source; sources past ``len(votes)``
                contribute nothing
            confidence: Confidence per source

        Returns:
            Mapping controller id -> summed confidence of its voters

        Raises:
            InputInvalidError: If there are more vote rows than confidences
        """
        if len(votes) > len(confidence):
            raise InputInvalidError(
                f"{len(votes)} vote rows but only {len(confidence)} confidence values"
            )

        weighted: dict[int, float] = {}
        for source in range(len(confidence)):
            suspects = votes[source] if source < len(votes) else set()
            for suspect in sorted(suspects):
                weighted[suspect] = weighted.get(suspect, 0.0) + float(confidence[source])
        return dict(sorted(weighted.items()))


class ConfidenceEstimator:
    """Per-controller confidence derived from its own row of the error matrix."""

    def compute(self, errors: Sequence[Sequence[float]]) -> NDArray[np.float64]:
        """``c[i] = max(0, 1 - mean(errors[i]))``; an empty row gives 1."""
        confidence = np.ones(len(errors), dtype=np.float64)
        for i, row in enumerate(errors):
            values = np.asarray(row, dtype=np.float64)
            mean_error = float(values.mean()) if values.size else 0.0
            confidence[i] = max(0.0, 1.0 - mean_error)
        logger.debug(f"Model confidence levels: {np.round(confidence, 4).tolist()}")
        return confidence
