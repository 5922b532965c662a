"""
Final suspect decision.

Two families of decision rules are supported:

- Threshold strategies (``any``, ``n_div_3``, ``majority``) over the
  unweighted vote frequencies.
- The adaptive strategy over confidence-weighted frequencies: an IQR
  cutoff, a top-1 fallback when nothing clears the cutoff, and
  fractional inclusion of every controller scoring at least
  ``fallback_fraction * max``.

Note:
    With a near-uniform weighted score and the default fallback
    fraction of 0.6, fractional inclusion flags most controllers.
    ``fallback_fraction`` is exposed as a tunable for that reason.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tapd_sdn.core.stats import percentile_exclusive

logger = logging.getLogger(__name__)


class DecisionStrategy(str, Enum):
    """Available decision strategies."""

    ANY = "any"
    N_DIV_3 = "n_div_3"
    MAJORITY = "majority"
    ADAPTIVE = "adaptive"


THRESHOLD_STRATEGIES = (DecisionStrategy.ANY, DecisionStrategy.N_DIV_3, DecisionStrategy.MAJORITY)


@dataclass
class DecisionResult:
    """Suspects chosen by one strategy."""

    suspects: set[int] = field(default_factory=set)
    strategy: DecisionStrategy = DecisionStrategy.ANY
    threshold: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "strategy": self.strategy.value,
            "suspects": sorted(self.suspects),
            "threshold": self.threshold,
        }


class DecisionEngine:
    """Converts vote scores into a final suspect set."""

    def __init__(
        self,
        strategy: DecisionStrategy | str = DecisionStrategy.ANY,
        iqr_multiplier: float = 1.5,
        fallback_fraction: float = 0.6,
    ) -> None:
        """
        Args:
            strategy: Decision strategy
            iqr_multiplier: ``m`` in the adaptive cutoff ``q3 + m * iqr``
            fallback_fraction: ``f`` for fractional inclusion (0 disables)
        """
        if not 0.0 <= fallback_fraction <= 1.0:
            raise ValueError(f"fallback_fraction must be in [0, 1], got {fallback_fraction}")
        if iqr_multiplier < 0:
            raise ValueError(f"iqr_multiplier must be non-negative, got {iqr_multiplier}")
        self.strategy = DecisionStrategy(strategy)
        self.iqr_multiplier = iqr_multiplier
        self.fallback_fraction = fallback_fraction

    @staticmethod
    def threshold_for(strategy: DecisionStrategy, n_controllers: int) -> int:
        """Minimum vote count a controller needs under a threshold strategy."""
        if strategy == DecisionStrategy.ANY:
            return 1
        if strategy == DecisionStrategy.N_DIV_3:
            return max(1, n_controllers // 3)
        if strategy == DecisionStrategy.MAJORITY:
            return math.ceil(n_controllers / 2)
        raise ValueError(f"{strategy.value} is not a threshold strategy")

    def decide_threshold(
        self,
        freq: Mapping[int, int],
        n_controllers: int,
        strategy: DecisionStrategy | None = None,
    ) -> DecisionResult:
        """Controllers with at least ``threshold_for(strategy, N)`` votes."""
        strategy = DecisionStrategy(strategy or self.strategy)
        threshold = self.threshold_for(strategy, n_controllers)
        suspects = {cid for cid, count in freq.items() if count >= threshold}
        return DecisionResult(suspects=suspects, strategy=strategy, threshold=float(threshold))

    def decide_adaptive(self, weighted: Mapping[int, float]) -> DecisionResult:
        """
        IQR cutoff over weighted scores with top-1 and fractional fallback.

        Scores are ordered ascending with ties broken by ascending id, so
        the top-1 fallback picks the highest id among tied maxima.
        """
        if not weighted:
            return DecisionResult(strategy=DecisionStrategy.ADAPTIVE)

        ranked = sorted(weighted.items(), key=lambda kv: (kv[1], kv[0]))
        scores = [score for _, score in ranked]

        q1 = percentile_exclusive(scores, 25.0)
        q3 = percentile_exclusive(scores, 75.0)
        cutoff = q3 + self.iqr_multiplier * (q3 - q1)

        suspects = {cid for cid, score in ranked if score > cutoff}

        top_id, max_score = ranked[-1]
        if not suspects:
            logger.info(f"No score above cutoff {cutoff:.4f}; falling back to top-1 ({top_id})")
            suspects.add(top_id)

        if self.fallback_fraction > 0.0:
            floor = self.fallback_fraction * max_score
            suspects.update(cid for cid, score in ranked if score >= floor)

        return DecisionResult(
            suspects=suspects,
            strategy=DecisionStrategy.ADAPTIVE,
            threshold=cutoff,
        )

    def decide(
        self,
        freq: Mapping[int, int],
        weighted: Mapping[int, float],
        n_controllers: int,
        strategy: DecisionStrategy | str | None = None,
    ) -> DecisionResult:
        """Dispatch on ``strategy`` (defaults to the configured one)."""
        strategy = DecisionStrategy(strategy or self.strategy)
        if strategy == DecisionStrategy.ADAPTIVE:
            result = self.decide_adaptive(weighted)
        else:
            result = self.decide_threshold(freq, n_controllers, strategy)
        logger.info(f"Decision ({strategy.value}): suspects={sorted(result.suspects)}")
        return result
