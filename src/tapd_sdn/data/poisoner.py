"""
Random Label Manipulation (RLM) poisoning simulator.

Flips a fraction of binary training labels chosen uniformly without
replacement. Used to mark controllers as compromised in experiments.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
from numpy.typing import NDArray

from tapd_sdn.core.stats import ceil_fraction
from tapd_sdn.exceptions import InputInvalidError

logger = logging.getLogger(__name__)


class Poisoner:
    """Label-flipping attack applied to one controller's training labels."""

    @staticmethod
    def flip_count(theta: float, n_labels: int) -> int:
        """Number of labels ``apply_rlm`` flips: ``ceil(theta * n)``, capped at n."""
        return min(n_labels, ceil_fraction(theta, n_labels))

    def apply_rlm(
        self,
        labels: NDArray[np.integer[Any]],
        theta: float,
        rng: np.random.Generator,
    ) -> NDArray[np.int64]:
        """
        Flip ``ceil(theta * len(labels))`` distinct labels in place.

        Args:
            labels: Binary label vector, mutated in place
            theta: Fraction of labels to flip, in [0, 1]
            rng: Random generator driving index selection

        Returns:
            Sorted indices that were flipped

        Raises:
            ValueError: If theta is outside [0, 1]
            InputInvalidError: If labels are not binary
        """
        if not 0.0 <= theta <= 1.0:
            raise ValueError(f"theta must be in [0, 1], got {theta}")
        if labels.size and not np.all(np.isin(labels, (0, 1))):
            raise InputInvalidError(
                f"RLM poisoning needs binary labels, got {np.unique(labels).tolist()}"
            )

        to_flip = self.flip_count(theta, len(labels))
        if to_flip <= 0:
            return np.empty(0, dtype=np.int64)

        flipped = np.sort(rng.choice(len(labels), size=to_flip, replace=False))
        labels[flipped] = 1 - labels[flipped]
        logger.debug(f"Flipped {to_flip}/{len(labels)} labels")
        return flipped.astype(np.int64)
