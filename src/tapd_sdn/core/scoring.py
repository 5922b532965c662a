"""Detection quality metrics against the known compromised set."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass

import numpy as np
from numpy.typing import NDArray

from tapd_sdn.exceptions import InputInvalidError


@dataclass
class DetectionStats:
    """Confusion counts and derived metrics for one decision."""

    tp: int
    fp: int
    fn: int
    tn: int
    detected: int
    truth: int
    accuracy: float
    precision: float
    recall: float
    f1: float

    def to_dict(self) -> dict[str, float | int]:
        """Convert to dictionary."""
        return asdict(self)


def _safe_ratio(num: float, den: float) -> float:
    return num / den if den else 0.0


def classification_metrics(
    y_true: Sequence[int] | NDArray[np.integer],
    y_pred: Sequence[int] | NDArray[np.integer],
) -> tuple[float, float, float, float]:
    """
    Accuracy, precision, recall and F1 from paired 0/1 vectors.

    Returns:
        Tuple of (accuracy, precision, recall, f1)
    """
    t = np.asarray(y_true)
    p = np.asarray(y_pred)
    tp = int(np.sum((p == 1) & (t == 1)))
    fp = int(np.sum((p == 1) & (t == 0)))
    tn = int(np.sum((p == 0) & (t == 0)))
    fn = int(np.sum((p == 0) & (t == 1)))

    precision = _safe_ratio(tp, tp + fp)
    recall = _safe_ratio(tp, tp + fn)
    f1 = _safe_ratio(2 * precision * recall, precision + recall)
    accuracy = (tp + tn) / max(1, len(t))
    return accuracy, precision, recall, f1


class DetectionScorer:
    """Scores a detected set of controllers against the ground truth."""

    @staticmethod
    def labels(ids: Iterable[int], n_controllers: int) -> NDArray[np.int64]:
        """0/1 indicator vector over the universe ``[0, n_controllers)``."""
        vec = np.zeros(n_controllers, dtype=np.int64)
        for cid in ids:
            if not 0 <= cid < n_controllers:
                raise InputInvalidError(
                    f"Controller id {cid} outside [0, {n_controllers})"
                )
            vec[cid] = 1
        return vec

    def score(
        self,
        detected: Iterable[int],
        truth: Iterable[int],
        n_controllers: int,
    ) -> DetectionStats:
        """Confusion counts and metrics for ``detected`` vs ``truth``."""
        detected_set = set(detected)
        truth_set = set(truth)
        y_pred = self.labels(detected_set, n_controllers)
        y_true = self.labels(truth_set, n_controllers)

        tp = len(detected_set & truth_set)
        fp = len(detected_set - truth_set)
        fn = len(truth_set - detected_set)
        tn = n_controllers - tp - fp - fn

        accuracy, precision, recall, f1 = classification_metrics(y_true, y_pred)
        return DetectionStats(
            tp=tp,
            fp=fp,
            fn=fn,
            tn=tn,
            detected=len(detected_set),
            truth=len(truth_set),
            accuracy=accuracy,
            precision=precision,
            recall=recall,
            f1=f1,
        )
