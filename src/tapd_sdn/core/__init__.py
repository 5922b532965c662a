"""
Detection core: cross-evaluation, outlier voting, fusion and decision.

Everything here is deterministic and free of I/O. Models are treated as
opaque objects exposing ``predict``.
"""

from tapd_sdn.core.decision import (
    DecisionEngine,
    DecisionResult,
    DecisionStrategy,
)
from tapd_sdn.core.evaluator import Evaluator, TransferMatrixBuilder
from tapd_sdn.core.outlier import OutlierDetector
from tapd_sdn.core.scoring import DetectionScorer, DetectionStats, classification_metrics
from tapd_sdn.core.stats import ceil_fraction, mad, median, percentile, percentile_exclusive
from tapd_sdn.core.voting import ConfidenceEstimator, VoteAggregator

__all__ = [
    # Stats
    "ceil_fraction",
    "mad",
    "median",
    "percentile",
    "percentile_exclusive",
    # Evaluation
    "Evaluator",
    "TransferMatrixBuilder",
    # Voting
    "OutlierDetector",
    "VoteAggregator",
    "ConfidenceEstimator",
    # Decision
    "DecisionEngine",
    "DecisionResult",
    "DecisionStrategy",
    # Scoring
    "DetectionScorer",
    "DetectionStats",
    "classification_metrics",
]
