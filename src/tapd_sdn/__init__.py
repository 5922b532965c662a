"""
TAPD-SDN - Trusted Adaptive Poisoning Detection for SDN controllers

This package identifies software-defined network controllers whose
local training data has been label-poisoned:
- Cross-evaluation of every controller model on every peer's data
- Per-source IQR outlier voting over transfer errors
- Confidence-weighted vote fusion
- Threshold and adaptive (IQR + fallback) decision strategies
- Detection scoring, metrics logging and cost estimation
"""

__version__ = "1.0.0"

from tapd_sdn.config import DetectionConfig, load_detection_config
from tapd_sdn.core import DecisionEngine, DecisionStrategy, OutlierDetector
from tapd_sdn.exceptions import (
    InputInvalidError,
    IOFailureError,
    NumericDegenerateError,
    TapdError,
    TrainerFailureError,
)
from tapd_sdn.pipeline import DetectionPipeline, RunResult, RunStage, run_experiment

__all__ = [
    "DecisionEngine",
    "DecisionStrategy",
    "DetectionConfig",
    "DetectionPipeline",
    "InputInvalidError",
    "IOFailureError",
    "NumericDegenerateError",
    "OutlierDetector",
    "RunResult",
    "RunStage",
    "TapdError",
    "TrainerFailureError",
    "load_detection_config",
    "run_experiment",
]
