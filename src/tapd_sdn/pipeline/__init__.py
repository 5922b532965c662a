"""
Detection run orchestration, result artifacts and cost estimation.
"""

from tapd_sdn.pipeline.cost import CostReport, estimate_cost, timed
from tapd_sdn.pipeline.experiment import PreparedData, prepare_dataset, run_experiment
from tapd_sdn.pipeline.orchestrator import (
    DetectionPipeline,
    RunResult,
    RunStage,
    StrategyOutcome,
)
from tapd_sdn.pipeline.partition import ControllerPartition
from tapd_sdn.pipeline.results import (
    MetricsWriter,
    read_error_matrix,
    write_error_matrix,
    write_votes,
)

__all__ = [
    "ControllerPartition",
    "CostReport",
    "DetectionPipeline",
    "MetricsWriter",
    "PreparedData",
    "RunResult",
    "RunStage",
    "StrategyOutcome",
    "estimate_cost",
    "prepare_dataset",
    "read_error_matrix",
    "run_experiment",
    "timed",
    "write_error_matrix",
    "write_votes",
]
