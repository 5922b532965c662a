"""
Detection pipeline orchestration.

A run moves strictly forward through these stages:

    init -> partitioned -> trained -> transferred -> voted
         -> decided -> scored -> persisted -> done

Every failure is fatal to the run. It is raised as a ``TapdError``
subclass tagged with the stage being entered. Matrix and vote files may
already exist when a later stage fails; the metrics log row is only
written once everything else has succeeded.

A single seed drives the controller split, compromise sampling,
poisoning and per-controller trainer seeds (``seed + id``), so identical
inputs reproduce identical artifacts.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

import numpy as np
from numpy.typing import NDArray

from tapd_sdn.config.loader import ConfigLoader
from tapd_sdn.config.schema import DetectionConfig
from tapd_sdn.core.decision import DecisionEngine, DecisionResult, DecisionStrategy
from tapd_sdn.core.evaluator import Evaluator, TransferMatrixBuilder
from tapd_sdn.core.outlier import OutlierDetector
from tapd_sdn.core.scoring import DetectionScorer, DetectionStats
from tapd_sdn.core.stats import ceil_fraction
from tapd_sdn.core.voting import ConfidenceEstimator, VoteAggregator
from tapd_sdn.data.poisoner import Poisoner
from tapd_sdn.data.splitter import Splitter
from tapd_sdn.exceptions import InputInvalidError, IOFailureError, TapdError, TrainerFailureError
from tapd_sdn.model.trainer import RandomForestTrainer, Trainer
from tapd_sdn.pipeline.cost import CostReport, estimate_cost, timed
from tapd_sdn.pipeline.partition import ControllerPartition
from tapd_sdn.pipeline.results import MetricsWriter, write_error_matrix, write_votes

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RunStage(str, Enum):
    """Lifecycle of one detection run."""

    INIT = "init"
    PARTITIONED = "partitioned"
    TRAINED = "trained"
    TRANSFERRED = "transferred"
    VOTED = "voted"
    DECIDED = "decided"
    SCORED = "scored"
    PERSISTED = "persisted"
    DONE = "done"


@dataclass
class StrategyOutcome:
    """Decision and its score under one strategy."""

    decision: DecisionResult
    stats: DetectionStats

    def to_dict(self) -> dict[str, Any]:
        return {**self.decision.to_dict(), "stats": self.stats.to_dict()}


@dataclass
class RunResult:
    """Everything a detection run produced."""

    run_id: int
    n_controllers: int
    compromised: list[int]
    error_matrix: NDArray[np.float64]
    votes: list[set[int]]
    frequencies: dict[int, int]
    confidence: NDArray[np.float64]
    weighted: dict[int, float]
    decision: DecisionResult
    stats: DetectionStats
    comparison: dict[str, StrategyOutcome] = field(default_factory=dict)
    mean_test_accuracy: float | None = None
    cost: CostReport | None = None
    artifacts: dict[str, str] = field(default_factory=dict)
    stage: RunStage = RunStage.SCORED

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "run_id": self.run_id,
            "stage": self.stage.value,
            "n_controllers": self.n_controllers,
            "compromised": self.compromised,
            "error_matrix": np.round(self.error_matrix, 6).tolist(),
            "votes": [sorted(v) for v in self.votes],
            "frequencies": {str(k): v for k, v in self.frequencies.items()},
            "confidence": [round(float(c), 6) for c in self.confidence],
            "weighted": {str(k): round(v, 6) for k, v in self.weighted.items()},
            "decision": self.decision.to_dict(),
            "stats": self.stats.to_dict(),
            "comparison": {k: v.to_dict() for k, v in self.comparison.items()},
            "mean_test_accuracy": self.mean_test_accuracy,
            "cost": self.cost.to_dict() if self.cost else None,
            "artifacts": self.artifacts,
        }


class DetectionPipeline:
    """
    Runs TAPD detection over N controller partitions.

    Example:
        pipeline = DetectionPipeline(DetectionConfig(n_controllers=6))
        result = pipeline.run(X_train, y_train, test_X=X_test, test_y=y_test)
        print(result.decision.suspects, result.stats.f1)
    """

    def __init__(
        self,
        config: DetectionConfig,
        trainer: Trainer | None = None,
        evaluator: Evaluator | None = None,
        on_stage: Callable[[RunStage], None] | None = None,
    ) -> None:
        """
        Args:
            config: Run configuration
            trainer: Classifier trainer (default random forest)
            evaluator: Error evaluator
            on_stage: Called with each stage as it is reached
        """
        self.config = config
        self.trainer = trainer or RandomForestTrainer()
        self.evaluator = evaluator or Evaluator()
        self.on_stage = on_stage

        self.splitter = Splitter()
        self.poisoner = Poisoner()
        self.matrix_builder = TransferMatrixBuilder(
            self.evaluator, max_workers=config.transfer.max_workers
        )
        self.detector = OutlierDetector(eta=config.eta)
        self.aggregator = VoteAggregator()
        self.confidence_estimator = ConfidenceEstimator()
        self.engine = DecisionEngine(
            strategy=config.decision.strategy,
            iqr_multiplier=config.decision.iqr_multiplier,
            fallback_fraction=config.decision.fallback_fraction,
        )
        self.scorer = DetectionScorer()

        self.partitions: list[ControllerPartition] = []
        self._stage = RunStage.INIT

    @property
    def stage(self) -> RunStage:
        """Last stage the current run reached."""
        return self._stage

    @property
    def output_dir(self) -> Path:
        return Path(self.config.output.output_dir)

    # =========================================================================
    # Stage Control
    # =========================================================================

    def _advance(self, target: RunStage, work: Callable[[], T]) -> T:
        """Run ``work`` and move to ``target``; tag failures with the stage."""
        try:
            result = work()
        except TapdError as e:
            e.with_stage(target.value)
            logger.error(e.diagnostic())
            raise
        self._stage = target
        logger.debug(f"Reached stage {target.value}")
        if self.on_stage is not None:
            self.on_stage(target)
        return result

    # =========================================================================
    # Run
    # =========================================================================

    def run(
        self,
        X: NDArray[np.floating[Any]],
        y: NDArray[np.integer[Any]],
        compromised: list[int] | set[int] | None = None,
        test_X: NDArray[np.floating[Any]] | None = None,
        test_y: NDArray[np.integer[Any]] | None = None,
    ) -> RunResult:
        """
        Execute one complete detection run.

        Args:
            X: Normalized training features (n_samples, n_features)
            y: Binary labels (n_samples,)
            compromised: Ground-truth compromised ids (sampled if None;
                falls back to ``config.compromised``)
            test_X: Optional held-out features for mean model accuracy
            test_y: Optional held-out labels

        Returns:
            RunResult with all intermediate artifacts

        Raises:
            TapdError: On any failure, tagged with the stage
        """
        cfg = self.config
        n = cfg.n_controllers
        self._stage = RunStage.INIT
        self.partitions = []

        if compromised is None and cfg.compromised is not None:
            compromised = cfg.compromised

        X, y = self._advance(
            RunStage.INIT, lambda: self._validate_inputs(X, y, compromised, test_X, test_y)
        )
        truth = self._advance(RunStage.PARTITIONED, lambda: self._partition(X, y, compromised))
        models = self._advance(RunStage.TRAINED, self._train)

        errors, ec_ms = self._advance(RunStage.TRANSFERRED, lambda: self._transfer(models))

        votes, freq, confidence, weighted, oc_ms = self._advance(
            RunStage.VOTED, lambda: self._vote(errors)
        )

        decision, comparison_decisions = self._advance(
            RunStage.DECIDED, lambda: self._decide(freq, weighted)
        )

        def score() -> RunResult:
            stats = self.scorer.score(decision.suspects, truth, n)
            comparison = {
                strategy.value: StrategyOutcome(d, self.scorer.score(d.suspects, truth, n))
                for strategy, d in comparison_decisions.items()
            }
            logger.info(
                f"Detection stats: TP={stats.tp} FP={stats.fp} FN={stats.fn} "
                f"precision={stats.precision:.4f} recall={stats.recall:.4f} f1={stats.f1:.4f}"
            )
            return RunResult(
                run_id=MetricsWriter.next_run_id(),
                n_controllers=n,
                compromised=sorted(truth),
                error_matrix=errors,
                votes=votes,
                frequencies=freq,
                confidence=confidence,
                weighted=weighted,
                decision=decision,
                stats=stats,
                comparison=comparison,
                mean_test_accuracy=self._mean_test_accuracy(models, test_X, test_y),
                cost=estimate_cost([p.train_X for p in self.partitions], models, ec_ms, oc_ms),
                artifacts={
                    "errors_matrix": str(self.output_dir / cfg.output.errors_matrix_file),
                    "votes": str(self.output_dir / cfg.output.votes_file),
                },
            )

        result = self._advance(RunStage.SCORED, score)
        self._advance(RunStage.PERSISTED, lambda: self._persist(result))
        self._advance(RunStage.DONE, lambda: None)
        result.stage = RunStage.DONE

        logger.info(
            f"=== SUMMARY === Detected {result.stats.tp} / {result.stats.truth} "
            f"compromised controllers"
        )
        return result

    # =========================================================================
    # Stages
    # =========================================================================

    def _validate_inputs(
        self,
        X: NDArray[np.floating[Any]],
        y: NDArray[np.integer[Any]],
        compromised: list[int] | set[int] | None,
        test_X: NDArray[np.floating[Any]] | None,
        test_y: NDArray[np.integer[Any]] | None,
    ) -> tuple[NDArray[np.float64], NDArray[np.int64]]:
        n = self.config.n_controllers
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y)

        if X.ndim != 2 or X.shape[0] == 0:
            raise InputInvalidError(f"Expected a non-empty 2-D feature matrix, got shape {X.shape}")
        if y.ndim != 1 or len(y) != len(X):
            raise InputInvalidError(f"Labels shape {y.shape} does not match {len(X)} rows")
        if not np.all(np.isin(y, (0, 1))):
            raise InputInvalidError(f"Labels must be binary, got {np.unique(y).tolist()}")
        if n <= 1:
            raise InputInvalidError(f"Need at least 2 controllers, got {n}")
        if len(X) < n:
            raise InputInvalidError(f"{len(X)} rows cannot feed {n} controllers")
        if compromised is not None:
            bad = [cid for cid in compromised if not 0 <= cid < n]
            if bad:
                raise InputInvalidError(f"Compromised ids {bad} outside [0, {n})")
        if (test_X is None) != (test_y is None):
            raise InputInvalidError("test_X and test_y must be given together")
        if test_X is not None and test_y is not None:
            test_X = np.asarray(test_X)
            if len(test_X) and (test_X.ndim != 2 or test_X.shape[1] != X.shape[1]):
                raise InputInvalidError(
                    f"Held-out features have shape {test_X.shape}, expected (*, {X.shape[1]})"
                )
            if len(test_X) != len(test_y):
                raise InputInvalidError("Held-out features and labels differ in length")

        return X, y.astype(np.int64)

    def _partition(
        self,
        X: NDArray[np.float64],
        y: NDArray[np.int64],
        compromised: list[int] | set[int] | None,
    ) -> set[int]:
        cfg = self.config
        n = cfg.n_controllers
        parts = self.splitter.split(X, y, n, cfg.seed)
        self.partitions = [ControllerPartition(i, Xi, yi) for i, (Xi, yi) in enumerate(parts)]
        for p in self.partitions:
            logger.info(repr(p))

        rng = np.random.default_rng(cfg.seed)
        if compromised is None:
            count = min(n, max(1, ceil_fraction(cfg.compromise_fraction, n)))
            truth = {int(i) for i in rng.choice(n, size=count, replace=False)}
        else:
            truth = {int(i) for i in compromised}
        logger.info(f"Compromised (ground truth): {sorted(truth)}")

        for cid in sorted(truth):
            part = self.partitions[cid]
            part.compromised = True
            part.flipped = self.poisoner.apply_rlm(part.train_y, cfg.theta, rng)
            logger.info(f"Poisoned controller {cid}: {len(part.flipped)} labels flipped")
        return truth

    def _train(self) -> list[Any]:
        models = []
        for p in self.partitions:
            try:
                model = self.trainer.fit(
                    p.train_X, p.train_y, self.config.trees, self.config.seed + p.id
                )
            except TapdError:
                raise
            except Exception as e:
                raise TrainerFailureError(f"Trainer failed for controller {p.id}: {e}") from e
            if model is None:
                raise TrainerFailureError(f"Trainer returned no model for controller {p.id}")
            p.model = model
            p.freeze_training_labels()
            models.append(model)
            logger.info(f"Trained model for controller {p.id}")
        return models

    def _transfer(self, models: list[Any]) -> tuple[NDArray[np.float64], float]:
        errors, ec_ms = timed(lambda: self.matrix_builder.build(models, self.partitions))
        write_error_matrix(errors, self.output_dir / self.config.output.errors_matrix_file)
        return errors, ec_ms

    def _vote(
        self, errors: NDArray[np.float64]
    ) -> tuple[list[set[int]], dict[int, int], NDArray[np.float64], dict[int, float], float]:
        votes, oc_ms = timed(lambda: self.detector.detect_all(errors))
        write_votes(votes, self.output_dir / self.config.output.votes_file)

        freq = self.aggregator.aggregate(votes)
        confidence = self.confidence_estimator.compute(errors)
        weighted = self.aggregator.weighted_aggregate(votes, confidence)
        logger.info(f"Vote frequencies: {freq}")
        logger.info(f"Confidence-weighted vote frequencies: {weighted}")
        return votes, freq, confidence, weighted, oc_ms

    def _decide(
        self, freq: dict[int, int], weighted: dict[int, float]
    ) -> tuple[DecisionResult, dict[DecisionStrategy, DecisionResult]]:
        n = self.config.n_controllers
        decision = self.engine.decide(freq, weighted, n)

        comparison: dict[DecisionStrategy, DecisionResult] = {}
        if self.config.decision.compare_strategies:
            for strategy in DecisionStrategy:
                comparison[strategy] = (
                    decision
                    if strategy == decision.strategy
                    else self.engine.decide(freq, weighted, n, strategy)
                )
        logger.info(f"Final suspects: {sorted(decision.suspects)}")
        return decision, comparison

    def _mean_test_accuracy(
        self,
        models: list[Any],
        test_X: NDArray[np.floating[Any]] | None,
        test_y: NDArray[np.integer[Any]] | None,
    ) -> float | None:
        if test_X is None or test_y is None or len(test_X) == 0:
            return None
        accuracies = [self.evaluator.accuracy(m, np.asarray(test_X), np.asarray(test_y)) for m in models]
        mean_acc = float(np.mean(accuracies)) if accuracies else 0.0
        logger.info(f"Average test accuracy = {mean_acc:.4f}")
        return mean_acc

    def _persist(self, result: RunResult) -> None:
        cfg = self.config
        out = cfg.output
        results_path = self.output_dir / out.results_file
        result.stage = RunStage.PERSISTED

        if out.save_summary:
            summary_path = self.output_dir / "run_summary.json"
            config_path = self.output_dir / "run_config.yaml"
            try:
                summary_path.parent.mkdir(parents=True, exist_ok=True)
                with open(summary_path, "w", encoding="utf-8") as f:
                    json.dump(result.to_dict(), f, indent=2)
                ConfigLoader.save_yaml(cfg, config_path)
            except OSError as e:
                raise IOFailureError(f"Failed to write run summary: {e}") from e
            result.artifacts["summary"] = str(summary_path)
            result.artifacts["config"] = str(config_path)

        if out.save_plots:
            from tapd_sdn.reporting.plots import plot_average_errors, plot_vote_frequencies

            self._try_plot(
                result,
                "avg_errors_plot",
                plot_average_errors,
                result.error_matrix,
                self.output_dir / "avg_errors_line.png",
            )
            self._try_plot(
                result,
                "votes_plot",
                plot_vote_frequencies,
                result.frequencies,
                result.n_controllers,
                self.output_dir / "vote_frequencies_line.png",
            )

        writer = MetricsWriter(results_path, include_parameters=out.include_run_parameters)
        writer.append(
            result.stats,
            run_id=result.run_id,
            theta=cfg.theta,
            eta=cfg.eta,
            n_compromised=len(result.compromised),
        )
        result.artifacts["results"] = str(results_path)

        if out.save_plots:
            from tapd_sdn.reporting.plots import plot_metrics_history, plot_performance_by_parameter

            self._try_plot(
                result,
                "metrics_plot",
                plot_metrics_history,
                results_path,
                self.output_dir / "metrics_graph.png",
            )
            charts = self._try_plot(
                result, None, plot_performance_by_parameter, results_path, self.output_dir
            )
            for name, chart in (charts or {}).items():
                result.artifacts[f"{name.lower()}_plot"] = str(chart)

    @staticmethod
    def _try_plot(result: RunResult, artifact: str | None, plot: Callable[..., Any], *args: Any) -> Any:
        """Render one chart; a failure is logged and the run continues."""
        try:
            saved = plot(*args)
        except (OSError, ValueError, RuntimeError) as e:
            logger.warning(f"Failed to create {plot.__name__} chart: {e}")
            return None
        if artifact is not None and saved is not None:
            result.artifacts[artifact] = str(saved)
        return saved
