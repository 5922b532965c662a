"""
End-to-end experiment: load a dataset, hold out a test split, normalize
and run detection.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
from numpy.typing import NDArray

from tapd_sdn.config.schema import DetectionConfig
from tapd_sdn.data.loader import DatasetLoader, Preprocessor
from tapd_sdn.data.splitter import train_test_split
from tapd_sdn.exceptions import InputInvalidError
from tapd_sdn.model.trainer import Trainer
from tapd_sdn.pipeline.orchestrator import DetectionPipeline, RunResult, RunStage

logger = logging.getLogger(__name__)


@dataclass
class PreparedData:
    """Normalized train rows and held-out test rows."""

    train_X: NDArray[np.float64]
    train_y: NDArray[np.int64]
    test_X: NDArray[np.float64]
    test_y: NDArray[np.int64]

    @property
    def n_features(self) -> int:
        return int(self.train_X.shape[1]) if self.train_X.ndim == 2 else 0


def prepare_dataset(config: DetectionConfig, path: str | Path | None = None) -> PreparedData:
    """
    Load the configured dataset and split it for a run.

    The scaler is fitted on the training rows only and then applied to
    the held-out rows.

    Args:
        config: Run configuration
        path: Dataset path overriding ``config.dataset.path``

    Returns:
        PreparedData ready for ``DetectionPipeline.run``

    Raises:
        InputInvalidError: If no dataset path is configured
        IOFailureError: If the dataset cannot be read
    """
    dataset_path = path or config.dataset.path
    if dataset_path is None:
        raise InputInvalidError("No dataset path configured (set dataset.path or pass --dataset)")

    X, y = DatasetLoader().load(dataset_path)
    logger.info(f"Loaded dataset: {len(X)} rows x {X.shape[1]} features")

    train_X, train_y, test_X, test_y = train_test_split(
        X, y, train_fraction=config.dataset.train_fraction, seed=config.seed
    )
    if len(train_X) == 0:
        raise InputInvalidError("Training split is empty")

    if config.dataset.normalize:
        scaler = Preprocessor()
        train_X = scaler.fit_transform(train_X)
        test_X = scaler.transform(test_X)

    return PreparedData(train_X, train_y, test_X, test_y)


def run_experiment(
    config: DetectionConfig,
    trainer: Trainer | None = None,
    on_stage: Callable[[RunStage], None] | None = None,
    dataset_path: str | Path | None = None,
    **pipeline_kwargs: Any,
) -> RunResult:
    """
    Load, split, normalize and run a full detection round.

    Example:
        config = load_detection_config("detection.yaml")
        result = run_experiment(config)
        print(result.stats.f1)
    """
    data = prepare_dataset(config, dataset_path)
    pipeline = DetectionPipeline(config, trainer=trainer, on_stage=on_stage, **pipeline_kwargs)
    return pipeline.run(
        data.train_X,
        data.train_y,
        test_X=data.test_X if len(data.test_X) else None,
        test_y=data.test_y if len(data.test_y) else None,
    )
