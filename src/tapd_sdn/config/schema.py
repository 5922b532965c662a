"""
Pydantic Schema for YAML Configuration.

Provides type-safe configuration models for TAPD detection runs with
validation and helpful error messages.

Usage:
    from tapd_sdn.config import DetectionConfig, load_detection_config

    config = load_detection_config("detection.yaml")
    print(config.decision.strategy)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tapd_sdn.core.decision import DecisionStrategy


# =============================================================================
# Base Configuration
# =============================================================================


class BaseConfig(BaseModel):
    """Base configuration with common settings."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(
        default="unnamed",
        description="Configuration name for identification",
        min_length=1,
        max_length=100,
    )
    description: str | None = Field(
        default=None,
        description="Optional description of the configuration",
    )
    version: str = Field(
        default="1.0.0",
        description="Configuration schema version",
        pattern=r"^\d+\.\d+\.\d+$",
    )


# =============================================================================
# Component Configuration
# =============================================================================


class DecisionConfig(BaseModel):
    """Configuration for the final suspect decision."""

    model_config = ConfigDict(extra="forbid")

    strategy: DecisionStrategy = Field(
        default=DecisionStrategy.ANY,
        description="Decision strategy: any, n_div_3, majority or adaptive",
    )
    iqr_multiplier: float = Field(
        default=1.5,
        description="IQR multiplier for the adaptive cutoff",
        ge=0.0,
    )
    fallback_fraction: float = Field(
        default=0.6,
        description="Include every controller scoring >= fraction * max (0 disables)",
        ge=0.0,
        le=1.0,
    )
    compare_strategies: bool = Field(
        default=True,
        description="Score every strategy side by side on each run",
    )


class DatasetConfig(BaseModel):
    """Configuration for the input dataset."""

    model_config = ConfigDict(extra="forbid")

    path: str | None = Field(
        default=None,
        description="Spreadsheet (.xlsx) or CSV file; last column is the label",
    )
    train_fraction: float = Field(
        default=0.8,
        description="Fraction of rows used for controller training (rest is held out)",
        gt=0.0,
        le=1.0,
    )
    normalize: bool = Field(
        default=True,
        description="Apply z-score normalization fitted on the training rows",
    )


class TransferConfig(BaseModel):
    """Configuration for the cross-evaluation stage."""

    model_config = ConfigDict(extra="forbid")

    max_workers: int = Field(
        default=1,
        description="Threads used to evaluate error matrix cells",
        ge=1,
        le=64,
    )


class OutputConfig(BaseModel):
    """Configuration for output and logging."""

    model_config = ConfigDict(extra="forbid")

    output_dir: str = Field(
        default="./results",
        description="Directory for output files",
    )
    errors_matrix_file: str = Field(
        default="errors_matrix.csv",
        description="Transfer error matrix file name",
    )
    votes_file: str = Field(
        default="votes_per_source.csv",
        description="Per-source suspect sets file name",
    )
    results_file: str = Field(
        default="cost_results.csv",
        description="Append-only metrics log file name",
    )
    include_run_parameters: bool = Field(
        default=False,
        description="Append Theta, Eta and NPrime columns to the metrics log",
    )
    save_summary: bool = Field(
        default=True,
        description="Write run_summary.json",
    )
    save_plots: bool = Field(
        default=False,
        description="Write PNG charts of errors, votes and metrics",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )


# =============================================================================
# Detection Configuration
# =============================================================================


class DetectionConfig(BaseConfig):
    """Complete detection run configuration."""

    n_controllers: int = Field(
        default=6,
        description="Number of SDN controllers (N)",
        ge=2,
    )
    theta: float = Field(
        default=0.2,
        description="Fraction of labels flipped on each compromised controller",
        ge=0.0,
        le=1.0,
    )
    eta: float = Field(
        default=0.1,
        description="IQR/MAD multiplier of the per-source outlier detector",
        ge=0.0,
    )
    trees: int = Field(
        default=100,
        description="Random forest size passed to the trainer",
        ge=1,
    )
    seed: int = Field(
        default=42,
        description="Random seed driving splits, sampling, poisoning and training",
        ge=0,
        lt=2**64,
    )
    compromise_fraction: float = Field(
        default=0.1,
        description="Fraction of controllers marked compromised when none are listed",
        gt=0.0,
        le=1.0,
    )
    compromised: list[int] | None = Field(
        default=None,
        description="Explicit compromised controller ids (sampled when omitted)",
    )

    decision: DecisionConfig = Field(
        default_factory=DecisionConfig,
        description="Decision configuration",
    )
    dataset: DatasetConfig = Field(
        default_factory=DatasetConfig,
        description="Dataset configuration",
    )
    transfer: TransferConfig = Field(
        default_factory=TransferConfig,
        description="Cross-evaluation configuration",
    )
    output: OutputConfig = Field(
        default_factory=OutputConfig,
        description="Output configuration",
    )

    @field_validator("compromised")
    @classmethod
    def validate_unique_ids(cls, v: list[int] | None) -> list[int] | None:
        """Compromised ids must be unique and non-negative."""
        if v is None:
            return v
        if len(set(v)) != len(v):
            raise ValueError("compromised ids must be unique")
        if any(cid < 0 for cid in v):
            raise ValueError("compromised ids must be non-negative")
        return v

    @model_validator(mode="after")
    def validate_compromised_range(self) -> "DetectionConfig":
        """Compromised ids must address existing controllers."""
        if self.compromised is not None and any(
            cid >= self.n_controllers for cid in self.compromised
        ):
            raise ValueError(
                f"compromised ids must be < n_controllers ({self.n_controllers})"
            )
        return self
