"""
YAML Configuration Loader.

Provides utilities for loading, validating, and saving YAML
configurations with Pydantic models for type safety.

Usage:
    from tapd_sdn.config import load_detection_config

    config = load_detection_config("detection.yaml")
    print(f"Running with N={config.n_controllers}")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from tapd_sdn.config.schema import DetectionConfig

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class ConfigError(Exception):
    """Configuration loading or validation error."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class ConfigLoader:
    """
    YAML Configuration Loader with validation.

    Provides methods for loading and validating configuration files
    with helpful error messages and template generation.
    """

    def __init__(self, config_dir: str | Path | None = None) -> None:
        """
        Initialize the config loader.

        Args:
            config_dir: Default directory for configuration files
        """
        self.config_dir = Path(config_dir) if config_dir else Path.cwd()

    def load_yaml(self, path: str | Path) -> dict[str, Any]:
        """
        Load raw YAML file.

        Args:
            path: Path to YAML file

        Returns:
            Dictionary with parsed YAML content

        Raises:
            ConfigError: If file not found or YAML parsing fails
        """
        file_path = self._resolve_path(path)

        if not file_path.exists():
            raise ConfigError(
                f"Configuration file not found: {file_path}",
                {"path": str(file_path)},
            )

        try:
            with open(file_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Failed to parse YAML file: {e}",
                {"path": str(file_path), "error": str(e)},
            ) from e

        if data is None:
            return {}

        if not isinstance(data, dict):
            raise ConfigError(
                f"YAML file must contain a dictionary, got {type(data).__name__}",
                {"path": str(file_path)},
            )

        logger.debug(f"Loaded YAML from {file_path}")
        return data

    def load_detection(self, path: str | Path) -> DetectionConfig:
        """
        Load and validate a detection run configuration.

        Relative dataset paths are resolved against the directory of the
        configuration file.

        Raises:
            ConfigError: If validation fails
        """
        data = self.load_yaml(path)
        config = self._validate_model(DetectionConfig, data, path)

        if config.dataset.path:
            dataset_path = Path(config.dataset.path)
            if not dataset_path.is_absolute():
                config.dataset.path = str(self._resolve_path(path).parent / dataset_path)
        return config

    def _resolve_path(self, path: str | Path) -> Path:
        """Resolve path relative to config_dir if not absolute."""
        p = Path(path)
        if p.is_absolute():
            return p
        return self.config_dir / p

    def _validate_model(
        self,
        model_class: type[T],
        data: dict[str, Any],
        path: str | Path,
    ) -> T:
        """
        Validate data against Pydantic model.

        Raises:
            ConfigError: If validation fails
        """
        try:
            return model_class.model_validate(data)
        except ValidationError as e:
            errors = []
            for error in e.errors():
                loc = " -> ".join(str(x) for x in error["loc"])
                msg = error["msg"]
                errors.append(f"  {loc}: {msg}")

            error_text = "\n".join(errors)
            raise ConfigError(
                f"Configuration validation failed for {path}:\n{error_text}",
                {"path": str(path), "errors": e.errors()},
            ) from e

    @staticmethod
    def save_yaml(config: Any, path: str | Path) -> None:
        """
        Save configuration to YAML file.

        Args:
            config: Pydantic model or dictionary to save
            path: Output file path
        """
        file_path = Path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        if hasattr(config, "model_dump"):
            data = config.model_dump(mode="json")
        else:
            data = config

        with open(file_path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Saved configuration to {file_path}")

    @staticmethod
    def generate_template() -> str:
        """Generate detection configuration template."""
        return """# Detection Configuration Template
# TAPD - Trusted Adaptive Poisoning Detection for SDN controllers

name: "tapd_sdn_run"
description: "Detect label-poisoned SDN controllers"
version: "1.0.0"

# Controllers and attack simulation
n_controllers: 6
theta: 0.2              # fraction of labels flipped per compromised controller
eta: 0.1                # IQR/MAD multiplier of the per-source detector
trees: 100              # random forest size
seed: 42
compromise_fraction: 0.1
# compromised: [2]      # explicit ground truth (sampled when omitted)

# Final decision
decision:
  strategy: "any"       # any | n_div_3 | majority | adaptive
  iqr_multiplier: 1.5
  fallback_fraction: 0.6
  compare_strategies: true

# Dataset
dataset:
  path: "UNR-IDD.xlsx"
  train_fraction: 0.8
  normalize: true

# Cross-evaluation
transfer:
  max_workers: 1

# Output
output:
  output_dir: "./results"
  errors_matrix_file: "errors_matrix.csv"
  votes_file: "votes_per_source.csv"
  results_file: "cost_results.csv"
  include_run_parameters: false
  save_summary: true
  save_plots: false
  log_level: "INFO"
"""


# =============================================================================
# Convenience Functions
# =============================================================================


def load_detection_config(path: str | Path) -> DetectionConfig:
    """
    Load detection configuration from YAML file.

    Raises:
        ConfigError: If loading or validation fails
    """
    loader = ConfigLoader()
    return loader.load_detection(path)


def validate_config(data: dict[str, Any]) -> DetectionConfig:
    """
    Validate a configuration dictionary.

    Raises:
        ConfigError: If validation fails
    """
    try:
        return DetectionConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Validation failed: {e}",
            {"errors": e.errors()},
        ) from e
