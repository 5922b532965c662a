"""
YAML Configuration System for TAPD-SDN.

This package provides Pydantic-based YAML configuration for:
- Controller count, poisoning and detector parameters
- Decision strategy selection
- Dataset and output locations
- Reproducible seeded runs
"""

from tapd_sdn.config.loader import (
    ConfigError,
    ConfigLoader,
    load_detection_config,
    validate_config,
)
from tapd_sdn.config.schema import (
    DatasetConfig,
    DecisionConfig,
    DetectionConfig,
    OutputConfig,
    TransferConfig,
)

__all__ = [
    # Schema
    "DatasetConfig",
    "DecisionConfig",
    "DetectionConfig",
    "OutputConfig",
    "TransferConfig",
    # Loader
    "ConfigError",
    "ConfigLoader",
    "load_detection_config",
    "validate_config",
]
