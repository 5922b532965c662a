"""
TAPD-SDN - Command Line Interface.

Provides a rich CLI for running poisoning detection rounds, validating
configurations and generating templates.

Usage:
    tapd-sdn run detection.yaml
    tapd-sdn validate detection.yaml
    tapd-sdn generate --output detection.yaml
"""

from tapd_sdn.cli.main import app, main

__all__ = ["app", "main"]
