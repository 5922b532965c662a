"""
Error taxonomy for TAPD detection runs.

Every failure inside a run is fatal and surfaces as one of the
``TapdError`` subclasses below. The pipeline attaches the name of the
stage that was executing so the CLI can print a single diagnostic line.
"""

from __future__ import annotations

from typing import Any


class TapdError(Exception):
    """Base class for all detection pipeline errors."""

    category = "error"

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.details = details or {}

    def with_stage(self, stage: str) -> "TapdError":
        """Attach the stage name if none has been recorded yet."""
        if self.stage is None:
            self.stage = stage
        return self

    def diagnostic(self) -> str:
        """One-line description naming the failure class and stage."""
        where = f" at stage '{self.stage}'" if self.stage else ""
        return f"{self.category}{where}: {self.message}"


class InputInvalidError(TapdError):
    """Empty dataset, bad controller count, non-binary labels, shape mismatch."""

    category = "input invalid"


class TrainerFailureError(TapdError):
    """External trainer returned no model, or a model failed to predict."""

    category = "trainer failure"


class NumericDegenerateError(TapdError):
    """A non-finite value appeared in the error matrix."""

    category = "numeric degenerate"


class IOFailureError(TapdError):
    """Dataset read or result write failure."""

    category = "io failure"
