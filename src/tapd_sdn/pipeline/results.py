"""
Result artifacts: error matrix, per-source votes and the metrics log.

The metrics log is append-only. Its header is written only when the
file is created, and each successful run adds exactly one flushed line.
"""

from __future__ import annotations

import csv
import logging
import threading
import time
from collections.abc import Sequence, Set
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from tapd_sdn.core.scoring import DetectionStats
from tapd_sdn.exceptions import IOFailureError

logger = logging.getLogger(__name__)

METRICS_HEADER = ["RunID", "Accuracy", "Precision", "Recall", "F1"]
PARAMETER_HEADER = ["Theta", "Eta", "NPrime"]


def write_error_matrix(errors: Sequence[Sequence[float]], path: str | Path) -> Path:
    """Write one comma-separated ``%.6f`` line per source row."""
    file_path = Path(path)
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "w", encoding="utf-8", newline="") as f:
            for row in errors:
                f.write(",".join(f"{float(v):.6f}" for v in row) + "\n")
    except OSError as e:
        raise IOFailureError(f"Failed to write {file_path}: {e}") from e
    logger.info(f"Saved {file_path}")
    return file_path


def read_error_matrix(path: str | Path) -> NDArray[np.float64]:
    """Read a matrix written by ``write_error_matrix``."""
    file_path = Path(path)
    try:
        with open(file_path, encoding="utf-8") as f:
            rows = [[float(v) for v in line.strip().split(",")] for line in f if line.strip()]
    except (OSError, ValueError) as e:
        raise IOFailureError(f"Failed to read {file_path}: {e}") from e
    return np.array(rows, dtype=np.float64)


def write_votes(votes: Sequence[Set[int]], path: str | Path) -> Path:
    """Write ``source: id1 id2 ...`` per source, ids ascending."""
    file_path = Path(path)
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "w", encoding="utf-8", newline="") as f:
            for source, suspects in enumerate(votes):
                f.write(f"{source}: " + " ".join(str(s) for s in sorted(suspects)) + "\n")
    except OSError as e:
        raise IOFailureError(f"Failed to write {file_path}: {e}") from e
    logger.info(f"Saved {file_path}")
    return file_path


class MetricsWriter:
    """Append-only CSV log of per-run detection metrics."""

    _lock = threading.Lock()
    _last_run_id = 0

    def __init__(self, path: str | Path, include_parameters: bool = False) -> None:
        """
        Args:
            path: CSV file to append to
            include_parameters: Add Theta, Eta and NPrime (compromised count) columns
        """
        self.path = Path(path)
        self.include_parameters = include_parameters

    @property
    def header(self) -> list[str]:
        return METRICS_HEADER + (PARAMETER_HEADER if self.include_parameters else [])

    @classmethod
    def next_run_id(cls) -> int:
        """Wall-clock milliseconds, strictly increasing within the process."""
        with cls._lock:
            run_id = max(time.time_ns() // 1_000_000, cls._last_run_id + 1)
            cls._last_run_id = run_id
            return run_id

    def _existing_header(self) -> list[str] | None:
        if not self.path.exists() or self.path.stat().st_size == 0:
            return None
        with open(self.path, encoding="utf-8", newline="") as f:
            return next(csv.reader(f), None)

    def append(
        self,
        stats: DetectionStats,
        run_id: int | None = None,
        theta: float | None = None,
        eta: float | None = None,
        n_compromised: int | None = None,
    ) -> int:
        """
        Append one metrics row.

        Returns:
            The run id written

        Raises:
            IOFailureError: If the file cannot be written or its header
                does not match this writer's columns
        """
        run_id = run_id if run_id is not None else self.next_run_id()
        row = [
            str(run_id),
            f"{stats.accuracy:.4f}",
            f"{stats.precision:.4f}",
            f"{stats.recall:.4f}",
            f"{stats.f1:.4f}",
        ]
        if self.include_parameters:
            row += [f"{theta or 0.0:.4f}", f"{eta or 0.0:.4f}", str(n_compromised or 0)]

        try:
            existing = self._existing_header()
            if existing is not None and existing != self.header:
                raise IOFailureError(
                    f"{self.path} has columns {existing}, expected {self.header}",
                    details={"path": str(self.path)},
                )

            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8", newline="") as f:
                writer = csv.writer(f, lineterminator="\n")
                if existing is None:
                    writer.writerow(self.header)
                writer.writerow(row)
                f.flush()
        except OSError as e:
            raise IOFailureError(f"Failed to append to {self.path}: {e}") from e

        logger.info(f"Metrics saved -> {self.path}")
        return run_id
