"""Controller-local data holder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

from tapd_sdn.model.trainer import Model


def _frozen(arr: NDArray[Any], dtype: Any) -> NDArray[Any]:
    out = np.array(arr, dtype=dtype, copy=True)
    out.setflags(write=False)
    return out


@dataclass
class ControllerPartition:
    """
    One SDN controller's data and model.

    ``local_X``/``local_y`` are the validation data used in
    cross-evaluation and are read-only. ``train_X``/``train_y`` start as
    copies of them; only the poisoner writes to ``train_y``, and
    ``freeze_training_labels`` locks it before training.
    """

    id: int
    local_X: NDArray[np.float64]
    local_y: NDArray[np.int64]
    train_X: NDArray[np.float64] = field(init=False)
    train_y: NDArray[np.int64] = field(init=False)
    model: Model | None = None
    compromised: bool = False
    flipped: NDArray[np.int64] = field(default_factory=lambda: np.empty(0, dtype=np.int64))

    def __post_init__(self) -> None:
        self.local_X = _frozen(self.local_X, np.float64)
        self.local_y = _frozen(self.local_y, np.int64)
        self.train_X = _frozen(self.local_X, np.float64)
        self.train_y = np.array(self.local_y, dtype=np.int64, copy=True)

    def freeze_training_labels(self) -> None:
        """Make ``train_y`` read-only."""
        self.train_y.setflags(write=False)

    @property
    def n_rows(self) -> int:
        return len(self.local_X)

    def __repr__(self) -> str:
        return (
            f"ControllerPartition(id={self.id}, compromised={self.compromised}, "
            f"local_rows={self.n_rows})"
        )
