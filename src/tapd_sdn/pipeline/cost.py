"""
Run cost estimation.

Numeric estimates of what one detection round costs:

- DN: bytes of controller datasets (rows * cols * 8)
- MN: bytes of serialized models
- CN: compute heuristic, sum of ``n * log2(n)`` over training sets
- CF: communication, ``NBC + avg_model_bytes * N^2``
- EC: milliseconds spent building the error matrix
- OC: milliseconds spent in outlier detection
- FC: sum of all the above
"""

from __future__ import annotations

import logging
import math
import pickle
import time
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass
from typing import Any, TypeVar

import numpy as np

logger = logging.getLogger(__name__)

NORTHBOUND_BYTES = 1024.0

T = TypeVar("T")


@dataclass
class CostReport:
    """Cost components for one run."""

    dn_bytes: int
    mn_bytes: int
    cn_units: float
    cf_bytes: float
    ec_ms: float
    oc_ms: float

    @property
    def fc_estimate(self) -> float:
        return self.ec_ms + self.oc_ms + self.cf_bytes + self.dn_bytes + self.mn_bytes + self.cn_units

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary."""
        return {**asdict(self), "fc_estimate": self.fc_estimate}


def serialized_bytes(obj: Any) -> int:
    """Pickled size of ``obj`` (0 if it cannot be pickled)."""
    if obj is None:
        return 0
    try:
        return len(pickle.dumps(obj, protocol=pickle.HIGHEST_PROTOCOL))
    except (pickle.PicklingError, TypeError, AttributeError) as e:
        logger.warning(f"Could not serialize {type(obj).__name__}: {e}")
        return 0


def dataset_bytes(datasets: Sequence[np.ndarray]) -> int:
    total = 0
    for X in datasets:
        n = len(X)
        d = X.shape[1] if X.ndim > 1 and n > 0 else 0
        total += n * max(1, d) * 8
    return total


def compute_units(datasets: Sequence[np.ndarray]) -> float:
    total = 0.0
    for X in datasets:
        n = len(X)
        if n > 0:
            total += n * math.log2(max(2, n))
    return total


def communication_bytes(avg_model_bytes: float, n_controllers: int) -> float:
    return NORTHBOUND_BYTES + avg_model_bytes * n_controllers * n_controllers


def timed(fn: Callable[[], T]) -> tuple[T, float]:
    """Run ``fn`` and return its result with elapsed milliseconds."""
    start = time.perf_counter()
    result = fn()
    return result, (time.perf_counter() - start) * 1000.0


def estimate_cost(
    datasets: Sequence[np.ndarray],
    models: Sequence[Any],
    ec_ms: float,
    oc_ms: float,
) -> CostReport:
    """Assemble a ``CostReport`` from run artifacts and measured timings."""
    model_bytes = [serialized_bytes(m) for m in models]
    mn = sum(model_bytes)
    avg_model = mn / len(model_bytes) if model_bytes else 0.0
    report = CostReport(
        dn_bytes=dataset_bytes(datasets),
        mn_bytes=mn,
        cn_units=compute_units(datasets),
        cf_bytes=communication_bytes(avg_model, len(models)),
        ec_ms=ec_ms,
        oc_ms=oc_ms,
    )
    logger.debug(f"Cost estimate: {report.to_dict()}")
    return report
