"""
Tabular dataset loading and normalization.

Spreadsheets (``.xlsx``/``.xlsm``) and CSV files are supported. The first
row is a header, the last column is the label, and every other column is
a feature. Labels equal to ``"Attack"`` (case-insensitive) map to 1,
numeric labels are rounded to int, and anything else maps to 0.
Non-numeric feature cells are integer-encoded per column in order of
first appearance.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from sklearn.preprocessing import StandardScaler

from tapd_sdn.exceptions import InputInvalidError, IOFailureError

logger = logging.getLogger(__name__)

ATTACK_LABEL = "attack"
SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm"}
CSV_SUFFIXES = {".csv"}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


class DatasetLoader:
    """
    Reads a labelled table into a float feature matrix and 0/1 labels.

    Column encoders live on the instance and are reset on every
    ``load`` call.
    """

    def __init__(self) -> None:
        self._encoders: dict[int, dict[str, int]] = {}

    def load(self, path: str | Path) -> tuple[NDArray[np.float64], NDArray[np.int64]]:
        """
        Load features and labels from ``path``.

        Args:
            path: Spreadsheet or CSV file

        Returns:
            Tuple of (X, y)

        Raises:
            IOFailureError: If the file is missing or cannot be parsed
            InputInvalidError: If the format is unsupported or the file
                contains no data rows or no features
        """
        file_path = Path(path)
        if not file_path.exists():
            raise IOFailureError(f"Dataset not found: {file_path}", details={"path": str(file_path)})
        if file_path.suffix.lower() not in SPREADSHEET_SUFFIXES | CSV_SUFFIXES:
            raise InputInvalidError(
                f"Unsupported dataset format '{file_path.suffix}', expected .xlsx, .xlsm or .csv",
                details={"path": str(file_path)},
            )

        self._encoders = {}
        frame = self._read_frame(file_path)

        if frame.shape[0] == 0:
            raise InputInvalidError(f"No rows read from {file_path}")
        if frame.shape[1] < 2:
            raise InputInvalidError(
                f"Dataset needs at least one feature column and a label column, "
                f"got {frame.shape[1]} column(s)"
            )

        raw = frame.to_numpy(dtype=object)
        features = np.empty((raw.shape[0], raw.shape[1] - 1), dtype=np.float64)
        for col in range(raw.shape[1] - 1):
            features[:, col] = [self._feature_value(col, v) for v in raw[:, col]]
        labels = np.array([self._label_value(v) for v in raw[:, -1]], dtype=np.int64)

        logger.info(
            f"Loaded rows={features.shape[0]} features={features.shape[1]} from {file_path.name}"
        )
        return features, labels

    def _read_frame(self, file_path: Path) -> pd.DataFrame:
        try:
            if file_path.suffix.lower() in SPREADSHEET_SUFFIXES:
                return pd.read_excel(file_path, sheet_name=0, header=0, dtype=object)
            return pd.read_csv(file_path, header=0, dtype=object, skip_blank_lines=True)
        except pd.errors.EmptyDataError as e:
            raise InputInvalidError(f"No rows read from {file_path}") from e
        except (OSError, ValueError, pd.errors.ParserError) as e:
            raise IOFailureError(
                f"Failed to read dataset {file_path}: {e}",
                details={"path": str(file_path)},
            ) from e

    def _encode(self, col: int, text: str) -> int:
        mapping = self._encoders.setdefault(col, {})
        key = text.strip()
        if key not in mapping:
            mapping[key] = len(mapping)
        return mapping[key]

    def _feature_value(self, col: int, value: Any) -> float:
        if _is_blank(value):
            return 0.0
        if isinstance(value, (bool, np.bool_)):
            return float(value)
        if isinstance(value, (int, float, np.integer, np.floating)):
            return float(value)
        text = str(value)
        try:
            number = float(text.strip())
        except ValueError:
            return float(self._encode(col, text))
        if not math.isfinite(number):
            return float(self._encode(col, text))
        return number

    @staticmethod
    def _label_value(value: Any) -> int:
        if _is_blank(value):
            return 0
        if isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool):
            return int(round(float(value)))
        text = str(value).strip()
        try:
            number = float(text)
        except ValueError:
            return 1 if text.lower() == ATTACK_LABEL else 0
        return int(round(number)) if math.isfinite(number) else 0

    @property
    def encoders(self) -> dict[int, dict[str, int]]:
        """Column encoders built by the last ``load`` call."""
        return {col: dict(mapping) for col, mapping in self._encoders.items()}


class Preprocessor:
    """
    Z-score normalization fitted on training rows.

    Uses population standard deviation; zero-variance columns are only
    centred.
    """

    def __init__(self) -> None:
        self._scaler = StandardScaler()
        self.fitted = False

    def fit(self, X: NDArray[np.floating[Any]]) -> "Preprocessor":
        self._scaler.fit(X)
        self.fitted = True
        return self

    def transform(self, X: NDArray[np.floating[Any]]) -> NDArray[np.float64]:
        if not self.fitted:
            raise RuntimeError("Preprocessor not fitted. Call fit() or fit_transform() first.")
        if len(X) == 0:
            return np.empty((0, self._scaler.n_features_in_), dtype=np.float64)
        return self._scaler.transform(X).astype(np.float64)

    def fit_transform(self, X: NDArray[np.floating[Any]]) -> NDArray[np.float64]:
        return self.fit(X).transform(X)

    @property
    def mean(self) -> NDArray[np.float64]:
        return np.asarray(self._scaler.mean_)

    @property
    def std(self) -> NDArray[np.float64]:
        return np.asarray(self._scaler.scale_)
