"""
Data adapters: dataset loading, normalization, splitting and poisoning.
"""

from tapd_sdn.data.loader import DatasetLoader, Preprocessor
from tapd_sdn.data.poisoner import Poisoner
from tapd_sdn.data.splitter import Splitter, train_test_split

__all__ = [
    "DatasetLoader",
    "Preprocessor",
    "Poisoner",
    "Splitter",
    "train_test_split",
]
