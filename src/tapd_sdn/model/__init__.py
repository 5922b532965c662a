"""Classifier adapters used to train one model per controller."""

from tapd_sdn.model.trainer import Model, RandomForestTrainer, Trainer

__all__ = ["Model", "Trainer", "RandomForestTrainer"]
