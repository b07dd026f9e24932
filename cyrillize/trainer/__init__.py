"""
Training utilities for the transliteration model.

This package contains the training loop, evaluation metrics, and the
``train_model`` entry point.
"""

from .trainer import TestRecord, Trainer, run_tests, train_model
from .metrics import compute_metrics, sequence_accuracy, word_accuracy

__all__ = [
    "TestRecord",
    "Trainer",
    "run_tests",
    "train_model",
    "compute_metrics",
    "sequence_accuracy",
    "word_accuracy"
]
