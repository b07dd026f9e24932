"""
Cyrillize

Character-level attention seq2seq model that converts Latin-transliterated
Bulgarian words back into Cyrillic, plus the tooling around it: fixed
vocabularies, the transliteration scheme and its ambiguity table, training
data generation, training and step-by-step inference.
"""

__version__ = "1.0.0"

from .data import (
    DEFAULT_ENCODING,
    DEFAULT_SCHEME,
    DisambiguationTable,
    EncodingConfig,
    ReverseTransliterator,
    TransliterationScheme,
    generate_data_for_training,
)
from .exceptions import CyrillizeError, InvalidSplitError, UnknownCharacterError
from .inference import InferenceResult, Transliterator, run_seq2seq_inference
from .models import Seq2SeqModel, create_model
from .trainer import Trainer, train_model
from .utils import Config, setup_logging

__all__ = [
    "DEFAULT_ENCODING",
    "DEFAULT_SCHEME",
    "DisambiguationTable",
    "EncodingConfig",
    "ReverseTransliterator",
    "TransliterationScheme",
    "generate_data_for_training",
    "CyrillizeError",
    "InvalidSplitError",
    "UnknownCharacterError",
    "InferenceResult",
    "Transliterator",
    "run_seq2seq_inference",
    "Seq2SeqModel",
    "create_model",
    "Trainer",
    "train_model",
    "Config",
    "setup_logging",
]
