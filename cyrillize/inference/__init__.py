"""
Inference for trained transliteration models.
"""

from .inference import (
    DecodeState,
    InferenceResult,
    Transliterator,
    advance_decode_state,
    initial_decode_state,
    load_model,
    run_seq2seq_inference
)

__all__ = [
    "DecodeState",
    "InferenceResult",
    "Transliterator",
    "advance_decode_state",
    "initial_decode_state",
    "load_model",
    "run_seq2seq_inference"
]
