"""
Seq2seq transliteration models.
"""

from .attention import LuongAttention, create_padding_mask

from .rnn import (
    EncoderState,
    RNNEncoder,
    RNNDecoder,
    Seq2SeqModel,
    create_model
)

__all__ = [
    "LuongAttention",
    "create_padding_mask",
    "EncoderState",
    "RNNEncoder",
    "RNNDecoder",
    "Seq2SeqModel",
    "create_model"
]
