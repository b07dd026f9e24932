"""
RNN-based seq2seq transliteration model.

This module implements a recurrent encoder-decoder with Luong attention. The
decoder consumes the whole (teacher-forced or partially filled) decoder input
sequence in one call; because the recurrence is causal, the prediction at
position t only depends on decoder inputs 0..t, which is what step-by-step
inference relies on.
"""

from typing import Any, Dict, NamedTuple, Tuple, Union

import torch
import torch.nn as nn

from .attention import LuongAttention, create_padding_mask
from ..data.vocabulary import EncodingConfig, PAD_CODE


RNN_TYPES = {
    'lstm': nn.LSTM,
    'gru': nn.GRU,
}

Hidden = Union[torch.Tensor, Tuple[torch.Tensor, torch.Tensor]]


class EncoderState(NamedTuple):
    """Everything the decoder needs from one encoder pass."""

    outputs: torch.Tensor  # [batch_size, input_length, hidden_dim]
    hidden: Hidden         # final recurrent state, initial state of the decoder
    mask: torch.Tensor     # [batch_size, 1, input_length], True at padding


def _build_rnn(rnn_type: str, input_size: int, hidden_dim: int,
               num_layers: int, dropout: float) -> nn.Module:
    if rnn_type not in RNN_TYPES:
        raise ValueError(f"Unknown RNN type: {rnn_type}")

    return RNN_TYPES[rnn_type](
        input_size=input_size,
        hidden_size=hidden_dim,
        num_layers=num_layers,
        dropout=dropout if num_layers > 1 else 0,
        batch_first=True
    )


class RNNEncoder(nn.Module):
    """
    Recurrent encoder over the Latin input characters.
    """

    def __init__(self, input_vocab_size: int, embedding_dim: int, hidden_dim: int,
                 rnn_type: str = 'lstm', num_layers: int = 1, dropout: float = 0.0):
        """
        Initialize RNN encoder.

        Args:
            input_vocab_size: Size of input vocabulary
            embedding_dim: Dimension of character embeddings
            hidden_dim: Dimension of hidden states
            rnn_type: 'lstm' or 'gru'
            num_layers: Number of RNN layers
            dropout: Dropout probability
        """
        super().__init__()

        self.embedding = nn.Embedding(input_vocab_size, embedding_dim, padding_idx=PAD_CODE)
        self.rnn = _build_rnn(rnn_type, embedding_dim, hidden_dim, num_layers, dropout)
        self.dropout = nn.Dropout(dropout)

    def forward(self, encoder_input: torch.Tensor) -> Tuple[torch.Tensor, Hidden]:
        """
        Forward pass of the encoder.

        Args:
            encoder_input: [batch_size, input_length]

        Returns:
            Tuple of (outputs [batch_size, input_length, hidden_dim], final hidden state)
        """
        embedded = self.dropout(self.embedding(encoder_input))
        outputs, hidden = self.rnn(embedded)
        return outputs, hidden


class RNNDecoder(nn.Module):
    """
    Recurrent decoder with attention over the encoder outputs.
    """

    def __init__(self, output_vocab_size: int, embedding_dim: int, hidden_dim: int,
                 rnn_type: str = 'lstm', num_layers: int = 1, dropout: float = 0.0,
                 attention_type: str = 'dot'):
        """
        Initialize RNN decoder.

        Args:
            output_vocab_size: Size of output vocabulary
            embedding_dim: Dimension of character embeddings
            hidden_dim: Dimension of hidden states
            rnn_type: 'lstm' or 'gru'
            num_layers: Number of RNN layers
            dropout: Dropout probability
            attention_type: 'dot' or 'general'
        """
        super().__init__()

        self.embedding = nn.Embedding(output_vocab_size, embedding_dim, padding_idx=PAD_CODE)
        self.rnn = _build_rnn(rnn_type, embedding_dim, hidden_dim, num_layers, dropout)
        self.attention = LuongAttention(hidden_dim, attention_type)

        # Context vector + decoder output -> attentional hidden state
        self.combine = nn.Linear(hidden_dim * 2, hidden_dim)
        self.output_projection = nn.Linear(hidden_dim, output_vocab_size)

        self.dropout = nn.Dropout(dropout)

    def forward(self, decoder_input: torch.Tensor, hidden: Hidden,
                encoder_outputs: torch.Tensor,
                mask: torch.Tensor = None) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Forward pass of the decoder over all output positions.

        Args:
            decoder_input: [batch_size, output_length]
            hidden: Initial hidden state (final encoder state)
            encoder_outputs: [batch_size, input_length, hidden_dim]
            mask: Encoder padding mask [batch_size, 1, input_length]

        Returns:
            Tuple of (logits [batch_size, output_length, vocab_size],
            attention [batch_size, output_length, input_length])
        """
        embedded = self.dropout(self.embedding(decoder_input))
        decoder_outputs, _ = self.rnn(embedded, hidden)

        context, attention_weights = self.attention(
            decoder_outputs, encoder_outputs, encoder_outputs, mask
        )

        combined = torch.tanh(self.combine(torch.cat([context, decoder_outputs], dim=-1)))
        logits = self.output_projection(self.dropout(combined))

        return logits, attention_weights


class Seq2SeqModel(nn.Module):
    """
    Complete attention seq2seq model.

    ``forward`` is used for teacher-forced training; ``encode`` and ``decode``
    are the two halves used by step-by-step inference.
    """

    def __init__(self, input_vocab_size: int, output_vocab_size: int, embedding_dim: int = 64,
                 hidden_dim: int = 128, rnn_type: str = 'lstm', num_layers: int = 1,
                 dropout: float = 0.0, attention_type: str = 'dot'):
        """
        Initialize model.

        Args:
            input_vocab_size: Size of input vocabulary
            output_vocab_size: Size of output vocabulary
            embedding_dim: Dimension of character embeddings
            hidden_dim: Dimension of hidden states
            rnn_type: 'lstm' or 'gru'
            num_layers: Number of RNN layers
            dropout: Dropout probability
            attention_type: 'dot' or 'general'
        """
        super().__init__()

        self.input_vocab_size = input_vocab_size
        self.output_vocab_size = output_vocab_size
        self.embedding_dim = embedding_dim
        self.hidden_dim = hidden_dim
        self.rnn_type = rnn_type
        self.num_layers = num_layers
        self.dropout_p = dropout
        self.attention_type = attention_type

        self.encoder = RNNEncoder(
            input_vocab_size=input_vocab_size,
            embedding_dim=embedding_dim,
            hidden_dim=hidden_dim,
            rnn_type=rnn_type,
            num_layers=num_layers,
            dropout=dropout
        )

        self.decoder = RNNDecoder(
            output_vocab_size=output_vocab_size,
            embedding_dim=embedding_dim,
            hidden_dim=hidden_dim,
            rnn_type=rnn_type,
            num_layers=num_layers,
            dropout=dropout,
            attention_type=attention_type
        )

    def forward(self, encoder_input: torch.Tensor, decoder_input: torch.Tensor) -> torch.Tensor:
        """
        Teacher-forced forward pass.

        Args:
            encoder_input: [batch_size, input_length]
            decoder_input: [batch_size, output_length], START_CODE in column 0

        Returns:
            Output logits [batch_size, output_length, output_vocab_size]
        """
        logits, _ = self.decode(decoder_input, self.encode(encoder_input))
        return logits

    def encode(self, encoder_input: torch.Tensor) -> EncoderState:
        """Run the encoder once."""
        outputs, hidden = self.encoder(encoder_input)
        return EncoderState(outputs, hidden, create_padding_mask(encoder_input, PAD_CODE))

    def decode(self, decoder_input: torch.Tensor,
               encoder_state: EncoderState) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Run the decoder over a full decoder input buffer.

        Returns:
            Tuple of (logits, attention weights)
        """
        return self.decoder(decoder_input, encoder_state.hidden,
                            encoder_state.outputs, encoder_state.mask)

    def hyperparameters(self) -> Dict[str, Any]:
        """Constructor arguments, stored in checkpoints."""
        return {
            'input_vocab_size': self.input_vocab_size,
            'output_vocab_size': self.output_vocab_size,
            'embedding_dim': self.embedding_dim,
            'hidden_dim': self.hidden_dim,
            'rnn_type': self.rnn_type,
            'num_layers': self.num_layers,
            'dropout': self.dropout_p,
            'attention_type': self.attention_type,
        }

    def count_parameters(self) -> Dict[str, int]:
        """
        Count model parameters.

        Returns:
            Dictionary with parameter counts
        """
        total_params = sum(p.numel() for p in self.parameters())
        trainable_params = sum(p.numel() for p in self.parameters() if p.requires_grad)

        return {
            'total': total_params,
            'trainable': trainable_params,
            'encoder': sum(p.numel() for p in self.encoder.parameters()),
            'decoder': sum(p.numel() for p in self.decoder.parameters())
        }


def create_model(encoding: EncodingConfig, model_config) -> Seq2SeqModel:
    """
    Create a model sized for the given vocabularies.

    Args:
        encoding: Vocabularies and fixed lengths
        model_config: :class:`~cyrillize.utils.config.ModelConfig`

    Returns:
        Untrained model
    """
    return Seq2SeqModel(
        input_vocab_size=encoding.input_vocab_size,
        output_vocab_size=encoding.output_vocab_size,
        embedding_dim=model_config.embedding_dim,
        hidden_dim=model_config.hidden_dim,
        rnn_type=model_config.rnn_type,
        num_layers=model_config.num_layers,
        dropout=model_config.dropout,
        attention_type=model_config.attention_type
    )
