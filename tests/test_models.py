"""
Tests for the seq2seq transliteration model.

This module contains unit tests for the attention layer, the recurrent
encoder/decoder and the full model.
"""

import os
import sys

import pytest
import torch

# Add repository root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from cyrillize.data.vocabulary import DEFAULT_ENCODING, encode_input_strings
from cyrillize.models import (
    EncoderState, LuongAttention, RNNDecoder, RNNEncoder, Seq2SeqModel,
    create_model, create_padding_mask
)
from cyrillize.utils.config import ModelConfig


class TestLuongAttention:
    """Test cases for Luong attention."""

    def setup_method(self):
        """Set up test fixtures."""
        torch.manual_seed(0)
        self.batch_size = 2
        self.query_len = 3
        self.key_len = 5
        self.hidden_dim = 8

        self.query = torch.randn(self.batch_size, self.query_len, self.hidden_dim)
        self.keys = torch.randn(self.batch_size, self.key_len, self.hidden_dim)

    @pytest.mark.parametrize('attention_type', ['dot', 'general'])
    def test_attention_shapes(self, attention_type):
        """Test output shapes and normalisation."""
        attention = LuongAttention(self.hidden_dim, attention_type)
        context, weights = attention(self.query, self.keys, self.keys)

        assert context.shape == (self.batch_size, self.query_len, self.hidden_dim)
        assert weights.shape == (self.batch_size, self.query_len, self.key_len)
        assert torch.allclose(weights.sum(dim=-1), torch.ones(self.batch_size, self.query_len))

    def test_masked_positions_get_no_weight(self):
        """Test that masked keys are ignored."""
        attention = LuongAttention(self.hidden_dim)
        seq = torch.tensor([[3, 4, 0, 0, 0], [5, 6, 7, 8, 0]])
        mask = create_padding_mask(seq)

        _, weights = attention(self.query, self.keys, self.keys, mask)

        assert mask.shape == (self.batch_size, 1, self.key_len)
        assert torch.all(weights[0, :, 2:] < 1e-6)
        assert torch.all(weights[1, :, 4] < 1e-6)
        assert torch.allclose(weights.sum(dim=-1), torch.ones(self.batch_size, self.query_len))

    def test_fully_masked_row_is_finite(self):
        """Test that an all-padding input does not produce NaNs."""
        attention = LuongAttention(self.hidden_dim)
        mask = create_padding_mask(torch.zeros(self.batch_size, self.key_len, dtype=torch.long))

        context, weights = attention(self.query, self.keys, self.keys, mask)

        assert not torch.isnan(context).any()
        assert not torch.isnan(weights).any()

    def test_unknown_attention_type(self):
        """Test invalid attention type."""
        with pytest.raises(ValueError):
            LuongAttention(self.hidden_dim, 'additive')


class TestSeq2SeqModel:
    """Test cases for Seq2SeqModel."""

    def setup_method(self):
        """Set up test fixtures."""
        torch.manual_seed(0)
        self.batch_size = 4
        self.input_vocab_size = DEFAULT_ENCODING.input_vocab_size
        self.output_vocab_size = DEFAULT_ENCODING.output_vocab_size
        self.input_length = DEFAULT_ENCODING.input_length
        self.output_length = DEFAULT_ENCODING.output_length
        self.embedding_dim = 16
        self.hidden_dim = 32

        self.model = Seq2SeqModel(
            input_vocab_size=self.input_vocab_size,
            output_vocab_size=self.output_vocab_size,
            embedding_dim=self.embedding_dim,
            hidden_dim=self.hidden_dim
        )
        self.encoder_input = torch.randint(0, self.input_vocab_size, (self.batch_size, self.input_length))
        self.decoder_input = torch.randint(0, self.output_vocab_size, (self.batch_size, self.output_length))

    def test_model_creation(self):
        """Test model creation."""
        assert self.model.input_vocab_size == self.input_vocab_size
        assert self.model.output_vocab_size == self.output_vocab_size
        assert isinstance(self.model.encoder, RNNEncoder)
        assert isinstance(self.model.decoder, RNNDecoder)

    def test_model_forward(self):
        """Test teacher-forced forward pass."""
        output = self.model(self.encoder_input, self.decoder_input)

        assert output.shape == (self.batch_size, self.output_length, self.output_vocab_size)
        assert not torch.isnan(output).any()
        assert not torch.isinf(output).any()

    def test_encode_decode(self):
        """Test the two halves used by inference."""
        state = self.model.encode(self.encoder_input)

        assert isinstance(state, EncoderState)
        assert state.outputs.shape == (self.batch_size, self.input_length, self.hidden_dim)
        assert state.mask.shape == (self.batch_size, 1, self.input_length)

        logits, attention = self.model.decode(self.decoder_input, state)

        assert logits.shape == (self.batch_size, self.output_length, self.output_vocab_size)
        assert attention.shape == (self.batch_size, self.output_length, self.input_length)

    def test_forward_matches_encode_decode(self):
        """Test that forward is encode followed by decode."""
        self.model.eval()
        with torch.no_grad():
            output = self.model(self.encoder_input, self.decoder_input)
            logits, _ = self.model.decode(self.decoder_input, self.model.encode(self.encoder_input))

        assert torch.allclose(output, logits)

    def test_decoder_is_causal(self):
        """Test that position t only depends on decoder inputs up to t."""
        self.model.eval()
        t = 5
        changed = self.decoder_input.clone()
        changed[:, t + 1:] = (changed[:, t + 1:] + 1) % self.output_vocab_size

        with torch.no_grad():
            state = self.model.encode(self.encoder_input)
            original, _ = self.model.decode(self.decoder_input, state)
            modified, _ = self.model.decode(changed, state)

        assert torch.allclose(original[:, :t + 1], modified[:, :t + 1])
        assert not torch.allclose(original[:, t + 1:], modified[:, t + 1:])

    def test_attention_ignores_padding(self):
        """Test that encoder padding positions get no attention."""
        self.model.eval()
        encoder_input = encode_input_strings(['voda'])

        with torch.no_grad():
            _, attention = self.model.decode(self.decoder_input[:1], self.model.encode(encoder_input))

        assert torch.all(attention[0, :, 4:] < 1e-6)

    def test_gru_model(self):
        """Test the GRU variant."""
        model = Seq2SeqModel(
            self.input_vocab_size, self.output_vocab_size,
            embedding_dim=self.embedding_dim, hidden_dim=self.hidden_dim,
            rnn_type='gru', num_layers=2, dropout=0.1, attention_type='general'
        )
        output = model(self.encoder_input, self.decoder_input)

        assert output.shape == (self.batch_size, self.output_length, self.output_vocab_size)

    def test_unknown_rnn_type(self):
        """Test invalid RNN type."""
        with pytest.raises(ValueError):
            Seq2SeqModel(self.input_vocab_size, self.output_vocab_size, rnn_type='transformer')

    def test_parameter_count(self):
        """Test model parameter counting."""
        params = self.model.count_parameters()

        assert params['total'] > 0
        assert params['trainable'] == params['total']
        assert params['encoder'] + params['decoder'] == params['total']

    def test_gradient_flow(self):
        """Test that gradients reach every parameter."""
        output = self.model(self.encoder_input, self.decoder_input)
        output.sum().backward()

        for name, param in self.model.named_parameters():
            assert param.grad is not None, f"No gradient for {name}"

    def test_hyperparameters_rebuild_model(self):
        """Test that stored hyperparameters rebuild an identical architecture."""
        rebuilt = Seq2SeqModel(**self.model.hyperparameters())
        rebuilt.load_state_dict(self.model.state_dict())

        assert rebuilt.count_parameters() == self.model.count_parameters()

    def test_create_model(self):
        """Test model creation from configuration."""
        config = ModelConfig(rnn_type='gru', embedding_dim=8, hidden_dim=12)
        model = create_model(DEFAULT_ENCODING, config)

        assert model.input_vocab_size == 27
        assert model.output_vocab_size == 32
        assert model.rnn_type == 'gru'
        assert model.hidden_dim == 12
