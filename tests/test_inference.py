"""
Tests for step-by-step inference.

Small stub models make the decoding loop observable: one always predicts
padding, another records the decoder input buffer it is called with.
"""

import os
import sys
import tempfile

import matplotlib.pyplot as plt
import pytest
import torch
import torch.nn as nn

# Add repository root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from cyrillize.data.vocabulary import (
    DEFAULT_ENCODING, INPUT_LENGTH, OUTPUT_LENGTH, OUTPUT_VOCAB, PAD_CODE, START_CODE
)
from cyrillize.exceptions import UnknownCharacterError
from cyrillize.inference import (
    InferenceResult, Transliterator, advance_decode_state, initial_decode_state,
    load_model, run_seq2seq_inference
)
from cyrillize.models import Seq2SeqModel
from cyrillize.utils.plotting import attention_heatmap


VOCAB_SIZE = len(OUTPUT_VOCAB)


class PaddingModel(nn.Module):
    """Always predicts padding with uniform attention."""

    def encode(self, encoder_input):
        return encoder_input

    def decode(self, decoder_input, encoder_state):
        batch_size, length = decoder_input.shape
        logits = torch.zeros(batch_size, length, VOCAB_SIZE)
        logits[..., PAD_CODE] = 1.0
        attention = torch.full((batch_size, length, INPUT_LENGTH), 1.0 / INPUT_LENGTH)
        return logits, attention


class RecordingModel(nn.Module):
    """Predicts a fixed character per position and records decoder inputs."""

    def __init__(self, predictions):
        super().__init__()
        self.predictions = predictions
        self.calls = []
        self.encoded = None

    def encode(self, encoder_input):
        self.encoded = encoder_input.clone()
        return encoder_input

    def decode(self, decoder_input, encoder_state):
        self.calls.append(decoder_input.clone())
        batch_size, length = decoder_input.shape
        logits = torch.zeros(batch_size, length, VOCAB_SIZE)
        for t, idx in enumerate(self.predictions):
            logits[:, t, idx] = 1.0
        attention = torch.zeros(batch_size, length, INPUT_LENGTH)
        for t in range(length):
            attention[:, t, t % INPUT_LENGTH] = 1.0
        return logits, attention


class TestDecodeState:
    """Test cases for the decoding state machine."""

    def test_initial_state(self):
        """Test the initial decoder buffer."""
        state = initial_decode_state(need_attention=True)

        assert state.position == 0
        assert state.decoder_input.shape == (1, OUTPUT_LENGTH)
        assert state.decoder_input[0, 0].item() == START_CODE
        assert torch.all(state.decoder_input[0, 1:] == PAD_CODE)
        assert state.output_chars == []
        assert state.attention.shape == (1, OUTPUT_LENGTH, INPUT_LENGTH)
        assert not state.is_finished()

    def test_initial_state_without_attention(self):
        """Test that attention is not allocated unless requested."""
        assert initial_decode_state().attention is None

    def test_advance(self):
        """Test that a prediction is written to the next buffer position."""
        state = initial_decode_state(need_attention=True)
        logits = torch.zeros(VOCAB_SIZE)
        logits[4] = 1.0
        step_attention = torch.zeros(INPUT_LENGTH)
        step_attention[2] = 1.0

        new_state = advance_decode_state(state, logits, step_attention)

        assert new_state.position == 1
        assert new_state.output_chars == ['в']
        assert new_state.decoder_input[0, 1].item() == 4
        assert new_state.attention[0, 0, 2].item() == 1.0
        # Previous state is untouched
        assert state.position == 0
        assert state.decoder_input[0, 1].item() == PAD_CODE
        assert state.attention.sum().item() == 0

    def test_advance_past_end(self):
        """Test that a finished state cannot be advanced."""
        state = initial_decode_state()
        logits = torch.zeros(VOCAB_SIZE)
        for _ in range(OUTPUT_LENGTH):
            state = advance_decode_state(state, logits)

        assert state.is_finished()
        assert len(state.output_chars) == OUTPUT_LENGTH
        with pytest.raises(ValueError):
            advance_decode_state(state, logits)


class TestRunSeq2SeqInference:
    """Test cases for run_seq2seq_inference."""

    def test_padding_model(self):
        """A model predicting only padding yields an all-padding output."""
        result = run_seq2seq_inference(PaddingModel(), 'voda', need_attention=True)

        assert isinstance(result, InferenceResult)
        assert result.output_str == '\n' * OUTPUT_LENGTH
        assert result.text == ''
        assert result.attention.shape == (1, OUTPUT_LENGTH, INPUT_LENGTH)

    def test_attention_not_requested(self):
        """Test that attention is None unless requested."""
        result = run_seq2seq_inference(PaddingModel(), 'voda')
        assert result.attention is None

    def test_predictions_are_fed_back(self):
        """Each step sees START_CODE followed by all earlier predictions."""
        predictions = [4, 16, 6, 2] + [PAD_CODE] * (OUTPUT_LENGTH - 4)
        model = RecordingModel(predictions)

        result = run_seq2seq_inference(model, 'voda', need_attention=True)

        assert result.output_str == 'вода' + '\n' * (OUTPUT_LENGTH - 4)
        assert result.text == 'вода'
        assert len(model.calls) == OUTPUT_LENGTH

        for t, decoder_input in enumerate(model.calls):
            expected = [START_CODE] + predictions[:t] + [PAD_CODE] * (OUTPUT_LENGTH - t - 1)
            assert decoder_input[0].tolist() == expected

        for t in range(OUTPUT_LENGTH):
            assert result.attention[0, t, t % INPUT_LENGTH].item() == 1.0

    def test_input_is_normalized(self):
        """Input is stripped, lowercased and truncated before encoding."""
        model = RecordingModel([PAD_CODE] * OUTPUT_LENGTH)

        run_seq2seq_inference(model, '  VODA' + 'a' * 30 + '  ')

        assert model.encoded.shape == (1, INPUT_LENGTH)
        assert model.encoded[0, :4].tolist() == [22, 15, 4, 1]
        assert torch.all(model.encoded[0, 4:] == 1)

    def test_unknown_character(self):
        """Characters outside the input vocabulary are an error."""
        with pytest.raises(UnknownCharacterError):
            run_seq2seq_inference(PaddingModel(), 'vo6a')

    def test_empty_input(self):
        """An empty input is encoded as all padding."""
        result = run_seq2seq_inference(PaddingModel(), '   ')
        assert len(result.output_str) == OUTPUT_LENGTH

    def test_real_model(self):
        """Test inference with an untrained model."""
        torch.manual_seed(0)
        model = Seq2SeqModel(
            DEFAULT_ENCODING.input_vocab_size, DEFAULT_ENCODING.output_vocab_size,
            embedding_dim=8, hidden_dim=16
        )
        model.train()

        result = run_seq2seq_inference(model, 'zdravei', need_attention=True)

        assert len(result.output_str) == OUTPUT_LENGTH
        assert all(char in OUTPUT_VOCAB for char in result.output_str)
        assert result.attention.shape == (1, OUTPUT_LENGTH, INPUT_LENGTH)
        assert torch.allclose(result.attention.sum(dim=-1), torch.ones(1, OUTPUT_LENGTH))
        assert torch.all(result.attention[0, :, 7:] < 1e-6)
        # Training mode is restored
        assert model.training

    def test_deterministic(self):
        """Greedy decoding is deterministic in eval mode."""
        torch.manual_seed(0)
        model = Seq2SeqModel(
            DEFAULT_ENCODING.input_vocab_size, DEFAULT_ENCODING.output_vocab_size,
            embedding_dim=8, hidden_dim=16, dropout=0.5, num_layers=2
        )

        first = run_seq2seq_inference(model, 'shtastie')
        second = run_seq2seq_inference(model, 'shtastie')

        assert first.output_str == second.output_str


class TestTransliterator:
    """Test cases for checkpoint loading and the Transliterator front-end."""

    def setup_method(self):
        """Set up test fixtures."""
        torch.manual_seed(0)
        self.model = Seq2SeqModel(
            DEFAULT_ENCODING.input_vocab_size, DEFAULT_ENCODING.output_vocab_size,
            embedding_dim=8, hidden_dim=16, rnn_type='gru'
        )
        self.tmpdir = tempfile.TemporaryDirectory()
        self.checkpoint_path = os.path.join(self.tmpdir.name, 'model.pt')
        torch.save({
            'model_state_dict': self.model.state_dict(),
            'model_hyperparameters': self.model.hyperparameters()
        }, self.checkpoint_path)

    def teardown_method(self):
        """Clean up temporary files."""
        self.tmpdir.cleanup()

    def test_load_model(self):
        """Test that a checkpoint rebuilds the same model."""
        model = load_model(self.checkpoint_path)

        assert model.rnn_type == 'gru'
        assert not model.training
        for name, tensor in self.model.state_dict().items():
            assert torch.equal(tensor, model.state_dict()[name])

    def test_load_missing_model(self):
        """Test that a missing checkpoint raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_model(os.path.join(self.tmpdir.name, 'missing.pt'))

    def test_convert(self):
        """Test conversion through the front-end."""
        transliterator = Transliterator.from_checkpoint(self.checkpoint_path, device='cpu')

        result = transliterator.convert('Zdravei', need_attention=True)
        expected = run_seq2seq_inference(self.model, 'zdravei')

        assert result.output_str == expected.output_str
        assert result.attention.shape == (1, OUTPUT_LENGTH, INPUT_LENGTH)

    def test_convert_many(self):
        """Test converting several words with timing."""
        transliterator = Transliterator(self.model)

        results, total_time = transliterator.convert_many(['voda', 'hlyab'], return_timing=True)

        assert len(results) == 2
        assert all(len(text) <= OUTPUT_LENGTH for text in results)
        assert total_time >= 0

    def test_model_info(self):
        """Test model information."""
        info = Transliterator(self.model).get_model_info()

        assert info['device'] == 'cpu'
        assert info['input_vocab_size'] == 27
        assert info['total_parameters'] == self.model.count_parameters()['total']

    def test_attention_heatmap(self):
        """Test rendering the attention of a conversion."""
        result = Transliterator(self.model).convert('voda', need_attention=True)

        fig = attention_heatmap(result.attention, 'voda', result.output_str)
        try:
            assert fig.axes
            assert fig.axes[0].get_xlabel() == 'Output characters'
        finally:
            plt.close(fig)
