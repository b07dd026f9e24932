"""
Step-by-step seq2seq inference.

The decoder is run on a fixed-size decoder input buffer that starts with
START_CODE followed by padding. At step t the prediction for position t is
read off the decoder output and written into position t + 1 of the buffer, so
the next step sees everything predicted so far. Decoding always runs for the
full output length; there is no end-of-sequence token, the model simply
predicts padding once the word is over.
"""

import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Union

import torch
import torch.nn as nn

from ..data.preprocessing import normalize_input
from ..data.vocabulary import DEFAULT_ENCODING, EncodingConfig, OUTPUT_VOCAB, PAD_CODE, encode_input_strings
from ..models import Seq2SeqModel
from ..utils.logging import get_logger


logger = get_logger(__name__)


class InferenceResult(NamedTuple):
    """Decoded output of one inference call."""

    output_str: str
    attention: Optional[torch.Tensor]  # [1, output_length, input_length] or None
    pad_char: str = OUTPUT_VOCAB[PAD_CODE]

    @property
    def text(self) -> str:
        """Output with trailing padding removed."""
        return self.output_str.rstrip(self.pad_char)


@dataclass(frozen=True)
class DecodeState:
    """
    State of the greedy decoding loop between two steps.

    Attributes:
        position: Index of the next output position to predict
        decoder_input: Decoder input buffer [1, output_length]
        output_chars: Characters predicted so far
        attention: Accumulated attention [1, output_length, input_length],
            None when attention is not requested
    """

    position: int
    decoder_input: torch.Tensor
    output_chars: List[str] = field(default_factory=list)
    attention: Optional[torch.Tensor] = None

    def is_finished(self, encoding: EncodingConfig = DEFAULT_ENCODING) -> bool:
        return self.position >= encoding.output_length


def initial_decode_state(encoding: EncodingConfig = DEFAULT_ENCODING,
                         device: Union[str, torch.device] = 'cpu',
                         need_attention: bool = False) -> DecodeState:
    """Decoder buffer holding START_CODE at position 0 and padding elsewhere."""
    decoder_input = torch.full((1, encoding.output_length), PAD_CODE, dtype=torch.long, device=device)
    decoder_input[0, 0] = encoding.start_code

    attention = None
    if need_attention:
        attention = torch.zeros(1, encoding.output_length, encoding.input_length, device=device)

    return DecodeState(position=0, decoder_input=decoder_input, attention=attention)


def advance_decode_state(state: DecodeState, step_logits: torch.Tensor,
                         step_attention: Optional[torch.Tensor] = None,
                         encoding: EncodingConfig = DEFAULT_ENCODING) -> DecodeState:
    """
    Consume the decoder output for ``state.position`` and move to the next position.

    Args:
        state: Current state
        step_logits: Scores over the output vocabulary for the current position
        step_attention: Attention over encoder positions for the current position
        encoding: Vocabularies and fixed lengths

    Returns:
        New state; ``state`` itself is left untouched
    """
    if state.is_finished(encoding):
        raise ValueError("Decoding already finished")

    t = state.position
    predicted = int(step_logits.argmax(dim=-1).item())
    output_chars = state.output_chars + [encoding.output_vocab[predicted]]

    decoder_input = state.decoder_input
    if t + 1 < encoding.output_length:
        decoder_input = decoder_input.clone()
        decoder_input[0, t + 1] = predicted

    attention = state.attention
    if attention is not None and step_attention is not None:
        attention = attention.clone()
        attention[0, t] = step_attention

    return replace(state, position=t + 1, decoder_input=decoder_input,
                   output_chars=output_chars, attention=attention)


def _model_device(model: nn.Module) -> torch.device:
    try:
        return next(model.parameters()).device
    except StopIteration:
        return torch.device('cpu')


def run_seq2seq_inference(model: nn.Module, input_str: str, need_attention: bool = False,
                          encoding: EncodingConfig = DEFAULT_ENCODING) -> InferenceResult:
    """
    Transliterate one word with greedy step-by-step decoding.

    Args:
        model: Model exposing ``encode(encoder_input)`` and
            ``decode(decoder_input, encoder_state) -> (logits, attention)``
        input_str: Latin input; stripped, lowercased and truncated to the
            encoder input length
        need_attention: Whether to collect the attention matrix
        encoding: Vocabularies and fixed lengths

    Returns:
        InferenceResult with exactly ``output_length`` output characters

    Raises:
        UnknownCharacterError: Input contains a character outside the input vocabulary
    """
    input_str = normalize_input(input_str, encoding)
    device = _model_device(model)

    was_training = model.training
    model.eval()
    try:
        with torch.no_grad():
            encoder_input = encode_input_strings([input_str], encoding).to(device)
            encoder_state = model.encode(encoder_input)

            state = initial_decode_state(encoding, device, need_attention)
            while not state.is_finished(encoding):
                t = state.position
                logits, attention = model.decode(state.decoder_input, encoder_state)
                state = advance_decode_state(
                    state,
                    logits[0, t],
                    attention[0, t] if need_attention else None,
                    encoding
                )
                del logits, attention
    finally:
        model.train(was_training)

    return InferenceResult(''.join(state.output_chars), state.attention,
                           encoding.output_vocab[PAD_CODE])


def load_model(model_path: Union[str, Path], device: Union[str, torch.device] = 'cpu') -> Seq2SeqModel:
    """
    Rebuild a model from a checkpoint written by the trainer.

    Args:
        model_path: Path to checkpoint
        device: Device to load onto

    Returns:
        Model in eval mode

    Raises:
        FileNotFoundError: Checkpoint does not exist
    """
    model_path = Path(model_path)
    if not model_path.exists():
        raise FileNotFoundError(f"Checkpoint not found: {model_path}")

    checkpoint = torch.load(model_path, map_location=device)
    model = Seq2SeqModel(**checkpoint['model_hyperparameters'])
    model.load_state_dict(checkpoint['model_state_dict'])
    model.to(device)
    model.eval()

    logger.info(f"Loaded model from {model_path}")
    logger.info(f"Model parameters: {model.count_parameters()['total']:,}")

    return model


class Transliterator:
    """
    High-level Latin to Cyrillic converter around a trained model.
    """

    def __init__(self, model: nn.Module, encoding: EncodingConfig = DEFAULT_ENCODING):
        self.model = model
        self.encoding = encoding

    @classmethod
    def from_checkpoint(cls, model_path: Union[str, Path], device: str = 'auto',
                        encoding: EncodingConfig = DEFAULT_ENCODING) -> 'Transliterator':
        """
        Load a checkpoint and wrap it.

        Args:
            model_path: Path to checkpoint
            device: Device to use ('auto', 'cpu', 'cuda')
            encoding: Vocabularies the model was trained with
        """
        if device == 'auto':
            device = 'cuda' if torch.cuda.is_available() else 'cpu'

        logger.info(f"Initializing transliterator on device: {device}")
        return cls(load_model(model_path, torch.device(device)), encoding)

    def convert(self, text: str, need_attention: bool = False) -> InferenceResult:
        """
        Convert one Latin word to Cyrillic.

        Args:
            text: Latin input
            need_attention: Whether to return the attention matrix

        Returns:
            InferenceResult; use ``.text`` for the word without padding
        """
        return run_seq2seq_inference(self.model, text, need_attention, self.encoding)

    def convert_many(self, texts: List[str], return_timing: bool = False) -> Union[List[str], tuple]:
        """
        Convert several words.

        Args:
            texts: Latin inputs
            return_timing: Whether to also return the total time in seconds

        Returns:
            List of converted words (and total time if requested)
        """
        start_time = time.time()
        results = [self.convert(text).text for text in texts]
        total_time = time.time() - start_time

        if return_timing:
            return results, total_time
        return results

    def get_model_info(self) -> Dict[str, Any]:
        """
        Get information about the loaded model.

        Returns:
            Dictionary with model information
        """
        params = self.model.count_parameters()

        return {
            'device': str(_model_device(self.model)),
            'input_vocab_size': self.encoding.input_vocab_size,
            'output_vocab_size': self.encoding.output_vocab_size,
            'total_parameters': params['total'],
            'trainable_parameters': params['trainable'],
            'encoder_parameters': params['encoder'],
            'decoder_parameters': params['decoder']
        }
