"""
Dataset classes for the seq2seq transliteration model.
"""

from typing import Any, Dict

import numpy as np
import torch
from torch.utils.data import DataLoader, Dataset

from .vocabulary import DEFAULT_ENCODING, EncodingConfig, PAD_CODE


class Seq2SeqDataset(Dataset):
    """
    PyTorch Dataset over aligned encoder input, decoder input and decoder output.

    Row i of the three tensors must describe the same example; this is what
    :func:`cyrillize.data.generation.words_to_tensors` produces.
    """

    def __init__(self, encoder_input: torch.Tensor, decoder_input: torch.Tensor,
                 decoder_output: torch.Tensor, encoding: EncodingConfig = DEFAULT_ENCODING):
        """
        Initialize dataset.

        Args:
            encoder_input: [num_samples, input_length]
            decoder_input: [num_samples, output_length]
            decoder_output: One-hot targets [num_samples, output_length, vocab_size]
            encoding: Vocabularies used to decode examples
        """
        if not len(encoder_input) == len(decoder_input) == len(decoder_output):
            raise ValueError("Encoder input, decoder input and decoder output must have same length")

        self.encoder_input = encoder_input
        self.decoder_input = decoder_input
        self.decoder_output = decoder_output
        self.encoding = encoding

        self.input_lengths = (encoder_input != PAD_CODE).sum(dim=1)
        self.target_lengths = (decoder_output.argmax(dim=-1) != PAD_CODE).sum(dim=1)

    def __len__(self) -> int:
        return len(self.encoder_input)

    def __getitem__(self, idx: int) -> Dict[str, torch.Tensor]:
        return {
            'encoder_input': self.encoder_input[idx],
            'decoder_input': self.decoder_input[idx],
            'decoder_output': self.decoder_output[idx],
        }

    def decode_example(self, idx: int) -> Dict[str, str]:
        """
        Decode an example back to text.

        Returns:
            Dictionary with the Latin input and Cyrillic target strings
        """
        input_vocab = self.encoding.input_vocabulary
        output_vocab = self.encoding.output_vocabulary

        return {
            'input_text': input_vocab.decode(self.encoder_input[idx].tolist()),
            'target_text': output_vocab.decode(self.decoder_output[idx].argmax(dim=-1).tolist()),
        }

    def get_statistics(self) -> Dict[str, Any]:
        """Length statistics of inputs and targets (padding excluded)."""
        input_lengths = self.input_lengths.numpy()
        target_lengths = self.target_lengths.numpy()

        def describe(lengths: np.ndarray) -> Dict[str, float]:
            if lengths.size == 0:
                return {'mean': 0.0, 'min': 0, 'max': 0}
            return {
                'mean': float(np.mean(lengths)),
                'min': int(np.min(lengths)),
                'max': int(np.max(lengths)),
            }

        return {
            'num_samples': len(self),
            'input_length_stats': describe(input_lengths),
            'target_length_stats': describe(target_lengths),
        }


def create_data_loader(encoder_input: torch.Tensor, decoder_input: torch.Tensor,
                       decoder_output: torch.Tensor, batch_size: int, shuffle: bool = True,
                       num_workers: int = 0, pin_memory: bool = False) -> DataLoader:
    """
    Create a DataLoader over a tensor triplet.

    Args:
        encoder_input: Encoder input tensor
        decoder_input: Decoder input tensor
        decoder_output: One-hot decoder output tensor
        batch_size: Batch size
        shuffle: Whether to shuffle data
        num_workers: Number of worker processes
        pin_memory: Whether to pin memory for faster GPU transfer

    Returns:
        DataLoader instance
    """
    dataset = Seq2SeqDataset(encoder_input, decoder_input, decoder_output)

    return DataLoader(
        dataset,
        batch_size=batch_size,
        shuffle=shuffle,
        num_workers=num_workers,
        pin_memory=pin_memory,
    )
