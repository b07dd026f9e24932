"""
Train/validation/test data generation for the seq2seq model.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import torch
import torch.nn.functional as F

from .preprocessing import DEFAULT_INPUT_FNS, InputFn
from .vocabulary import DEFAULT_ENCODING, EncodingConfig, encode_input_strings, encode_output_strings
from ..exceptions import InvalidSplitError
from ..utils.logging import get_logger


logger = get_logger(__name__)


@dataclass
class TrainingData:
    """
    Tensors for the training and validation partitions plus the raw test words.

    Encoder inputs have shape [N, input_length], decoder inputs
    [N, output_length] with START_CODE in column 0, and decoder outputs are
    one-hot [N, output_length, output_vocab_size]. N is the number of words in
    the partition times the number of input formats.
    """

    train_encoder_input: torch.Tensor
    train_decoder_input: torch.Tensor
    train_decoder_output: torch.Tensor
    val_encoder_input: torch.Tensor
    val_decoder_input: torch.Tensor
    val_decoder_output: torch.Tensor
    test_text: List[str]


def validate_split(train_split: float, val_split: float):
    """Raise InvalidSplitError unless both fractions are positive and sum to at most 1."""
    if not (train_split > 0 and val_split > 0 and train_split + val_split <= 1):
        raise InvalidSplitError(train_split, val_split)


def split_words(words: Sequence[str], train_split: float, val_split: float,
                seed: Optional[int] = None) -> Dict[str, List[str]]:
    """
    Shuffle and partition words into train, validation and test lists.

    Args:
        words: Word corpus (not modified)
        train_split: Fraction of words used for training
        val_split: Fraction of words used for validation
        seed: Shuffle seed; None gives a different split on every call

    Returns:
        Dictionary with 'train', 'val' and 'test' word lists
    """
    validate_split(train_split, val_split)

    generator = torch.Generator()
    if seed is None:
        generator.seed()
    else:
        generator.manual_seed(seed)
    order = torch.randperm(len(words), generator=generator).tolist()
    shuffled = [words[i] for i in order]

    num_train = math.floor(len(shuffled) * train_split)
    num_val = math.floor(len(shuffled) * val_split)

    return {
        'train': shuffled[:num_train],
        'val': shuffled[num_train:num_train + num_val],
        'test': shuffled[num_train + num_val:],
    }


def words_to_tensors(words: Sequence[str], input_fns: Sequence[InputFn] = DEFAULT_INPUT_FNS,
                     encoding: EncodingConfig = DEFAULT_ENCODING) -> Dict[str, torch.Tensor]:
    """
    Build encoder input, decoder input and decoder output tensors for words.

    Encoder rows are grouped by input format: all words rendered with the first
    format, then all words with the second, and so on. The decoder tensors are
    tiled the same way so that row i of every tensor refers to the same word.

    Args:
        words: Cyrillic target words
        input_fns: Functions producing encoder input strings from a word
        encoding: Vocabularies and fixed lengths

    Returns:
        Dictionary with 'encoder_input', 'decoder_input' and 'decoder_output'
    """
    with torch.no_grad():
        input_strings = [fn(word) for fn in input_fns for word in words]
        encoder_input = encode_input_strings(input_strings, encoding)

        target = encode_output_strings(words, encoding=encoding)

        # One-step time shift: the decoder sees the previous target character
        # at every position, START_CODE at position 0.
        start_column = torch.full((target.size(0), 1), encoding.start_code, dtype=torch.long)
        decoder_input = torch.cat([start_column, target[:, :-1]], dim=1)
        decoder_input = decoder_input.repeat(len(input_fns), 1)

        decoder_output = F.one_hot(target, num_classes=encoding.output_vocab_size).float()
        decoder_output = decoder_output.repeat(len(input_fns), 1, 1)

    return {
        'encoder_input': encoder_input,
        'decoder_input': decoder_input,
        'decoder_output': decoder_output,
    }


def generate_data_for_training(words: Sequence[str], train_split: float = 0.85,
                               val_split: float = 0.10,
                               input_fns: Sequence[InputFn] = DEFAULT_INPUT_FNS,
                               encoding: EncodingConfig = DEFAULT_ENCODING,
                               seed: Optional[int] = None) -> TrainingData:
    """
    Generate sets of data for training.

    Args:
        words: Word corpus
        train_split: Training split, must be > 0
        val_split: Validation split, must be > 0; train_split + val_split <= 1
        input_fns: Input formatting functions
        encoding: Vocabularies and fixed lengths
        seed: Shuffle seed; None for a non-reproducible shuffle

    Returns:
        TrainingData with tensors for train/val and the test words

    Raises:
        InvalidSplitError: Split fractions out of range
    """
    partitions = split_words(words, train_split, val_split, seed)

    logger.info(f"Number of words used for training: {len(partitions['train'])}")
    logger.info(f"Number of words used for validation: {len(partitions['val'])}")
    logger.info(f"Number of words used for testing: {len(partitions['test'])}")

    train = words_to_tensors(partitions['train'], input_fns, encoding)
    val = words_to_tensors(partitions['val'], input_fns, encoding)

    return TrainingData(
        train_encoder_input=train['encoder_input'],
        train_decoder_input=train['decoder_input'],
        train_decoder_output=train['decoder_output'],
        val_encoder_input=val['encoder_input'],
        val_decoder_input=val['decoder_input'],
        val_decoder_output=val['decoder_output'],
        test_text=partitions['test'],
    )
