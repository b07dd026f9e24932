"""
Character vocabularies and fixed-width tensor encoding.

Both vocabularies reserve index 0 for padding so that the embedding layers can
use ``padding_idx=0``. The output vocabulary additionally reserves index 1 for
the start-of-sequence marker fed to the decoder at position 0.
"""

import json
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Dict, List, Sequence

import torch
import torch.nn.functional as F

from ..exceptions import UnknownCharacterError


INPUT_LENGTH = 21
OUTPUT_LENGTH = 18

# "\n" is the padding character of both vocabularies.
INPUT_VOCAB = '\nabcdefghijklmnopqrstuvwxyz'

# "\t" is the start-of-sequence (SOS) token.
OUTPUT_VOCAB = '\n\tабвгдежзийклмнопрстуфхцчшщъьюя'

PAD_CODE = 0
START_CODE = 1


class CharVocabulary:
    """
    Ordered character alphabet with index lookups in both directions.

    Unlike word vocabularies there is no UNK slot: a character missing from the
    alphabet is an error, not something to be mapped away.
    """

    def __init__(self, chars: str, name: str = 'vocabulary'):
        """
        Initialize vocabulary.

        Args:
            chars: Alphabet; position in the string is the encoding index
            name: Human readable name used in error messages
        """
        if len(set(chars)) != len(chars):
            raise ValueError(f"Duplicate characters in {name}")

        self.chars = chars
        self.name = name
        self.pad_idx = PAD_CODE
        self.pad_char = chars[PAD_CODE]

        self.char2idx: Dict[str, int] = {char: idx for idx, char in enumerate(chars)}
        self.idx2char: Dict[int, str] = {idx: char for idx, char in enumerate(chars)}

    def index(self, char: str) -> int:
        """Return the index of ``char`` or raise UnknownCharacterError."""
        try:
            return self.char2idx[char]
        except KeyError:
            raise UnknownCharacterError(char, self.name) from None

    def encode(self, text: str, max_length: int) -> List[int]:
        """
        Encode text to a right-padded list of exactly ``max_length`` indices.

        Only the first ``max_length`` characters are looked up.
        """
        indices = [self.index(char) for char in text[:max_length]]
        return indices + [self.pad_idx] * (max_length - len(indices))

    def decode(self, indices: Sequence[int], strip_padding: bool = True) -> str:
        """
        Decode indices back to a string.

        Args:
            indices: Character indices
            strip_padding: Remove trailing padding characters

        Returns:
            Decoded string
        """
        text = ''.join(self.idx2char[int(idx)] for idx in indices)
        if strip_padding:
            text = text.rstrip(self.pad_char)
        return text

    def __len__(self) -> int:
        return len(self.chars)

    def __contains__(self, char: str) -> bool:
        return char in self.char2idx

    def __getitem__(self, idx: int) -> str:
        return self.idx2char[idx]

    def __repr__(self) -> str:
        return f"CharVocabulary(name={self.name!r}, size={len(self)})"

    def save(self, filepath: str):
        """Save vocabulary to a JSON file."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump({'name': self.name, 'chars': self.chars}, f, ensure_ascii=False, indent=2)

    @classmethod
    def load(cls, filepath: str) -> 'CharVocabulary':
        """Load vocabulary from a JSON file written by :meth:`save`."""
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls(data['chars'], data['name'])


@dataclass(frozen=True)
class EncodingConfig:
    """Immutable description of the vocabularies and fixed sequence lengths."""

    input_vocab: str = INPUT_VOCAB
    output_vocab: str = OUTPUT_VOCAB
    input_length: int = INPUT_LENGTH
    output_length: int = OUTPUT_LENGTH
    start_code: int = START_CODE

    def __post_init__(self):
        if self.input_length <= 0 or self.output_length <= 0:
            raise ValueError("Sequence lengths must be positive")
        if not 0 < self.start_code < len(self.output_vocab):
            raise ValueError(f"start_code {self.start_code} outside output vocabulary")

    @cached_property
    def input_vocabulary(self) -> CharVocabulary:
        return CharVocabulary(self.input_vocab, 'INPUT_VOCAB')

    @cached_property
    def output_vocabulary(self) -> CharVocabulary:
        return CharVocabulary(self.output_vocab, 'OUTPUT_VOCAB')

    @property
    def input_vocab_size(self) -> int:
        return len(self.input_vocab)

    @property
    def output_vocab_size(self) -> int:
        return len(self.output_vocab)


DEFAULT_ENCODING = EncodingConfig()


def _encode_strings(strings: Sequence[str], vocabulary: CharVocabulary,
                    length: int) -> torch.Tensor:
    rows = [vocabulary.encode(text, length) for text in strings]
    return torch.tensor(rows, dtype=torch.long).view(len(rows), length)


def encode_input_strings(strings: Sequence[str],
                         encoding: EncodingConfig = DEFAULT_ENCODING) -> torch.Tensor:
    """
    Encode Latin input strings as integer indices.

    Strings longer than ``encoding.input_length`` must be truncated by the
    caller; characters past the bound are never looked up.

    Args:
        strings: Input strings
        encoding: Vocabularies and fixed lengths

    Returns:
        Tensor of dtype int64 and shape [num_strings, input_length]

    Raises:
        UnknownCharacterError: A character is not part of INPUT_VOCAB
    """
    return _encode_strings(strings, encoding.input_vocabulary, encoding.input_length)


def encode_output_strings(strings: Sequence[str], one_hot: bool = False,
                          encoding: EncodingConfig = DEFAULT_ENCODING) -> torch.Tensor:
    """
    Encode Cyrillic target strings.

    Args:
        strings: Target strings
        one_hot: Return one-hot vectors instead of indices
        encoding: Vocabularies and fixed lengths

    Returns:
        int64 tensor [num_strings, output_length], or float32 tensor
        [num_strings, output_length, output_vocab_size] when ``one_hot``

    Raises:
        UnknownCharacterError: A character is not part of OUTPUT_VOCAB
    """
    indices = _encode_strings(strings, encoding.output_vocabulary, encoding.output_length)
    if one_hot:
        return F.one_hot(indices, num_classes=encoding.output_vocab_size).float()
    return indices


def decode_input_strings(tensor: torch.Tensor,
                         encoding: EncodingConfig = DEFAULT_ENCODING) -> List[str]:
    """Inverse of :func:`encode_input_strings`, trailing padding removed."""
    return [encoding.input_vocabulary.decode(row.tolist()) for row in tensor]


def decode_output_strings(tensor: torch.Tensor,
                          encoding: EncodingConfig = DEFAULT_ENCODING) -> List[str]:
    """
    Inverse of :func:`encode_output_strings`, trailing padding removed.

    Accepts either index tensors [N, L] or one-hot/probability tensors [N, L, V].
    """
    if tensor.dim() == 3:
        tensor = tensor.argmax(dim=-1)
    return [encoding.output_vocabulary.decode(row.tolist()) for row in tensor]
