"""
Text preprocessing utilities: dictionary loading and input normalization.
"""

from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pandas as pd

from .transliteration import DEFAULT_SCHEME
from .vocabulary import DEFAULT_ENCODING, EncodingConfig, PAD_CODE
from ..utils.logging import get_logger


logger = get_logger(__name__)

InputFn = Callable[[str], str]

DEFAULT_INPUT_FNS = (DEFAULT_SCHEME.transliterate,)


def load_word_corpus(data_path: str, max_words: Optional[int] = None) -> List[str]:
    """
    Load a dictionary file into a deduplicated word list.

    Each line has the form ``word/metadata``; only the part before the first
    ``/`` is kept, lowercased. Order of first occurrence is preserved.

    Args:
        data_path: Path to the dictionary file
        max_words: Maximum number of words to return

    Returns:
        List of unique lowercase words
    """
    data_path = Path(data_path)
    if not data_path.exists():
        raise FileNotFoundError(f"Dictionary not found: {data_path}")

    lines = pd.Series(data_path.read_text(encoding='utf-8').splitlines(), dtype=object)
    words = lines.str.split('/', n=1).str[0].str.strip().str.lower()
    words = words[words.str.len() > 0].drop_duplicates(keep='first')

    if max_words is not None:
        words = words.head(max_words)

    logger.info(f"Loaded {len(words)} unique words from {data_path}")
    return words.tolist()


def normalize_input(text: str, encoding: EncodingConfig = DEFAULT_ENCODING) -> str:
    """
    Prepare raw user input for the encoder.

    Strips surrounding whitespace, lowercases and truncates to the encoder
    input length.
    """
    return text.strip().lower()[:encoding.input_length]


def is_encodable(word: str, input_fns: Sequence[InputFn] = DEFAULT_INPUT_FNS,
                 encoding: EncodingConfig = DEFAULT_ENCODING) -> bool:
    """
    Check that a word and all of its input formats fit the vocabularies.

    Args:
        word: Cyrillic target word
        input_fns: Functions producing the encoder input formats of ``word``
        encoding: Vocabularies and fixed lengths

    Returns:
        True when encoding the word can neither fail nor truncate
    """
    if not word or len(word) > encoding.output_length:
        return False

    reserved = {encoding.output_vocab[PAD_CODE], encoding.output_vocab[encoding.start_code]}
    output_chars = set(encoding.output_vocab) - reserved
    if not set(word) <= output_chars:
        return False

    input_chars = set(encoding.input_vocab) - {encoding.input_vocab[PAD_CODE]}
    for fn in input_fns:
        formatted = fn(word)
        if len(formatted) > encoding.input_length or not set(formatted) <= input_chars:
            return False

    return True


def filter_encodable_words(words: Sequence[str], input_fns: Sequence[InputFn] = DEFAULT_INPUT_FNS,
                           encoding: EncodingConfig = DEFAULT_ENCODING) -> List[str]:
    """Drop words that cannot be encoded, keeping the order of the rest."""
    kept = [word for word in words if is_encodable(word, input_fns, encoding)]

    dropped = len(words) - len(kept)
    if dropped:
        logger.warning(f"Dropped {dropped} of {len(words)} words that do not fit the vocabularies")

    return kept
