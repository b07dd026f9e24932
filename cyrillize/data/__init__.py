"""
Data processing modules: vocabularies, transliteration, corpus loading and
training data generation.
"""

from .vocabulary import (
    CharVocabulary,
    EncodingConfig,
    DEFAULT_ENCODING,
    INPUT_LENGTH,
    OUTPUT_LENGTH,
    INPUT_VOCAB,
    OUTPUT_VOCAB,
    START_CODE,
    encode_input_strings,
    encode_output_strings,
    decode_input_strings,
    decode_output_strings,
)
from .transliteration import (
    TransliterationScheme,
    DEFAULT_SCHEME,
    DisambiguationTable,
    ReverseTransliterator,
    find_ambiguous_spellings,
    transliterate,
)
from .preprocessing import load_word_corpus, normalize_input, filter_encodable_words
from .generation import TrainingData, generate_data_for_training
from .dataset import Seq2SeqDataset, create_data_loader

__all__ = [
    "CharVocabulary",
    "EncodingConfig",
    "DEFAULT_ENCODING",
    "INPUT_LENGTH",
    "OUTPUT_LENGTH",
    "INPUT_VOCAB",
    "OUTPUT_VOCAB",
    "START_CODE",
    "encode_input_strings",
    "encode_output_strings",
    "decode_input_strings",
    "decode_output_strings",
    "TransliterationScheme",
    "DEFAULT_SCHEME",
    "DisambiguationTable",
    "ReverseTransliterator",
    "find_ambiguous_spellings",
    "transliterate",
    "load_word_corpus",
    "normalize_input",
    "filter_encodable_words",
    "TrainingData",
    "generate_data_for_training",
    "Seq2SeqDataset",
    "create_data_loader",
]
