"""
Exceptions raised by the encoding and data generation pipeline.
"""


class CyrillizeError(Exception):
    """Base class for all errors raised by this package."""


class UnknownCharacterError(CyrillizeError, ValueError):
    """A character outside the active vocabulary was passed to an encoder."""

    def __init__(self, char: str, vocabulary: str = 'vocabulary'):
        self.char = char
        self.vocabulary = vocabulary
        super().__init__(f"Unknown char {char!r} for {vocabulary}")


class InvalidSplitError(CyrillizeError, ValueError):
    """Train/validation split fractions are out of range."""

    def __init__(self, train_split: float, val_split: float):
        self.train_split = train_split
        self.val_split = val_split
        super().__init__(
            f"Invalid train_split ({train_split}) and val_split ({val_split})"
        )
