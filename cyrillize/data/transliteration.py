"""
Cyrillic <-> Latin transliteration and ambiguity analysis.

The canonical map is what the models are trained on: every Bulgarian letter has
exactly one Latin rendering. People typing Bulgarian in Latin letters use many
more spellings, which the variant map lists. A variant is ambiguous when naive
reverse transliteration of it does not give the original word back; collecting
those over a dictionary yields the disambiguation table used at runtime.
"""

import itertools
import json
import re
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from ..utils.logging import get_logger


logger = get_logger(__name__)


CANONICAL_TRANSLITERATION = {
    'а': 'a',
    'б': 'b',
    'в': 'v',
    'г': 'g',
    'д': 'd',
    'е': 'e',
    'ж': 'zh',
    'з': 'z',
    'и': 'i',
    'й': 'y',
    'к': 'k',
    'л': 'l',
    'м': 'm',
    'н': 'n',
    'о': 'o',
    'п': 'p',
    'р': 'r',
    'с': 's',
    'т': 't',
    'у': 'u',
    'ф': 'f',
    'х': 'h',
    'ц': 'ts',
    'ч': 'ch',
    'ш': 'sh',
    'щ': 'sht',
    'ъ': 'a',
    'ь': 'y',
    'ю': 'yu',
    'я': 'ya',
}

TRANSLITERATION_VARIANTS = {
    'а': ('a',),
    'б': ('b',),
    'в': ('v', 'w'),
    'г': ('g',),
    'д': ('d',),
    'е': ('e',),
    'ж': ('zh', 'j'),
    'з': ('z',),
    'и': ('i',),
    'й': ('y', 'j', 'i'),
    'к': ('k',),
    'л': ('l',),
    'м': ('m',),
    'н': ('n',),
    'о': ('o',),
    'п': ('p',),
    'р': ('r',),
    'с': ('s',),
    'т': ('t',),
    'у': ('u',),
    'ф': ('f',),
    'х': ('h', 'x'),
    'ц': ('ts', 'c', 'tz'),
    'ч': ('ch', '4'),
    'ш': ('sh', '6'),
    'щ': ('sht', '6t'),
    'ъ': ('a', 'y', 'u'),
    'ь': ('i', 'j', 'y'),
    'ю': ('yu', 'iu', 'ju', 'u'),
    'я': ('ya', 'ia', 'ja', 'q'),
}


@dataclass(frozen=True)
class TransliterationScheme:
    """
    Immutable pair of transliteration maps.

    ``canonical`` maps each Cyrillic letter to the single Latin string used for
    model inputs; ``variants`` maps it to every Latin string a human might use.
    """

    canonical: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(dict(CANONICAL_TRANSLITERATION)))
    variants: Mapping[str, Sequence[str]] = field(
        default_factory=lambda: MappingProxyType(dict(TRANSLITERATION_VARIANTS)))

    def __hash__(self) -> int:
        return hash((
            tuple(sorted(self.canonical.items())),
            tuple(sorted((char, tuple(latin)) for char, latin in self.variants.items())),
        ))

    @cached_property
    def reverse_map(self) -> Dict[str, str]:
        """Latin string -> Cyrillic letter. The first letter listed wins ties."""
        reverse = {}
        for cyrillic, latin in self.canonical.items():
            reverse.setdefault(latin, cyrillic)
        return reverse

    @cached_property
    def variant_reverse_map(self) -> Dict[str, str]:
        """
        Every Latin spelling -> Cyrillic letter.

        Canonical spellings keep their :attr:`reverse_map` letter; other
        variants go to the first letter that lists them.
        """
        reverse = dict(self.reverse_map)
        for cyrillic, spellings in self.variants.items():
            for latin in spellings:
                reverse.setdefault(latin, cyrillic)
        return reverse

    def transliterate(self, text: str) -> str:
        """Canonical Cyrillic -> Latin; unmapped characters pass through."""
        return ''.join(self.canonical.get(char, char) for char in text)

    def iter_variants(self, word: str) -> Iterator[str]:
        """
        Lazily yield every Latin spelling of ``word``.

        Characters without variants contribute themselves. The generator may
        yield the same spelling twice; :meth:`enumerate_variants` does not.
        """
        options = [self.variants.get(char, (char,)) for char in word]
        for combination in itertools.product(*options):
            yield ''.join(combination)

    def enumerate_variants(self, word: str) -> List[str]:
        """All distinct Latin spellings of ``word`` in a deterministic order."""
        return list(dict.fromkeys(self.iter_variants(word)))

    def reverse_transliterate(self, text: str, use_variants: bool = False) -> str:
        """
        Naive Latin -> Cyrillic using the inverted canonical map.

        Greedy longest match, so "sht" becomes "щ" rather than "ш" + "т".
        Unmapped characters pass through. With ``use_variants`` the inverted
        variant map is used instead, so spellings like "w" or "6" are
        converted too.
        """
        reverse = self.variant_reverse_map if use_variants else self.reverse_map
        max_length = max((len(latin) for latin in reverse), default=1)
        result = []
        i = 0
        while i < len(text):
            for size in range(max_length, 0, -1):
                chunk = text[i:i + size]
                if len(chunk) == size and chunk in reverse:
                    result.append(reverse[chunk])
                    i += size
                    break
            else:
                result.append(text[i])
                i += 1
        return ''.join(result)


DEFAULT_SCHEME = TransliterationScheme()


def transliterate(text: str, scheme: TransliterationScheme = DEFAULT_SCHEME) -> str:
    """Canonical transliteration with the default scheme."""
    return scheme.transliterate(text)


class AmbiguousSpelling(NamedTuple):
    spelling: str
    original: str
    reconstructed: str


def find_ambiguous_spellings(word: str,
                             scheme: TransliterationScheme = DEFAULT_SCHEME) -> List[AmbiguousSpelling]:
    """
    Spellings of ``word`` that naive reverse transliteration gets wrong.

    Args:
        word: Cyrillic word
        scheme: Transliteration maps

    Returns:
        (spelling, original word, wrong reconstruction) triples
    """
    ambiguous = []
    for spelling in scheme.enumerate_variants(word):
        reconstructed = scheme.reverse_transliterate(spelling)
        if reconstructed != word:
            ambiguous.append(AmbiguousSpelling(spelling, word, reconstructed))
    return ambiguous


class DisambiguationTable:
    """
    Ambiguous Latin spelling -> Cyrillic words it may stand for.

    Candidates are kept in order of first occurrence in the corpus. The first
    candidate is what :meth:`resolve` returns; the JSON artifact keeps the
    last one, the word written latest for that spelling.
    """

    def __init__(self, entries: Optional[Mapping[str, Sequence[str]]] = None):
        self._entries: Dict[str, Tuple[str, ...]] = {
            spelling: tuple(words)
            for spelling, words in (entries or {}).items()
            if words
        }

    @classmethod
    def build(cls, words: Iterable[str],
              scheme: TransliterationScheme = DEFAULT_SCHEME) -> 'DisambiguationTable':
        """
        Build the table from a word corpus.

        Args:
            words: Deduplicated Cyrillic words
            scheme: Transliteration maps

        Returns:
            Disambiguation table
        """
        candidates: Dict[str, List[str]] = {}
        num_ambiguous = 0

        for word in words:
            for spelling, original, _ in find_ambiguous_spellings(word, scheme):
                num_ambiguous += 1
                bucket = candidates.setdefault(spelling, [])
                if original not in bucket:
                    bucket.append(original)

        table = cls(candidates)
        logger.info(
            f"Found {num_ambiguous} ambiguous spellings, {len(table)} distinct, "
            f"{len(table.conflicts())} with more than one candidate"
        )
        return table

    def conflicts(self) -> Dict[str, Tuple[str, ...]]:
        """Spellings claimed by more than one word."""
        return {spelling: words for spelling, words in self._entries.items() if len(words) > 1}

    def resolve(self, spelling: str) -> Optional[str]:
        """First candidate for ``spelling`` or None when it is not ambiguous."""
        words = self._entries.get(spelling)
        return words[0] if words else None

    def items(self):
        return self._entries.items()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, spelling: str) -> bool:
        return spelling in self._entries

    def __getitem__(self, spelling: str) -> Tuple[str, ...]:
        return self._entries[spelling]

    def __repr__(self) -> str:
        return f"DisambiguationTable(size={len(self)})"

    def save_listing(self, filepath: str):
        """Write one ``spelling word1 word2 ...`` line per entry."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        lines = [' '.join((spelling,) + words) for spelling, words in self._entries.items()]
        filepath.write_text('\n'.join(lines), encoding='utf-8')

    def save_json(self, filepath: str):
        """Write the spelling -> word mapping used at runtime; later words overwrite earlier ones."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        mapping = {spelling: words[-1] for spelling, words in self._entries.items()}
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(mapping, f, ensure_ascii=False, indent=2)

    @classmethod
    def load_json(cls, filepath: str) -> 'DisambiguationTable':
        """Load a mapping written by :meth:`save_json`."""
        with open(filepath, 'r', encoding='utf-8') as f:
            mapping = json.load(f)
        return cls({spelling: [word] for spelling, word in mapping.items()})


class ReverseTransliterator:
    """
    Latin -> Cyrillic conversion with dictionary correction.

    Each whitespace-separated word is first looked up in the disambiguation
    table; words that are not ambiguous fall back to naive reverse
    transliteration over every known variant spelling.
    """

    _WORD = re.compile(r'\S+')

    def __init__(self, scheme: TransliterationScheme = DEFAULT_SCHEME,
                 table: Optional[DisambiguationTable] = None):
        self.scheme = scheme
        self.table = table or DisambiguationTable()

    def convert_word(self, word: str) -> str:
        resolved = self.table.resolve(word.lower())
        if resolved is not None:
            return resolved
        return self.scheme.reverse_transliterate(word.lower(), use_variants=True)

    def __call__(self, text: str) -> str:
        return self._WORD.sub(lambda match: self.convert_word(match.group(0)), text)
