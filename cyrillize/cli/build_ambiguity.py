"""
Build the disambiguation table for a word dictionary.

Every word is expanded into all of its Latin spelling variants; variants that
the naive reverse transliteration cannot turn back into the word are
collected. The result is written both as a text listing and as a JSON mapping
used for runtime correction.
"""

import argparse

from ..data.preprocessing import load_word_corpus
from ..data.transliteration import DEFAULT_SCHEME, DisambiguationTable
from ..utils.config import load_config
from ..utils.logging import get_logger


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Find ambiguous Latin spellings in a word dictionary",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--config", type=str, default=None,
                        help="Path to configuration file")
    parser.add_argument("--dictionary", type=str, default=None,
                        help="Path to the word dictionary (overrides config)")
    parser.add_argument("--listing", type=str, default=None,
                        help="Output path of the text listing (overrides config)")
    parser.add_argument("--json", type=str, default=None,
                        help="Output path of the JSON mapping (overrides config)")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config = load_config(args.config)

    dictionary_path = args.dictionary or config.data.dictionary_path
    listing_path = args.listing or config.data.ambiguity_listing_path
    json_path = args.json or config.data.ambiguity_json_path

    logger = get_logger(__name__)

    try:
        words = load_word_corpus(dictionary_path)
        table = DisambiguationTable.build(words, DEFAULT_SCHEME)

        for spelling, candidates in table.conflicts().items():
            logger.info(f"{spelling}: {' '.join(candidates)}")

        table.save_listing(listing_path)
        table.save_json(json_path)

        print(f"Ambiguous spellings: {len(table)}")
        print(f"Listing saved to: {listing_path}")
        print(f"Mapping saved to: {json_path}")

    except Exception as e:
        logger.error(f"Building the ambiguity table failed: {e}")
        raise


if __name__ == "__main__":
    main()
