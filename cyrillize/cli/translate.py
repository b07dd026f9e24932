"""
Interactive Latin to Cyrillic transliteration with a trained model.

Words are read from ``--text`` arguments or from an interactive prompt.
Optionally the attention matrix of every conversion is saved as a heatmap,
and the dictionary-based correction is printed next to the model output.
"""

import argparse
import time
from pathlib import Path
from typing import Optional

from ..data.preprocessing import normalize_input
from ..data.transliteration import DisambiguationTable, ReverseTransliterator
from ..inference import Transliterator
from ..utils.logging import get_logger


def print_banner():
    """Print welcome banner."""
    print("\n" + "=" * 60)
    print("LATIN TO CYRILLIC TRANSLITERATOR")
    print("=" * 60)
    print("Type a Latin-transliterated Bulgarian word to convert it.")
    print("Commands:")
    print("  - 'quit' or 'exit': Exit the transliterator")
    print("  - 'help': Show this help message")
    print("=" * 60 + "\n")


def print_help():
    """Print help information."""
    print("\nHELP:")
    print("  * Type a word and press Enter, e.g. 'zdravei'")
    print("  * Input is lowercased and truncated to the model's input length")
    print("  * Use 'quit' or 'exit' to close the transliterator")
    print()


def save_attention_plot(result, input_str: str, attention_dir: Path, index: int) -> Path:
    """Render the attention heatmap of one conversion to a PNG file."""
    import matplotlib.pyplot as plt
    from ..utils.plotting import attention_heatmap

    attention_dir.mkdir(parents=True, exist_ok=True)
    path = attention_dir / f"attention_{index:03d}.png"

    fig = attention_heatmap(result.attention, input_str, result.output_str,
                            title=f'Attention: "{input_str}" -> "{result.text}"')
    fig.savefig(path)
    plt.close(fig)
    return path


class Session:
    """Conversion settings shared by the batch and interactive modes."""

    def __init__(self, transliterator: Transliterator,
                 attention_dir: Optional[Path] = None,
                 corrector: Optional[ReverseTransliterator] = None):
        self.transliterator = transliterator
        self.attention_dir = attention_dir
        self.corrector = corrector
        self.count = 0

    def convert_and_print(self, text: str):
        """Convert one input and print the result with timing."""
        input_str = normalize_input(text, self.transliterator.encoding)

        start_time = time.time()
        result = self.transliterator.convert(input_str, need_attention=self.attention_dir is not None)
        elapsed = time.time() - start_time

        print(f"Cyrillic: {result.text}")
        if self.corrector is not None:
            print(f"Dictionary: {self.corrector(input_str)}")
        print(f"Time: {elapsed * 1000:.1f} ms")

        if self.attention_dir is not None:
            path = save_attention_plot(result, input_str, self.attention_dir, self.count)
            print(f"Attention heatmap: {path}")

        self.count += 1


def interactive_mode(session: Session):
    """Run interactive transliteration mode."""
    while True:
        try:
            text = input("\nLatin: ").strip()

            if text.lower() in ['quit', 'exit', 'q']:
                print("Goodbye!")
                break
            elif text.lower() in ['help', 'h']:
                print_help()
                continue
            elif not text:
                continue

            session.convert_and_print(text)

        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break
        except Exception as e:
            print(f"Error: {e}")
            print("Please try again or type 'help' for assistance.")


def main(argv=None):
    """Main function."""
    parser = argparse.ArgumentParser(
        description='Latin to Cyrillic transliterator',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument('--model-path', type=str, required=True,
                        help='Path to model checkpoint')
    parser.add_argument('--device', type=str, default='auto',
                        help='Device to use (auto, cpu, cuda)')
    parser.add_argument('--text', type=str, nargs='+', default=None,
                        help='Words to convert; interactive mode when omitted')
    parser.add_argument('--attention-dir', type=str, default=None,
                        help='Directory to save attention heatmaps to')
    parser.add_argument('--ambiguity-json', type=str, default=None,
                        help='Disambiguation mapping from cyrillize-build-ambiguity; '
                             'prints the dictionary-based conversion as well')

    args = parser.parse_args(argv)

    logger = get_logger(__name__)
    logger.info("Starting transliterator")

    try:
        corrector = None
        if args.ambiguity_json:
            corrector = ReverseTransliterator(table=DisambiguationTable.load_json(args.ambiguity_json))

        session = Session(
            Transliterator.from_checkpoint(args.model_path, device=args.device),
            attention_dir=Path(args.attention_dir) if args.attention_dir else None,
            corrector=corrector
        )

        if args.text:
            for text in args.text:
                print(f"\nLatin: {text}")
                session.convert_and_print(text)
        else:
            print_banner()
            interactive_mode(session)

    except Exception as e:
        logger.error(f"Transliteration failed: {e}")
        print(f"Error: {e}")
        print("Please check your model path and input.")
        raise


if __name__ == "__main__":
    main()
