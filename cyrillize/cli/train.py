"""
Training script for the Latin to Cyrillic transliteration model.

Loads the word dictionary, trains an attention seq2seq model and runs it on
held-out test words, with logging to the console, TensorBoard and optionally
Weights & Biases.
"""

import argparse
import json
import time
from pathlib import Path

import torch

from ..data.preprocessing import filter_encodable_words, load_word_corpus
from ..data.vocabulary import DEFAULT_ENCODING
from ..inference.inference import run_seq2seq_inference
from ..models import create_model
from ..trainer import train_model
from ..utils.config import load_config
from ..utils.logging import TrainingLogger, setup_logging


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Train the Latin to Cyrillic transliteration model",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file"
    )

    # Data arguments
    parser.add_argument(
        "--dictionary",
        type=str,
        default=None,
        help="Path to the word dictionary (overrides config)"
    )
    parser.add_argument(
        "--max-words",
        type=int,
        default=None,
        help="Maximum number of dictionary words to use"
    )

    # Training arguments
    parser.add_argument(
        "--epochs",
        type=int,
        default=None,
        help="Number of training epochs (overrides config)"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Training batch size (overrides config)"
    )
    parser.add_argument(
        "--learning-rate",
        type=float,
        default=None,
        help="Learning rate (overrides config)"
    )
    parser.add_argument(
        "--num-tests",
        type=int,
        default=None,
        help="Number of held-out words to test on (overrides config)"
    )

    # Model configuration
    parser.add_argument(
        "--rnn-type",
        type=str,
        choices=["lstm", "gru"],
        default=None,
        help="Recurrent cell type (overrides config)"
    )
    parser.add_argument(
        "--embedding-dim",
        type=int,
        default=None,
        help="Embedding dimension (overrides config)"
    )
    parser.add_argument(
        "--hidden-dim",
        type=int,
        default=None,
        help="Hidden dimension (overrides config)"
    )

    # Logging and saving
    parser.add_argument(
        "--experiment-name",
        type=str,
        default=None,
        help="Experiment name for logging"
    )
    parser.add_argument(
        "--checkpoint-dir",
        type=str,
        default=None,
        help="Directory to save checkpoints (overrides config)"
    )

    # Other arguments
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed (overrides config)"
    )
    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help="Device to use (auto, cpu, cuda)"
    )

    return parser.parse_args(argv)


def apply_overrides(config, args):
    """Override configuration values with command line arguments that were given."""
    overrides = [
        (args.dictionary, config.data, 'dictionary_path'),
        (args.epochs, config.training, 'epochs'),
        (args.batch_size, config.training, 'batch_size'),
        (args.learning_rate, config.training, 'learning_rate'),
        (args.num_tests, config.training, 'num_tests'),
        (args.rnn_type, config.model, 'rnn_type'),
        (args.embedding_dim, config.model, 'embedding_dim'),
        (args.hidden_dim, config.model, 'hidden_dim'),
        (args.checkpoint_dir, config, 'checkpoint_dir'),
        (args.seed, config, 'seed'),
    ]
    for value, section, name in overrides:
        if value is not None:
            setattr(section, name, value)

    if args.device is not None:
        config.device = args.device
        # Re-resolve "auto"
        config.__post_init__()

    return config


def setup_environment(config):
    """Seed RNGs and pick the device."""
    torch.manual_seed(config.seed)
    if torch.cuda.is_available():
        torch.cuda.manual_seed_all(config.seed)

    device = torch.device(config.device)

    print(f"Using device: {device}")
    if device.type == "cuda":
        print(f"GPU: {torch.cuda.get_device_name(0)}")

    return device


def main(argv=None):
    """Main training function."""
    args = parse_args(argv)

    config = apply_overrides(load_config(args.config), args)
    config.make_dirs()

    device = setup_environment(config)

    experiment_name = args.experiment_name or f"{config.model.rnn_type}_{int(time.time())}"
    logger = setup_logging(config, experiment_name)
    logger.log_hyperparameters({
        'rnn_type': config.model.rnn_type,
        'embedding_dim': config.model.embedding_dim,
        'hidden_dim': config.model.hidden_dim,
        'epochs': config.training.epochs,
        'batch_size': config.training.batch_size,
        'learning_rate': config.training.learning_rate,
        'train_split': config.data.train_split,
        'val_split': config.data.val_split,
        'seed': config.seed
    })

    try:
        words = load_word_corpus(config.data.dictionary_path, max_words=args.max_words)
        words = filter_encodable_words(words, encoding=DEFAULT_ENCODING)

        model = create_model(DEFAULT_ENCODING, config.model).to(device)
        params = model.count_parameters()
        print(f"Total parameters: {params['total']:,}")

        history, tests = train_model(
            model,
            words,
            epochs=config.training.epochs,
            batch_size=config.training.batch_size,
            num_tests=config.training.num_tests,
            train_split=config.data.train_split,
            val_split=config.data.val_split,
            seed=config.data.shuffle_seed,
            learning_rate=config.training.learning_rate,
            device=device,
            num_workers=config.num_workers,
            config={
                'max_grad_norm': config.training.max_grad_norm,
                'early_stopping_patience': config.training.early_stopping_patience,
                'log_interval': config.logging.log_interval,
                'checkpoint_dir': str(Path(config.checkpoint_dir) / experiment_name),
            },
            training_logger=TrainingLogger(logger)
        )

        for record in tests:
            print('\n-----------------------')
            print(f"Input string: {record.input_str}")
            print(f"Correct answer: {record.correct_answer}")
            print(f"Model output: {record.text} ({'OK' if record.is_correct else 'WRONG'})")

        step = len(history['loss'])
        logger.log_test_examples(tests, step)

        if tests:
            result = run_seq2seq_inference(model, tests[0].input_str, need_attention=True)
            logger.log_attention_weights(result.attention, tests[0].input_str, result.output_str, step)

        summary_path = Path(config.results_dir) / f"{experiment_name}_summary.json"
        with open(summary_path, 'w', encoding='utf-8') as f:
            json.dump({
                'history': history,
                'tests': [
                    {'input_str': t.input_str, 'correct_answer': t.correct_answer, 'output_str': t.text}
                    for t in tests
                ],
                'config': config.to_dict()
            }, f, indent=2, ensure_ascii=False)
        print(f"Training summary saved to: {summary_path}")

    except KeyboardInterrupt:
        print("\nTraining interrupted by user")
    except Exception as e:
        print(f"Training failed with error: {e}")
        raise
    finally:
        logger.close()


if __name__ == "__main__":
    main()
