"""
Training utilities for the transliteration model.

This module provides the training loop with logging, checkpointing and early
stopping, and the ``train_model`` entry point that generates data from a word
corpus, trains, and runs inference on held-out test words.
"""

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import torch
import torch.nn as nn
import torch.optim as optim
from torch.optim.lr_scheduler import ReduceLROnPlateau
from torch.utils.data import DataLoader

from ..data.dataset import create_data_loader
from ..data.generation import generate_data_for_training
from ..data.preprocessing import DEFAULT_INPUT_FNS, InputFn
from ..data.vocabulary import DEFAULT_ENCODING, EncodingConfig, OUTPUT_VOCAB, PAD_CODE
from ..inference.inference import run_seq2seq_inference
from ..utils.logging import get_logger
from .metrics import compute_metrics, word_accuracy


@dataclass(frozen=True)
class TestRecord:
    """One held-out word run through the model in one input format."""

    __test__ = False  # not a pytest test class

    input_str: str
    correct_answer: str
    output_str: str
    pad_char: str = OUTPUT_VOCAB[PAD_CODE]

    @property
    def text(self) -> str:
        return self.output_str.rstrip(self.pad_char)

    @property
    def is_correct(self) -> bool:
        return self.text == self.correct_answer.strip()


class Trainer:
    """
    Trainer class for the seq2seq transliteration model.

    This class handles the training loop, validation, checkpointing,
    and logging. Batches are dictionaries with 'encoder_input',
    'decoder_input' and one-hot 'decoder_output' tensors.
    """

    def __init__(self, model: nn.Module, train_loader: DataLoader, val_loader: Optional[DataLoader],
                 optimizer: optim.Optimizer, criterion: nn.Module,
                 device: torch.device, config: Dict[str, Any], training_logger=None):
        """
        Initialize trainer.

        Args:
            model: Model to train
            train_loader: Training data loader
            val_loader: Validation data loader (may be None or empty)
            optimizer: Optimizer
            criterion: Loss function over class indices
            device: Device to train on
            config: Training configuration; recognised keys are
                'max_grad_norm', 'early_stopping_patience', 'log_interval'
                and 'checkpoint_dir' (None disables checkpointing)
            training_logger: Optional :class:`~cyrillize.utils.logging.TrainingLogger`
        """
        self.model = model
        self.train_loader = train_loader
        self.val_loader = val_loader
        self.optimizer = optimizer
        self.criterion = criterion
        self.device = device
        self.config = config
        self.training_logger = training_logger

        # Training state
        self.current_epoch = 0
        self.global_step = 0
        self.best_val_loss = float('inf')
        self.patience_counter = 0

        self.logger = get_logger(__name__)

        self.scheduler = ReduceLROnPlateau(optimizer, mode='min', factor=0.5, patience=3)

        self.checkpoint_dir = None
        if config.get('checkpoint_dir'):
            self.checkpoint_dir = Path(config['checkpoint_dir'])
            self.checkpoint_dir.mkdir(parents=True, exist_ok=True)

        # Per-epoch metrics
        self.history = {
            'loss': [],
            'accuracy': [],
            'val_loss': [],
            'val_accuracy': []
        }

    def _step(self, batch: Dict[str, torch.Tensor]) -> Tuple[torch.Tensor, Dict[str, float]]:
        encoder_input = batch['encoder_input'].to(self.device)
        decoder_input = batch['decoder_input'].to(self.device)
        decoder_output = batch['decoder_output'].to(self.device)

        outputs = self.model(encoder_input, decoder_input)
        targets = decoder_output.argmax(dim=-1)

        loss = self.criterion(outputs.reshape(-1, outputs.size(-1)), targets.reshape(-1))

        with torch.no_grad():
            metrics = compute_metrics(outputs, targets, loss=loss)

        return loss, metrics

    def train_epoch(self) -> Dict[str, float]:
        """
        Train for one epoch.

        Returns:
            Dictionary with training metrics
        """
        self.model.train()

        total_loss = 0.0
        total_accuracy = 0.0
        num_batches = 0

        epoch_start_time = time.time()

        for batch_idx, batch in enumerate(self.train_loader):
            self.optimizer.zero_grad()

            loss, metrics = self._step(batch)
            loss.backward()

            if self.config.get('max_grad_norm', 0) > 0:
                torch.nn.utils.clip_grad_norm_(self.model.parameters(), self.config['max_grad_norm'])

            self.optimizer.step()

            total_loss += loss.item()
            total_accuracy += metrics['accuracy']
            num_batches += 1
            self.global_step += 1

            if batch_idx % self.config.get('log_interval', 100) == 0:
                self.logger.debug(
                    f'Epoch {self.current_epoch}, Batch {batch_idx}/{len(self.train_loader)}, '
                    f'Loss: {loss.item():.4f}, Accuracy: {metrics["accuracy"]:.4f}'
                )

        if num_batches == 0:
            raise ValueError("Training data is empty")

        avg_loss = total_loss / num_batches
        avg_accuracy = total_accuracy / num_batches

        epoch_time = time.time() - epoch_start_time
        self.logger.info(
            f'Epoch {self.current_epoch} completed in {epoch_time:.2f}s. '
            f'Avg Loss: {avg_loss:.4f}, Avg Accuracy: {avg_accuracy:.4f}'
        )

        return {'loss': avg_loss, 'accuracy': avg_accuracy}

    def validate(self) -> Dict[str, float]:
        """
        Validate the model.

        Returns:
            Dictionary with validation metrics; empty when there is no validation data
        """
        if self.val_loader is None or len(self.val_loader) == 0:
            return {}

        self.model.eval()

        total_loss = 0.0
        total_accuracy = 0.0
        num_batches = 0

        with torch.no_grad():
            for batch in self.val_loader:
                loss, metrics = self._step(batch)
                total_loss += loss.item()
                total_accuracy += metrics['accuracy']
                num_batches += 1

        avg_loss = total_loss / num_batches
        avg_accuracy = total_accuracy / num_batches

        self.logger.info(f'Validation - Loss: {avg_loss:.4f}, Accuracy: {avg_accuracy:.4f}')

        return {'loss': avg_loss, 'accuracy': avg_accuracy}

    def save_checkpoint(self, is_best: bool = False) -> None:
        """
        Save model checkpoint.

        Args:
            is_best: Whether this is the best model so far
        """
        if self.checkpoint_dir is None:
            return

        checkpoint = {
            'epoch': self.current_epoch,
            'global_step': self.global_step,
            'model_state_dict': self.model.state_dict(),
            'model_hyperparameters': self.model.hyperparameters(),
            'optimizer_state_dict': self.optimizer.state_dict(),
            'scheduler_state_dict': self.scheduler.state_dict(),
            'best_val_loss': self.best_val_loss,
            'history': self.history
        }

        torch.save(checkpoint, self.checkpoint_dir / 'last_model.pt')

        if is_best:
            best_path = self.checkpoint_dir / 'best_model.pt'
            torch.save(checkpoint, best_path)
            self.logger.info(f'Saved best model to {best_path}')

    def load_checkpoint(self, checkpoint_path: str) -> None:
        """
        Resume from a checkpoint written by :meth:`save_checkpoint`.

        Args:
            checkpoint_path: Path to checkpoint file
        """
        checkpoint = torch.load(checkpoint_path, map_location=self.device)

        self.model.load_state_dict(checkpoint['model_state_dict'])
        self.optimizer.load_state_dict(checkpoint['optimizer_state_dict'])
        self.scheduler.load_state_dict(checkpoint['scheduler_state_dict'])

        self.current_epoch = checkpoint['epoch'] + 1
        self.global_step = checkpoint['global_step']
        self.best_val_loss = checkpoint['best_val_loss']
        self.history = checkpoint['history']

        self.logger.info(f'Loaded checkpoint from {checkpoint_path}')

    def train(self, num_epochs: int, resume_from: Optional[str] = None) -> Dict[str, List[float]]:
        """
        Train the model.

        Args:
            num_epochs: Number of epochs to train
            resume_from: Path to checkpoint to resume from

        Returns:
            Per-epoch history with 'loss', 'accuracy', 'val_loss', 'val_accuracy'
        """
        if resume_from:
            self.load_checkpoint(resume_from)

        self.logger.info(f'Starting training for {num_epochs} epochs')
        self.logger.info(f'Model parameters: {sum(p.numel() for p in self.model.parameters()):,}')

        if self.val_loader is None or len(self.val_loader) == 0:
            self.logger.warning('No validation data, validation metrics will not be reported')

        patience = self.config.get('early_stopping_patience', 10)

        for epoch in range(self.current_epoch, num_epochs):
            self.current_epoch = epoch

            train_metrics = self.train_epoch()
            val_metrics = self.validate()

            self.history['loss'].append(train_metrics['loss'])
            self.history['accuracy'].append(train_metrics['accuracy'])
            if val_metrics:
                self.history['val_loss'].append(val_metrics['loss'])
                self.history['val_accuracy'].append(val_metrics['accuracy'])

            if self.training_logger is not None:
                self.training_logger.log_epoch(epoch, train_metrics, val_metrics)

            monitored_loss = val_metrics.get('loss', train_metrics['loss'])
            self.scheduler.step(monitored_loss)

            is_best = False
            if monitored_loss < self.best_val_loss:
                self.best_val_loss = monitored_loss
                is_best = True
                self.patience_counter = 0
            else:
                self.patience_counter += 1

            self.save_checkpoint(is_best=is_best)

            if patience and self.patience_counter >= patience:
                self.logger.info(f'Early stopping after {self.patience_counter} epochs without improvement')
                break

        self.logger.info('Training completed')
        return self.history

    def get_training_summary(self) -> Dict[str, Any]:
        """
        Get training summary.

        Returns:
            Dictionary with training summary
        """
        return {
            'total_epochs': len(self.history['loss']),
            'global_steps': self.global_step,
            'best_val_loss': self.best_val_loss,
            'history': self.history,
            'model_parameters': sum(p.numel() for p in self.model.parameters()),
            'trainable_parameters': sum(p.numel() for p in self.model.parameters() if p.requires_grad)
        }

    def save_training_summary(self, output_path: str) -> None:
        """
        Save training summary to file.

        Args:
            output_path: Path to save summary
        """
        summary = self.get_training_summary()

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(summary, f, indent=2)

        self.logger.info(f'Saved training summary to {output_path}')


def run_tests(model: nn.Module, test_words: Sequence[str], num_tests: int,
              input_fns: Sequence[InputFn] = DEFAULT_INPUT_FNS,
              encoding: EncodingConfig = DEFAULT_ENCODING) -> List[TestRecord]:
    """
    Run inference on the first ``num_tests`` test words in every input format.

    Returns:
        One TestRecord per (word, input format), word-major
    """
    tests = []
    for word in list(test_words)[:num_tests]:
        for input_fn in input_fns:
            input_str = input_fn(word)
            result = run_seq2seq_inference(model, input_str, encoding=encoding)
            tests.append(TestRecord(input_str, word, result.output_str, encoding.output_vocab[PAD_CODE]))
    return tests


def train_model(model: nn.Module, words: Sequence[str], epochs: int, batch_size: int,
                num_tests: int = 20, train_split: float = 0.85, val_split: float = 0.10,
                input_fns: Sequence[InputFn] = DEFAULT_INPUT_FNS,
                encoding: EncodingConfig = DEFAULT_ENCODING, seed: Optional[int] = None,
                learning_rate: float = 0.001, device: Optional[torch.device] = None,
                num_workers: int = 0, config: Optional[Dict[str, Any]] = None,
                training_logger=None) -> Tuple[Dict[str, List[float]], List[TestRecord]]:
    """
    Generate data from a word corpus, train the model and test it.

    Every call re-shuffles and re-partitions the corpus (unless ``seed`` is
    given), so repeated calls with ``epochs=1`` behave like the interactive
    demo's training iterations.

    Args:
        model: Model to train, modified in place
        words: Cyrillic word corpus
        epochs: Number of epochs
        batch_size: Batch size
        num_tests: Number of held-out words to run inference on
        train_split: Training split
        val_split: Validation split
        input_fns: Input formatting functions
        encoding: Vocabularies and fixed lengths
        seed: Shuffle seed; None for a fresh shuffle
        learning_rate: Adam learning rate
        device: Device to train on; defaults to the model's device
        num_workers: DataLoader worker processes
        config: Extra :class:`Trainer` configuration
        training_logger: Optional epoch logger

    Returns:
        Tuple of (history, tests)

    Raises:
        InvalidSplitError: Split fractions out of range
    """
    logger = get_logger(__name__)

    if device is None:
        device = next(model.parameters()).device
    model.to(device)

    data = generate_data_for_training(
        words, train_split, val_split, input_fns=input_fns, encoding=encoding, seed=seed
    )

    train_loader = create_data_loader(
        data.train_encoder_input, data.train_decoder_input, data.train_decoder_output,
        batch_size=batch_size, shuffle=True, num_workers=num_workers
    )
    val_loader = create_data_loader(
        data.val_encoder_input, data.val_decoder_input, data.val_decoder_output,
        batch_size=batch_size, shuffle=False, num_workers=num_workers
    )

    trainer = Trainer(
        model=model,
        train_loader=train_loader,
        val_loader=val_loader,
        optimizer=optim.Adam(model.parameters(), lr=learning_rate),
        criterion=nn.CrossEntropyLoss(),
        device=device,
        config=dict(config or {}),
        training_logger=training_logger
    )
    history = trainer.train(epochs)

    if num_tests > len(data.test_text):
        logger.warning(f'Only {len(data.test_text)} test words available, {num_tests} requested')

    tests = run_tests(model, data.test_text, num_tests, input_fns, encoding)
    logger.info(f'Test word accuracy: {word_accuracy([t.text for t in tests], [t.correct_answer for t in tests]):.4f}')

    return history, tests
