"""
Logging utilities for the transliteration project.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import torch
from torch.utils.tensorboard import SummaryWriter
import wandb


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; handlers are configured by :class:`Logger`."""
    return logging.getLogger(name)


class Logger:
    """Unified logging interface for TensorBoard and Weights & Biases."""

    def __init__(self, config, experiment_name: Optional[str] = None):
        """Initialize logger with configuration."""
        self.config = config
        self.experiment_name = experiment_name or f"experiment_{int(time.time())}"

        # Setup basic logging
        self._setup_basic_logging()

        # Setup TensorBoard
        self.tensorboard_writer = None
        if config.logging.tensorboard:
            self._setup_tensorboard()

        # Setup Weights & Biases
        self.wandb_run = None
        if config.logging.wandb:
            self._setup_wandb()

    def _setup_basic_logging(self):
        """Setup basic Python logging."""
        log_dir = Path(self.config.logging.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        log_file = log_dir / f"{self.experiment_name}.log"

        logging.basicConfig(
            level=getattr(logging, self.config.logging.log_level),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.FileHandler(log_file, encoding='utf-8'),
                logging.StreamHandler()
            ],
            force=True
        )

        self.logger = get_logger(__name__)
        self.logger.info(f"Logger initialized for experiment: {self.experiment_name}")

    def _setup_tensorboard(self):
        """Setup TensorBoard writer."""
        log_dir = Path(self.config.logging.log_dir) / "tensorboard" / self.experiment_name
        log_dir.mkdir(parents=True, exist_ok=True)

        self.tensorboard_writer = SummaryWriter(log_dir=str(log_dir))
        self.logger.info(f"TensorBoard logging enabled: {log_dir}")

    def _setup_wandb(self):
        """Setup Weights & Biases run."""
        try:
            wandb.init(
                project=self.config.logging.wandb_project,
                entity=self.config.logging.wandb_entity,
                name=self.experiment_name,
                config=self.config.to_dict(),
                reinit=True
            )
            self.wandb_run = wandb.run
            self.logger.info(f"Weights & Biases logging enabled: {wandb.run.url}")
        except Exception as e:
            self.logger.warning(f"Failed to initialize Weights & Biases: {e}")
            self.wandb_run = None

    def log_metrics(self, metrics: Dict[str, float], step: int, prefix: str = ""):
        """Log metrics to all enabled logging backends."""
        prefixed_metrics = {f"{prefix}/{k}" if prefix else k: v for k, v in metrics.items()}

        metric_str = ", ".join([f"{k}: {v:.4f}" for k, v in prefixed_metrics.items()])
        self.logger.info(f"Step {step}: {metric_str}")

        if self.tensorboard_writer:
            for name, value in prefixed_metrics.items():
                self.tensorboard_writer.add_scalar(name, value, step)

        if self.wandb_run:
            wandb.log(prefixed_metrics, step=step)

    def log_attention_weights(self, attention_weights: torch.Tensor,
                              input_str: str, output_str: str, step: int):
        """Log an attention heatmap for one decoded example."""
        if not self.config.logging.save_attention_plots:
            return

        import matplotlib.pyplot as plt
        from .plotting import attention_heatmap

        fig = attention_heatmap(
            attention_weights, input_str, output_str,
            title=f'Attention Weights - Step {step}'
        )

        if self.tensorboard_writer:
            self.tensorboard_writer.add_figure('attention_weights', fig, step)

        if self.wandb_run:
            wandb.log({"attention_weights": wandb.Image(fig)}, step=step)

        plt.close(fig)

    def log_test_examples(self, records: List[Any], step: int):
        """Log transliteration test examples."""
        self.logger.info(f"Test examples at step {step}:")
        for record in records:
            status = 'OK' if record.is_correct else 'WRONG'
            self.logger.info(f"  {record.input_str} -> {record.text} ({status}, expected {record.correct_answer})")

        if self.wandb_run:
            wandb.log({"test_examples": wandb.Table(
                columns=["Input", "Correct", "Output"],
                data=[[r.input_str, r.correct_answer, r.text] for r in records]
            )}, step=step)

    def log_hyperparameters(self, hyperparams: Dict[str, Any]):
        """Log hyperparameters."""
        self.logger.info("Hyperparameters:")
        for key, value in hyperparams.items():
            self.logger.info(f"  {key}: {value}")

        if self.wandb_run:
            wandb.config.update(hyperparams)

    def close(self):
        """Close all logging backends."""
        if self.tensorboard_writer:
            self.tensorboard_writer.close()

        if self.wandb_run:
            wandb.finish()

        self.logger.info("Logger closed")


def setup_logging(config, experiment_name: Optional[str] = None) -> Logger:
    """Setup and return a logger instance."""
    return Logger(config, experiment_name)


class TrainingLogger:
    """Epoch-level adapter between :class:`~cyrillize.trainer.Trainer` and :class:`Logger`."""

    def __init__(self, logger: Logger):
        self.logger = logger
        self.epoch = 0

    def log_epoch(self, epoch: int, train_metrics: Dict[str, float],
                  val_metrics: Dict[str, float]):
        """Log epoch-level metrics."""
        self.epoch = epoch

        self.logger.log_metrics(train_metrics, epoch, prefix="epoch/train")
        if val_metrics:
            self.logger.log_metrics(val_metrics, epoch, prefix="epoch/val")
