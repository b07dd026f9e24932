"""
Configuration management for the transliteration project.
"""

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


@dataclass
class ModelConfig:
    """Configuration for the attention seq2seq model."""

    rnn_type: str = "lstm"  # "lstm", "gru"
    embedding_dim: int = 64
    hidden_dim: int = 128
    num_layers: int = 1
    dropout: float = 0.0
    attention_type: str = "dot"  # "dot", "general"


@dataclass
class TrainingConfig:
    """Configuration for training parameters."""

    batch_size: int = 64
    learning_rate: float = 0.001
    epochs: int = 50
    max_grad_norm: float = 1.0
    early_stopping_patience: int = 10
    num_tests: int = 20


@dataclass
class DataConfig:
    """Configuration for data processing."""

    dictionary_path: str = "data/bg.txt"
    train_split: float = 0.85
    val_split: float = 0.10
    shuffle_seed: Optional[int] = None
    ambiguity_listing_path: str = "data/amb.txt"
    ambiguity_json_path: str = "data/bg.json"


@dataclass
class LoggingConfig:
    """Configuration for logging and monitoring."""

    log_level: str = "INFO"
    log_dir: str = "logs"
    tensorboard: bool = True
    wandb: bool = False
    wandb_project: str = "cyrillize"
    wandb_entity: Optional[str] = None
    save_attention_plots: bool = True
    log_interval: int = 100


@dataclass
class Config:
    """Main configuration class."""

    # Sub-configurations
    model: ModelConfig = field(default_factory=ModelConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)
    data: DataConfig = field(default_factory=DataConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # General settings
    seed: int = 42
    device: str = "auto"  # "auto", "cpu", "cuda"
    num_workers: int = 0
    checkpoint_dir: str = "checkpoints"
    results_dir: str = "results"

    def __post_init__(self):
        """Post-initialization setup."""
        if self.device == "auto":
            import torch
            self.device = "cuda" if torch.cuda.is_available() else "cpu"

    def make_dirs(self) -> None:
        """Create output directories."""
        for dir_path in [self.checkpoint_dir, self.results_dir, self.logging.log_dir]:
            Path(dir_path).mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "Config":
        """Build configuration from a nested dictionary."""
        sections = {
            "model": ModelConfig,
            "training": TrainingConfig,
            "data": DataConfig,
            "logging": LoggingConfig,
        }
        known = {f.name for f in fields(cls)}

        kwargs = {}
        for key, value in (config_dict or {}).items():
            if key in sections:
                kwargs[key] = sections[key](**(value or {}))
            elif key in known:
                kwargs[key] = value
            else:
                raise ValueError(f"Unknown configuration key: {key}")

        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, config_path: str) -> "Config":
        """Load configuration from YAML file."""
        with open(config_path, 'r', encoding='utf-8') as f:
            config_dict = yaml.safe_load(f)
        return cls.from_dict(config_dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_yaml(self, config_path: str) -> None:
        """Save configuration to YAML file."""
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, indent=2, sort_keys=False)


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from file or return default."""
    if not config_path:
        return Config()
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    return Config.from_yaml(config_path)
