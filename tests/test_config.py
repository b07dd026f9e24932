"""
Tests for configuration and logging utilities.
"""

import logging
import os
import sys
import tempfile

import pytest
import torch

# Add repository root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from cyrillize.trainer import TestRecord
from cyrillize.utils.config import Config, load_config
from cyrillize.utils.logging import TrainingLogger, get_logger, setup_logging


class TestConfig:
    """Test cases for Config."""

    def test_defaults(self):
        """Test default configuration values."""
        config = Config()

        assert config.model.rnn_type == 'lstm'
        assert config.model.embedding_dim == 64
        assert config.data.train_split == 0.85
        assert config.data.val_split == 0.10
        assert config.data.shuffle_seed is None
        assert config.device in ('cpu', 'cuda')

    def test_from_dict(self):
        """Test building a configuration from nested sections."""
        config = Config.from_dict({
            'model': {'rnn_type': 'gru', 'hidden_dim': 32},
            'training': {'epochs': 3},
            'seed': 7,
            'device': 'cpu'
        })

        assert config.model.rnn_type == 'gru'
        assert config.model.hidden_dim == 32
        assert config.model.embedding_dim == 64
        assert config.training.epochs == 3
        assert config.seed == 7

    def test_unknown_keys(self):
        """Test that unknown keys are rejected."""
        with pytest.raises(ValueError):
            Config.from_dict({'optimizer': 'adam'})
        with pytest.raises(TypeError):
            Config.from_dict({'model': {'d_model': 512}})

    def test_yaml_round_trip(self):
        """Test saving and loading YAML."""
        config = Config.from_dict({'training': {'batch_size': 20}, 'device': 'cpu'})

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, 'config.yaml')
            config.to_yaml(path)
            loaded = load_config(path)

        assert loaded == config

    def test_repository_config(self):
        """Test that the shipped config.yaml loads."""
        path = os.path.join(os.path.dirname(__file__), '..', 'config.yaml')
        config = load_config(path)

        assert config.training.num_tests == 20
        assert config.data.ambiguity_json_path == 'data/bg.json'

    def test_load_config(self):
        """Test default and missing configurations."""
        assert load_config(None) == Config()
        with pytest.raises(FileNotFoundError):
            load_config('/nonexistent/config.yaml')

    def test_make_dirs(self):
        """Test output directory creation."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config = Config.from_dict({
                'checkpoint_dir': os.path.join(tmpdir, 'ckpt'),
                'results_dir': os.path.join(tmpdir, 'results'),
                'logging': {'log_dir': os.path.join(tmpdir, 'logs')}
            })
            config.make_dirs()

            assert os.path.isdir(config.checkpoint_dir)
            assert os.path.isdir(config.results_dir)
            assert os.path.isdir(config.logging.log_dir)


class TestLogging:
    """Test cases for the logging utilities."""

    def setup_method(self):
        """Set up test fixtures."""
        self.tmpdir = tempfile.TemporaryDirectory()
        self.config = Config.from_dict({
            'device': 'cpu',
            'logging': {
                'log_dir': self.tmpdir.name,
                'tensorboard': True,
                'wandb': False
            }
        })

    def teardown_method(self):
        """Clean up temporary files."""
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        self.tmpdir.cleanup()

    def test_get_logger(self):
        """Test module loggers."""
        assert get_logger('cyrillize.test').name == 'cyrillize.test'

    def test_logger_backends(self):
        """Test console/file and TensorBoard logging."""
        logger = setup_logging(self.config, 'unit')
        try:
            logger.log_hyperparameters({'hidden_dim': 16})
            TrainingLogger(logger).log_epoch(0, {'loss': 1.0, 'accuracy': 0.5}, {})
            logger.log_test_examples([TestRecord('voda', 'вода', 'вода\n\n')], step=1)
            logger.log_attention_weights(torch.full((18, 21), 1 / 21), 'voda', 'вода', step=1)
        finally:
            logger.close()

        assert logger.wandb_run is None
        assert os.path.exists(os.path.join(self.tmpdir.name, 'unit.log'))
        assert os.path.isdir(os.path.join(self.tmpdir.name, 'tensorboard', 'unit'))
