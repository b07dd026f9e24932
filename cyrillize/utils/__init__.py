"""
Utility modules for the transliteration project.
"""

from .config import Config, load_config
from .logging import setup_logging, get_logger

__all__ = ["Config", "load_config", "setup_logging", "get_logger"]
