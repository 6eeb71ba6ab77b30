"""Configuration module for huddle."""

from huddle.config.loader import load_config, get_config_path
from huddle.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
