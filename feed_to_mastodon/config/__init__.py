"""Configuration loading."""
from .settings import DEFAULT_CONFIG_TEXT, Config, load_config

__all__ = ["Config", "DEFAULT_CONFIG_TEXT", "load_config"]
