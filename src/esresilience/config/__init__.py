"""
Configuration management.

Config file parsing, environment resolution and the docstore settings view.
"""

from esresilience.config.loader import Config, load_config
from esresilience.config.resolver import resolve_config
from esresilience.config.settings import DocStoreSettings
from esresilience.config.singleton import GlobalConfig, get_config

__all__ = [
    "load_config",
    "Config",
    "resolve_config",
    "DocStoreSettings",
    "GlobalConfig",
    "get_config",
]
