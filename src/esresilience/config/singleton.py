"""
Global configuration singleton.

Holds the Config loaded at startup so loggers and the CLI can reach it
without threading it through every call.
"""

import threading

from esresilience.config.loader import Config


class GlobalConfig:
    """Global configuration singleton manager."""

    _instance: Config | None = None
    _lock = threading.Lock()

    @classmethod
    def set_config(cls, config: Config):
        with cls._lock:
            cls._instance = config

    @classmethod
    def get_config(cls) -> Config | None:
        return cls._instance

    @classmethod
    def reset_config(cls):
        """Reset the global config instance (for testing)."""
        with cls._lock:
            cls._instance = None


def get_config() -> Config | None:
    """
    Get the global Config instance.

    Returns:
        Config instance if set, None otherwise
    """
    return GlobalConfig.get_config()
