"""
Configuration file loading.

Loads ``config.yaml`` (plus an optional ``config.{env}.yaml`` overlay) and
exposes it through a Config container.
"""

from pathlib import Path
from typing import Any

import yaml

from esresilience.config.resolver import resolve_config
from esresilience.exceptions import ConfigurationError


class Config:
    """esresilience configuration container with dot-notation lookup."""

    def __init__(self, data: dict[str, Any]):
        self.data = data

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        value = self.data
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def validate(self) -> None:
        """Validate configuration structure."""
        errors = []

        if not isinstance(self.data, dict):
            raise ConfigurationError(f"Configuration must be a dictionary/mapping, got {type(self.data).__name__}")

        for section in ("docstore", "logging"):
            value = self.data.get(section)
            if value is not None and not isinstance(value, dict):
                errors.append(f"Configuration '{section}' must be a dictionary, got {type(value).__name__}")

        retry = (self.data.get("docstore") or {}).get("retry") if isinstance(self.data.get("docstore"), dict) else None
        if retry is not None and not isinstance(retry, dict):
            errors.append(f"Configuration 'docstore.retry' must be a dictionary, got {type(retry).__name__}")

        if errors:
            raise ConfigurationError("\n".join(errors))


def load_config(project_path: Path | None = None, env: str | None = None) -> Config:
    """
    Load esresilience configuration.

    Args:
        project_path: Directory holding config.yaml (default: current directory)
        env: Environment name (dev, staging, prod); selects config.{env}.yaml

    Returns:
        Validated Config with placeholders resolved

    Raises:
        ConfigurationError: If the file is missing or cannot be parsed
    """
    if project_path is None:
        project_path = Path.cwd()

    base_config_path = project_path / "config.yaml"
    if not base_config_path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {base_config_path}\n"
            f"  Suggestion: Create a config.yaml file with a 'docstore' section"
        )

    config_data = _read_yaml(base_config_path)

    if env:
        env_config_path = project_path / f"config.{env}.yaml"
        if env_config_path.exists():
            _merge_dict(config_data, _read_yaml(env_config_path))

    config_data = resolve_config(config_data, env or "dev")

    config = Config(config_data)
    config.validate()
    return config


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            if mark is not None:
                raise ConfigurationError(
                    f"Error parsing {path.name} at line {mark.line + 1}, column {mark.column + 1}:\n"
                    f"  {e}\n"
                    f"  File: {path}"
                ) from e
            raise ConfigurationError(f"Error parsing {path.name}: {e}\n  File: {path}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration must be a dictionary/mapping, got {type(data).__name__}")
    return data


def _merge_dict(base: dict, override: dict):
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value
