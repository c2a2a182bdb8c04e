"""
Typed view of the ``docstore`` config section.

Example config.yaml::

    docstore:
      hosts: ["http://localhost:9200"]
      index: logs-{env}
      full_response: false
      date_field_name: "@timestamp"
      retry:
        max_retries: 50
"""

from dataclasses import dataclass, field, fields
from typing import Any

from esresilience.config.loader import Config
from esresilience.core.retry.policy import RetryPolicy
from esresilience.exceptions import ConfigurationError

DEFAULT_HOSTS = ["http://localhost:9200"]


@dataclass
class DocStoreSettings:
    """Connection and request settings for one document store."""

    hosts: list[str] = field(default_factory=lambda: list(DEFAULT_HOSTS))
    index: str | None = None

    # Return whole search responses instead of the list of _source documents
    full_response: bool = False

    # Used by build_query
    date_field_name: str | None = None
    query: str | None = None
    fields: list[str] | None = None

    request_timeout: float = 30.0
    api_key: str | None = None
    username: str | None = None
    password: str | None = None

    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @classmethod
    def from_config(cls, config: Config | dict[str, Any] | None) -> "DocStoreSettings":
        """
        Build settings from a Config or from the raw ``docstore`` mapping.

        Raises:
            ConfigurationError: If a value has the wrong shape
        """
        if config is None:
            return cls()
        if isinstance(config, Config):
            section = config.get("docstore", {}) or {}
        else:
            section = config

        if not isinstance(section, dict):
            raise ConfigurationError(f"'docstore' must be a mapping, got {type(section).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = set(section) - known
        if unknown:
            raise ConfigurationError(f"Unknown docstore settings: {', '.join(sorted(unknown))}")

        values = dict(section)

        hosts = values.get("hosts", DEFAULT_HOSTS)
        if isinstance(hosts, str):
            hosts = [h.strip() for h in hosts.split(",") if h.strip()]
        if not isinstance(hosts, list) or not hosts:
            raise ConfigurationError("docstore.hosts must be a non-empty list or comma-separated string")
        values["hosts"] = hosts

        fields_value = values.get("fields")
        if isinstance(fields_value, str):
            values["fields"] = [f.strip() for f in fields_value.split(",") if f.strip()]

        values["retry"] = _retry_policy(values.get("retry"))

        try:
            return cls(**values)
        except TypeError as e:
            raise ConfigurationError(f"Invalid docstore settings: {e}") from e


def _retry_policy(section: Any) -> RetryPolicy:
    if section is None:
        return RetryPolicy()
    if isinstance(section, RetryPolicy):
        return section
    if not isinstance(section, dict):
        raise ConfigurationError(f"'docstore.retry' must be a mapping, got {type(section).__name__}")
    try:
        return RetryPolicy(**section)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid docstore.retry settings: {e}") from e
