"""
Helpers for reading transport responses.

The elasticsearch client returns ApiResponse wrappers whose payload lives on
``.body``; test doubles and older clients return plain dicts.
"""

from collections.abc import Mapping
from typing import Any


def as_mapping(response: Any) -> Mapping[str, Any]:
    """Return the response payload as a mapping (empty when there is none)."""
    if isinstance(response, Mapping):
        return response
    body = getattr(response, "body", None)
    if isinstance(body, Mapping):
        return body
    return {}


def payload(response: Any) -> Any:
    """Return ``.body`` for ApiResponse wrappers, the response itself otherwise."""
    if isinstance(response, Mapping):
        return response
    return getattr(response, "body", response)
