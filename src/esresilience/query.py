"""
Search request construction and index settings inspection.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

DEFAULT_MAX_RESULT_WINDOW = 10000

# max_result_window became an index setting in 2.1.0
MIN_WINDOW_VERSION = (2, 1, 0)


def build_range_query(op_config: Mapping[str, Any], msg: Mapping[str, Any]) -> dict[str, Any]:
    """
    Build a bool query from a slice description.

    Adds a date range on ``date_field_name`` when the slice has both ``start``
    and ``end``, a wildcard on ``_uid`` when it has a ``key``, and a
    query_string clause when the reader config has a ``query``.
    """
    must: list[dict[str, Any]] = []

    if msg.get("start") and msg.get("end"):
        must.append({"range": {op_config.get("date_field_name"): {"gte": msg["start"], "lt": msg["end"]}}})

    if msg.get("key"):
        must.append({"wildcard": {"_uid": msg["key"]}})

    if op_config.get("query"):
        must.append({"query_string": {"query": op_config["query"]}})

    return {"query": {"bool": {"must": must}}}


def build_query(op_config: Mapping[str, Any], msg: Mapping[str, Any]) -> dict[str, Any]:
    """
    Build search keyword arguments for one slice.

    Args:
        op_config: Reader config with ``index`` and optional ``date_field_name``,
            ``query`` and ``fields``
        msg: Slice with ``count`` and optional ``start``/``end``/``key``

    Returns:
        Keyword arguments for ``DocStore.search``
    """
    body = build_range_query(op_config, msg)
    body["size"] = msg.get("count")

    if op_config.get("fields"):
        body["_source"] = op_config["fields"]

    return {"index": op_config.get("index"), "body": body}


def with_size(query: Mapping[str, Any], size: int) -> dict[str, Any]:
    """Copy of ``query`` with ``size`` set, inside the body when one is present."""
    body = query.get("body")
    if isinstance(body, Mapping):
        return {**query, "body": {**body, "size": size}}
    return {**query, "size": size}


@dataclass(frozen=True)
class IndexWindow:
    name: str
    window_size: int


@dataclass(frozen=True)
class IndexCheck:
    found: bool
    windows: list[IndexWindow] = field(default_factory=list)


def _window_size(settings: Mapping[str, Any]) -> int:
    index_settings = (settings.get("settings") or {}).get("index") or {}
    value = index_settings.get("max_result_window")
    return int(value) if value else DEFAULT_MAX_RESULT_WINDOW


def verify_index(index_settings: Mapping[str, Any], name: str | None) -> IndexCheck:
    """
    Look up ``name`` in a get-settings response.

    An exact index name wins; otherwise ``name`` is treated as a regular
    expression and every matching index is reported.
    """
    if not name:
        return IndexCheck(found=False)

    if name in index_settings:
        return IndexCheck(found=True, windows=[IndexWindow(name, _window_size(index_settings[name]))])

    try:
        pattern = re.compile(name)
    except re.error:
        return IndexCheck(found=False)

    windows = [
        IndexWindow(key, _window_size(value)) for key, value in index_settings.items() if pattern.search(key)
    ]
    return IndexCheck(found=bool(windows), windows=windows)


def parse_version(version: str) -> tuple[int, ...] | None:
    """Parse ``"7.10.2"`` into ``(7, 10, 2)``; None for anything non-numeric."""
    if not isinstance(version, str):
        return None
    parts = version.split("-", 1)[0].split(".")
    if not all(part.isdigit() for part in parts):
        return None
    return tuple(int(part) for part in parts)


def check_version(version: str) -> bool:
    """Whether the cluster version supports the max_result_window setting."""
    parsed = parse_version(version)
    if parsed is None:
        return False
    # "2.1" compares as 2.1.0
    padded = parsed + (0,) * (len(MIN_WINDOW_VERSION) - len(parsed))
    return padded >= MIN_WINDOW_VERSION
