"""
Failure classification.

Sorts transport failures and bulk item outcomes into a closed set of
categories that decide whether a retry chain waits and tries again, treats
the outcome as success, or gives up.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from elasticsearch import ConnectionError as TransportConnectionError

# Admission-control rejection: the cluster's queues are full
REJECTED_EXECUTION = "es_rejected_execution_exception"

# Transport found no node to send the request to
NO_LIVING_CONNECTIONS = "No Living connections"

DOCUMENT_EXISTS_STATUS = 409
DOCUMENT_ALREADY_EXISTS = "document_already_exists_exception"
DOCUMENT_MISSING = "document_missing_exception"

IGNORABLE_ITEM_ERRORS = frozenset({DOCUMENT_ALREADY_EXISTS, DOCUMENT_MISSING})


class FailureCategory(StrEnum):
    """Outcome of classifying a failure."""

    RETRIABLE_OVERLOAD = "retriable_overload"
    RETRIABLE_CONNECTION = "retriable_connection"
    IGNORABLE_CONFLICT = "ignorable_conflict"
    FATAL = "fatal"


@dataclass(frozen=True)
class ClassifiedFailure:
    category: FailureCategory
    reason: str

    @property
    def retriable(self) -> bool:
        return self.category in (FailureCategory.RETRIABLE_OVERLOAD, FailureCategory.RETRIABLE_CONNECTION)


@dataclass(frozen=True)
class BulkItemOutcome:
    """
    One entry of a bulk response.

    ``position`` is the item's index in the response, which is also the
    index of its action/payload pair in the request (``2 * position`` and
    ``2 * position + 1``).
    """

    position: int
    action: str
    status: int | None
    error_type: str | None = None
    error_reason: str | None = None

    @classmethod
    def from_item(cls, position: int, item: Mapping[str, Any]) -> "BulkItemOutcome":
        # Keyed by the action name (index, create, update, delete)
        action, result = next(iter(item.items()), ("", None))
        if not isinstance(result, Mapping):
            return cls(position, action, None)
        error = result.get("error")
        if isinstance(error, Mapping):
            return cls(position, action, result.get("status"), error.get("type"), error.get("reason"))
        if error is not None:
            return cls(position, action, result.get("status"), str(error), None)
        return cls(position, action, result.get("status"))

    @property
    def failed(self) -> bool:
        return self.error_type is not None


def _structured_error(err: Any) -> Mapping[str, Any] | None:
    """Find the cluster-reported ``{type, reason}`` descriptor, if any."""
    if isinstance(err, Mapping):
        body: Any = err
    else:
        body = None
        for attr in ("body", "info"):
            candidate = getattr(err, attr, None)
            if isinstance(candidate, Mapping):
                body = candidate
                break
        if body is None:
            error_type = getattr(err, "error", None)
            if isinstance(error_type, str):
                return {"type": error_type}
            return None

    error = body.get("error")
    if isinstance(error, Mapping):
        return error
    if isinstance(error, str):
        return {"type": error}
    if "type" in body:
        return body
    return None


def _message(err: Any) -> str:
    message = getattr(err, "message", None)
    if isinstance(message, str):
        return message
    if isinstance(err, BaseException):
        return str(err)
    if isinstance(err, str):
        return err
    return ""


def parse_error(err: Any) -> str:
    """
    Extract a human-readable reason from a failure. Never raises.

    Structured cluster errors render as ``type: reason``; transport errors as
    their message.
    """
    try:
        error = _structured_error(err)
        if error is not None:
            error_type = error.get("type")
            reason = error.get("reason")
            if error_type and reason:
                return f"{error_type}: {reason}"
            if error_type or reason:
                return str(error_type or reason)
        message = _message(err)
        if message:
            return message
        return repr(err)
    except Exception:
        return object.__repr__(err)


def classify(err: Any) -> ClassifiedFailure:
    """
    Classify a transport failure. Total: never raises, unknown shapes are fatal.

    Returns:
        RETRIABLE_OVERLOAD for an admission-control rejection,
        RETRIABLE_CONNECTION when no cluster node is reachable,
        FATAL for everything else
    """
    try:
        reason = parse_error(err)

        error = _structured_error(err)
        if error is not None and error.get("type") == REJECTED_EXECUTION:
            return ClassifiedFailure(FailureCategory.RETRIABLE_OVERLOAD, reason)

        if isinstance(err, TransportConnectionError) or NO_LIVING_CONNECTIONS in _message(err):
            return ClassifiedFailure(FailureCategory.RETRIABLE_CONNECTION, reason)

        return ClassifiedFailure(FailureCategory.FATAL, reason)
    except Exception:
        return ClassifiedFailure(FailureCategory.FATAL, object.__repr__(err))


def classify_bulk_item(outcome: BulkItemOutcome) -> ClassifiedFailure | None:
    """
    Classify one bulk item.

    Returns:
        None for a successful item, IGNORABLE_CONFLICT for create-if-absent
        and missing-document outcomes, RETRIABLE_OVERLOAD for rejected items,
        FATAL (reason ``type--reason``) for anything else
    """
    if not outcome.failed:
        return None

    if outcome.status == DOCUMENT_EXISTS_STATUS or outcome.error_type in IGNORABLE_ITEM_ERRORS:
        return ClassifiedFailure(FailureCategory.IGNORABLE_CONFLICT, outcome.error_type or "")

    if outcome.error_type == REJECTED_EXECUTION:
        return ClassifiedFailure(FailureCategory.RETRIABLE_OVERLOAD, REJECTED_EXECUTION)

    return ClassifiedFailure(FailureCategory.FATAL, f"{outcome.error_type}--{outcome.error_reason}")
