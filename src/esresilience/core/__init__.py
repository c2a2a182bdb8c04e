"""
Core retry engines for bulk writes, searches and single round trips.
"""

from esresilience.core.bulk import BULK_OVERLOAD_WARNING, BulkFilterResult, BulkWriteEngine, filter_bulk_response
from esresilience.core.retry import RetryManager, RetryPolicy, RetryState
from esresilience.core.search import SearchEngine, ShardFailureReport

__all__ = [
    "BulkWriteEngine",
    "BulkFilterResult",
    "filter_bulk_response",
    "BULK_OVERLOAD_WARNING",
    "SearchEngine",
    "ShardFailureReport",
    "RetryManager",
    "RetryPolicy",
    "RetryState",
]
