"""Transaction store package."""

from finance_tracker.store.aggregates import compute_aggregates, format_amount
from finance_tracker.store.transaction_store import (
    OperationInProgressError,
    TransactionStore,
)

__all__ = [
    "OperationInProgressError",
    "TransactionStore",
    "compute_aggregates",
    "format_amount",
]
