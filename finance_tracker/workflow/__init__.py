"""Confirmation workflow package."""

from finance_tracker.workflow.confirmation import (
    ConfirmationError,
    ConfirmationState,
    ConfirmationWorkflow,
)

__all__ = ["ConfirmationError", "ConfirmationState", "ConfirmationWorkflow"]
