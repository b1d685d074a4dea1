"""
Error taxonomy for task operations.

Validation and not-found errors surface to the caller, classifier errors are
recovered inside the services, store errors propagate unchanged.
"""
from typing import Any, List, Optional


class TaskFlowError(Exception):
    """Base class for all TaskFlow errors."""


class TaskValidationError(TaskFlowError):
    """A create/update payload failed validation; nothing was applied."""

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class TaskNotFoundError(TaskFlowError):
    """Task is missing or belongs to another owner (never distinguished)."""

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class ClassifierError(TaskFlowError):
    """External classification failed or returned an invalid payload."""


class StoreError(TaskFlowError):
    """Persistence layer failure."""
