# Services module
from .classifier import LLMTaskClassifier
from .task_service import TaskService
from .task_store import TaskStore

__all__ = [
    "LLMTaskClassifier",
    "TaskService",
    "TaskStore",
]
