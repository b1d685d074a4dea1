# Database models
from taskflow.models.task import Task, EisenhowerQuadrant

__all__ = ["Task", "EisenhowerQuadrant"]
