"""
Task model with AI categorization results and Eisenhower matrix classification.
"""
import uuid

from sqlalchemy import Column, String, Text, DateTime, Integer, Boolean, Enum as SQLEnum
from sqlalchemy.sql import func
from enum import Enum
from taskflow.core.database import Base


class EisenhowerQuadrant(str, Enum):
    """Eisenhower matrix quadrants."""
    DO_FIRST = "do_first"  # Urgent & Important
    SCHEDULE = "schedule"  # Not Urgent, Important
    DELEGATE = "delegate"  # Urgent, Not Important
    DO_LATER = "do_later"  # Neither


def generate_task_id() -> str:
    return uuid.uuid4().hex


class Task(Base):
    """Todo item owned by a single user."""

    __tablename__ = "tasks"

    # Primary Key
    id = Column(String(32), primary_key=True, default=generate_task_id)

    # Ownership (opaque id from the auth provider)
    owner_id = Column(String(255), nullable=False, index=True)

    # Basic Task Info
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=True, index=True)

    # Legacy priority (1=low, 2=medium, 3=high), independent of the matrix
    priority = Column(Integer, default=1, nullable=False)
    category = Column(String(255), nullable=True)

    # Eisenhower Matrix
    urgency = Column(Integer, nullable=True)  # 1-3
    importance = Column(Integer, nullable=True)  # 1-3
    quadrant = Column(
        SQLEnum(
            EisenhowerQuadrant,
            name="eisenhower_quadrant",
            values_callable=lambda quadrants: [q.value for q in quadrants],
        ),
        nullable=True,
        index=True,
    )

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Task(id={self.id}, title='{self.title[:30]}...', quadrant={self.quadrant})>"
