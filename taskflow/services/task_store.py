"""
Task persistence scoped by owner.

Every query filters on (id, owner_id): a task owned by someone else looks
exactly like a task that doesn't exist.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Mapping, Optional, Any

from sqlalchemy import select, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core.exceptions import StoreError
from taskflow.models.task import Task, EisenhowerQuadrant
from taskflow.services.reconciliation import TaskSnapshot

logger = logging.getLogger(__name__)

UPDATABLE_COLUMNS = frozenset({
    "title",
    "description",
    "completed",
    "priority",
    "category",
    "urgency",
    "importance",
    "quadrant",
    "due_date",
    "updated_at",
})


def _uncategorized_expression():
    """SQL expression matching tasks missing a quadrant or either score."""
    return or_(
        Task.quadrant.is_(None),
        Task.urgency.is_(None),
        Task.importance.is_(None),
    )


class TaskStore:
    """Async SQLAlchemy store for tasks."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _guard(self, action: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Task store failed to {action}: {e}")
            raise StoreError(f"Failed to {action}: {e}") from e

    async def _get_row(self, task_id: str, owner_id: str) -> Optional[Task]:
        result = await self.db.execute(
            select(Task).where(Task.id == task_id, Task.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def get(self, task_id: str, owner_id: str) -> Optional[TaskSnapshot]:
        """Get a task by ID for its owner."""
        async with self._guard(f"load task {task_id}"):
            row = await self._get_row(task_id, owner_id)
        return TaskSnapshot.model_validate(row) if row else None

    @staticmethod
    def _filter(
        query,
        owner_id: str,
        quadrant: Optional[EisenhowerQuadrant] = None,
        completed: Optional[bool] = None,
        uncategorized: Optional[bool] = None,
    ):
        query = query.where(Task.owner_id == owner_id)
        if quadrant:
            query = query.where(Task.quadrant == quadrant)
        if completed is not None:
            query = query.where(Task.completed == completed)
        if uncategorized is True:
            query = query.where(_uncategorized_expression())
        elif uncategorized is False:
            query = query.where(~_uncategorized_expression())
        return query

    async def list(
        self,
        owner_id: str,
        quadrant: Optional[EisenhowerQuadrant] = None,
        completed: Optional[bool] = None,
        uncategorized: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[TaskSnapshot]:
        """List an owner's tasks, oldest first."""
        query = self._filter(select(Task), owner_id, quadrant, completed, uncategorized)
        query = query.order_by(Task.created_at.asc()).limit(limit).offset(offset)

        async with self._guard("list tasks"):
            result = await self.db.execute(query)
            rows = result.scalars().all()
        return [TaskSnapshot.model_validate(row) for row in rows]

    async def list_uncategorized(self, owner_id: str) -> List[TaskSnapshot]:
        """All of an owner's tasks missing a quadrant or score."""
        query = (
            select(Task)
            .where(Task.owner_id == owner_id, _uncategorized_expression())
            .order_by(Task.created_at.asc())
        )
        async with self._guard("list uncategorized tasks"):
            result = await self.db.execute(query)
            rows = result.scalars().all()
        return [TaskSnapshot.model_validate(row) for row in rows]

    async def count(
        self,
        owner_id: str,
        quadrant: Optional[EisenhowerQuadrant] = None,
        completed: Optional[bool] = None,
        uncategorized: Optional[bool] = None,
    ) -> int:
        query = self._filter(select(func.count(Task.id)), owner_id, quadrant, completed, uncategorized)
        async with self._guard("count tasks"):
            result = await self.db.execute(query)
            return result.scalar() or 0

    async def quadrant_counts(self, owner_id: str) -> Dict[Optional[EisenhowerQuadrant], int]:
        """Number of tasks per stored quadrant (None = no quadrant)."""
        query = (
            select(Task.quadrant, func.count(Task.id))
            .where(Task.owner_id == owner_id)
            .group_by(Task.quadrant)
        )
        async with self._guard("count tasks per quadrant"):
            result = await self.db.execute(query)
            return {quadrant: count for quadrant, count in result.all()}

    async def create(self, task: TaskSnapshot) -> TaskSnapshot:
        """Insert a new task."""
        row = Task(**task.model_dump(exclude_none=True))
        async with self._guard("create task"):
            self.db.add(row)
            await self.db.commit()
            await self.db.refresh(row)
        logger.info(f"Created task {row.id} for owner {row.owner_id}")
        return TaskSnapshot.model_validate(row)

    async def update(
        self,
        task_id: str,
        owner_id: str,
        values: Mapping[str, Any],
    ) -> Optional[TaskSnapshot]:
        """
        Write column values to an owner's task.

        Returns None if the task doesn't exist for this owner.
        """
        async with self._guard(f"update task {task_id}"):
            row = await self._get_row(task_id, owner_id)
            if row is None:
                return None

            changed = []
            for column, value in values.items():
                if column not in UPDATABLE_COLUMNS:
                    continue
                if column != "updated_at" and getattr(row, column) != value:
                    changed.append(column)
                setattr(row, column, value)

            if "updated_at" not in values:
                row.updated_at = datetime.now(timezone.utc)

            await self.db.commit()
            await self.db.refresh(row)

        if changed:
            logger.info(f"Updated task {task_id}: {changed}")
        return TaskSnapshot.model_validate(row)

    async def delete(self, task_id: str, owner_id: str) -> bool:
        """Delete an owner's task. Returns False if it doesn't exist for this owner."""
        async with self._guard(f"delete task {task_id}"):
            row = await self._get_row(task_id, owner_id)
            if row is None:
                return False
            await self.db.delete(row)
            await self.db.commit()
        logger.info(f"Deleted task {task_id}")
        return True
