"""
Task Service - entry point for task operations of a single owner.

Combines validation/reconciliation, the owner-scoped store, and the optional
AI classifier:
- Task creation with best-effort AI categorization
- Reconciled updates and quadrant moves (drag-and-drop)
- Batch auto-categorization of uncategorized tasks
- Matrix summary counts
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from taskflow.core.exceptions import TaskNotFoundError, TaskValidationError
from taskflow.models.task import EisenhowerQuadrant, generate_task_id
from taskflow.services.auto_categorizer import AutoCategorizeResult, ClassifyFn, auto_categorize
from taskflow.services.classifier import (
    FALLBACK_PRIORITY,
    ClassificationRequest,
    ClassificationSuggestion,
    fallback_suggestion,
)
from taskflow.services.quadrant_calculator import quadrant_of
from taskflow.services.reconciliation import (
    MATRIX_FIELDS,
    TaskPatch,
    TaskSnapshot,
    coerce_patch,
    reconcile,
)
from taskflow.services.task_store import TaskStore

logger = logging.getLogger(__name__)


class TaskDraft(TaskPatch):
    """Input for creating a task: a patch with a required title plus an AI opt-out."""

    title: str = Field(..., max_length=500)
    skip_ai: bool = False


class AISuggestion(BaseModel):
    """What the classifier (or the fallback) proposed during creation."""

    category: str
    priority: int
    reasoning: str
    urgency: Optional[int] = None
    importance: Optional[int] = None
    quadrant: Optional[EisenhowerQuadrant] = None
    fallback: bool = False


class TaskCreation(BaseModel):
    """Created task plus the suggestion used to populate it, if any."""

    task: TaskSnapshot
    ai_suggestion: Optional[AISuggestion] = None


class TaskService:
    """
    Task operations for one owner.

    The owner id is passed in explicitly and scopes every store call.
    """

    def __init__(
        self,
        store: TaskStore,
        owner_id: str,
        classifier: Optional[ClassifyFn] = None,
        concurrency: int = 1,
    ):
        """
        Args:
            store: Owner-scoped task persistence
            owner_id: Owner of every task this service touches
            classifier: Async callable returning a ClassificationSuggestion for a task
            concurrency: Tasks classified at once during auto-categorization
        """
        if not owner_id:
            raise ValueError("owner_id is required")
        self.store = store
        self.owner_id = owner_id
        self.classifier = classifier
        self.concurrency = concurrency

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_task(
        self,
        draft: Union[TaskDraft, Mapping[str, Any]],
        classify: Optional[ClassifyFn] = None,
    ) -> TaskCreation:
        """
        Create a task, asking the classifier for category/priority/scores.

        Classification is skipped when ``skip_ai`` is set, when both category
        and priority are supplied, or when no classifier is available. A
        classifier failure falls back to the default suggestion; it never
        fails creation.

        Raises:
            TaskValidationError: If the draft is invalid
        """
        draft = self._coerce_draft(draft)
        classify = classify or self.classifier

        fields = draft.model_fields_set - {"skip_ai"}
        values: Dict[str, Any] = {name: getattr(draft, name) for name in fields}

        ai_suggestion = None
        if self._should_classify(draft, classify):
            ai_suggestion = await self._suggest(draft, classify)

            if not draft.category:
                values["category"] = ai_suggestion.category
            if "priority" not in fields:
                values["priority"] = ai_suggestion.priority
            if ai_suggestion.urgency is not None and not (fields & MATRIX_FIELDS):
                values["urgency"] = ai_suggestion.urgency
                values["importance"] = ai_suggestion.importance

        now = datetime.now(timezone.utc)
        blank = TaskSnapshot(
            id=generate_task_id(),
            owner_id=self.owner_id,
            title=draft.title,
            created_at=now,
            updated_at=now,
        )
        task = reconcile(blank, values, now=now)
        saved = await self.store.create(task)
        return TaskCreation(task=saved, ai_suggestion=ai_suggestion)

    @staticmethod
    def _coerce_draft(draft: Union[TaskDraft, Mapping[str, Any]]) -> TaskDraft:
        if isinstance(draft, TaskDraft):
            return draft
        try:
            return TaskDraft.model_validate(dict(draft))
        except ValidationError as e:
            raise TaskValidationError(str(e), errors=e.errors()) from e

    @staticmethod
    def _should_classify(draft: TaskDraft, classify: Optional[ClassifyFn]) -> bool:
        if draft.skip_ai or classify is None:
            return False
        has_category = bool(draft.category)
        has_priority = "priority" in draft.model_fields_set
        return not (has_category and has_priority)

    async def _suggest(self, draft: TaskDraft, classify: ClassifyFn) -> AISuggestion:
        request = ClassificationRequest(
            title=draft.title,
            description=draft.description,
            due_date=draft.due_date,
        )
        try:
            raw = await classify(request)
            if isinstance(raw, ClassificationSuggestion):
                suggestion = raw
            else:
                suggestion = ClassificationSuggestion.model_validate(raw)
        except Exception as e:
            # Creation must not depend on the classifier being up
            logger.warning(f"AI categorization failed, using defaults: {e}")
            fallback = fallback_suggestion()
            return AISuggestion(
                category=fallback.category,
                priority=fallback.priority,
                reasoning=fallback.reasoning,
                fallback=True,
            )

        return AISuggestion(
            category=suggestion.category,
            priority=suggestion.priority or FALLBACK_PRIORITY,
            reasoning=suggestion.reasoning,
            urgency=suggestion.urgency,
            importance=suggestion.importance,
            quadrant=quadrant_of(suggestion.urgency, suggestion.importance),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_task(self, task_id: str) -> TaskSnapshot:
        task = await self.store.get(task_id, self.owner_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def list_tasks(
        self,
        quadrant: Optional[EisenhowerQuadrant] = None,
        completed: Optional[bool] = None,
        uncategorized: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[TaskSnapshot]:
        return await self.store.list(
            self.owner_id,
            quadrant=quadrant,
            completed=completed,
            uncategorized=uncategorized,
            limit=limit,
            offset=offset,
        )

    async def count_tasks(
        self,
        quadrant: Optional[EisenhowerQuadrant] = None,
        completed: Optional[bool] = None,
        uncategorized: Optional[bool] = None,
    ) -> int:
        return await self.store.count(
            self.owner_id,
            quadrant=quadrant,
            completed=completed,
            uncategorized=uncategorized,
        )

    async def matrix_summary(self) -> Dict[str, int]:
        """Task counts per quadrant, plus uncategorized and total."""
        counts = await self.store.quadrant_counts(self.owner_id)
        summary = {quadrant.value: counts.get(quadrant, 0) for quadrant in EisenhowerQuadrant}
        summary["total"] = sum(counts.values())
        summary["uncategorized"] = await self.store.count(self.owner_id, uncategorized=True)
        return summary

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def update_task(
        self,
        task_id: str,
        patch: Union[TaskPatch, Mapping[str, Any]],
    ) -> TaskSnapshot:
        """
        Apply a partial update through reconciliation and save it.

        Raises:
            TaskValidationError: If the patch is invalid (checked before any I/O)
            TaskNotFoundError: If the task doesn't exist for this owner
        """
        patch = coerce_patch(patch)
        existing = await self.get_task(task_id)
        reconciled = reconcile(existing, patch)

        saved = await self.store.update(task_id, self.owner_id, reconciled.mutable_values())
        if saved is None:
            raise TaskNotFoundError(task_id)
        return saved

    async def move_to_quadrant(
        self,
        task_id: str,
        quadrant: Union[EisenhowerQuadrant, str],
    ) -> TaskSnapshot:
        """Move a task into a quadrant, resetting its scores to the canonical pair."""
        return await self.update_task(task_id, {"quadrant": quadrant})

    async def delete_task(self, task_id: str) -> None:
        if not await self.store.delete(task_id, self.owner_id):
            raise TaskNotFoundError(task_id)

    async def auto_categorize(self, classify: Optional[ClassifyFn] = None) -> AutoCategorizeResult:
        """
        Classify every uncategorized task of this owner, saving each as it completes.

        Classifier failures are reported in ``failed``; store failures propagate.
        """
        classify = classify or self.classifier
        if classify is None:
            raise ValueError("auto_categorize requires a classifier")

        tasks = await self.store.list_uncategorized(self.owner_id)

        # One AsyncSession can't run statements concurrently
        write_lock = asyncio.Lock()

        async def persist(task: TaskSnapshot) -> Optional[TaskSnapshot]:
            async with write_lock:
                return await self.store.update(task.id, self.owner_id, task.mutable_values())

        return await auto_categorize(
            tasks,
            classify,
            persist,
            concurrency=self.concurrency,
        )
