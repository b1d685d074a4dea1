"""
Batch auto-categorization of uncategorized tasks.

Each task is classified on its own and saved as soon as its suggestion has
been reconciled, so a failure late in the batch never undoes tasks that were
already fixed. Classifier failures are recorded and skipped; store failures
propagate.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Optional, Union

from taskflow.core.exceptions import TaskValidationError
from taskflow.services.classifier import ClassificationSuggestion
from taskflow.services.quadrant_calculator import needs_categorization
from taskflow.services.reconciliation import TaskSnapshot, reconcile, suggestion_patch

logger = logging.getLogger(__name__)

ClassifyFn = Callable[[TaskSnapshot], Awaitable[Union[ClassificationSuggestion, Mapping[str, Any]]]]
PersistFn = Callable[[TaskSnapshot], Awaitable[Optional[TaskSnapshot]]]


@dataclass
class AutoCategorizeResult:
    """Outcome of one batch run."""

    updated: List[TaskSnapshot] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


async def _categorize_one(
    task: TaskSnapshot,
    classify: ClassifyFn,
    persist: PersistFn,
    now: Optional[datetime],
) -> Optional[TaskSnapshot]:
    """Classify, reconcile and persist one task. Returns None on classifier failure."""
    try:
        raw = await classify(task)
        if isinstance(raw, ClassificationSuggestion):
            suggestion = raw
        else:
            suggestion = ClassificationSuggestion.model_validate(raw)
        patch = suggestion_patch(suggestion)
    except Exception as e:
        # Any classifier failure (network, timeout, bad schema) only skips this task
        logger.warning(f"Failed to categorize task {task.id}: {e}")
        return None

    try:
        reconciled = reconcile(task, patch, now=now)
    except TaskValidationError as e:
        logger.error(f"Could not apply suggestion to task {task.id}: {e}")
        return None

    saved = await persist(reconciled)
    if saved is None:
        logger.warning(f"Task {task.id} no longer exists; categorization dropped")
        return None

    logger.info(f"Categorized task {task.id} as {saved.quadrant.value if saved.quadrant else None}")
    return saved


async def auto_categorize(
    tasks: Iterable[Any],
    classify: ClassifyFn,
    persist: PersistFn,
    *,
    concurrency: int = 1,
    now: Optional[datetime] = None,
) -> AutoCategorizeResult:
    """
    Categorize every task that is missing its quadrant or a score.

    Args:
        tasks: Tasks (snapshots or ORM rows); already categorized ones are skipped
        classify: Async callable returning a ClassificationSuggestion (or mapping) for a task.
            It is expected to enforce its own timeout.
        persist: Async callable saving a reconciled task; returns None if the task is gone
        concurrency: Number of tasks processed at once (1 = sequential)
        now: Timestamp for updated_at (defaults to the current time per task)

    Returns:
        AutoCategorizeResult with saved tasks in input order and the ids that failed
    """
    pending = [
        task if isinstance(task, TaskSnapshot) else TaskSnapshot.model_validate(task)
        for task in tasks
    ]
    pending = [task for task in pending if needs_categorization(task)]

    result = AutoCategorizeResult()
    if not pending:
        logger.info("No uncategorized tasks to process")
        return result

    logger.info(f"Auto-categorizing {len(pending)} tasks (concurrency={concurrency})")

    if concurrency <= 1:
        outcomes = []
        for task in pending:
            outcomes.append(await _categorize_one(task, classify, persist, now))
    else:
        semaphore = asyncio.Semaphore(concurrency)

        async def run(task: TaskSnapshot) -> Optional[TaskSnapshot]:
            async with semaphore:
                return await _categorize_one(task, classify, persist, now)

        running = [asyncio.create_task(run(task)) for task in pending]
        try:
            outcomes = await asyncio.gather(*running)
        except Exception:
            # Nothing may be classified or saved once the batch has failed
            for job in running:
                job.cancel()
            await asyncio.gather(*running, return_exceptions=True)
            raise

    for task, outcome in zip(pending, outcomes):
        if outcome is None:
            result.failed.append(task.id)
        else:
            result.updated.append(outcome)

    logger.info(
        f"Auto-categorization finished: {result.updated_count} updated, {result.failed_count} failed"
    )
    return result
