"""
Task CRUD API endpoints with AI categorization and Eisenhower matrix support.
"""
from datetime import datetime
from typing import Optional, List
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
import logging

from taskflow.api.deps import get_task_service, translate_errors
from taskflow.models.task import EisenhowerQuadrant
from taskflow.services.task_service import AISuggestion, TaskDraft, TaskService
from taskflow.services.reconciliation import TaskPatch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


# Pydantic schemas for request/response validation
class TaskCreate(TaskDraft):
    """Request schema for creating a task."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Finish quarterly report",
                "description": "Complete Q4 financial report and submit to management",
                "due_date": "2025-12-15T17:00:00Z",
                "skip_ai": False,
            }
        }
    )


class TaskUpdate(TaskPatch):
    """Request schema for updating a task. Only supplied fields are applied."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Updated task title",
                "completed": True,
                "urgency": 3,
            }
        }
    )


class QuadrantUpdate(BaseModel):
    """Request schema for moving a task between quadrants."""
    quadrant: EisenhowerQuadrant = Field(..., description="Target quadrant for the task")

    class Config:
        json_schema_extra = {
            "example": {
                "quadrant": "schedule"
            }
        }


class TaskResponse(BaseModel):
    """Response schema for task data."""
    id: str
    owner_id: str
    title: str
    description: Optional[str]
    completed: bool
    priority: int
    category: Optional[str]
    urgency: Optional[int]
    importance: Optional[int]
    quadrant: Optional[EisenhowerQuadrant]
    due_date: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": "5f0c3c1e9a7b4d2f8e6a1b3c5d7e9f01",
                "owner_id": "user_123",
                "title": "Finish quarterly report",
                "description": "Complete Q4 financial report",
                "completed": False,
                "priority": 3,
                "category": "Work",
                "urgency": 3,
                "importance": 3,
                "quadrant": "do_first",
                "due_date": "2025-12-15T17:00:00Z",
                "created_at": "2025-12-10T10:00:00Z",
                "updated_at": "2025-12-10T10:00:00Z"
            }
        }


class TaskCreateResponse(BaseModel):
    """Created task plus the AI suggestion used (if any)."""
    task: TaskResponse
    ai_suggestion: Optional[AISuggestion] = None


class TaskListResponse(BaseModel):
    """Response schema for list of tasks."""
    tasks: List[TaskResponse]
    total: int


class MatrixSummaryResponse(BaseModel):
    """Task counts per Eisenhower quadrant."""
    do_first: int
    schedule: int
    delegate: int
    do_later: int
    uncategorized: int
    total: int


class AutoCategorizeResponse(BaseModel):
    """Response schema for batch auto-categorization."""
    updated_count: int
    failed_count: int
    updated: List[TaskResponse]
    failed: List[str]
    message: str

    class Config:
        json_schema_extra = {
            "example": {
                "updated_count": 2,
                "failed_count": 1,
                "updated": [],
                "failed": ["9d2f6a0b1c3e4f5a6b7c8d9e0f1a2b3c"],
                "message": "Categorized 2 tasks, 1 failed"
            }
        }


@router.post("", response_model=TaskCreateResponse, status_code=201)
async def create_task(
    task_data: TaskCreate,
    service: TaskService = Depends(get_task_service),
):
    """
    Create a new task.

    Unless `skip_ai` is set or both `category` and `priority` are given, the
    task is categorized by the AI classifier first. If the classifier is
    unavailable the task is still created with default category/priority.
    """
    with translate_errors():
        creation = await service.create_task(task_data)

    logger.info(f"Created task {creation.task.id} (ai_suggestion={creation.ai_suggestion is not None})")
    return creation


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    quadrant: Optional[EisenhowerQuadrant] = Query(None, description="Filter by Eisenhower quadrant"),
    completed: Optional[bool] = Query(None, description="Filter by completion"),
    uncategorized: Optional[bool] = Query(None, description="Only tasks missing quadrant/urgency/importance"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of tasks to return"),
    offset: int = Query(0, ge=0, description="Number of tasks to skip"),
    service: TaskService = Depends(get_task_service),
):
    """
    List the user's tasks (oldest first) with optional filtering.

    Query parameters:
    - user_id: Required - owner of the tasks
    - quadrant: Optional - do_first, schedule, delegate, do_later
    - completed: Optional - true/false
    - uncategorized: Optional - true for tasks not yet placed in the matrix
    - limit / offset: pagination
    """
    with translate_errors():
        tasks = await service.list_tasks(
            quadrant=quadrant,
            completed=completed,
            uncategorized=uncategorized,
            limit=limit,
            offset=offset,
        )
        total = await service.count_tasks(
            quadrant=quadrant,
            completed=completed,
            uncategorized=uncategorized,
        )

    return TaskListResponse(tasks=tasks, total=total)


@router.get("/matrix", response_model=MatrixSummaryResponse)
async def get_matrix_summary(
    service: TaskService = Depends(get_task_service),
):
    """Count the user's tasks in each Eisenhower quadrant."""
    with translate_errors():
        summary = await service.matrix_summary()
    return MatrixSummaryResponse(**summary)


@router.post("/auto-categorize", response_model=AutoCategorizeResponse)
async def auto_categorize_tasks(
    service: TaskService = Depends(get_task_service),
):
    """
    Categorize all of the user's uncategorized tasks with the AI classifier.

    Tasks are saved one by one as they are categorized. Tasks the classifier
    fails on are left untouched and listed in `failed`; the request itself
    still succeeds.
    """
    with translate_errors():
        result = await service.auto_categorize()

    if not result.updated and not result.failed:
        message = "All tasks are already categorized"
    else:
        message = f"Categorized {result.updated_count} tasks, {result.failed_count} failed"

    return AutoCategorizeResponse(
        updated_count=result.updated_count,
        failed_count=result.failed_count,
        updated=result.updated,
        failed=result.failed,
        message=message,
    )


# ============================================================================
# SINGLE TASK OPERATIONS
# ============================================================================


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    """
    Get a single task by ID.

    Returns 404 if the task doesn't exist or belongs to another user.
    """
    with translate_errors():
        return await service.get_task(task_id)


@router.put("/{task_id}", response_model=TaskResponse)
@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    task_update: TaskUpdate,
    service: TaskService = Depends(get_task_service),
):
    """
    Update a task. Only fields provided in the request are changed.

    Urgency, importance and quadrant are kept consistent:
    - quadrant alone resets urgency/importance to the quadrant's canonical scores
    - urgency and/or importance re-derive the quadrant
    """
    with translate_errors():
        return await service.update_task(task_id, task_update)


@router.patch("/{task_id}/quadrant", response_model=TaskResponse)
async def move_task_to_quadrant(
    task_id: str,
    quadrant_update: QuadrantUpdate,
    service: TaskService = Depends(get_task_service),
):
    """
    Move a task into a quadrant (matrix drag-and-drop).

    Urgency and importance are reset to the quadrant's canonical scores.
    """
    with translate_errors():
        task = await service.move_to_quadrant(task_id, quadrant_update.quadrant)

    logger.info(f"Task {task_id} moved to {quadrant_update.quadrant.value}")
    return task


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    """
    Delete a task permanently.

    Returns 204 No Content on success, 404 if task not found.
    """
    with translate_errors():
        await service.delete_task(task_id)
    return None
