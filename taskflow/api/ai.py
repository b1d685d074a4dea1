"""
AI categorization endpoints (suggestions only, nothing is persisted).
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
import logging

from taskflow.api.deps import get_classifier, translate_errors
from taskflow.services.classifier import (
    CategorySuggestion,
    ClassificationRequest,
    ClassificationSuggestion,
    LLMTaskClassifier,
)
from taskflow.services.quadrant_calculator import quadrant_of

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])


class CategorizeRequest(BaseModel):
    """Request schema for AI categorization."""
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    due_date: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Renew passport",
                "description": "Current one expires next month",
                "due_date": "2025-12-15T17:00:00Z"
            }
        }


@router.post("/categorize", response_model=CategorySuggestion)
async def categorize_task(
    request: CategorizeRequest,
    classifier: LLMTaskClassifier = Depends(get_classifier),
):
    """Suggest a category and a 1-3 priority for a task."""
    with translate_errors():
        return await classifier.categorize(
            ClassificationRequest(title=request.title, description=request.description)
        )


@router.post("/matrix-categorize", response_model=ClassificationSuggestion)
async def matrix_categorize_task(
    request: CategorizeRequest,
    classifier: LLMTaskClassifier = Depends(get_classifier),
):
    """
    Suggest category, urgency, importance and Eisenhower quadrant for a task.

    - **do_first**: Urgent & Important
    - **schedule**: Not Urgent & Important
    - **delegate**: Urgent & Not Important
    - **do_later**: Not Urgent & Not Important

    The returned quadrant always matches the returned urgency/importance.
    """
    with translate_errors():
        suggestion = await classifier.classify(
            ClassificationRequest(
                title=request.title,
                description=request.description,
                due_date=request.due_date,
            )
        )

    derived = quadrant_of(suggestion.urgency, suggestion.importance)
    if derived != suggestion.quadrant:
        logger.warning(f"Overriding model quadrant {suggestion.quadrant.value} with {derived.value}")
        suggestion = suggestion.model_copy(update={"quadrant": derived})
    return suggestion
