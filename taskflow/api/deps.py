"""
Shared FastAPI dependencies.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core.config import settings
from taskflow.core.database import get_db
from taskflow.core.exceptions import ClassifierError, StoreError, TaskNotFoundError, TaskValidationError
from taskflow.services.classifier import LLMTaskClassifier
from taskflow.services.task_service import TaskService
from taskflow.services.task_store import TaskStore

logger = logging.getLogger(__name__)


def get_owner_id(
    user_id: str = Query(..., min_length=1, max_length=255, description="ID of the user owning the tasks"),
) -> str:
    """Owner of the request, passed explicitly on every call."""
    return user_id


def get_classifier() -> LLMTaskClassifier:
    """Classifier built from the environment LLM settings (model created lazily)."""
    return LLMTaskClassifier(timeout=settings.classifier_timeout)


def get_task_service(
    owner_id: str = Depends(get_owner_id),
    classifier: LLMTaskClassifier = Depends(get_classifier),
    db: AsyncSession = Depends(get_db),
) -> TaskService:
    return TaskService(
        TaskStore(db),
        owner_id,
        classifier=classifier,
        concurrency=settings.auto_categorize_concurrency,
    )


@contextmanager
def translate_errors() -> Iterator[None]:
    """Map service errors onto HTTP responses."""
    try:
        yield
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TaskValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except ClassifierError as e:
        logger.error(f"Classifier unavailable: {e}")
        raise HTTPException(status_code=502, detail=f"Classification failed: {e}")
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
