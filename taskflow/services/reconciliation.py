"""
Update reconciliation for tasks.

Merges a validated partial update into a task while keeping the quadrant
consistent with the urgency/importance scores. Everything here is pure: no
database access, no clock reads beyond the default ``now``.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError,
    field_validator,
    model_validator,
)

from taskflow.core.exceptions import TaskValidationError
from taskflow.models.task import EisenhowerQuadrant
from taskflow.services.classifier import ClassificationSuggestion
from taskflow.services.quadrant_calculator import quadrant_of, scores_of

logger = logging.getLogger(__name__)

MATRIX_FIELDS = frozenset({"urgency", "importance", "quadrant"})
AXIS_FIELDS = frozenset({"urgency", "importance"})
NON_NULLABLE_FIELDS = ("title", "completed", "priority", "urgency", "importance", "quadrant")


class TaskSnapshot(BaseModel):
    """Immutable view of a task as stored."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    owner_id: str
    title: str
    description: Optional[str] = None
    completed: bool = False
    priority: int = 1
    category: Optional[str] = None
    urgency: Optional[int] = None
    importance: Optional[int] = None
    quadrant: Optional[EisenhowerQuadrant] = None
    due_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def mutable_values(self) -> dict:
        """Columns a store update may write (identity and created_at excluded)."""
        return self.model_dump(exclude={"id", "owner_id", "created_at"})


class TaskPatch(BaseModel):
    """
    Partial update with a closed field set.

    Only fields explicitly supplied count as present (``model_fields_set``);
    unknown fields are rejected. ``description``, ``category`` and ``due_date``
    may be cleared with null, the other fields may not.
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[StrictInt] = Field(None, ge=1, le=3)
    category: Optional[str] = Field(None, max_length=255)
    urgency: Optional[StrictInt] = Field(None, ge=1, le=3)
    importance: Optional[StrictInt] = Field(None, ge=1, le=3)
    quadrant: Optional[EisenhowerQuadrant] = None
    due_date: Optional[datetime] = None

    @field_validator(*NON_NULLABLE_FIELDS, mode="before")
    @classmethod
    def reject_null(cls, value: Any, info) -> Any:
        if value is None:
            raise ValueError(f"{info.field_name} may not be null")
        return value

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title may not be empty")
        return value

    @model_validator(mode="after")
    def check_quadrant_matches_axes(self) -> "TaskPatch":
        """A quadrant sent together with explicit scores must agree with them."""
        fields = self.model_fields_set
        if "quadrant" not in fields or not (fields & AXIS_FIELDS):
            return self

        canonical_urgency, canonical_importance = scores_of(self.quadrant)
        urgency = self.urgency if "urgency" in fields else canonical_urgency
        importance = self.importance if "importance" in fields else canonical_importance
        if quadrant_of(urgency, importance) != self.quadrant:
            raise ValueError(
                f"quadrant {self.quadrant.value} contradicts urgency={urgency}, importance={importance}"
            )
        return self

    @property
    def touches_matrix(self) -> bool:
        return bool(self.model_fields_set & MATRIX_FIELDS)


def _format_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "patch"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def coerce_patch(patch: Union[TaskPatch, Mapping[str, Any]]) -> TaskPatch:
    """Validate a raw mapping into a TaskPatch, raising TaskValidationError."""
    if isinstance(patch, TaskPatch):
        return patch
    try:
        return TaskPatch.model_validate(dict(patch))
    except ValidationError as e:
        raise TaskValidationError(_format_errors(e), errors=e.errors()) from e


def reconcile(
    existing: TaskSnapshot,
    patch: Union[TaskPatch, Mapping[str, Any]],
    now: Optional[datetime] = None,
) -> TaskSnapshot:
    """
    Apply ``patch`` to ``existing`` and return the reconciled task.

    Rules, in order:
    1. Every field present in the patch overwrites the existing value.
    2. A quadrant without both scores resets the missing score(s) to the
       quadrant's canonical values.
    3. Both scores without a quadrant derive the quadrant.
    4. A single score keeps the other from ``existing`` and re-derives the
       quadrant once both scores are known.
    5. A patch that touches none of the three leaves them as they are
       (a stored quadrant that contradicts stored scores is re-derived).
    6. ``updated_at`` is set to ``now``.

    Raises:
        TaskValidationError: If the patch is invalid; ``existing`` is never modified.
    """
    patch = coerce_patch(patch)
    fields = patch.model_fields_set
    changes = {name: getattr(patch, name) for name in fields}

    urgency = changes.get("urgency", existing.urgency)
    importance = changes.get("importance", existing.importance)
    quadrant = changes.get("quadrant", existing.quadrant)

    if "quadrant" in fields and not AXIS_FIELDS <= fields:
        canonical_urgency, canonical_importance = scores_of(quadrant)
        if "urgency" not in fields:
            urgency = canonical_urgency
        if "importance" not in fields:
            importance = canonical_importance
    elif urgency is not None and importance is not None:
        derived = quadrant_of(urgency, importance)
        if derived != quadrant and not patch.touches_matrix:
            logger.warning(
                f"Task {existing.id} stored quadrant {quadrant} contradicts "
                f"urgency={urgency}, importance={importance}; re-deriving {derived.value}"
            )
        quadrant = derived

    changes.update(urgency=urgency, importance=importance, quadrant=quadrant)
    changes["updated_at"] = now or datetime.now(timezone.utc)

    return existing.model_copy(update=changes)


def suggestion_patch(suggestion: ClassificationSuggestion) -> TaskPatch:
    """
    Turn a classifier suggestion into a patch.

    The scores are authoritative; the suggested quadrant is only compared
    against them, never written directly.
    """
    derived = quadrant_of(suggestion.urgency, suggestion.importance)
    if suggestion.quadrant != derived:
        logger.warning(
            f"Classifier quadrant {suggestion.quadrant.value} disagrees with "
            f"urgency={suggestion.urgency}, importance={suggestion.importance}; using {derived.value}"
        )

    values = {
        "category": suggestion.category,
        "urgency": suggestion.urgency,
        "importance": suggestion.importance,
    }
    if suggestion.priority is not None:
        values["priority"] = suggestion.priority
    return TaskPatch(**values)
