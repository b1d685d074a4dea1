"""
Quadrant Calculator Service

Rule-based Eisenhower Matrix quadrant assignment from urgency and importance
scores on a 1-3 scale.
"""

from typing import Any, Tuple

from taskflow.core.exceptions import TaskValidationError
from taskflow.models.task import EisenhowerQuadrant

VALID_SCORES = (1, 2, 3)


class QuadrantCalculator:
    """
    Map (urgency, importance) pairs to Eisenhower quadrants and back.

    Only a score of 3 counts as "high"; 1 and 2 both count as low, so the
    3x3 score space collapses onto the four quadrants. The inverse mapping
    returns canonical scores and is lossy: scores_of(quadrant_of(2, 3)) is
    (1, 3), not (2, 3).
    """

    HIGH_THRESHOLD = 3

    CANONICAL_SCORES = {
        EisenhowerQuadrant.DO_FIRST: (3, 3),
        EisenhowerQuadrant.SCHEDULE: (1, 3),
        EisenhowerQuadrant.DELEGATE: (3, 1),
        EisenhowerQuadrant.DO_LATER: (1, 1),
    }

    @staticmethod
    def quadrant_of(urgency: int, importance: int) -> EisenhowerQuadrant:
        """
        Determine quadrant from urgency and importance scores.

        Args:
            urgency: Urgency score (1-3)
            importance: Importance score (1-3)

        Returns:
            EisenhowerQuadrant for the pair

        Raises:
            TaskValidationError: If either score is outside 1-3
        """
        QuadrantCalculator.validate_score("urgency", urgency)
        QuadrantCalculator.validate_score("importance", importance)

        urgent = urgency >= QuadrantCalculator.HIGH_THRESHOLD
        important = importance >= QuadrantCalculator.HIGH_THRESHOLD

        if urgent and important:
            return EisenhowerQuadrant.DO_FIRST
        elif not urgent and important:
            return EisenhowerQuadrant.SCHEDULE
        elif urgent and not important:
            return EisenhowerQuadrant.DELEGATE
        else:
            return EisenhowerQuadrant.DO_LATER

    @staticmethod
    def scores_of(quadrant: EisenhowerQuadrant | str) -> Tuple[int, int]:
        """
        Canonical (urgency, importance) for a quadrant.

        Used when a task is moved into a quadrant without explicit scores.

        Raises:
            TaskValidationError: If quadrant is not one of the four literals
        """
        try:
            quadrant = EisenhowerQuadrant(quadrant)
        except ValueError:
            raise TaskValidationError(f"Unknown quadrant: {quadrant!r}")
        return QuadrantCalculator.CANONICAL_SCORES[quadrant]

    @staticmethod
    def validate_score(name: str, value: Any) -> None:
        if isinstance(value, bool) or value not in VALID_SCORES:
            raise TaskValidationError(f"{name} must be one of 1, 2, 3 (got {value!r})")

    @staticmethod
    def needs_categorization(task: Any) -> bool:
        """True when the task is missing its quadrant or either axis score."""
        return task.quadrant is None or task.urgency is None or task.importance is None

    @staticmethod
    def is_consistent(task: Any) -> bool:
        """True unless both axes are set and the quadrant disagrees with them."""
        if task.urgency is None or task.importance is None:
            return True
        return task.quadrant == QuadrantCalculator.quadrant_of(task.urgency, task.importance)


quadrant_of = QuadrantCalculator.quadrant_of
scores_of = QuadrantCalculator.scores_of
needs_categorization = QuadrantCalculator.needs_categorization
is_consistent = QuadrantCalculator.is_consistent
