"""
Shared test doubles.
"""
from typing import Dict, List, Optional, Set

from taskflow.core.exceptions import ClassifierError
from taskflow.models.task import EisenhowerQuadrant
from taskflow.services.classifier import CategorySuggestion, ClassificationSuggestion


class FakeClassifier:
    """Scripted stand-in for LLMTaskClassifier, keyed by task title."""

    def __init__(self):
        self.default = ClassificationSuggestion(
            category="Work",
            urgency=3,
            importance=3,
            quadrant=EisenhowerQuadrant.DO_FIRST,
            priority=3,
            reasoning="Deadline tomorrow and high impact",
        )
        self.responses: Dict[str, ClassificationSuggestion] = {}
        self.fail_titles: Set[str] = set()
        self.fail_all = False
        self.calls: List[str] = []

    async def __call__(self, request) -> ClassificationSuggestion:
        return await self.classify(request)

    async def classify(self, request) -> ClassificationSuggestion:
        self.calls.append(request.title)
        if self.fail_all or request.title in self.fail_titles:
            raise ClassifierError(f"classifier unavailable for {request.title!r}")
        return self.responses.get(request.title, self.default)

    async def categorize(self, request) -> CategorySuggestion:
        self.calls.append(request.title)
        if self.fail_all or request.title in self.fail_titles:
            raise ClassifierError(f"classifier unavailable for {request.title!r}")
        return CategorySuggestion(category="Personal", priority=2, reasoning="Errand")


def suggestion(urgency: int, importance: int, quadrant: Optional[str] = None, **kwargs) -> ClassificationSuggestion:
    """Build a classifier suggestion; quadrant defaults to do_later."""
    values = {
        "category": "Work",
        "urgency": urgency,
        "importance": importance,
        "quadrant": quadrant or "do_later",
        "reasoning": "test",
    }
    values.update(kwargs)
    return ClassificationSuggestion(**values)
