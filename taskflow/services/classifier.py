"""
LangChain-based task classifier.

Asks the configured chat model for a category plus Eisenhower urgency and
importance scores. The model is treated as an opaque, fallible service: any
failure, including a reply that doesn't match the expected schema, is raised
as ClassifierError so callers can fall back or skip the task.
"""

import asyncio
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from taskflow.core.config import settings
from taskflow.core.exceptions import ClassifierError
from taskflow.core.llm_config import LLMSettings
from taskflow.core.llm_factory import get_llm
from taskflow.models.task import EisenhowerQuadrant

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).parent.parent / "prompts"

SYSTEM_MESSAGE = (
    "You are a task categorization assistant. "
    "Respond ONLY with a single JSON object and no other text."
)

FALLBACK_CATEGORY = "General"
FALLBACK_PRIORITY = 1
FALLBACK_REASONING = "default, classifier unavailable"

SuggestionT = TypeVar("SuggestionT", bound=BaseModel)


class ClassificationRequest(BaseModel):
    """What the classifier sees of a task."""

    model_config = ConfigDict(from_attributes=True)

    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    due_date: Optional[datetime] = None


class ClassificationSuggestion(BaseModel):
    """Eisenhower matrix categorization returned by the classifier."""

    model_config = ConfigDict(populate_by_name=True)

    category: str = Field(..., min_length=1, max_length=255)
    urgency: int = Field(..., ge=1, le=3)
    importance: int = Field(..., ge=1, le=3)
    quadrant: EisenhowerQuadrant = Field(
        ..., validation_alias=AliasChoices("quadrant", "matrix_quadrant")
    )
    priority: Optional[int] = Field(None, ge=1, le=3)
    reasoning: str


class CategorySuggestion(BaseModel):
    """Plain category + priority suggestion (no matrix scores)."""

    category: str = Field(..., min_length=1, max_length=255)
    priority: int = Field(..., ge=1, le=3)
    reasoning: str


def fallback_suggestion() -> CategorySuggestion:
    """Default used when the classifier can't be reached."""
    return CategorySuggestion(
        category=FALLBACK_CATEGORY,
        priority=FALLBACK_PRIORITY,
        reasoning=FALLBACK_REASONING,
    )


def load_prompt_template(name: str, version: str = "v1") -> str:
    """Load versioned prompt template from file"""
    prompt_path = PROMPTS_DIR / f"{name}_{version}.txt"
    if not prompt_path.exists():
        raise FileNotFoundError(f"Prompt file not found: {prompt_path}")
    return prompt_path.read_text()


def _message_text(content: Any) -> str:
    """Flatten LangChain message content (str or list of parts) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts)
    return str(content or "")


def parse_json_payload(text: str) -> Dict[str, Any]:
    """
    Extract a JSON object from a model reply.

    Accepts bare JSON, fenced ```json blocks, and JSON embedded in prose.

    Raises:
        ClassifierError: If no JSON object can be recovered
    """
    if not text or not text.strip():
        raise ClassifierError("Received empty response from classifier")

    cleaned = text.strip()
    fenced = re.search(r"```(?:json)?\s*(.*?)```", cleaned, re.DOTALL)
    if fenced:
        cleaned = fenced.group(1).strip()

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        # Try to find a JSON object inside extra text
        json_match = re.search(r"\{.*\}", cleaned, re.DOTALL)
        if not json_match:
            raise ClassifierError(f"Could not parse classifier response as JSON: {text[:200]}")
        try:
            payload = json.loads(json_match.group())
        except json.JSONDecodeError as e:
            raise ClassifierError(f"Could not parse classifier response as JSON: {text[:200]}") from e

    if not isinstance(payload, dict):
        raise ClassifierError(f"Expected a JSON object from classifier, got {type(payload).__name__}")
    return payload


class LLMTaskClassifier:
    """
    Multi-provider task classifier using LangChain.

    The chat model is created lazily so that a missing API key surfaces as a
    ClassifierError on first use rather than at construction.
    """

    def __init__(
        self,
        llm: Optional[BaseChatModel] = None,
        llm_settings: Optional[LLMSettings] = None,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            llm: Pre-configured chat model. If None, built from llm_settings/environment.
            llm_settings: Provider configuration used when llm is None
            timeout: Seconds to wait for one model call (defaults to settings.classifier_timeout)
        """
        self._llm = llm
        self.llm_settings = llm_settings
        self.timeout = timeout if timeout is not None else settings.classifier_timeout

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            try:
                self._llm = get_llm(self.llm_settings)
            except (ValueError, ValidationError) as e:
                raise ClassifierError(f"LLM provider not configured: {e}") from e
        return self._llm

    async def __call__(self, request: Any) -> ClassificationSuggestion:
        return await self.classify(request)

    async def classify(self, request: Any) -> ClassificationSuggestion:
        """
        Suggest category, urgency, importance, quadrant and priority for a task.

        Args:
            request: ClassificationRequest, mapping, or any object with title/description/due_date

        Raises:
            ClassifierError: On any failure, including schema mismatch
        """
        request = self._coerce_request(request)
        prompt = load_prompt_template("matrix_categorize").format(
            title=request.title,
            description=request.description or "No description provided",
            due_date=request.due_date.date().isoformat() if request.due_date else "No due date specified",
        )
        payload = await self._invoke(prompt)
        return self._validate(ClassificationSuggestion, payload)

    async def categorize(self, request: Any) -> CategorySuggestion:
        """Suggest a category and 1-3 priority (no matrix scores)."""
        request = self._coerce_request(request)
        prompt = load_prompt_template("categorize").format(
            title=request.title,
            description=request.description or "No description provided",
        )
        payload = await self._invoke(prompt)
        return self._validate(CategorySuggestion, payload)

    @staticmethod
    def _coerce_request(request: Any) -> ClassificationRequest:
        if isinstance(request, ClassificationRequest):
            return request
        try:
            return ClassificationRequest.model_validate(request, from_attributes=True)
        except ValidationError as e:
            raise ClassifierError(f"Invalid classification request: {e}") from e

    async def _invoke(self, prompt: str) -> Dict[str, Any]:
        messages = [
            SystemMessage(content=SYSTEM_MESSAGE),
            HumanMessage(content=prompt),
        ]
        llm = self.llm

        try:
            response = await asyncio.wait_for(llm.ainvoke(messages), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ClassifierError(f"Classifier timed out after {self.timeout}s") from e
        except Exception as e:
            raise ClassifierError(f"Classifier call failed: {e}") from e

        llm_text = _message_text(response.content)
        logger.debug(f"Classifier response: {llm_text[:200]}")
        return parse_json_payload(llm_text)

    @staticmethod
    def _validate(schema: Type[SuggestionT], payload: Dict[str, Any]) -> SuggestionT:
        try:
            return schema.model_validate(payload)
        except ValidationError as e:
            raise ClassifierError(f"Classifier response failed validation: {e}") from e
