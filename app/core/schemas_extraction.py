"""
Pydantic schemas for stage extractor outputs.

LLM output is validated leniently: enum-like fields outside their closed
set fall back to a default instead of failing, nulls become empty values
and confidences are clamped to [0, 1]. Only items that cannot stand on
their own (no title, no name, not an object) are rejected.
"""

from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from app.core.logging import get_logger
from app.core.schemas_pipeline import (
    CONFLICT_SEVERITIES,
    DECISION_STATUSES,
    DECISION_TYPES,
    INFLUENCE_LEVELS,
    REQUIREMENT_CATEGORIES,
    REQUIREMENT_PRIORITIES,
    SENTIMENTS,
    TIMELINE_TYPES,
)

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

DEFAULT_CONFIDENCE = 0.7

# Observed decision types outside the closed set that read as business choices
BUSINESS_DECISION_ALIASES = {
    "scope",
    "strategic",
    "strategy",
    "financial",
    "commercial",
    "budget",
    "organizational",
    "organisational",
}


def coerce_choice(value: Any, allowed: tuple[str, ...], default: str) -> str:
    """Lowercased value if it is in `allowed`, else `default`."""
    if isinstance(value, str):
        candidate = value.strip().lower().replace("-", "_").replace(" ", "_")
        if candidate in allowed:
            return candidate
    return default


def coerce_confidence(value: Any, default: float = DEFAULT_CONFIDENCE) -> float:
    """Float in [0, 1]; missing, zero or unreadable values use `default`."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number or number == 0:  # NaN or falsy
        return default
    return max(0.0, min(1.0, number))


def coerce_text(value: Any) -> str:
    """String form of value, empty for None."""
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value)


def coerce_str_list(value: Any) -> list[str]:
    """List of non-empty strings; a bare string becomes a one-item list."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def normalize_decision_type(value: Any) -> str:
    """Map an observed decision type into the closed set."""
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in DECISION_TYPES:
            return candidate
        if candidate in BUSINESS_DECISION_ALIASES:
            return "business"
    return "technical"


class SourceClassification(BaseModel):
    """Relevance classification of one source."""

    relevance: float = 0.5
    type_detected: str | None = None
    summary: str = ""
    has_requirements: bool = False
    has_decisions: bool = False
    has_stakeholders: bool = False
    key_topics: list[str] = Field(default_factory=list)

    @field_validator("relevance", mode="before")
    @classmethod
    def _relevance(cls, value: Any) -> float:
        return coerce_confidence(value, default=0.5)

    @field_validator("summary", mode="before")
    @classmethod
    def _summary(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("has_requirements", "has_decisions", "has_stakeholders", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1")
        return bool(value)

    @field_validator("key_topics", mode="before")
    @classmethod
    def _topics(cls, value: Any) -> list[str]:
        return coerce_str_list(value)


class RequirementCandidate(BaseModel):
    """A requirement as returned by the requirement extractor."""

    title: str = Field(..., min_length=1)
    description: str = ""
    category: str = "functional"
    priority: str = "medium"
    confidence: float = DEFAULT_CONFIDENCE
    source_excerpt: str = ""
    reasoning: str = ""
    tags: list[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("description", "source_excerpt", "reasoning", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value: Any) -> str:
        return coerce_choice(value, REQUIREMENT_CATEGORIES, "functional")

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, value: Any) -> str:
        return coerce_choice(value, REQUIREMENT_PRIORITIES, "medium")

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> float:
        return coerce_confidence(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, value: Any) -> list[str]:
        return coerce_str_list(value)


class StakeholderCandidate(BaseModel):
    """A stakeholder as returned by the stakeholder extractor."""

    name: str = Field(..., min_length=1)
    role: str = "Unknown"
    department: str | None = None
    influence: str = "contributor"
    sentiment: str = "unknown"
    mention_context: str = ""
    concerns: list[str] = Field(default_factory=list)

    @field_validator("name", "mention_context", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, value: Any) -> str:
        return coerce_text(value) or "Unknown"

    @field_validator("department", mode="before")
    @classmethod
    def _department(cls, value: Any) -> str | None:
        return coerce_text(value) or None

    @field_validator("influence", mode="before")
    @classmethod
    def _influence(cls, value: Any) -> str:
        return coerce_choice(value, INFLUENCE_LEVELS, "contributor")

    @field_validator("sentiment", mode="before")
    @classmethod
    def _sentiment(cls, value: Any) -> str:
        return coerce_choice(value, SENTIMENTS, "unknown")

    @field_validator("concerns", mode="before")
    @classmethod
    def _concerns(cls, value: Any) -> list[str]:
        return coerce_str_list(value)


class DecisionCandidate(BaseModel):
    """A decision as returned by the decision extractor."""

    title: str = "Untitled Decision"
    description: str = ""
    type: str = "technical"
    status: str = "proposed"
    made_by: str = ""
    source_excerpt: str = ""
    confidence: float = DEFAULT_CONFIDENCE
    impacted_requirements: list[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> str:
        return coerce_text(value) or "Untitled Decision"

    @field_validator("description", "made_by", "source_excerpt", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, value: Any) -> str:
        return normalize_decision_type(value)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> str:
        return coerce_choice(value, DECISION_STATUSES, "proposed")

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> float:
        return coerce_confidence(value)

    @field_validator("impacted_requirements", mode="before")
    @classmethod
    def _impacted(cls, value: Any) -> list[str]:
        return coerce_str_list(value)


class TimelineCandidate(BaseModel):
    """A timeline event as returned by the timeline extractor."""

    title: str = "Untitled Event"
    description: str = ""
    date: str | None = None
    type: str = "milestone"
    confidence: float = DEFAULT_CONFIDENCE
    source_excerpt: str = ""

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> str:
        return coerce_text(value) or "Untitled Event"

    @field_validator("description", "source_excerpt", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("date", mode="before")
    @classmethod
    def _date(cls, value: Any) -> str | None:
        text = coerce_text(value)
        return None if text.lower() in ("", "null", "none", "n/a", "tbd") else text

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, value: Any) -> str:
        return coerce_choice(value, TIMELINE_TYPES, "milestone")

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> float:
        return coerce_confidence(value)


class ConflictCandidate(BaseModel):
    """A conflict as returned by the conflict detector."""

    title: str = "Untitled Conflict"
    description: str = ""
    severity: str = "minor"
    requirement_ids: list[str] = Field(default_factory=list)
    explanation: str = ""

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> str:
        return coerce_text(value) or "Untitled Conflict"

    @field_validator("description", "explanation", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, value: Any) -> str:
        return coerce_choice(value, CONFLICT_SEVERITIES, "minor")

    @field_validator("requirement_ids", mode="before")
    @classmethod
    def _requirement_ids(cls, value: Any) -> list[str]:
        return [item.upper() for item in coerce_str_list(value)]

    @property
    def full_description(self) -> str:
        """Description with the explanation appended."""
        if not self.explanation:
            return self.description
        return f"{self.description} | {self.explanation}"


def items_from_payload(payload: Any, key: str) -> list[Any]:
    """
    Pull the item array out of a parsed response.

    Accepts `{key: [...]}` or a bare top-level array; anything else yields
    no items.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        items = payload.get(key)
        if isinstance(items, list):
            return items
    return []


def validate_items(raw_items: list[Any], model: type[M], stage: str) -> list[M]:
    """Validate each item independently, skipping the ones that fail."""
    valid: list[M] = []
    for index, item in enumerate(raw_items):
        if not isinstance(item, dict):
            logger.warning(f"Skipping non-object {stage} item at index {index}")
            continue
        try:
            valid.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(
                f"Skipping invalid {stage} item at index {index}: {e.error_count()} error(s)"
            )
    return valid
