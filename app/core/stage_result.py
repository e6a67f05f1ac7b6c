"""Explicit success/failure results returned by stage extractors."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from app.core.exceptions import GenerationServiceError, PipelineError, ResponseParseError

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Why a stage extractor could not produce entities."""

    GENERATION_FAILED = "generation_failed"
    RESPONSE_UNPARSEABLE = "response_unparseable"


@dataclass(frozen=True)
class StageOk(Generic[T]):
    """Stage produced a value."""

    value: T


@dataclass(frozen=True)
class StageErr:
    """Stage failed; carries the original error for re-raising."""

    kind: ErrorKind
    message: str
    error: PipelineError

    @classmethod
    def from_error(cls, error: PipelineError) -> "StageErr":
        """Classify a pipeline error into a stage failure."""
        if isinstance(error, ResponseParseError):
            kind = ErrorKind.RESPONSE_UNPARSEABLE
        elif isinstance(error, GenerationServiceError):
            kind = ErrorKind.GENERATION_FAILED
        else:
            raise TypeError(f"Unsupported stage error: {type(error).__name__}")
        return cls(kind=kind, message=str(error), error=error)


StageResult = StageOk | StageErr
