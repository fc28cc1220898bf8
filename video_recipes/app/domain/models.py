# video_recipes/app/domain/models.py
"""
Domain models for the tiered extraction pipeline.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from video_recipes.app.domain.errors import InvalidJobTransitionError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Status enum for extraction jobs."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


@dataclass(frozen=True)
class VideoMetadata:
    video_id: str
    title: str
    description: str
    channel: str
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class RawIngredient:
    """An ingredient as returned by the model, before normalization."""
    name: str
    quantity: Optional[float] = None
    unit: Optional[str] = None
    raw_text: str = ""
    optional: bool = False
    preparation: Optional[str] = None


@dataclass(frozen=True)
class Ingredient:
    name: str
    canonical_name: str
    category: str
    quantity: Optional[float] = None
    unit: Optional[str] = None
    raw_text: str = ""
    optional: bool = False
    preparation: Optional[str] = None


@dataclass(frozen=True)
class Instruction:
    step_number: int
    text: str
    duration: Optional[str] = None
    temperature: Optional[str] = None
    technique: Optional[str] = None


@dataclass
class LLMExtractionResponse:
    """Decoded structured-extraction response plus the token usage of the call."""
    recipe_name: Optional[str] = None
    servings: Optional[int] = None
    ingredients: list[RawIngredient] = field(default_factory=list)
    instructions: list[Instruction] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class TierResult:
    """Output of one tier invocation."""
    tier: int
    confidence: float
    ingredients: tuple[Ingredient, ...] = ()
    instructions: tuple[Instruction, ...] = ()
    servings: Optional[int] = None
    source_urls: tuple[str, ...] = ()
    cost_usd: float = 0.0
    recipe_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.tier not in (0, 1, 2):
            raise ValueError(f"Unknown tier: {self.tier}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence out of range: {self.confidence}")
        if self.cost_usd < 0:
            raise ValueError(f"Negative cost: {self.cost_usd}")

    @classmethod
    def empty(cls, tier: int, confidence: float = 0.0) -> "TierResult":
        return cls(tier=tier, confidence=confidence)

    def with_source_urls(self, source_urls: tuple[str, ...]) -> "TierResult":
        return replace(self, source_urls=source_urls)


@dataclass(frozen=True)
class SwapRequest:
    """An ingredient to substitute, with optional recipe context and constraints."""
    ingredient: str
    quantity: Optional[float] = None
    unit: Optional[str] = None
    recipe_context: Optional[str] = None
    dietary_filters: tuple[str, ...] = ()
    available_ingredients: tuple[str, ...] = ()


@dataclass(frozen=True)
class SwapSuggestion:
    substitute_name: str
    quantity_ratio: float = 1.0
    quantity_note: Optional[str] = None
    confidence: float = 0.5
    dietary_tags: tuple[str, ...] = ()
    notes: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["dietary_tags"] = list(self.dietary_tags)
        return data


@dataclass(frozen=True)
class ProcessingMetadata:
    tiers_attempted: tuple[int, ...]
    total_cost_usd: float
    processing_time_ms: int


@dataclass(frozen=True)
class ExtractionResult:
    """Final artifact of a pipeline run."""
    video_id: str
    video_title: str
    channel: str
    extraction_tier: int
    confidence: float
    servings: Optional[int]
    ingredients: tuple[Ingredient, ...]
    instructions: tuple[Instruction, ...]
    shopping_list: dict[str, list[str]]
    source_urls: tuple[str, ...]
    processing_metadata: ProcessingMetadata
    recipe_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["ingredients"] = [asdict(item) for item in self.ingredients]
        data["instructions"] = [asdict(step) for step in self.instructions]
        data["source_urls"] = list(self.source_urls)
        data["processing_metadata"]["tiers_attempted"] = list(
            self.processing_metadata.tiers_attempted
        )
        return data


@dataclass
class Job:
    """
    An extraction job.

    Owned by whichever task runs its pipeline. Status moves
    queued -> processing -> completed | failed and terminal states are final.
    """
    id: str
    video_id: str
    youtube_url: str = ""
    status: JobStatus = JobStatus.QUEUED
    current_tier: int = 0
    progress: float = 0.0
    result: Optional[ExtractionResult] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def is_complete(self) -> bool:
        """Check if job has finished processing (successfully or not)."""
        return self.status in TERMINAL_STATUSES

    def _transition(self, target: JobStatus, *allowed_from: JobStatus) -> None:
        if self.status not in allowed_from:
            raise InvalidJobTransitionError(self.id, self.status.value, target.value)
        self.status = target
        self.updated_at = _utcnow()

    def mark_processing(self) -> None:
        self._transition(JobStatus.PROCESSING, JobStatus.QUEUED)

    def complete(self, result: ExtractionResult) -> None:
        self._transition(JobStatus.COMPLETED, JobStatus.PROCESSING)
        self.result = result
        self.progress = 1.0

    def fail(self, message: str) -> None:
        self._transition(JobStatus.FAILED, JobStatus.QUEUED, JobStatus.PROCESSING)
        self.error = message

    def advance(self, tier: int, progress: float) -> None:
        """Record the tier being worked on. Progress never goes backwards."""
        if self.is_complete:
            raise InvalidJobTransitionError(self.id, self.status.value, self.status.value)
        self.current_tier = tier
        self.progress = max(self.progress, min(progress, 1.0))
        self.updated_at = _utcnow()
