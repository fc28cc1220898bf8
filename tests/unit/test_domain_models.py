from __future__ import annotations

import pytest

from video_recipes.app.domain.errors import (
    InvalidJobTransitionError,
    JobAlreadyRunningError,
    JobError,
    JobNotFoundError,
)
from video_recipes.app.domain.models import (
    ExtractionResult,
    Instruction,
    Job,
    JobStatus,
    ProcessingMetadata,
    RawIngredient,
    TierResult,
)
from video_recipes.app.pipeline.normalizer import raw_to_ingredients


def _result() -> ExtractionResult:
    ingredients = tuple(raw_to_ingredients([RawIngredient(name="flour", quantity=2, unit="cups")]))
    return ExtractionResult(
        video_id="abcdefghijk",
        video_title="Bread",
        channel="Baker",
        extraction_tier=1,
        confidence=0.8,
        servings=2,
        ingredients=ingredients,
        instructions=(Instruction(step_number=1, text="Knead."),),
        shopping_list={"baking": ["flour"]},
        source_urls=("https://a.com/recipe",),
        processing_metadata=ProcessingMetadata(
            tiers_attempted=(0, 1), total_cost_usd=0.0003, processing_time_ms=1200
        ),
        recipe_name="Country Loaf",
    )


class TestJobStatus:
    def test_job_status_values(self) -> None:
        assert JobStatus.QUEUED.value == "queued"
        assert JobStatus.PROCESSING.value == "processing"
        assert JobStatus.COMPLETED.value == "completed"
        assert JobStatus.FAILED.value == "failed"

    def test_job_status_is_string_enum(self) -> None:
        assert isinstance(JobStatus.QUEUED, str)
        assert JobStatus.QUEUED == "queued"


class TestJob:
    def test_defaults(self) -> None:
        job = Job(id="job_1", video_id="abcdefghijk")

        assert job.status == JobStatus.QUEUED
        assert job.current_tier == 0
        assert job.progress == 0.0
        assert job.result is None
        assert not job.is_complete

    def test_happy_path(self) -> None:
        job = Job(id="job_1", video_id="abcdefghijk")

        job.mark_processing()
        job.complete(_result())

        assert job.status == JobStatus.COMPLETED
        assert job.progress == 1.0
        assert job.result.recipe_name == "Country Loaf"
        assert job.is_complete

    def test_fail_records_error(self) -> None:
        job = Job(id="job_1", video_id="abcdefghijk")
        job.mark_processing()

        job.fail("Video is private")

        assert job.status == JobStatus.FAILED
        assert job.error == "Video is private"

    def test_cannot_complete_without_processing(self) -> None:
        job = Job(id="job_1", video_id="abcdefghijk")

        with pytest.raises(InvalidJobTransitionError) as exc_info:
            job.complete(_result())

        assert exc_info.value.current == "queued"
        assert exc_info.value.target == "completed"

    @pytest.mark.parametrize("finish", ["complete", "fail"])
    def test_terminal_states_are_final(self, finish: str) -> None:
        job = Job(id="job_1", video_id="abcdefghijk")
        job.mark_processing()
        if finish == "complete":
            job.complete(_result())
        else:
            job.fail("boom")

        with pytest.raises(InvalidJobTransitionError):
            job.mark_processing()
        with pytest.raises(InvalidJobTransitionError):
            job.fail("again")
        with pytest.raises(InvalidJobTransitionError):
            job.advance(2, 0.7)

    def test_advance_never_lowers_progress(self) -> None:
        job = Job(id="job_1", video_id="abcdefghijk")

        job.advance(1, 0.5)
        job.advance(1, 0.2)
        job.advance(2, 1.5)

        assert job.current_tier == 2
        assert job.progress == 1.0


class TestTierResult:
    def test_empty(self) -> None:
        result = TierResult.empty(tier=2)
        assert result.confidence == 0.0
        assert result.ingredients == ()
        assert result.cost_usd == 0.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"tier": 3, "confidence": 0.5},
            {"tier": 0, "confidence": 1.2},
            {"tier": 0, "confidence": -0.1},
            {"tier": 1, "confidence": 0.5, "cost_usd": -1.0},
        ],
    )
    def test_rejects_invalid_values(self, kwargs) -> None:
        with pytest.raises(ValueError):
            TierResult(**kwargs)

    def test_with_source_urls_returns_copy(self) -> None:
        original = TierResult(tier=1, confidence=0.8)

        updated = original.with_source_urls(("https://a.com",))

        assert updated.source_urls == ("https://a.com",)
        assert original.source_urls == ()


class TestExtractionResult:
    def test_to_dict_is_json_shaped(self) -> None:
        data = _result().to_dict()

        assert data["video_title"] == "Bread"
        assert data["recipe_name"] == "Country Loaf"
        assert data["ingredients"][0]["canonical_name"] == "flour"
        assert data["ingredients"][0]["category"] == "baking"
        assert data["instructions"] == [
            {"step_number": 1, "text": "Knead.", "duration": None, "temperature": None,
             "technique": None}
        ]
        assert data["source_urls"] == ["https://a.com/recipe"]
        assert data["processing_metadata"] == {
            "tiers_attempted": [0, 1],
            "total_cost_usd": 0.0003,
            "processing_time_ms": 1200,
        }


class TestJobErrors:
    def test_hierarchy(self) -> None:
        assert issubclass(JobNotFoundError, JobError)
        assert issubclass(InvalidJobTransitionError, JobError)
        assert issubclass(JobAlreadyRunningError, JobError)

    def test_messages(self) -> None:
        assert "job_9" in str(JobNotFoundError("job_9"))
        error = JobAlreadyRunningError("job_9", "processing")
        assert error.status == "processing"
        assert "processing" in str(error)
