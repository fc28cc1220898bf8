from __future__ import annotations

import asyncio

import pytest

from video_recipes.app.domain.models import (
    Instruction,
    LLMExtractionResponse,
    RawIngredient,
    VideoMetadata,
)
from video_recipes.app.pipeline.normalizer import raw_to_ingredients
from video_recipes.app.pipeline.tier2 import Tier2Extractor, score_tier2, video_cost_usd
from video_recipes.services.errors import RateLimitedError
from video_recipes.services.video_analyzer import VideoAnalysisResult


METADATA = VideoMetadata(video_id="abcdefghijk", title="Curry", description="", channel="Chef")


def _previous(*names: str):
    return tuple(raw_to_ingredients([RawIngredient(name=n, raw_text=n) for n in names]))


class StubAnalyzer:
    def __init__(self, names=(), input_tokens=0, output_tokens=0, error=None):
        self.names = names
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.error = error
        self.calls: list[tuple] = []

    async def analyze_video(self, video_id, previous_ingredients):
        self.calls.append((video_id, previous_ingredients))
        if self.error:
            raise self.error
        extraction = LLMExtractionResponse(
            recipe_name="Chickpea Curry",
            ingredients=[RawIngredient(name=n, raw_text=n) for n in self.names],
            instructions=[Instruction(step_number=1, text="Fry the onions.")],
        )
        return VideoAnalysisResult(extraction, self.input_tokens, self.output_tokens)


class TestScoreTier2:
    @pytest.mark.parametrize(
        ("count", "overlap", "expected"),
        [
            (5, True, 0.92),
            (6, False, 0.85),
            (3, True, 0.7),
            (2, False, 0.55),
            (0, False, 0.2),
        ],
    )
    def test_table(self, count: int, overlap: bool, expected: float) -> None:
        assert score_tier2(count, overlap) == expected


class TestVideoCost:
    def test_pricing(self) -> None:
        assert video_cost_usd(1_000_000, 0) == pytest.approx(0.30)
        assert video_cost_usd(0, 1_000_000) == pytest.approx(2.50)


class TestTier2Extractor:
    def test_merges_previous_and_scores(self) -> None:
        analyzer = StubAnalyzer(
            names=("chickpeas", "onion", "garlic", "coconut milk"),
            input_tokens=10_000,
            output_tokens=1_000,
        )
        previous = _previous("onion", "rice")

        result = asyncio.run(Tier2Extractor(analyzer).run(METADATA, previous))

        assert analyzer.calls == [("abcdefghijk", previous)]
        assert result.tier == 2
        assert [i.name for i in result.ingredients] == [
            "onion", "rice", "chickpeas", "garlic", "coconut milk",
        ]
        assert result.confidence == 0.92
        assert result.cost_usd == pytest.approx(10_000 * 0.30 / 1e6 + 1_000 * 2.50 / 1e6)
        assert result.recipe_name == "Chickpea Curry"
        assert [s.text for s in result.instructions] == ["Fry the onions."]

    def test_empty_analysis_scores_floor(self) -> None:
        result = asyncio.run(Tier2Extractor(StubAnalyzer()).run(METADATA, ()))

        assert result.confidence == 0.2
        assert result.ingredients == ()

    @pytest.mark.parametrize("error", [RateLimitedError("quota"), RuntimeError("boom")])
    def test_failures_become_empty_result(self, error: Exception) -> None:
        result = asyncio.run(
            Tier2Extractor(StubAnalyzer(error=error)).run(METADATA, _previous("onion"))
        )

        assert result.tier == 2
        assert result.confidence == 0.0
        assert result.cost_usd == 0.0
        assert result.ingredients == ()
