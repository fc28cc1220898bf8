from __future__ import annotations

import asyncio
import json

from video_recipes.app.domain.models import LLMExtractionResponse, RawIngredient
from video_recipes.app.pipeline.normalizer import raw_to_ingredients
from video_recipes.services.gemini_client import GeminiResponse
from video_recipes.services.video_analyzer import (
    EmptyResultRetryPolicy,
    VideoAnalyzer,
    build_video_prompt,
)


def _body(*names: str) -> str:
    return json.dumps({
        "recipe_name": "Tacos",
        "ingredients": [{"name": n, "raw_text": n} for n in names],
        "instructions": [],
    })


class StubGeminiClient:
    def __init__(self, responses: list[GeminiResponse]):
        self.responses = list(responses)
        self.calls: list = []

    async def generate_json(self, contents):
        self.calls.append(contents)
        return self.responses.pop(0)


class TestRetryPolicy:
    def test_retries_only_empty_results(self) -> None:
        policy = EmptyResultRetryPolicy(max_retries=1)
        empty = LLMExtractionResponse()
        full = LLMExtractionResponse(ingredients=[RawIngredient(name="salt")])

        assert policy.should_retry(empty, 0)
        assert not policy.should_retry(empty, 1)
        assert not policy.should_retry(full, 0)
        assert policy.accept(empty, full)
        assert not policy.accept(full, empty)


class TestBuildVideoPrompt:
    def test_includes_previous_ingredients(self) -> None:
        previous = raw_to_ingredients([RawIngredient(name="tortillas", quantity=8)])

        prompt = build_video_prompt(previous)

        assert "- tortillas (8)" in prompt
        assert '"ingredients"' in prompt

    def test_no_previous_section_without_context(self) -> None:
        assert "Previous tiers" not in build_video_prompt([])


class TestVideoAnalyzer:
    def test_first_answer_with_ingredients_is_used(self) -> None:
        client = StubGeminiClient([GeminiResponse(_body("beef", "onion"), 1000, 200)])

        result = asyncio.run(VideoAnalyzer(client).analyze_video("abcdefghijk", []))

        assert len(client.calls) == 1
        assert [i.name for i in result.extraction.ingredients] == ["beef", "onion"]
        assert (result.input_tokens, result.output_tokens) == (1000, 200)

    def test_retries_once_on_empty_answer(self) -> None:
        client = StubGeminiClient([
            GeminiResponse(_body(), 1000, 50),
            GeminiResponse(_body("beef"), 1000, 150),
        ])

        result = asyncio.run(VideoAnalyzer(client).analyze_video("abcdefghijk", []))

        assert len(client.calls) == 2
        assert [i.name for i in result.extraction.ingredients] == ["beef"]
        assert (result.input_tokens, result.output_tokens) == (1000, 150)

    def test_empty_retry_keeps_first_answer(self) -> None:
        client = StubGeminiClient([
            GeminiResponse(_body(), 1000, 50),
            GeminiResponse(_body(), 1000, 40),
        ])

        result = asyncio.run(VideoAnalyzer(client).analyze_video("abcdefghijk", []))

        assert len(client.calls) == 2
        assert result.extraction.ingredients == []
        assert result.extraction.output_tokens == 50
        assert (result.input_tokens, result.output_tokens) == (1000, 50)

    def test_zero_retries_disables_retrying(self) -> None:
        client = StubGeminiClient([GeminiResponse(_body(), 1000, 50)])
        analyzer = VideoAnalyzer(client, EmptyResultRetryPolicy(max_retries=0))

        result = asyncio.run(analyzer.analyze_video("abcdefghijk", []))

        assert len(client.calls) == 1
        assert result.extraction.ingredients == []

    def test_sends_the_watch_url(self) -> None:
        client = StubGeminiClient([GeminiResponse(_body("beef"), 1, 1)])

        asyncio.run(VideoAnalyzer(client).analyze_video("abcdefghijk", []))

        video_part = client.calls[0].parts[0]
        assert video_part.file_data.file_uri == "https://www.youtube.com/watch?v=abcdefghijk"
