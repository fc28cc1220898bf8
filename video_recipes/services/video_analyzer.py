from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from video_recipes.app.domain.models import Ingredient, LLMExtractionResponse
from video_recipes.app.pipeline.normalizer import summarize_for_prompt
from video_recipes.services.extraction import EXTRACTION_SCHEMA
from video_recipes.services.gemini_client import GeminiClient, video_contents
from video_recipes.services.ids import youtube_watch_url
from video_recipes.services.llm_parsing import parse_extraction_response

logger = logging.getLogger(__name__)

_VIDEO_PROMPT = """Watch this cooking video carefully. Extract ALL ingredients and step-by-step cooking instructions by observing:
1. What the cook says (spoken ingredients, quantities, instructions)
2. What is shown on screen (ingredient labels, measuring, packages)
3. Any on-screen text or recipe cards displayed
4. The sequence of cooking steps performed

Return every ingredient with quantities when visible or mentioned.
Also extract every cooking instruction in order, each step shown or described, including durations, temperatures, and techniques.
If the recipe name or serving count is mentioned or shown, include those.

Return JSON matching this schema:
{schema}{previous}"""


@dataclass(frozen=True)
class EmptyResultRetryPolicy:
    """Re-ask the model when it returns no ingredients.

    A retry's output replaces the previous one only if it has ingredients.
    ``max_retries=0`` disables retrying.
    """
    max_retries: int = 1

    def should_retry(self, extraction: LLMExtractionResponse, retries_done: int) -> bool:
        return not extraction.ingredients and retries_done < self.max_retries

    @staticmethod
    def accept(current: LLMExtractionResponse, candidate: LLMExtractionResponse) -> bool:
        return bool(candidate.ingredients)


@dataclass
class VideoAnalysisResult:
    extraction: LLMExtractionResponse
    input_tokens: int
    output_tokens: int


def build_video_prompt(previous_ingredients: Sequence[Ingredient]) -> str:
    previous = ""
    if previous_ingredients:
        previous = (
            "\n\nPrevious tiers already identified these ingredients. "
            "Verify and supplement them:\n"
            f"{summarize_for_prompt(previous_ingredients)}"
        )
    return _VIDEO_PROMPT.format(schema=EXTRACTION_SCHEMA, previous=previous)


class VideoAnalyzer:
    """Native video understanding: the model watches the YouTube URL directly."""

    def __init__(
        self,
        client: GeminiClient,
        retry_policy: EmptyResultRetryPolicy | None = None,
    ) -> None:
        self.client = client
        self.retry_policy = retry_policy or EmptyResultRetryPolicy()

    async def _attempt(self, contents) -> LLMExtractionResponse:
        response = await self.client.generate_json(contents)
        extraction = parse_extraction_response(response.text)
        extraction.input_tokens = response.input_tokens
        extraction.output_tokens = response.output_tokens
        return extraction

    async def analyze_video(
        self,
        video_id: str,
        previous_ingredients: Sequence[Ingredient],
    ) -> VideoAnalysisResult:
        contents = video_contents(
            youtube_watch_url(video_id),
            build_video_prompt(previous_ingredients),
        )

        extraction = await self._attempt(contents)

        retries = 0
        while self.retry_policy.should_retry(extraction, retries):
            retries += 1
            logger.info("Video %s: empty ingredients, retry %d", video_id, retries)
            candidate = await self._attempt(contents)
            if self.retry_policy.accept(extraction, candidate):
                extraction = candidate

        # Usage reported is the kept answer's only.
        return VideoAnalysisResult(
            extraction=extraction,
            input_tokens=extraction.input_tokens,
            output_tokens=extraction.output_tokens,
        )
