# video_recipes/app/pipeline/tier1.py
"""Tier 1: transcript + LLM, seeded with the ingredients Tier 0 found."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Sequence

from video_recipes.app.domain.models import Ingredient, TierResult, VideoMetadata
from video_recipes.app.pipeline.normalizer import has_overlap, merge_ingredients, raw_to_ingredients
from video_recipes.app.pipeline.tier0 import IngredientExtractor
from video_recipes.services.errors import TranscriptUnavailableError

logger = logging.getLogger(__name__)

# Text model pricing (gemini-2.0-flash).
INPUT_COST_PER_TOKEN = 0.10 / 1_000_000
OUTPUT_COST_PER_TOKEN = 0.40 / 1_000_000
DEFAULT_TRANSCRIPT_MAX_CHARS = 30_000

TranscriptFn = Callable[[str], Awaitable[str]]


def score_tier1(merged_count: int, overlap: bool) -> float:
    if merged_count >= 5 and overlap:
        return 0.9
    if merged_count >= 5:
        return 0.8
    if merged_count >= 3:
        return 0.6
    if merged_count >= 1:
        return 0.4
    return 0.0


class Tier1Extractor:
    def __init__(
        self,
        extractor: IngredientExtractor,
        fetch_transcript: TranscriptFn,
        transcript_max_chars: int = DEFAULT_TRANSCRIPT_MAX_CHARS,
    ) -> None:
        self.extractor = extractor
        self.fetch_transcript = fetch_transcript
        self.transcript_max_chars = transcript_max_chars

    async def run(
        self,
        metadata: VideoMetadata,
        previous_ingredients: Sequence[Ingredient],
    ) -> TierResult:
        try:
            transcript = await self.fetch_transcript(metadata.video_id)
        except TranscriptUnavailableError as error:
            logger.info("[Tier 1] %s", error)
            return TierResult.empty(tier=1)

        transcript = transcript.strip()[: self.transcript_max_chars]
        if not transcript:
            logger.info("[Tier 1] Empty transcript for %s", metadata.video_id)
            return TierResult.empty(tier=1)

        extraction = await self.extractor.extract_ingredients(
            transcript, "transcript", previous_ingredients
        )

        ingredients = raw_to_ingredients(extraction.ingredients)
        merged = merge_ingredients(previous_ingredients, ingredients)
        confidence = score_tier1(len(merged), has_overlap(previous_ingredients, ingredients))
        cost = (
            extraction.input_tokens * INPUT_COST_PER_TOKEN
            + extraction.output_tokens * OUTPUT_COST_PER_TOKEN
        )

        logger.info(
            "[Tier 1] confidence=%.2f, ingredients=%d (%d from transcript), cost=$%.4f",
            confidence,
            len(merged),
            len(ingredients),
            cost,
        )

        return TierResult(
            tier=1,
            confidence=confidence,
            ingredients=tuple(merged),
            instructions=tuple(extraction.instructions),
            servings=extraction.servings,
            cost_usd=cost,
            recipe_name=extraction.recipe_name,
        )
