# video_recipes/app/pipeline/tier2.py
"""
Tier 2: native video analysis.

The model watches the video itself, so this catches ingredients that are
only shown on screen. It is the last escalation step and never raises: any
failure turns into an empty, zero-confidence result.
"""
from __future__ import annotations

import logging
from typing import Protocol, Sequence

from video_recipes.app.domain.models import Ingredient, TierResult, VideoMetadata
from video_recipes.app.pipeline.normalizer import has_overlap, merge_ingredients, raw_to_ingredients
from video_recipes.services.video_analyzer import VideoAnalysisResult

logger = logging.getLogger(__name__)

# gemini-2.5-flash pricing
INPUT_COST_PER_TOKEN = 0.30 / 1_000_000
OUTPUT_COST_PER_TOKEN = 2.50 / 1_000_000


class VideoAnalyzerLike(Protocol):
    async def analyze_video(
        self,
        video_id: str,
        previous_ingredients: Sequence[Ingredient],
    ) -> VideoAnalysisResult: ...


def score_tier2(merged_count: int, overlap: bool) -> float:
    if merged_count >= 5 and overlap:
        return 0.92
    if merged_count >= 5:
        return 0.85
    if merged_count >= 3:
        return 0.7
    if merged_count >= 1:
        return 0.55
    return 0.2


def video_cost_usd(input_tokens: int, output_tokens: int) -> float:
    return input_tokens * INPUT_COST_PER_TOKEN + output_tokens * OUTPUT_COST_PER_TOKEN


class Tier2Extractor:
    def __init__(self, analyzer: VideoAnalyzerLike) -> None:
        self.analyzer = analyzer

    async def run(
        self,
        metadata: VideoMetadata,
        previous_ingredients: Sequence[Ingredient],
    ) -> TierResult:
        try:
            return await self._run(metadata, previous_ingredients)
        except Exception:
            logger.exception("[Tier 2] Video analysis failed for %s", metadata.video_id)
            return TierResult.empty(tier=2)

    async def _run(
        self,
        metadata: VideoMetadata,
        previous_ingredients: Sequence[Ingredient],
    ) -> TierResult:
        analysis = await self.analyzer.analyze_video(metadata.video_id, previous_ingredients)
        extraction = analysis.extraction

        ingredients = raw_to_ingredients(extraction.ingredients)
        merged = merge_ingredients(previous_ingredients, ingredients)
        previous_names = {item.canonical_name for item in previous_ingredients}
        new_count = sum(1 for item in ingredients if item.canonical_name not in previous_names)

        confidence = score_tier2(len(merged), has_overlap(previous_ingredients, ingredients))
        cost = video_cost_usd(analysis.input_tokens, analysis.output_tokens)

        logger.info(
            "[Tier 2] confidence=%.2f, %d ingredients extracted (%d new), "
            "tokens: %d in / %d out, cost: $%.4f",
            confidence,
            len(ingredients),
            new_count,
            analysis.input_tokens,
            analysis.output_tokens,
            cost,
        )

        return TierResult(
            tier=2,
            confidence=confidence,
            ingredients=tuple(merged),
            instructions=tuple(extraction.instructions),
            servings=extraction.servings,
            cost_usd=cost,
            recipe_name=extraction.recipe_name,
        )
