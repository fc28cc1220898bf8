# video_recipes/app/pipeline/orchestrator.py
"""
Tiered escalation: run tiers cheapest first and stop at the first one whose
confidence clears the threshold.

    metadata -> Tier 0 -> Tier 1 -> Tier 2 -> best-of fallback

Tiers run strictly in order for one job; each may use the previous tier's
ingredients as context.
"""
from __future__ import annotations

import logging
import time
from functools import partial
from typing import Awaitable, Callable, Iterable, Optional, Protocol, Sequence

from video_recipes.app.config import Settings, settings as default_settings
from video_recipes.app.domain.models import (
    ExtractionResult,
    Ingredient,
    Job,
    ProcessingMetadata,
    TierResult,
    VideoMetadata,
)
from video_recipes.app.pipeline.normalizer import build_shopping_list
from video_recipes.app.pipeline.tier0 import Tier0Extractor
from video_recipes.app.pipeline.tier1 import Tier1Extractor
from video_recipes.app.pipeline.tier2 import Tier2Extractor
from video_recipes.services.errors import InvalidURLError
from video_recipes.services.extraction import GeminiIngredientExtractor
from video_recipes.services.gemini_client import GeminiClient
from video_recipes.services.ids import extract_video_id
from video_recipes.services.recipe_scraper import scrape_recipe_page
from video_recipes.services.video_analyzer import EmptyResultRetryPolicy, VideoAnalyzer
from video_recipes.services.youtube import fetch_transcript, fetch_video_metadata

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.7

# Progress checkpoints reported on the job while the pipeline runs.
PROGRESS_METADATA = 0.1
PROGRESS_TIER0 = 0.2
PROGRESS_TIER1 = 0.5
PROGRESS_TIER2 = 0.7
PROGRESS_DONE = 1.0

MetadataFetcher = Callable[[str], Awaitable[VideoMetadata]]


class FirstTier(Protocol):
    async def run(self, metadata: VideoMetadata) -> TierResult: ...


class EscalationTier(Protocol):
    async def run(
        self,
        metadata: VideoMetadata,
        previous_ingredients: Sequence[Ingredient],
    ) -> TierResult: ...


def validate_url(youtube_url: str) -> str:
    """Return the video id of a YouTube URL or raise InvalidURLError."""
    video_id = extract_video_id(youtube_url or "")
    if not video_id:
        raise InvalidURLError(f"Invalid YouTube URL: {youtube_url}")
    return video_id


def merge_source_urls(*tiers: TierResult) -> tuple[str, ...]:
    urls: list[str] = []
    for tier in tiers:
        for url in tier.source_urls:
            if url not in urls:
                urls.append(url)
    return tuple(urls)


def select_best(results: Iterable[TierResult]) -> TierResult:
    """Highest confidence; on a tie the earlier tier stays."""
    best: Optional[TierResult] = None
    for result in results:
        if best is None or result.confidence > best.confidence:
            best = result
    if best is None:
        raise ValueError("select_best() needs at least one tier result")
    return best


def richer_ingredients(tier0: TierResult, tier1: TierResult) -> tuple[Ingredient, ...]:
    """Context for Tier 2: the longer list, Tier 1 on a tie."""
    if len(tier0.ingredients) > len(tier1.ingredients):
        return tier0.ingredients
    return tier1.ingredients


def build_result(
    metadata: VideoMetadata,
    tier: TierResult,
    tiers_attempted: Sequence[int],
    total_cost: float,
    start_time: float,
) -> ExtractionResult:
    return ExtractionResult(
        video_id=metadata.video_id,
        video_title=metadata.title,
        recipe_name=tier.recipe_name,
        channel=metadata.channel,
        extraction_tier=tier.tier,
        confidence=tier.confidence,
        servings=tier.servings,
        ingredients=tier.ingredients,
        instructions=tier.instructions,
        shopping_list=build_shopping_list(tier.ingredients),
        source_urls=tier.source_urls,
        processing_metadata=ProcessingMetadata(
            tiers_attempted=tuple(tiers_attempted),
            total_cost_usd=total_cost,
            processing_time_ms=int((time.monotonic() - start_time) * 1000),
        ),
    )


class ExtractionPipeline:
    """
    Drives the tiers for one job at a time.

    Only ``job.current_tier`` and ``job.progress`` are touched; status,
    result and error belong to the caller. Metadata, Tier 0 and Tier 1
    exceptions propagate.
    """

    def __init__(
        self,
        fetch_metadata: MetadataFetcher,
        tier0: FirstTier,
        tier1: EscalationTier,
        tier2: EscalationTier,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ):
        self.fetch_metadata = fetch_metadata
        self.tier0 = tier0
        self.tier1 = tier1
        self.tier2 = tier2
        self.confidence_threshold = confidence_threshold

    def _accepts(self, result: TierResult) -> bool:
        return result.confidence >= self.confidence_threshold

    async def run(self, job: Job) -> ExtractionResult:
        start_time = time.monotonic()
        tiers_attempted: list[int] = []
        total_cost = 0.0

        job.advance(0, PROGRESS_METADATA)
        metadata = await self.fetch_metadata(job.video_id)

        # --- Tier 0: metadata scrape ---
        job.advance(0, PROGRESS_TIER0)
        tier0 = await self.tier0.run(metadata)
        tiers_attempted.append(0)
        total_cost += tier0.cost_usd

        if self._accepts(tier0):
            job.advance(0, PROGRESS_DONE)
            return build_result(metadata, tier0, tiers_attempted, total_cost, start_time)

        # --- Tier 1: transcript + LLM ---
        job.advance(1, PROGRESS_TIER1)
        tier1 = await self.tier1.run(metadata, tier0.ingredients)
        tiers_attempted.append(1)
        total_cost += tier1.cost_usd

        if self._accepts(tier1):
            job.advance(1, PROGRESS_DONE)
            winner = tier1.with_source_urls(merge_source_urls(tier0, tier1))
            return build_result(metadata, winner, tiers_attempted, total_cost, start_time)

        # --- Tier 2: native video analysis ---
        job.advance(2, PROGRESS_TIER2)
        tier2 = await self.tier2.run(metadata, richer_ingredients(tier0, tier1))
        tiers_attempted.append(2)
        total_cost += tier2.cost_usd

        all_urls = merge_source_urls(tier0, tier1, tier2)
        if self._accepts(tier2):
            job.advance(2, PROGRESS_DONE)
            return build_result(
                metadata, tier2.with_source_urls(all_urls), tiers_attempted, total_cost, start_time
            )

        best = select_best((tier0, tier1, tier2))
        logger.info(
            "[Pipeline] No tier reached %.2f, returning tier %d (confidence %.2f)",
            self.confidence_threshold,
            best.tier,
            best.confidence,
        )
        job.advance(job.current_tier, PROGRESS_DONE)
        return build_result(
            metadata, best.with_source_urls(all_urls), tiers_attempted, total_cost, start_time
        )


def build_default_pipeline(config: Settings = default_settings) -> ExtractionPipeline:
    """Wire the Gemini, YouTube and scraping collaborators from settings."""
    text_client = GeminiClient(
        api_key=config.GEMINI_API_KEY,
        model_name=config.GEMINI_TEXT_MODEL,
        timeout_seconds=config.LLM_TIMEOUT_SECONDS,
    )
    video_client = GeminiClient(
        api_key=config.GEMINI_API_KEY,
        model_name=config.GEMINI_VIDEO_MODEL,
        timeout_seconds=config.LLM_TIMEOUT_SECONDS,
    )
    extractor = GeminiIngredientExtractor(text_client)

    return ExtractionPipeline(
        fetch_metadata=partial(fetch_video_metadata, api_key=config.YOUTUBE_API_KEY),
        tier0=Tier0Extractor(
            extractor=extractor,
            scrape=partial(scrape_recipe_page, timeout=config.SCRAPE_TIMEOUT_SECONDS),
            max_urls=config.MAX_RECIPE_URLS,
        ),
        tier1=Tier1Extractor(
            extractor=extractor,
            fetch_transcript=fetch_transcript,
            transcript_max_chars=config.TRANSCRIPT_MAX_CHARS,
        ),
        tier2=Tier2Extractor(
            VideoAnalyzer(
                video_client,
                EmptyResultRetryPolicy(max_retries=config.TIER2_MAX_RETRIES),
            )
        ),
        confidence_threshold=config.CONFIDENCE_THRESHOLD,
    )


_default_pipeline: ExtractionPipeline | None = None


def get_pipeline() -> ExtractionPipeline:
    global _default_pipeline
    if _default_pipeline is None:
        _default_pipeline = build_default_pipeline()
    return _default_pipeline


async def run_pipeline(job: Job, pipeline: ExtractionPipeline | None = None) -> ExtractionResult:
    return await (pipeline or get_pipeline()).run(job)
