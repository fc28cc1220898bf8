# video_recipes/app/pipeline/tier0.py
"""
Tier 0: metadata scrape.

1. Pull URLs out of the video description and scrape likely recipe pages
   (JSON-LD first, HTML heuristic second).
2. Parse scraped ingredient lines with the LLM.
3. Without a usable page, send the description itself to the LLM when it
   looks like it lists ingredients.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from video_recipes.app.domain.models import (
    Ingredient,
    Instruction,
    LLMExtractionResponse,
    RawIngredient,
    TierResult,
    VideoMetadata,
)
from video_recipes.app.pipeline.normalizer import raw_to_ingredients
from video_recipes.services.errors import ServiceError
from video_recipes.services.ids import extract_urls
from video_recipes.services.recipe_scraper import ScrapedRecipe, select_recipe_urls

logger = logging.getLogger(__name__)

# ~250 input + 200 output tokens on the text model.
LLM_CALL_COST_USD = 0.0001
DEFAULT_MAX_RECIPE_URLS = 3

INGREDIENT_SIGNALS = (
    "ingredient",
    "recipe",
    "you will need",
    "you'll need",
    "what you need",
    "shopping list",
    "cups ",
    "cup ",
    "tablespoon",
    "teaspoon",
    " tsp",
    " tbsp",
    " oz ",
    "grams",
    " g ",
    "cloves",
    "pinch of",
)

ScrapeFn = Callable[[str], Awaitable[Optional[ScrapedRecipe]]]


class IngredientExtractor(Protocol):
    async def extract_ingredients(
        self,
        text: str,
        context: str,
        previous: Optional[Sequence[Ingredient]] = None,
    ) -> LLMExtractionResponse: ...

    async def parse_raw_ingredient_list(self, text: str) -> LLMExtractionResponse: ...


def has_ingredient_signals(text: str) -> bool:
    """Cheap gate so unrelated descriptions never reach the LLM."""
    lower = f" {text.lower()} "
    return any(signal in lower for signal in INGREDIENT_SIGNALS)


def score_tier0(source_url_count: int, ingredient_count: int) -> float:
    if source_url_count > 0 and ingredient_count >= 3:
        return 0.95
    if ingredient_count >= 5:
        return 0.85
    if ingredient_count >= 1:
        return 0.4
    return 0.0


class Tier0Extractor:
    def __init__(
        self,
        extractor: IngredientExtractor,
        scrape: ScrapeFn,
        max_urls: int = DEFAULT_MAX_RECIPE_URLS,
    ) -> None:
        self.extractor = extractor
        self.scrape = scrape
        self.max_urls = max_urls

    async def run(self, metadata: VideoMetadata) -> TierResult:
        source_urls: list[str] = []
        all_raw: list[RawIngredient] = []
        instructions: list[Instruction] = []
        recipe_name: Optional[str] = None
        servings: Optional[int] = None
        cost = 0.0

        candidates = select_recipe_urls(extract_urls(metadata.description), self.max_urls)
        for url in candidates:
            recipe = await self.scrape(url)
            if recipe is None or not recipe.ingredients:
                continue

            try:
                parsed = await self.extractor.parse_raw_ingredient_list("\n".join(recipe.ingredients))
            except ServiceError as error:
                logger.warning("[Tier 0] Could not parse ingredients from %s: %s", url, error)
                continue
            cost += LLM_CALL_COST_USD
            source_urls.append(recipe.source_url)
            all_raw.extend(parsed.ingredients)
            recipe_name = parsed.recipe_name or recipe.name or recipe_name
            servings = parsed.servings or recipe.servings or servings
            if not instructions:
                instructions = list(recipe.instructions)

        if not all_raw and has_ingredient_signals(metadata.description):
            try:
                extracted = await self.extractor.extract_ingredients(
                    metadata.description, "description"
                )
            except ServiceError as error:
                logger.warning("[Tier 0] Description extraction failed: %s", error)
            else:
                cost += LLM_CALL_COST_USD
                all_raw = list(extracted.ingredients)
                recipe_name = extracted.recipe_name or recipe_name
                servings = extracted.servings or servings
                if not instructions:
                    instructions = list(extracted.instructions)

        confidence = score_tier0(len(source_urls), len(all_raw))
        logger.info(
            "[Tier 0] confidence=%.2f, ingredients=%d, pages=%d/%d",
            confidence,
            len(all_raw),
            len(source_urls),
            len(candidates),
        )

        return TierResult(
            tier=0,
            confidence=confidence,
            ingredients=tuple(raw_to_ingredients(all_raw)),
            instructions=tuple(instructions),
            servings=servings,
            source_urls=tuple(source_urls),
            cost_usd=cost,
            recipe_name=recipe_name,
        )
