from __future__ import annotations

import logging
from typing import Literal, Optional, Sequence

from video_recipes.app.domain.models import Ingredient, LLMExtractionResponse
from video_recipes.app.pipeline.normalizer import summarize_for_prompt
from video_recipes.services.gemini_client import GeminiClient
from video_recipes.services.llm_parsing import parse_extraction_response

logger = logging.getLogger(__name__)

TextContext = Literal["description", "transcript"]

EXTRACTION_SCHEMA = """{
  "recipe_name": string | null,
  "servings": number | null,
  "ingredients": [
    {
      "name": string,              // e.g. "all-purpose flour"
      "quantity": number | null,   // e.g. 2.5, null if unknown
      "unit": string | null,       // e.g. "cups", "oz", "cloves", null if a count
      "raw_text": string,          // original text this was extracted from
      "optional": boolean,
      "preparation": string | null // e.g. "minced", "sliced", "room temperature"
    }
  ],
  "instructions": [
    {
      "step_number": number,        // sequential, starting at 1
      "text": string,
      "duration": string | null,    // e.g. "5 minutes"
      "temperature": string | null, // e.g. "350°F"
      "technique": string | null    // e.g. "sauté", "bake"
    }
  ]
}"""

_DESCRIPTION_PROMPT = """Extract all cooking ingredients from this YouTube video description.
Look for ingredient lists, recipe sections, or any mentions of ingredients with quantities.
If there is a recipe name, serving count or method, include those too.

Return JSON matching this schema:
{schema}
{hint}
Description:
{text}"""

_TRANSCRIPT_PROMPT = """Extract all cooking ingredients mentioned in this video transcript.
The speaker may mention ingredients informally (e.g. "grab some flour", "two cloves of garlic").
Identify every ingredient, estimate quantities when stated, and note preparation steps.
Also list the cooking steps in the order they are described.
If the recipe name or serving count is mentioned, include those.

Return JSON matching this schema:
{schema}
{hint}
Transcript:
{text}"""

_INGREDIENT_LIST_PROMPT = """Parse this ingredient list into structured JSON.
Each line is one ingredient. Extract the name, quantity, unit, and any preparation notes.
Leave "instructions" empty.

Return JSON matching this schema:
{schema}

Ingredient list:
{text}"""


def previous_ingredients_hint(previous: Optional[Sequence[Ingredient]]) -> str:
    if not previous:
        return ""
    return (
        "\nEarlier passes already identified these ingredients. "
        "Verify and supplement them:\n"
        f"{summarize_for_prompt(previous)}\n"
    )


class GeminiIngredientExtractor:
    """Text-only structured extraction (descriptions, transcripts, scraped lists)."""

    def __init__(self, client: GeminiClient) -> None:
        self.client = client

    async def _run(self, prompt: str) -> LLMExtractionResponse:
        response = await self.client.generate_json(prompt)
        extraction = parse_extraction_response(response.text)
        extraction.input_tokens = response.input_tokens
        extraction.output_tokens = response.output_tokens
        return extraction

    async def extract_ingredients(
        self,
        text: str,
        context: TextContext,
        previous: Optional[Sequence[Ingredient]] = None,
    ) -> LLMExtractionResponse:
        template = _DESCRIPTION_PROMPT if context == "description" else _TRANSCRIPT_PROMPT
        prompt = template.format(
            schema=EXTRACTION_SCHEMA,
            hint=previous_ingredients_hint(previous),
            text=text,
        )
        extraction = await self._run(prompt)
        logger.info(
            "Extracted %d ingredients from %s (%d chars)",
            len(extraction.ingredients),
            context,
            len(text),
        )
        return extraction

    async def parse_raw_ingredient_list(self, text: str) -> LLMExtractionResponse:
        return await self._run(_INGREDIENT_LIST_PROMPT.format(schema=EXTRACTION_SCHEMA, text=text))
