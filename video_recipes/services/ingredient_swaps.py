"""
Ingredient substitution suggestions from the text model.

The model is asked for 3-5 substitutes; the answer is decoded leniently
(missing or wrong-typed fields fall back to neutral defaults) and ranked by
confidence, best first.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from video_recipes.app.domain.models import SwapRequest, SwapSuggestion
from video_recipes.services.gemini_client import GeminiClient
from video_recipes.services.llm_parsing import load_model_json

logger = logging.getLogger(__name__)

SWAP_TEMPERATURE = 0.3

SWAP_SCHEMA = """{
  "suggestions": [
    {
      "substitute_name": string,
      "quantity_ratio": number,     // 1.0 = same amount, 0.5 = half
      "quantity_note": string | null,
      "confidence": number,         // 0-1
      "dietary_tags": [string],
      "notes": string | null
    }
  ]
}"""

_GUIDELINES = """Guidelines:
- Rank suggestions by confidence (best match first)
- Include quantity_ratio relative to original (1.0 = same amount)
- Add quantity_note for any special instructions
- Tag each substitute with relevant dietary attributes (vegan, vegetarian, dairy-free, gluten-free, nut-free, etc.)
- Add notes about flavor/texture differences or best use cases
- Consider the recipe context when ranking suggestions

Return JSON matching this schema:
{schema}"""


def build_swap_prompt(request: SwapRequest) -> str:
    parts = [
        "You are a culinary expert specializing in ingredient substitutions.",
        f'Find 3-5 substitutes for: "{request.ingredient}"',
    ]
    if request.quantity and request.unit:
        parts.append(f"Original quantity: {request.quantity:g} {request.unit}")
    if request.recipe_context:
        parts.append(f"Recipe context: {request.recipe_context}")
    if request.dietary_filters:
        parts.append(
            "IMPORTANT: Only suggest substitutes that are compatible with these "
            f"dietary restrictions: {', '.join(request.dietary_filters)}"
        )
    if request.available_ingredients:
        parts.append(
            "Preferred ingredients (suggest from this list first if suitable): "
            f"{', '.join(request.available_ingredients)}"
        )
    parts.append(_GUIDELINES.format(schema=SWAP_SCHEMA))
    return "\n\n".join(parts)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class SwapSuggestionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    substitute_name: str = ""
    quantity_ratio: float = 1.0
    quantity_note: Optional[str] = None
    confidence: float = 0.5
    dietary_tags: list[str] = []
    notes: Optional[str] = None

    @field_validator("substitute_name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return _text(value) or ""

    @field_validator("quantity_ratio", mode="before")
    @classmethod
    def _ratio(cls, value: Any) -> float:
        ratio = _number(value)
        return 1.0 if ratio is None else ratio

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> float:
        confidence = _number(value)
        if confidence is None:
            return 0.5
        return min(1.0, max(0.0, confidence))

    @field_validator("dietary_tags", mode="before")
    @classmethod
    def _tags(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [tag for tag in value if isinstance(tag, str)]

    @field_validator("quantity_note", "notes", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        return _text(value)

    def to_suggestion(self) -> SwapSuggestion:
        return SwapSuggestion(
            substitute_name=self.substitute_name,
            quantity_ratio=self.quantity_ratio,
            quantity_note=self.quantity_note,
            confidence=self.confidence,
            dietary_tags=tuple(self.dietary_tags),
            notes=self.notes,
        )


def parse_swap_response(raw: Optional[str]) -> list[SwapSuggestion]:
    """Decode the model's answer; anything without a ``suggestions`` list yields []."""
    data = load_model_json(raw)
    if not isinstance(data, dict) or not isinstance(data.get("suggestions"), list):
        return []

    suggestions = []
    for entry in data["suggestions"]:
        if not isinstance(entry, dict):
            continue
        try:
            suggestions.append(SwapSuggestionPayload.model_validate(entry).to_suggestion())
        except ValidationError as exc:
            logger.debug("Dropping malformed swap suggestion: %s", exc.errors()[0]["msg"])
    return suggestions


class IngredientSwapService:
    def __init__(self, client: GeminiClient) -> None:
        self.client = client

    async def suggest(self, request: SwapRequest) -> list[SwapSuggestion]:
        response = await self.client.generate_json(build_swap_prompt(request))
        suggestions = parse_swap_response(response.text)
        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        logger.info(
            "Swaps for %r: %d suggestions (%d input / %d output tokens)",
            request.ingredient,
            len(suggestions),
            response.input_tokens,
            response.output_tokens,
        )
        return suggestions
