# video_recipes/app/routers/swaps.py
"""
Ingredient substitution suggestions.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from video_recipes.app.config import settings
from video_recipes.app.domain.models import SwapRequest
from video_recipes.services.errors import GeminiConfigurationError, RateLimitedError, ServiceError
from video_recipes.services.gemini_client import GeminiClient
from video_recipes.services.ingredient_swaps import SWAP_TEMPERATURE, IngredientSwapService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["swaps"])

_service: IngredientSwapService | None = None


def get_swap_service() -> IngredientSwapService:
    global _service
    if _service is None:
        try:
            client = GeminiClient(
                api_key=settings.GEMINI_API_KEY,
                model_name=settings.GEMINI_TEXT_MODEL,
                timeout_seconds=settings.LLM_TIMEOUT_SECONDS,
                temperature=SWAP_TEMPERATURE,
            )
        except GeminiConfigurationError as e:
            logger.error("Swap service unavailable: %s", e)
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
        _service = IngredientSwapService(client)
    return _service


# =============================================================================
# Request/Response Models
# =============================================================================

class SwapRequestBody(BaseModel):
    ingredient: str = Field(..., description="Ingredient to replace")
    quantity: Optional[float] = None
    unit: Optional[str] = None
    recipe_context: Optional[str] = None
    dietary_filters: list[str] = Field(default_factory=list)
    available_ingredients: list[str] = Field(default_factory=list)

    @field_validator("ingredient")
    @classmethod
    def _ingredient_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Missing required field: ingredient")
        return value

    def to_domain(self) -> SwapRequest:
        return SwapRequest(
            ingredient=self.ingredient,
            quantity=self.quantity,
            unit=self.unit,
            recipe_context=self.recipe_context,
            dietary_filters=tuple(self.dietary_filters),
            available_ingredients=tuple(self.available_ingredients),
        )


class SwapSuggestionResponse(BaseModel):
    substitute_name: str
    quantity_ratio: float
    quantity_note: Optional[str] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    dietary_tags: list[str]
    notes: Optional[str] = None


class SwapResponse(BaseModel):
    original_ingredient: str
    suggestions: list[SwapSuggestionResponse]


# =============================================================================
# Routes
# =============================================================================

@router.post("/swaps", response_model=SwapResponse)
async def suggest_swaps(
    body: SwapRequestBody,
    service: IngredientSwapService = Depends(get_swap_service),
):
    request = body.to_domain()
    try:
        suggestions = await service.suggest(request)
    except RateLimitedError as e:
        logger.warning("Swaps rate limited for %r", request.ingredient)
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(e)) from e
    except ServiceError as e:
        logger.exception("Swap suggestions failed for %r", request.ingredient)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate swap suggestions. Please try again.",
        ) from e

    return SwapResponse(
        original_ingredient=request.ingredient,
        suggestions=[SwapSuggestionResponse(**s.to_dict()) for s in suggestions],
    )
