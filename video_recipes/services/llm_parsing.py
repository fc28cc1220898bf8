"""
Decoding of structured-extraction responses returned by the model.

Decoding is strict and happens in two stages:

1. strip markdown code fences the model sometimes wraps JSON in;
2. validate the JSON against ``LLMExtractionPayload``. Absent or wrong-typed
   ``ingredients`` / ``instructions`` become empty lists and individual
   malformed items are dropped.

Text that is not JSON, or JSON that is not an object, raises
``ModelResponseError``.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from video_recipes.app.domain.models import Instruction, LLMExtractionResponse, RawIngredient
from video_recipes.services.errors import ModelResponseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?")
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


def strip_fences(raw: str) -> str:
    return _FENCE_RE.sub("", raw).strip()


def _clean_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        m = _NUMBER_RE.search(value)
        if m:
            return float(m.group(0))
    return None


class IngredientPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    quantity: Optional[float] = None
    unit: Optional[str] = None
    raw_text: Optional[str] = None
    optional: bool = False
    preparation: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name_required(cls, value: Any) -> str:
        name = _clean_str(value)
        if not name:
            raise ValueError("ingredient name is empty")
        return name

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, value: Any) -> Optional[float]:
        return _to_number(value)

    @field_validator("unit", "raw_text", "preparation", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        return _clean_str(value)

    @field_validator("optional", mode="before")
    @classmethod
    def _optional_flag(cls, value: Any) -> bool:
        return value is True or (isinstance(value, str) and value.lower() == "true")


class InstructionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    step_number: Optional[int] = None
    text: str
    duration: Optional[str] = None
    temperature: Optional[str] = None
    technique: Optional[str] = None

    @field_validator("text", mode="before")
    @classmethod
    def _text_required(cls, value: Any) -> str:
        text = _clean_str(value)
        if not text:
            raise ValueError("instruction text is empty")
        return text

    @field_validator("step_number", mode="before")
    @classmethod
    def _step(cls, value: Any) -> Optional[int]:
        number = _to_number(value)
        return int(number) if number is not None else None

    @field_validator("duration", "temperature", "technique", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        return _clean_str(value)


def _valid_items(model: type[BaseModel], value: Any) -> list:
    if not isinstance(value, list):
        return []
    items = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        try:
            items.append(model.model_validate(entry))
        except ValidationError as exc:
            logger.debug("Dropping malformed %s: %s", model.__name__, exc.errors()[0]["msg"])
    return items


class LLMExtractionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    recipe_name: Optional[str] = None
    servings: Optional[int] = None
    ingredients: list[IngredientPayload] = []
    instructions: list[InstructionPayload] = []

    @field_validator("recipe_name", mode="before")
    @classmethod
    def _recipe_name(cls, value: Any) -> Optional[str]:
        return _clean_str(value)

    @field_validator("servings", mode="before")
    @classmethod
    def _servings(cls, value: Any) -> Optional[int]:
        number = _to_number(value)
        return int(number) if number else None

    @field_validator("ingredients", mode="before")
    @classmethod
    def _ingredients(cls, value: Any) -> list[IngredientPayload]:
        return _valid_items(IngredientPayload, value)

    @field_validator("instructions", mode="before")
    @classmethod
    def _instructions(cls, value: Any) -> list[InstructionPayload]:
        return _valid_items(InstructionPayload, value)


def _renumber(steps: list[InstructionPayload]) -> list[Instruction]:
    """Keep the model's order but guarantee strictly increasing step numbers."""
    return [
        Instruction(
            step_number=index,
            text=step.text,
            duration=step.duration,
            temperature=step.temperature,
            technique=step.technique,
        )
        for index, step in enumerate(steps, start=1)
    ]


def to_extraction_response(payload: LLMExtractionPayload) -> LLMExtractionResponse:
    return LLMExtractionResponse(
        recipe_name=payload.recipe_name,
        servings=payload.servings,
        ingredients=[
            RawIngredient(
                name=item.name,
                quantity=item.quantity,
                unit=item.unit,
                raw_text=item.raw_text or item.name,
                optional=item.optional,
                preparation=item.preparation,
            )
            for item in payload.ingredients
        ],
        instructions=_renumber(payload.instructions),
    )


def load_model_json(raw: Optional[str]) -> Any:
    """Decode model text as JSON, retrying once without markdown fences."""
    if not raw or not raw.strip():
        raise ModelResponseError("Model response did not include text content.", raw)

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        try:
            return json.loads(strip_fences(raw))
        except json.JSONDecodeError as error:
            raise ModelResponseError(f"Model response is not valid JSON: {error}", raw) from error


def parse_extraction_response(raw: Optional[str]) -> LLMExtractionResponse:
    data = load_model_json(raw)

    # Some responses come back as a single-element array around the object.
    if isinstance(data, list) and len(data) == 1:
        data = data[0]
    if not isinstance(data, dict):
        raise ModelResponseError(
            f"Model response is a {type(data).__name__}, expected an object", raw
        )

    return to_extraction_response(LLMExtractionPayload.model_validate(data))
