from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from google import genai
from google.genai import types
from google.genai.errors import APIError

from video_recipes.services.errors import (
    GeminiConfigurationError,
    ModelCallError,
    NetworkTimeoutError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"


@dataclass(frozen=True)
class GeminiResponse:
    text: str
    input_tokens: int
    output_tokens: int


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-2.0-flash",
        timeout_seconds: float = 120.0,
        temperature: float = 0.1,
    ) -> None:
        self.api_key = api_key
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self._client = self._configure_api()

    def _configure_api(self) -> genai.Client:
        if not self.api_key:
            raise GeminiConfigurationError("Missing Gemini API key.")
        return genai.Client(api_key=self.api_key)

    def _generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_mime_type=JSON_MIME_TYPE,
            temperature=self.temperature,
        )

    @staticmethod
    def _usage(response: Any) -> tuple[int, int]:
        usage = getattr(response, "usage_metadata", None)
        if usage is None:
            return 0, 0
        return (
            getattr(usage, "prompt_token_count", None) or 0,
            getattr(usage, "candidates_token_count", None) or 0,
        )

    async def generate_json(self, contents: str | types.Content) -> GeminiResponse:
        """Run one JSON-mode generation; the caller decodes ``text``."""
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self.model_name,
                    contents=contents,
                    config=self._generation_config(),
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as error:
            raise NetworkTimeoutError(f"gemini:{self.model_name}", self.timeout_seconds) from error
        except APIError as err:
            status_code = getattr(err, "code", None)
            if status_code == 429 or "RESOURCE_EXHAUSTED" in str(err):
                raise RateLimitedError(
                    "Gemini API rate limit reached. Try again shortly."
                ) from err
            raise ModelCallError(f"Gemini {self.model_name} call failed: {err}") from err
        except httpx.HTTPError as err:
            raise ModelCallError(f"Gemini {self.model_name} transport error: {err}") from err

        input_tokens, output_tokens = self._usage(response)
        logger.debug(
            "Gemini %s call: %d input / %d output tokens",
            self.model_name,
            input_tokens,
            output_tokens,
        )
        return GeminiResponse(
            text=response.text or "",
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )


def video_contents(video_url: str, prompt: str) -> types.Content:
    """A user turn holding a video reference followed by the text prompt."""
    return types.Content(
        role="user",
        parts=[
            types.Part(file_data=types.FileData(file_uri=video_url, mime_type="video/*")),
            types.Part(text=prompt),
        ],
    )
