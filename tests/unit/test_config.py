from __future__ import annotations

import pytest
from pydantic import ValidationError

from video_recipes.app.config import Settings


class TestSettings:
    def test_youtube_key_falls_back_to_gemini_key(self) -> None:
        config = Settings(GEMINI_API_KEY="g-key", YOUTUBE_API_KEY="", _env_file=None)
        assert config.YOUTUBE_API_KEY == "g-key"

    def test_explicit_youtube_key_wins(self) -> None:
        config = Settings(GEMINI_API_KEY="g-key", YOUTUBE_API_KEY="yt-key", _env_file=None)
        assert config.YOUTUBE_API_KEY == "yt-key"

    def test_threshold_must_be_a_probability(self) -> None:
        with pytest.raises(ValidationError):
            Settings(CONFIDENCE_THRESHOLD=1.5, _env_file=None)

    def test_retries_cannot_be_negative(self) -> None:
        with pytest.raises(ValidationError):
            Settings(TIER2_MAX_RETRIES=-1, _env_file=None)

    def test_finished_job_cap_is_positive(self) -> None:
        with pytest.raises(ValidationError):
            Settings(MAX_FINISHED_JOBS=0, _env_file=None)
