from __future__ import annotations

import pytest

from video_recipes.services.errors import (
    ServiceError,
    InvalidURLError,
    PrivateOrUnavailableError,
    RateLimitedError,
    FetchFailedError,
    TranscriptUnavailableError,
    GeminiConfigurationError,
    ModelCallError,
    ModelResponseError,
    NetworkTimeoutError,
)


class TestServiceError:
    def test_base_exception(self) -> None:
        error = ServiceError("Base service error")
        assert str(error) == "Base service error"
        assert isinstance(error, Exception)


class TestInvalidURLError:
    def test_invalid_url(self) -> None:
        error = InvalidURLError("Invalid YouTube URL: https://vimeo.com/1")
        assert "vimeo" in str(error)
        assert isinstance(error, ServiceError)


class TestTranscriptUnavailableError:
    def test_transcript_unavailable(self) -> None:
        error = TranscriptUnavailableError("No transcript available for video abc")
        assert "transcript" in str(error).lower()
        assert isinstance(error, ServiceError)


class TestModelCallError:
    def test_model_call_error(self) -> None:
        error = ModelCallError("Gemini gemini-2.0-flash call failed: 503 UNAVAILABLE")
        assert "503" in str(error)
        assert isinstance(error, ServiceError)

class TestModelResponseError:
    def test_keeps_raw_text(self) -> None:
        error = ModelResponseError("Model returned invalid JSON", raw_text="oops")
        assert str(error) == "Model returned invalid JSON"
        assert error.raw_text == "oops"

    def test_raw_text_is_optional(self) -> None:
        assert ModelResponseError("empty").raw_text is None


class TestNetworkTimeoutError:
    def test_timeout_with_url_and_seconds(self) -> None:
        error = NetworkTimeoutError("https://example.com/recipe", 10.0)
        assert "https://example.com/recipe" in str(error)
        assert "10" in str(error)
        assert error.url == "https://example.com/recipe"
        assert error.timeout_seconds == 10.0


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        "error_type",
        [
            InvalidURLError,
            PrivateOrUnavailableError,
            RateLimitedError,
            FetchFailedError,
            TranscriptUnavailableError,
            GeminiConfigurationError,
            ModelResponseError,
            NetworkTimeoutError,
        ],
    )
    def test_all_errors_inherit_from_service_error(self, error_type) -> None:
        assert issubclass(error_type, ServiceError)
