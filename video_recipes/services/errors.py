class ServiceError(Exception):
    pass


class InvalidURLError(ServiceError):
    pass


class PrivateOrUnavailableError(ServiceError):
    pass


class RateLimitedError(ServiceError):
    pass


class FetchFailedError(ServiceError):
    pass


class TranscriptUnavailableError(ServiceError):
    pass


class GeminiConfigurationError(ServiceError):
    pass


class ModelResponseError(ServiceError):
    def __init__(self, message: str, raw_text: str | None = None):
        super().__init__(message)
        self.raw_text = raw_text


class NetworkTimeoutError(ServiceError):
    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(f"Network timeout after {timeout_seconds}s: {url}")
        self.url = url
        self.timeout_seconds = timeout_seconds


class ModelCallError(ServiceError):
    pass
