from typing import Optional


class OCRError(RuntimeError):
    """Base for every failure this package raises on purpose."""


class ConfigurationError(OCRError):
    def __init__(self, provider: str, msg: str = ""):
        super().__init__(msg or f"{provider} OCR credentials are not configured")
        self.provider = provider


class UpstreamAuthError(OCRError):
    def __init__(self, provider: str, msg: str):
        super().__init__(msg)
        self.provider = provider


class UpstreamRequestError(OCRError):
    def __init__(self, provider: str, msg: str):
        super().__init__(msg)
        self.provider = provider


class ValidationError(OCRError):
    pass


class UnsupportedProviderError(ValidationError):
    def __init__(self, name: str):
        super().__init__(f"Unsupported OCR provider: {name}")
        self.name = name


class AnalysisEmptyResponseError(OCRError):
    pass


class NetworkError(OCRError):
    pass


class LocalEngineRequiredError(OCRError):
    pass


class DispatchError(OCRError):
    """The dispatcher answered with a failure envelope."""

    def __init__(self, msg: str, status_code: Optional[int] = None, details: Optional[str] = None):
        super().__init__(msg)
        self.status_code = status_code
        self.details = details


# Analysis categories surfaced to users
class InvalidApiKeyError(UpstreamAuthError):
    def __init__(self, msg: str = "Gemini API key is invalid or expired; check the configuration"):
        super().__init__("gemini", msg)


class QuotaExceededError(UpstreamRequestError):
    def __init__(self, msg: str = "API quota exceeded or rate limited; retry later or check the quota"):
        super().__init__("gemini", msg)


NETWORK_FAILURE_MESSAGE = "Network connection failed, check the network and retry"
