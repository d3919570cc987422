"""Exception taxonomy for the research agent and HTTP message normalization."""
from __future__ import annotations

PROVIDER_LABELS = {
    "firecrawl": "Firecrawl",
    "gemini": "Gemini",
}

CREDENTIAL_MARKERS = {
    "FIRECRAWL_API_KEY": "firecrawl",
    "GEMINI_API_KEY": "gemini",
}

QUOTA_MESSAGE = "API quota exceeded. Please try again later."


class ResearchAgentError(Exception):
    """Base class for every error raised by the research agent."""


class ConfigurationError(ResearchAgentError):
    """Required provider credentials are absent."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            f"Missing required environment variables: {', '.join(self.missing)}"
        )


class ProviderError(ResearchAgentError):
    """An outbound provider call failed."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class ProviderAuthError(ProviderError):
    """The provider rejected our credentials."""


class ProviderQuotaError(ProviderError):
    """The provider reported a quota or rate limit."""


class AnalysisError(ResearchAgentError):
    """The gap analyzer returned something other than the expected JSON shape."""


class SynthesisError(ResearchAgentError):
    """The final report could not be generated."""


class ResearchTimeoutError(ResearchAgentError):
    """The research request exceeded its overall deadline."""


def provider_error_for_status(provider: str, status_code: int, body: str) -> ProviderError:
    """Map a non-success provider HTTP status to the matching exception."""
    label = PROVIDER_LABELS.get(provider, provider)
    message = f"{label} request failed: {status_code} - {body[:500]}"
    if status_code in (401, 403):
        return ProviderAuthError(provider, message, status_code=status_code)
    if status_code == 429:
        return ProviderQuotaError(provider, message, status_code=status_code)
    return ProviderError(provider, message, status_code=status_code)


def _configuration_message(provider: str) -> str:
    label = PROVIDER_LABELS.get(provider, provider.title())
    return f"{label} API configuration error. Please check your API key."


def normalize_error_message(exc: BaseException) -> str:
    """Rewrite a terminal error into the message returned to HTTP callers."""
    if isinstance(exc, ConfigurationError):
        return str(exc)
    if isinstance(exc, ProviderAuthError):
        return _configuration_message(exc.provider)
    if isinstance(exc, ProviderQuotaError):
        return QUOTA_MESSAGE

    message = str(exc) or exc.__class__.__name__
    for marker, provider in CREDENTIAL_MARKERS.items():
        if marker in message:
            return _configuration_message(provider)

    lowered = message.lower()
    if "quota" in lowered or "limit" in lowered:
        return QUOTA_MESSAGE
    return message
