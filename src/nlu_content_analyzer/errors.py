"""
Error taxonomy for analysis and optimization.

Adapters raise these errors with the provider's technical message. The
orchestrators attach a user-facing `guidance` string (see user_guidance)
before the error reaches the CLI or the HTTP API.
"""

from typing import Optional


class AnalyzerError(Exception):
    """Base class for all analysis and optimization failures."""

    def __init__(self, message: str, guidance: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.guidance = guidance


class MissingCredentialsError(AnalyzerError):
    """Raised before any network call when credentials are absent."""
    pass


class UnsupportedProviderError(AnalyzerError):
    """Raised when an unknown provider is selected."""
    pass


class ApiError(AnalyzerError):
    """Raised when a provider answers with a non-2xx response."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        provider: Optional[str] = None,
        guidance: Optional[str] = None,
    ):
        super().__init__(message, guidance=guidance)
        self.status_code = status_code
        self.provider = provider


class AuthError(ApiError):
    """Raised when a provider rejects the credentials."""
    pass


class ResponseFormatError(ApiError):
    """Raised when a provider response cannot be interpreted."""
    pass


class EmptyResponseError(AnalyzerError):
    """Raised when an LLM returns blank text."""
    pass


def user_guidance(error: Exception) -> str:
    """
    Translate a technical error into an actionable message.

    Args:
        error: The error raised by an adapter or orchestrator.

    Returns:
        A message suitable for showing to the user.
    """
    message = str(error)
    lowered = message.lower()

    if isinstance(error, (MissingCredentialsError, UnsupportedProviderError, ResponseFormatError)):
        return message
    if isinstance(error, EmptyResponseError):
        return "The AI returned an empty response. Please try again or try a different model."

    status_code = getattr(error, "status_code", None)
    if (
        isinstance(error, AuthError)
        or status_code == 401
        or "401" in message
        or "authentication" in lowered
        or "invalid" in lowered
    ):
        return "Authentication failed. Please check your API key."
    if "cors" in lowered:
        return "CORS error detected. Try a different CORS proxy or switch to OpenAI."
    if "o4" in lowered or "max_tokens" in lowered or "max_completion_tokens" in lowered:
        return (
            "Error with o-series model. This may be due to parameter incompatibilities. "
            "Try switching to a different model like gpt-4o."
        )
    return message


def validate_api_key_format(api_key: str, provider: str) -> Optional[str]:
    """
    Check an LLM API key against the provider's usual prefix.

    Args:
        api_key: The key to check.
        provider: "openai" or "anthropic".

    Returns:
        A warning message if the key looks wrong, None otherwise.
    """
    if not api_key or not api_key.strip():
        return None

    if provider == "anthropic" and not api_key.startswith(("sk-ant-", "sk-")):
        return "Claude API keys typically start with 'sk-ant-'"

    if provider == "openai" and not api_key.startswith("sk-"):
        return "OpenAI API keys typically start with 'sk-'"

    return None
