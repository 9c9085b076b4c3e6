"""Error taxonomy for the LLM module. Codes are stable; retryable drives the caller's retry loop."""
from __future__ import annotations

from tosguard.llm.types import LLMProvider


class LLMError(Exception):
    """Base for all LLM errors. details must not leak secrets."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "UNKNOWN",
        retryable: bool = False,
        provider: LLMProvider | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable
        self.provider = provider
        self.details = details or ""


class LLMTimeout(LLMError):
    """Request timed out."""

    def __init__(self, message: str = "LLM request timed out", **kwargs: object) -> None:
        super().__init__(message, code="TIMEOUT", retryable=True, **kwargs)


class LLMRateLimited(LLMError):
    """Rate limit (429) or quota exceeded."""

    def __init__(self, message: str = "LLM rate limited", **kwargs: object) -> None:
        super().__init__(message, code="RATE_LIMITED", retryable=True, **kwargs)


class LLMBadRequest(LLMError):
    """Invalid request (e.g. schema, params, context too long)."""

    def __init__(self, message: str = "LLM bad request", **kwargs: object) -> None:
        super().__init__(message, code="BAD_REQUEST", retryable=False, **kwargs)


class LLMAuthError(LLMError):
    """Authentication or authorization failure."""

    def __init__(self, message: str = "LLM auth error", **kwargs: object) -> None:
        super().__init__(message, code="AUTH_ERROR", retryable=False, **kwargs)


class LLMContentRefused(LLMError):
    """Provider refused the content (content policy)."""

    def __init__(self, message: str = "LLM refused content", **kwargs: object) -> None:
        super().__init__(message, code="CONTENT_REFUSED", retryable=False, **kwargs)


class LLMUnavailable(LLMError):
    """Service unavailable (5xx, connection, etc.)."""

    def __init__(self, message: str = "LLM unavailable", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, code="UNAVAILABLE", **kwargs)
