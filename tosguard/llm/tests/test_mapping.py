"""Exception mapping tests. Map by class name."""
from tosguard.llm.client_litellm import _map_exception
from tosguard.llm.errors import LLMRateLimited, LLMTimeout
from tosguard.llm.types import LLMProvider


def test_map_timeout() -> None:
    """APITimeoutError / Timeout -> LLMTimeout (mapping uses type name)."""
    class APITimeoutError(Exception):
        pass
    out = _map_exception(APITimeoutError("timeout"), LLMProvider.OPENAI)
    assert type(out).__name__ == "LLMTimeout"
    assert out.retryable is True
    assert out.provider == LLMProvider.OPENAI
    assert "APITimeoutError" in (out.details or "")


def test_map_rate_limit() -> None:
    class RateLimitError(Exception):
        pass
    out = _map_exception(RateLimitError("429"), LLMProvider.OPENAI)
    assert type(out).__name__ == "LLMRateLimited"
    assert out.retryable is True


def test_map_auth_error() -> None:
    class AuthenticationError(Exception):
        pass
    out = _map_exception(AuthenticationError("invalid key"), LLMProvider.OPENAI)
    assert type(out).__name__ == "LLMAuthError"
    assert out.retryable is False


def test_map_content_policy() -> None:
    class ContentPolicyViolationError(Exception):
        pass
    out = _map_exception(ContentPolicyViolationError("refused"), LLMProvider.OPENAI)
    assert out.code == "CONTENT_REFUSED"
    assert out.retryable is False


def test_map_bad_request() -> None:
    class ContextWindowExceededError(Exception):
        pass
    out = _map_exception(ContextWindowExceededError("too long"), LLMProvider.OPENAI)
    assert type(out).__name__ == "LLMBadRequest"
    assert out.retryable is False


def test_map_unavailable_by_status_code() -> None:
    class WeirdError(Exception):
        status_code = 503
    out = _map_exception(WeirdError("boom"), LLMProvider.GEMINI)
    assert out.code == "UNAVAILABLE"
    assert out.retryable is True


def test_map_rate_limit_by_status_code() -> None:
    class WeirdError(Exception):
        status_code = 429
    assert isinstance(_map_exception(WeirdError("slow down"), LLMProvider.OPENAI), LLMRateLimited)


def test_map_passes_llm_error_through() -> None:
    err = LLMTimeout()
    assert _map_exception(err, LLMProvider.OPENAI) is err


def test_map_unknown_exception() -> None:
    out = _map_exception(ValueError("something else"), LLMProvider.OPENAI)
    assert out.code == "UNKNOWN"
    assert out.retryable is False
    assert "ValueError" in (out.details or "")
