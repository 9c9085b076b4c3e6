"""LiteLLMClient request/response normalization with acompletion patched (no network)."""
from types import SimpleNamespace

import pytest

from tosguard.llm import client_litellm
from tosguard.llm.client_litellm import LiteLLMClient
from tosguard.llm.errors import LLMRateLimited
from tosguard.llm.types import LLMMessage, LLMProvider, LLMRequest, provider_from_model_id


def _completion(content=None, arguments=None):
    tool_calls = None
    if arguments is not None:
        tool_calls = [SimpleNamespace(function=SimpleNamespace(name="report_concerns", arguments=arguments))]
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason="stop")],
        usage=SimpleNamespace(prompt_tokens=11, completion_tokens=7, total_tokens=18),
    )


def _req(**kwargs) -> LLMRequest:
    return LLMRequest(messages=[LLMMessage(role="user", content="Hi")], **kwargs)


@pytest.mark.asyncio
async def test_text_response_normalized(monkeypatch) -> None:
    calls = []

    async def fake_acompletion(**kwargs):
        calls.append(kwargs)
        return _completion(content="[]")

    monkeypatch.setattr(client_litellm, "acompletion", fake_acompletion)
    client = LiteLLMClient(api_key="sk-test", default_timeout_s=30.0)
    resp = await client.acompletion("gpt-4o-mini", _req(temperature=0.0, max_output_tokens=100))
    assert resp.text == "[]"
    assert resp.tool_arguments is None
    assert resp.provider == LLMProvider.OPENAI
    assert resp.usage is not None and resp.usage.total_tokens == 18
    assert resp.finish_reason == "stop"
    kwargs = calls[0]
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["temperature"] == 0.0
    assert kwargs["max_tokens"] == 100
    assert kwargs["timeout"] == 30.0
    assert kwargs["api_key"] == "sk-test"
    assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]
    assert "tools" not in kwargs
    assert "metadata" not in kwargs
    assert "response_format" not in kwargs


@pytest.mark.asyncio
async def test_tool_call_arguments_extracted(monkeypatch) -> None:
    async def fake_acompletion(**kwargs):
        assert kwargs["tools"][0]["function"]["name"] == "report_concerns"
        assert kwargs["metadata"] == {"segment": "2"}
        return _completion(arguments='{"concerns": []}')

    monkeypatch.setattr(client_litellm, "acompletion", fake_acompletion)
    tools = [{"type": "function", "function": {"name": "report_concerns", "parameters": {}}}]
    resp = await LiteLLMClient().acompletion("gpt-4o-mini", _req(tools=tools, metadata={"segment": "2"}), timeout_s=5.0)
    assert resp.text == ""
    assert resp.tool_arguments == '{"concerns": []}'


@pytest.mark.asyncio
async def test_provider_error_mapped_without_retry(monkeypatch) -> None:
    calls = []

    class RateLimitError(Exception):
        pass

    async def fake_acompletion(**kwargs):
        calls.append(kwargs)
        raise RateLimitError("429")

    monkeypatch.setattr(client_litellm, "acompletion", fake_acompletion)
    with pytest.raises(LLMRateLimited):
        await LiteLLMClient().acompletion("gpt-4o-mini", _req())
    assert len(calls) == 1


def test_provider_from_model_id() -> None:
    assert provider_from_model_id("gpt-4o-mini") == LLMProvider.OPENAI
    assert provider_from_model_id("openai/gpt-4o") == LLMProvider.OPENAI
    assert provider_from_model_id("gemini/gemini-2.0-flash") == LLMProvider.GEMINI
    assert provider_from_model_id("ollama/llama3.2") == LLMProvider.OLLAMA
