"""Pytest fixtures: scripted fake LLM client and pipeline factory (no network)."""
from __future__ import annotations

from typing import Any, Callable

import pytest

from tosguard.concerns.config import ConcernsSettings
from tosguard.concerns.pipeline import ConcernPipeline
from tosguard.llm.settings import LLMSettings
from tosguard.llm.types import LLMProvider, LLMRequest, LLMResponse


class FakeLLMClient:
    """Replays a script: str -> text response, LLMResponse as is, Exception -> raised, callable(req) -> either."""

    def __init__(self, script: list[Any]) -> None:
        self._script = list(script)
        self.requests: list[LLMRequest] = []
        self.models: list[str] = []

    async def acompletion(self, model: str, req: LLMRequest, *, timeout_s: float | None = None) -> LLMResponse:
        self.requests.append(req)
        self.models.append(model)
        if not self._script:
            raise AssertionError("FakeLLMClient script exhausted")
        item = self._script.pop(0)
        if callable(item) and not isinstance(item, (str, LLMResponse)):
            item = item(req)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, LLMResponse):
            return item
        return LLMResponse(text=item, provider=LLMProvider.OPENAI, model=model, latency_ms=1)

    def user_messages(self) -> list[str]:
        return [r.messages[-1].content for r in self.requests]


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_pipeline(sleeps: list[float]) -> Callable[..., tuple[ConcernPipeline, FakeLLMClient]]:
    """Build a pipeline around a FakeLLMClient. Defaults: 10-char segments, text output, continue policy."""

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    def _make(script: list[Any], **overrides: Any) -> tuple[ConcernPipeline, FakeLLMClient]:
        params: dict[str, Any] = {
            "input_budget_chars": 10,
            "structured_output": "text",
            "failure_policy": "continue",
        }
        params.update(overrides)
        client = FakeLLMClient(script)
        pipeline = ConcernPipeline(
            LLMSettings(model="gpt-4o-mini", api_key="test-key"),
            ConcernsSettings(**params),
            client=client,
            sleep=fake_sleep,
        )
        return pipeline, client

    return _make
