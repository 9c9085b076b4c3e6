"""Budget resolution and configuration errors (raised before any segment is processed)."""
import pytest

from tosguard.concerns.config import ConcernsSettings, decoding_config, resolve_budget, validate_llm_settings
from tosguard.concerns.errors import ConfigurationError
from tosguard.concerns.pipeline import ConcernPipeline
from tosguard.llm.settings import LLMSettings


def test_budget_from_model_table() -> None:
    budget, max_out = resolve_budget(LLMSettings(model="gpt-4o-mini", api_key="k"), ConcernsSettings())
    assert max_out == 16_384
    assert budget == (128_000 - 16_384) * 4


def test_fixed_budget_overrides_table() -> None:
    budget, _ = resolve_budget(LLMSettings(model="gpt-4o-mini", api_key="k"), ConcernsSettings(input_budget_chars=10_000))
    assert budget == 10_000


def test_provider_prefixed_model_uses_base_name() -> None:
    budget, _ = resolve_budget(LLMSettings(model="openai/gpt-4o-mini", api_key="k"), ConcernsSettings())
    assert budget == (128_000 - 16_384) * 4


def test_unknown_model_requires_overrides() -> None:
    llm = LLMSettings(model="ollama/llama3.2")
    with pytest.raises(ConfigurationError):
        resolve_budget(llm, ConcernsSettings())
    budget, max_out = resolve_budget(llm, ConcernsSettings(context_window_tokens=8192, max_output_tokens=2048))
    assert (budget, max_out) == ((8192 - 2048) * 4, 2048)


def test_output_larger_than_context_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        resolve_budget(
            LLMSettings(model="gpt-4o-mini", api_key="k"),
            ConcernsSettings(context_window_tokens=1000, max_output_tokens=1000),
        )


def test_missing_api_key_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        validate_llm_settings(LLMSettings(model="gpt-4o-mini", api_key=None))
    validate_llm_settings(LLMSettings(model="ollama/llama3.2", api_key=None))


def test_pipeline_without_client_checks_key_up_front() -> None:
    with pytest.raises(ConfigurationError):
        ConcernPipeline(LLMSettings(model="gpt-4o-mini", api_key=None), ConcernsSettings())


def test_decoding_temperature_by_mode() -> None:
    llm = LLMSettings(model="gpt-4o-mini", api_key="k")
    assert decoding_config(llm, ConcernsSettings(), 100).temperature == 0.0
    assert decoding_config(llm, ConcernsSettings(mode="summary"), 100).temperature == 0.7


def test_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("TOSGUARD_FAILURE_POLICY", "abort")
    monkeypatch.setenv("TOSGUARD_INPUT_BUDGET_CHARS", "5000")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
    settings = ConcernsSettings()
    assert settings.failure_policy == "abort"
    assert settings.input_budget_chars == 5000
    monkeypatch.delenv("LLM_API_KEY", raising=False)
    assert LLMSettings().api_key_value() == "sk-from-env"
