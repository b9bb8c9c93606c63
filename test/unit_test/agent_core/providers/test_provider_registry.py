from __future__ import annotations

import pytest

from agentguard_ai.agent_core.errors import ProviderConfigError
from agentguard_ai.agent_core.providers.registry import (
    PROVIDER_SPECS,
    ProviderHandle,
    apply_base_url_suffix,
    get_provider,
    list_providers,
)


def test_list_providers() -> None:
    assert list_providers() == ["openai", "ollama", "lmstudio", "gemini", "anthropic", "openrouter"]


def test_unknown_provider_raises() -> None:
    with pytest.raises(ProviderConfigError) as exc:
        ProviderHandle("acme", env={})
    assert exc.value.details == {"provider": "acme"}


@pytest.mark.parametrize(
    ("provider", "base_url", "expected"),
    [
        ("openai", "http://mock", "http://mock/v1"),
        ("openai", "http://mock/v1/", "http://mock/v1"),
        ("openai", "http://mock/V1", "http://mock/V1"),
        ("gemini", "http://mock", "http://mock/v1beta/openai"),
        ("openai", "   ", ""),
    ],
)
def test_apply_base_url_suffix(provider: str, base_url: str, expected: str) -> None:
    assert apply_base_url_suffix(base_url, PROVIDER_SPECS[provider]) == expected


def test_openai_defaults() -> None:
    model = ProviderHandle("openai", env={"OPENAI_API_KEY": "sk-1"}).get_model()
    assert model.provider == "openai"
    assert model.name == "gpt-4.1-mini"
    assert model.base_url == "https://api.openai.com/v1"


def test_openai_requires_api_key() -> None:
    with pytest.raises(ProviderConfigError, match="OPENAI_API_KEY"):
        ProviderHandle("openai", env={}).get_model()


def test_model_name_resolution_order() -> None:
    env = {"OPENAI_API_KEY": "sk-1", "AGENTS_OPENAI_MODEL": "env-model"}
    handle = ProviderHandle("openai", env=env)
    assert handle.get_model().name == "env-model"
    assert handle.get_model("explicit").name == "explicit"


def test_local_providers_need_no_key() -> None:
    model = ProviderHandle(
        "ollama",
        env={"AGENTS_OLLAMA_MODEL": "llama3", "AGENTS_OLLAMA_BASE_URL": "http://localhost:11434"},
    ).get_model()
    assert model.base_url == "http://localhost:11434/v1"
    assert model._headers()["Authorization"] == "Bearer ollama"


def test_provider_without_default_model_requires_one() -> None:
    with pytest.raises(ProviderConfigError, match="AGENTS_ANTHROPIC_MODEL"):
        ProviderHandle("anthropic", env={"AGENTS_ANTHROPIC_API_KEY": "k"}).get_model()


def test_openrouter_headers() -> None:
    env = {
        "AGENTS_OPENROUTER_API_KEY": "k",
        "AGENTS_OPENROUTER_MODEL": "meta/llama",
        "AGENTS_OPENROUTER_HTTP_REFERER": "https://example.test",
        "AGENTS_OPENROUTER_X_TITLE": "agentguard",
    }
    headers = ProviderHandle("openrouter", env=env).get_model()._headers()
    assert headers["HTTP-Referer"] == "https://example.test"
    assert headers["X-Title"] == "agentguard"


def test_get_provider_by_name() -> None:
    handle = get_provider("lmstudio", env={})
    assert handle.name == "lmstudio"
    assert handle.spec.default_base_url == "http://127.0.0.1:1234/v1"
