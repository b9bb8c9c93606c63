from __future__ import annotations

"""Provider table and environment-driven model resolution.

Every supported provider speaks the Chat Completions dialect; they differ
only in which environment variables hold the API key, base URL and default
model, and in their default base URL.
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

import httpx

from ...core.config import settings
from ..errors import ProviderConfigError
from .chat_completion import ChatCompletionModel


@dataclass(frozen=True)
class ProviderSpec:
    api_key_env: str
    base_url_env: str
    model_env: str
    default_base_url: str
    require_api_key: bool
    default_model: Optional[str] = None
    default_api_key: Optional[str] = None


PROVIDER_SPECS: Dict[str, ProviderSpec] = {
    "openai": ProviderSpec(
        api_key_env="OPENAI_API_KEY",
        base_url_env="OPENAI_BASE_URL",
        model_env="AGENTS_OPENAI_MODEL",
        default_base_url="https://api.openai.com/v1",
        default_model="gpt-4.1-mini",
        require_api_key=True,
    ),
    "ollama": ProviderSpec(
        api_key_env="AGENTS_OLLAMA_API_KEY",
        base_url_env="AGENTS_OLLAMA_BASE_URL",
        model_env="AGENTS_OLLAMA_MODEL",
        default_base_url="http://127.0.0.1:11434/v1",
        default_api_key="ollama",
        require_api_key=False,
    ),
    "lmstudio": ProviderSpec(
        api_key_env="AGENTS_LMSTUDIO_API_KEY",
        base_url_env="AGENTS_LMSTUDIO_BASE_URL",
        model_env="AGENTS_LMSTUDIO_MODEL",
        default_base_url="http://127.0.0.1:1234/v1",
        default_api_key="lmstudio",
        require_api_key=False,
    ),
    "gemini": ProviderSpec(
        api_key_env="AGENTS_GEMINI_API_KEY",
        base_url_env="AGENTS_GEMINI_BASE_URL",
        model_env="AGENTS_GEMINI_MODEL",
        default_base_url="https://generativelanguage.googleapis.com/v1beta/openai",
        default_model="gemini-2.0-flash",
        require_api_key=True,
    ),
    "anthropic": ProviderSpec(
        api_key_env="AGENTS_ANTHROPIC_API_KEY",
        base_url_env="AGENTS_ANTHROPIC_BASE_URL",
        model_env="AGENTS_ANTHROPIC_MODEL",
        default_base_url="https://api.anthropic.com/v1",
        require_api_key=True,
    ),
    "openrouter": ProviderSpec(
        api_key_env="AGENTS_OPENROUTER_API_KEY",
        base_url_env="AGENTS_OPENROUTER_BASE_URL",
        model_env="AGENTS_OPENROUTER_MODEL",
        default_base_url="https://openrouter.ai/api/v1",
        require_api_key=True,
    ),
}


def list_providers() -> List[str]:
    return list(PROVIDER_SPECS)


def apply_base_url_suffix(base_url: str, spec: ProviderSpec) -> str:
    """Append the default URL's path (e.g. ``/v1``) when a custom base URL omits it."""
    base_url = base_url.strip().rstrip("/")
    if not base_url:
        return base_url
    suffix = httpx.URL(spec.default_base_url).path.rstrip("/")
    if not suffix or base_url.lower().endswith(suffix.lower()):
        return base_url
    return f"{base_url}{suffix}"


class ProviderHandle:
    """Resolve models of one provider from an environment mapping."""

    def __init__(self, name: str, env: Optional[Mapping[str, str]] = None) -> None:
        if name not in PROVIDER_SPECS:
            raise ProviderConfigError(
                f"Unknown provider: {name!r}. Expected one of {', '.join(PROVIDER_SPECS)}.",
                details={"provider": name},
            )
        self.name = name
        self.spec = PROVIDER_SPECS[name]
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def _read(self, key: str) -> Optional[str]:
        value = self._env.get(key)
        return value.strip() if isinstance(value, str) and value.strip() else None

    def get_model(
        self,
        model_name: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> ChatCompletionModel:
        """
        Build a ``ChatCompletionModel`` for this provider.

        Raises:
            ProviderConfigError: If the model name or a required API key cannot be resolved.
        """
        spec = self.spec
        base_url = apply_base_url_suffix(self._read(spec.base_url_env) or spec.default_base_url, spec)
        api_key = self._read(spec.api_key_env) or spec.default_api_key or ""
        resolved_model = (model_name or self._read(spec.model_env) or settings.model_name or spec.default_model or "").strip()

        if not resolved_model:
            raise ProviderConfigError(f"{spec.model_env} is required.", details={"provider": self.name})
        if spec.require_api_key and not api_key:
            raise ProviderConfigError(f"{spec.api_key_env} is required.", details={"provider": self.name})

        headers: Dict[str, str] = {}
        if self.name == "openrouter":
            referer = self._read("AGENTS_OPENROUTER_HTTP_REFERER")
            title = self._read("AGENTS_OPENROUTER_X_TITLE")
            if referer:
                headers["HTTP-Referer"] = referer
            if title:
                headers["X-Title"] = title

        return ChatCompletionModel(
            provider=self.name,
            name=resolved_model,
            base_url=base_url,
            api_key=api_key,
            headers=headers,
            client=client,
        )


def get_provider(name: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> ProviderHandle:
    return ProviderHandle(name or settings.model_provider, env)
