"""Model boundary and Chat Completions providers."""

from .base import Model, ModelGenerateRequest, coerce_generate_result
from .chat_completion import ChatCompletionModel, build_chat_completion_payload, parse_chat_completion
from .registry import PROVIDER_SPECS, ProviderHandle, ProviderSpec, get_provider, list_providers

__all__ = [
    "Model",
    "ModelGenerateRequest",
    "coerce_generate_result",
    "ChatCompletionModel",
    "build_chat_completion_payload",
    "parse_chat_completion",
    "PROVIDER_SPECS",
    "ProviderHandle",
    "ProviderSpec",
    "get_provider",
    "list_providers",
]
