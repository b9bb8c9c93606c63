from __future__ import annotations

"""Model boundary.

The runner and the model-backed safety evaluator talk to language models only
through the ``Model`` protocol. A model receives the agent, the flattened run
input and the tool results produced so far, and returns optional text plus
optional tool calls it wants executed next.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, List, Mapping, Protocol, Union

from pydantic import ValidationError

from ..errors import ProviderRuntimeError
from ..schemas.domain import ModelGenerateResult, ToolCallResult

if TYPE_CHECKING:
    from ..agent import Agent


@dataclass(frozen=True)
class ModelGenerateRequest:
    agent: "Agent"
    input_text: str
    tool_calls: List[ToolCallResult] = field(default_factory=list)
    stream: bool = False


class Model(Protocol):
    """Anything that can plan the next step of a run."""

    def generate(
        self, request: ModelGenerateRequest
    ) -> Awaitable[Union[ModelGenerateResult, Mapping[str, Any]]]: ...


def coerce_generate_result(raw: Any) -> ModelGenerateResult:
    """Accept a ``ModelGenerateResult`` or a mapping with the same keys.

    Raises:
        ProviderRuntimeError: If the value cannot be interpreted.
    """
    if isinstance(raw, ModelGenerateResult):
        return raw
    if raw is None:
        return ModelGenerateResult()
    if not isinstance(raw, Mapping):
        raise ProviderRuntimeError(f"Model returned unsupported result type: {type(raw).__name__}")
    try:
        return ModelGenerateResult.model_validate(dict(raw))
    except ValidationError as exc:
        raise ProviderRuntimeError(
            "Model returned an invalid generate result.",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc
