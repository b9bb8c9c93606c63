from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from ...core.config import settings
from ..capabilities.base import Tool
from ..errors import AgentsError, ProviderRuntimeError
from ..schemas.domain import ModelGenerateResult, RequestedToolCall, ToolCallResult
from .base import Model, ModelGenerateRequest

logger = logging.getLogger(__name__)

OPEN_OBJECT_SCHEMA: Dict[str, Any] = {"type": "object", "additionalProperties": True}


def _safe_json(value: Any) -> str:
    try:
        return json.dumps(value, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return '"[unserializable]"'


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _parse_args(raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, str) or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _content_text(raw: Any) -> str:
    if isinstance(raw, str):
        return raw
    if not isinstance(raw, list):
        return ""
    return "".join(part["text"] for part in raw if isinstance(part, dict) and isinstance(part.get("text"), str))


def tool_spec(tool: Tool) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.parameters or OPEN_OBJECT_SCHEMA,
        },
    }


def tool_results_message(tool_calls: List[ToolCallResult]) -> Optional[Dict[str, str]]:
    """Summarize earlier tool results as one system message, or None when there are none."""
    if not tool_calls:
        return None
    lines = [
        f"#{i} {tc.tool_name} kind={tc.tool_kind.value} args={_safe_json(tc.args)} output={_safe_json(tc.output)}"
        for i, tc in enumerate(tool_calls, start=1)
    ]
    return {"role": "system", "content": "Previous tool results:\n" + "\n".join(lines)}


def build_chat_completion_payload(model_name: str, request: ModelGenerateRequest) -> Dict[str, Any]:
    messages: List[Dict[str, str]] = [
        {"role": "system", "content": request.agent.instructions},
        {"role": "user", "content": request.input_text},
    ]
    summary = tool_results_message(request.tool_calls)
    if summary is not None:
        messages.append(summary)
    payload: Dict[str, Any] = {"model": model_name, "messages": messages, "stream": bool(request.stream)}
    tools = [tool_spec(t) for t in request.agent.tools]
    if tools:
        payload["tools"] = tools
        payload["tool_choice"] = "auto"
    return payload


def parse_chat_completion(data: Any) -> ModelGenerateResult:
    choices = _as_dict(data).get("choices")
    first = _as_dict(choices[0]) if isinstance(choices, list) and choices else {}
    message = _as_dict(first.get("message"))
    if not message:
        raise ProviderRuntimeError("Invalid Chat Completions response: choices[0].message is missing.")
    calls: List[RequestedToolCall] = []
    for entry in message.get("tool_calls") or []:
        fn = _as_dict(_as_dict(entry).get("function"))
        name = fn.get("name")
        if isinstance(name, str) and name:
            calls.append(RequestedToolCall(tool_name=name, args=_parse_args(fn.get("arguments"))))
    text = _content_text(message.get("content"))
    return ModelGenerateResult(output_text=text or None, tool_calls=calls, raw=data)


class StreamAccumulator:
    """Fold Chat Completions SSE ``data:`` payloads into one result."""

    def __init__(self) -> None:
        self._text: List[str] = []
        self._calls: Dict[int, Dict[str, str]] = {}

    def feed_line(self, line: str) -> None:
        line = line.strip()
        if not line.startswith("data:"):
            return
        chunk = line[5:].strip()
        if not chunk or chunk == "[DONE]":
            return
        try:
            event = json.loads(chunk)
        except ValueError:
            return
        choices = _as_dict(event).get("choices")
        choice = _as_dict(choices[0]) if isinstance(choices, list) and choices else {}
        delta = _as_dict(choice.get("delta"))
        if isinstance(delta.get("content"), str):
            self._text.append(delta["content"])
        for raw in delta.get("tool_calls") or []:
            entry = _as_dict(raw)
            index = entry.get("index") if isinstance(entry.get("index"), int) else 0
            fn = _as_dict(entry.get("function"))
            buf = self._calls.setdefault(index, {"name": "", "args": ""})
            if isinstance(fn.get("name"), str) and fn["name"]:
                buf["name"] = fn["name"]
            if isinstance(fn.get("arguments"), str):
                buf["args"] += fn["arguments"]

    def result(self) -> ModelGenerateResult:
        calls = [
            RequestedToolCall(tool_name=buf["name"], args=_parse_args(buf["args"]))
            for _, buf in sorted(self._calls.items())
            if buf["name"]
        ]
        text = "".join(self._text)
        return ModelGenerateResult(output_text=text or None, tool_calls=calls)


class ChatCompletionModel(Model):
    """
    ``Model`` backed by an OpenAI-compatible ``/chat/completions`` endpoint.

    Non-streaming requests parse ``choices[0].message``; streaming requests
    consume the SSE body and accumulate text and tool-call deltas.
    """

    def __init__(
        self,
        *,
        provider: str,
        name: str,
        base_url: str,
        api_key: str = "",
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.provider = provider
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._api_key = api_key
        self._extra_headers = dict(headers or {})
        self._client = client

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        headers.update(self._extra_headers)
        return headers

    async def generate(self, request: ModelGenerateRequest) -> ModelGenerateResult:
        payload = build_chat_completion_payload(self.name, request)
        url = f"{self.base_url}/chat/completions"
        logger.debug("ChatCompletionModel.generate: POST %s model=%s stream=%s", url, self.name, payload["stream"])
        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        try:
            if payload["stream"]:
                return await self._post_streaming(client, url, payload)
            r = await client.post(url, headers=self._headers(), json=payload)
            r.raise_for_status()
            try:
                data = r.json()
            except ValueError as e:
                raise ProviderRuntimeError(f"Invalid JSON response from {self.provider}.") from e
            return parse_chat_completion(data)
        except AgentsError:
            raise
        except httpx.HTTPStatusError as e:
            raise ProviderRuntimeError(
                f"Provider request failed ({e.response.status_code}). {e.response.text[:1000]}".strip(),
                details={"provider": self.provider, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise ProviderRuntimeError(
                f"Provider request failed for {self.provider}.",
                details={"provider": self.provider, "cause": repr(e)},
            ) from e
        finally:
            if self._client is None:
                await client.aclose()

    async def _post_streaming(self, client: httpx.AsyncClient, url: str, payload: Dict[str, Any]) -> ModelGenerateResult:
        acc = StreamAccumulator()
        async with client.stream("POST", url, headers=self._headers(), json=payload) as r:
            if r.status_code >= 400:
                await r.aread()
            r.raise_for_status()
            async for line in r.aiter_lines():
                acc.feed_line(line)
        return acc.result()
