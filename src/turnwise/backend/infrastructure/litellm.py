"""LiteLLMBackend — ModelBackend implementation streaming through LiteLLM."""

import json
import time
import uuid
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from typing import Any

import litellm

from turnwise.backend.domain.backend import ChatMessage, FunctionDeclaration
from turnwise.backend.domain.credentials import CredentialSource
from turnwise.backend.domain.events import (
    BackendEvent,
    ContentChunk,
    StreamErrorChunk,
    ToolCallChunk,
    UsageChunk,
    UsageHint,
)
from turnwise.backend.domain.observer import BackendObserver
from turnwise.config.domain.session import BackendConfig
from turnwise.core.abort import AbortSignal
from turnwise.core.errors import AbortedError
from turnwise.scheduler.domain.call import ToolCallRequest

_RATE_LIMIT_HEADERS = (
    ("x-ratelimit-limit-requests", "x-ratelimit-remaining-requests"),
    ("llm_provider-x-ratelimit-limit-requests", "llm_provider-x-ratelimit-remaining-requests"),
)


@dataclass
class _PendingToolCall:
    """Tool call being assembled from streamed deltas."""

    call_id: str | None = None
    name: str = ""
    arguments: list[str] = field(default_factory=list)

    def to_request(self) -> ToolCallRequest:
        return ToolCallRequest(
            call_id=self.call_id or f"call_{uuid.uuid4().hex[:24]}",
            name=self.name,
            args=_parse_arguments("".join(self.arguments)),
        )


class LiteLLMBackend:
    """Streams chat completions with tool calling from any LiteLLM provider.

    Satisfies the ModelBackend protocol structurally. Tool call arguments
    arrive in fragments; a ToolCallChunk is emitted per call once the stream
    ends. Provider errors are reported as a final StreamErrorChunk.
    """

    def __init__(
        self,
        model: str,
        config: BackendConfig,
        credentials: CredentialSource,
        observer: BackendObserver,
    ) -> None:
        self._model = model
        self._config = config
        self._credentials = credentials
        self._observer = observer
        self._usage_hint: UsageHint | None = None

    @property
    def model(self) -> str:
        return self._model

    @property
    def supports_parallel_tool_calls(self) -> bool:
        return self._config.parallel_tool_calls

    def get_usage_hint(self) -> UsageHint | None:
        return self._usage_hint

    async def stream_turn(
        self,
        history: list[ChatMessage],
        tools: list[FunctionDeclaration],
        signal: AbortSignal,
    ) -> AsyncIterator[BackendEvent]:
        self._observer.backend_stream_started(
            model=self._model, message_count=len(history), tool_count=len(tools)
        )
        started_at = time.monotonic()
        pending: dict[int, _PendingToolCall] = {}
        usage = UsageChunk()

        try:
            response = await litellm.acompletion(**self._request_kwargs(history, tools))
            self._usage_hint = _usage_hint_from(response)
            async for chunk in response:
                signal.raise_if_aborted()
                if not chunk.choices:
                    usage = _usage_from(chunk) or usage
                    continue
                delta = chunk.choices[0].delta
                content = getattr(delta, "content", None)
                if content:
                    yield ContentChunk(text=content)
                for fragment in getattr(delta, "tool_calls", None) or []:
                    _merge_fragment(pending=pending, fragment=fragment)
                usage = _usage_from(chunk) or usage
        except AbortedError:
            raise
        except Exception as exc:
            error = _error_chunk(exc)
            self._observer.backend_stream_failed(
                model=self._model, status=error.status, reason=error.message
            )
            yield error
            return

        requests = [pending[index].to_request() for index in sorted(pending)]
        for request in requests:
            yield ToolCallChunk(request=request)
        yield usage
        self._observer.backend_stream_completed(
            model=self._model,
            duration_ms=int((time.monotonic() - started_at) * 1000),
            tool_call_count=len(requests),
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
        )

    def _request_kwargs(
        self, history: list[ChatMessage], tools: list[FunctionDeclaration]
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": history,
            "stream": True,
            "stream_options": {"include_usage": True},
            "timeout": self._config.request_timeout_seconds,
        }
        if tools:
            kwargs["tools"] = [{"type": "function", "function": t} for t in tools]
        if self._config.temperature is not None:
            kwargs["temperature"] = self._config.temperature
        if self._config.api_base is not None:
            kwargs["api_base"] = self._config.api_base
        api_key = self._credentials.get_credential(provider_for(self._model))
        if api_key is not None:
            kwargs["api_key"] = api_key
        return kwargs


def provider_for(model: str) -> str:
    """Return the LiteLLM provider id serving *model*, e.g. ``anthropic``."""
    try:
        _, provider, _, _ = litellm.get_llm_provider(model=model)
    except litellm.exceptions.BadRequestError:
        provider = model.split("/", 1)[0] if "/" in model else "openai"
    return provider


def _merge_fragment(pending: dict[int, _PendingToolCall], fragment: Any) -> None:
    index = getattr(fragment, "index", None)
    if index is None:
        index = len(pending)
    call = pending.setdefault(index, _PendingToolCall())
    if getattr(fragment, "id", None):
        call.call_id = fragment.id
    function = getattr(fragment, "function", None)
    if function is None:
        return
    if getattr(function, "name", None):
        call.name = function.name
    if getattr(function, "arguments", None):
        call.arguments.append(function.arguments)


def _parse_arguments(raw: str) -> dict[str, Any]:
    """Decode streamed JSON arguments; anything but a JSON object becomes ``{}``."""
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _usage_from(chunk: Any) -> UsageChunk | None:
    usage = getattr(chunk, "usage", None)
    if usage is None:
        return None
    return UsageChunk(
        input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        output_tokens=getattr(usage, "completion_tokens", 0) or 0,
    )


def _usage_hint_from(response: Any) -> UsageHint | None:
    hidden = getattr(response, "_hidden_params", None)
    headers = hidden.get("additional_headers") if isinstance(hidden, Mapping) else None
    if not isinstance(headers, Mapping):
        return None
    for limit_key, remaining_key in _RATE_LIMIT_HEADERS:
        try:
            limit = int(headers[limit_key])
            remaining = int(headers[remaining_key])
        except (KeyError, TypeError, ValueError):
            continue
        if limit > 0:
            return UsageHint(used=max(limit - remaining, 0), limit=limit)
    return None


def _error_chunk(exc: Exception) -> StreamErrorChunk:
    status = getattr(exc, "status_code", None)
    connection_failed = isinstance(
        exc,
        (litellm.Timeout, litellm.APIConnectionError, TimeoutError, ConnectionError),
    )
    return StreamErrorChunk(
        message=str(exc) or type(exc).__name__,
        status=status if isinstance(status, int) else None,
        connection_failed=connection_failed,
    )
