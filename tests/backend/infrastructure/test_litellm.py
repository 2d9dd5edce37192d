"""Tests for LiteLLMBackend — streaming, tool call assembly and error reporting."""

from collections.abc import AsyncIterator
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from tests.backend.fake_observer import FakeBackendObserver
from turnwise.backend.domain.events import (
    BackendEvent,
    ContentChunk,
    StreamErrorChunk,
    ToolCallChunk,
    UsageChunk,
)
from turnwise.backend.infrastructure.credentials import StaticCredentialSource
from turnwise.backend.infrastructure.litellm import LiteLLMBackend
from turnwise.config.domain.session import BackendConfig
from turnwise.core.abort import AbortSignal
from turnwise.core.errors import AbortedError

ACOMPLETION = "turnwise.backend.infrastructure.litellm.litellm.acompletion"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _FakeStream:
    """Stands in for litellm's CustomStreamWrapper."""

    def __init__(self, chunks: list[Any], headers: dict[str, str] | None = None) -> None:
        self._chunks = chunks
        self._hidden_params = {"additional_headers": headers or {}}

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Any]:
        for chunk in self._chunks:
            yield chunk


class _HttpError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


def _content(text: str) -> SimpleNamespace:
    delta = SimpleNamespace(content=text, tool_calls=None)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)], usage=None)


def _fragment(
    index: int,
    call_id: str | None = None,
    name: str | None = None,
    arguments: str | None = None,
) -> SimpleNamespace:
    fragment = SimpleNamespace(
        index=index,
        id=call_id,
        function=SimpleNamespace(name=name, arguments=arguments),
    )
    delta = SimpleNamespace(content=None, tool_calls=[fragment])
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)], usage=None)


def _usage(prompt_tokens: int, completion_tokens: int) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[],
        usage=SimpleNamespace(
            prompt_tokens=prompt_tokens, completion_tokens=completion_tokens
        ),
    )


def _make_backend(
    model: str = "gpt-4o",
    config: BackendConfig | None = None,
    credentials: dict[str, str] | None = None,
) -> tuple[LiteLLMBackend, FakeBackendObserver]:
    observer = FakeBackendObserver()
    backend = LiteLLMBackend(
        model=model,
        config=config or BackendConfig(),
        credentials=StaticCredentialSource(credentials or {}),
        observer=observer,
    )
    return backend, observer


async def _collect(
    backend: LiteLLMBackend,
    signal: AbortSignal | None = None,
    tools: list[dict[str, Any]] | None = None,
) -> list[BackendEvent]:
    history = [{"role": "user", "content": "hi"}]
    stream = backend.stream_turn(
        history=history, tools=tools or [], signal=signal or AbortSignal()
    )
    return [event async for event in stream]


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------


class TestStreaming:
    async def test_content_is_forwarded_in_order(self) -> None:
        backend, observer = _make_backend()
        stream = _FakeStream([_content("Hel"), _content("lo"), _usage(12, 3)])

        with patch(ACOMPLETION, new=AsyncMock(return_value=stream)):
            events = await _collect(backend)

        assert events == [
            ContentChunk(text="Hel"),
            ContentChunk(text="lo"),
            UsageChunk(input_tokens=12, output_tokens=3),
        ]
        assert observer.completed[0].input_tokens == 12

    async def test_tool_call_fragments_are_assembled(self) -> None:
        backend, observer = _make_backend()
        stream = _FakeStream(
            [
                _fragment(0, call_id="call_1", name="read_file", arguments='{"pa'),
                _fragment(0, arguments='th": "a.py"}'),
                _fragment(1, call_id="call_2", name="list_directory", arguments="{}"),
            ]
        )

        with patch(ACOMPLETION, new=AsyncMock(return_value=stream)):
            events = await _collect(backend)

        calls = [e for e in events if isinstance(e, ToolCallChunk)]
        assert [c.request.call_id for c in calls] == ["call_1", "call_2"]
        assert calls[0].request.name == "read_file"
        assert calls[0].request.args == {"path": "a.py"}
        assert calls[1].request.args == {}
        assert observer.completed[0].tool_call_count == 2

    async def test_malformed_arguments_become_empty(self) -> None:
        backend, _ = _make_backend()
        stream = _FakeStream([_fragment(0, call_id="c", name="x", arguments="[1, 2")])

        with patch(ACOMPLETION, new=AsyncMock(return_value=stream)):
            events = await _collect(backend)

        call = next(e for e in events if isinstance(e, ToolCallChunk))
        assert call.request.args == {}

    async def test_missing_call_id_is_generated(self) -> None:
        backend, _ = _make_backend()
        stream = _FakeStream([_fragment(0, name="x", arguments="{}")])

        with patch(ACOMPLETION, new=AsyncMock(return_value=stream)):
            events = await _collect(backend)

        call = next(e for e in events if isinstance(e, ToolCallChunk))
        assert call.request.call_id.startswith("call_")

    async def test_abort_stops_the_stream(self) -> None:
        backend, _ = _make_backend()
        signal = AbortSignal()
        signal.abort("stop")
        stream = _FakeStream([_content("never")])

        with patch(ACOMPLETION, new=AsyncMock(return_value=stream)):
            with pytest.raises(AbortedError):
                await _collect(backend, signal=signal)


# ---------------------------------------------------------------------------
# Request construction
# ---------------------------------------------------------------------------


class TestRequest:
    async def test_tools_are_wrapped_as_functions(self) -> None:
        backend, _ = _make_backend()
        mock = AsyncMock(return_value=_FakeStream([]))
        declaration = {"name": "read_file", "description": "", "parameters": {}}

        with patch(ACOMPLETION, new=mock):
            await _collect(backend, tools=[declaration])

        kwargs = mock.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["stream"] is True
        assert kwargs["tools"] == [{"type": "function", "function": declaration}]

    async def test_optional_settings_are_passed(self) -> None:
        backend, _ = _make_backend(
            model="anthropic/claude-3-5-sonnet-20240620",
            config=BackendConfig(temperature=0.2, api_base="http://localhost:4000"),
            credentials={"anthropic": "sk-test"},
        )
        mock = AsyncMock(return_value=_FakeStream([]))

        with patch(ACOMPLETION, new=mock):
            await _collect(backend)

        kwargs = mock.call_args.kwargs
        assert kwargs["temperature"] == 0.2
        assert kwargs["api_base"] == "http://localhost:4000"
        assert kwargs["api_key"] == "sk-test"
        assert "tools" not in kwargs

    async def test_no_credential_means_no_api_key(self) -> None:
        backend, _ = _make_backend()
        mock = AsyncMock(return_value=_FakeStream([]))

        with patch(ACOMPLETION, new=mock):
            await _collect(backend)

        assert "api_key" not in mock.call_args.kwargs


# ---------------------------------------------------------------------------
# Errors and usage hints
# ---------------------------------------------------------------------------


class TestErrors:
    """Provider failures arrive as a final StreamErrorChunk, never raised."""

    async def test_http_error_becomes_error_chunk(self) -> None:
        backend, observer = _make_backend()

        with patch(ACOMPLETION, new=AsyncMock(side_effect=_HttpError("overloaded", 503))):
            events = await _collect(backend)

        assert events == [StreamErrorChunk(message="overloaded", status=503)]
        assert observer.failed[0].status == 503

    async def test_timeout_is_connection_failure(self) -> None:
        backend, _ = _make_backend()

        with patch(ACOMPLETION, new=AsyncMock(side_effect=TimeoutError())):
            events = await _collect(backend)

        assert len(events) == 1
        error = events[0]
        assert isinstance(error, StreamErrorChunk)
        assert error.connection_failed is True
        assert error.message == "TimeoutError"


class TestUsageHint:
    async def test_rate_limit_headers_become_usage_hint(self) -> None:
        backend, _ = _make_backend()
        stream = _FakeStream(
            [_content("ok")],
            headers={
                "x-ratelimit-limit-requests": "100",
                "x-ratelimit-remaining-requests": "25",
            },
        )

        with patch(ACOMPLETION, new=AsyncMock(return_value=stream)):
            await _collect(backend)

        hint = backend.get_usage_hint()
        assert hint is not None
        assert hint.used == 75
        assert hint.limit == 100

    async def test_no_headers_means_no_hint(self) -> None:
        backend, _ = _make_backend()

        with patch(ACOMPLETION, new=AsyncMock(return_value=_FakeStream([]))):
            await _collect(backend)

        assert backend.get_usage_hint() is None

    def test_parallel_tool_calls_follow_config(self) -> None:
        backend, _ = _make_backend(config=BackendConfig(parallel_tool_calls=False))

        assert backend.supports_parallel_tool_calls is False
