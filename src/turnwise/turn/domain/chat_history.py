"""ChatHistory — the backend-native (OpenAI-style) message list sent to the model."""

import copy
import json
from collections.abc import Iterable
from typing import Any

from turnwise.scheduler.domain.call import ToolCallRequest

type ChatMessage = dict[str, Any]


class ChatHistory:
    """Messages in the chat-completions shape LiteLLM accepts for every provider.

    The assistant message announcing tool calls is appended before the tools
    run, so a checkpoint taken mid-round already contains it. Calls that end
    up canceled are pruned from it again, since they get no tool message.
    """

    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []

    def messages(self) -> list[ChatMessage]:
        return copy.deepcopy(self._messages)

    def add_user(self, text: str) -> None:
        self._messages.append({"role": "user", "content": text})

    def add_assistant(self, text: str, tool_calls: list[ToolCallRequest]) -> None:
        message: ChatMessage = {"role": "assistant", "content": text or None}
        if tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.call_id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": json.dumps(call.args)},
                }
                for call in tool_calls
            ]
        self._messages.append(message)

    def add_tool_result(self, call_id: str, name: str, content: str) -> None:
        self._messages.append(
            {"role": "tool", "tool_call_id": call_id, "name": name, "content": content}
        )

    def prune_calls(self, call_ids: Iterable[str]) -> None:
        """Remove the given calls from the assistant messages that announced them."""
        pruned = set(call_ids)
        if not pruned:
            return
        kept: list[ChatMessage] = []
        for message in self._messages:
            if message.get("role") == "assistant" and message.get("tool_calls"):
                remaining = [c for c in message["tool_calls"] if c["id"] not in pruned]
                if not remaining and not message.get("content"):
                    continue
                message = dict(message)
                if remaining:
                    message["tool_calls"] = remaining
                else:
                    del message["tool_calls"]
            kept.append(message)
        self._messages = kept

    def unanswered_call_ids(self) -> list[str]:
        """Ids of announced calls that have no tool message yet."""
        answered = {
            m["tool_call_id"] for m in self._messages if m.get("role") == "tool"
        }
        return [
            call["id"]
            for m in self._messages
            if m.get("role") == "assistant"
            for call in m.get("tool_calls") or []
            if call["id"] not in answered
        ]

    def replace(self, messages: list[ChatMessage]) -> None:
        self._messages = copy.deepcopy(messages)

    def __len__(self) -> int:
        return len(self._messages)
