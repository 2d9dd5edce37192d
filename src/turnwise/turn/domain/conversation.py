"""Conversation — the caller-facing log and the backend-native history, kept in step."""

from collections.abc import Sequence
from typing import Any

from turnwise.scheduler.domain.call import ToolCallRecord, ToolCallRequest, ToolCallStatus
from turnwise.tools.domain.result import FileDiff
from turnwise.turn.domain.chat_history import ChatHistory, ChatMessage
from turnwise.turn.domain.history import ConversationLog, HistoryItem, HistoryItemKind


class Conversation:
    """Owns both representations of the session's conversation.

    Satisfies the ConversationTarget port used by checkpoints.
    """

    def __init__(self) -> None:
        self._log = ConversationLog()
        self._chat = ChatHistory()

    def items(self) -> tuple[HistoryItem, ...]:
        return self._log.items()

    def get(self, item_id: int) -> HistoryItem | None:
        return self._log.get(item_id)

    def chat_messages(self) -> list[ChatMessage]:
        return self._chat.messages()

    def add_user_message(self, text: str) -> None:
        self._log.append(kind=HistoryItemKind.USER, text=text)
        self._chat.add_user(text)

    def add_model_response(self, text: str, tool_calls: list[ToolCallRequest]) -> None:
        if text:
            self._log.append(kind=HistoryItemKind.MODEL, text=text)
        if text or tool_calls:
            self._chat.add_assistant(text=text, tool_calls=tool_calls)

    def add_info(self, text: str) -> None:
        self._log.append(kind=HistoryItemKind.INFO, text=text)

    def add_error(self, text: str) -> None:
        self._log.append(kind=HistoryItemKind.ERROR, text=text)

    def fold_tool_results(self, records: Sequence[ToolCallRecord]) -> None:
        """Fold terminal records back in the order given.

        Canceled calls are logged for the caller but contribute nothing to
        what the model sees.
        """
        canceled: list[str] = []
        for record in records:
            response = record.response
            self._log.append(
                kind=HistoryItemKind.TOOL,
                text=_display_text(record),
                call_id=record.call_id,
                tool_name=record.request.name,
                status=record.status.value,
            )
            if record.status is ToolCallStatus.CANCELED or response is None:
                canceled.append(record.call_id)
                continue
            self._chat.add_tool_result(
                call_id=record.call_id,
                name=record.request.name,
                content=response.content or "",
            )
        self._chat.prune_calls(canceled)

    def prune_unanswered_calls(self) -> None:
        """Drop announced calls that never got a result, e.g. after a restore."""
        self._chat.prune_calls(self._chat.unanswered_call_ids())

    def export_history(self) -> tuple[list[dict[str, Any]], list[ChatMessage]]:
        history = [item.model_dump(mode="json") for item in self._log.items()]
        return history, self._chat.messages()

    def load_history(
        self, history: list[dict[str, Any]], client_history: list[ChatMessage]
    ) -> None:
        self._log.replace_all(HistoryItem.model_validate(item) for item in history)
        self._chat.replace(client_history)


def _display_text(record: ToolCallRecord) -> str:
    response = record.response
    if response is None:
        return ""
    display = response.display
    if isinstance(display, FileDiff):
        return display.file_diff
    if display is not None:
        return display
    return response.content or ""
