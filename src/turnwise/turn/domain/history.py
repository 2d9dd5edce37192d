"""ConversationLog — the engine-owned, append-only record of a session's conversation."""

from collections.abc import Iterable
from enum import StrEnum

from pydantic import BaseModel, Field


class HistoryItemKind(StrEnum):
    USER = "user"
    MODEL = "model"
    TOOL = "tool"
    INFO = "info"
    ERROR = "error"


class HistoryItem(BaseModel, frozen=True):
    """One entry of the conversation as presented to the caller.

    Tool entries carry the call id, tool name and terminal status of the call.
    """

    id: int = Field(ge=1)
    kind: HistoryItemKind
    text: str = ""
    call_id: str | None = None
    tool_name: str | None = None
    status: str | None = None


class ConversationLog:
    """Append-only, id-indexed log of HistoryItems.

    Callers only ever see immutable items and tuples of them; the log itself
    is never handed out. ``replace_all`` exists for checkpoint restore.
    """

    def __init__(self) -> None:
        self._items: list[HistoryItem] = []
        self._by_id: dict[int, HistoryItem] = {}

    def append(
        self,
        kind: HistoryItemKind,
        text: str = "",
        call_id: str | None = None,
        tool_name: str | None = None,
        status: str | None = None,
    ) -> HistoryItem:
        item = HistoryItem(
            id=self._next_id(),
            kind=kind,
            text=text,
            call_id=call_id,
            tool_name=tool_name,
            status=status,
        )
        self._items.append(item)
        self._by_id[item.id] = item
        return item

    def items(self) -> tuple[HistoryItem, ...]:
        return tuple(self._items)

    def get(self, item_id: int) -> HistoryItem | None:
        return self._by_id.get(item_id)

    def replace_all(self, items: Iterable[HistoryItem]) -> None:
        replacement = list(items)
        self._items = replacement
        self._by_id = {item.id: item for item in replacement}

    def __len__(self) -> int:
        return len(self._items)

    def _next_id(self) -> int:
        return self._items[-1].id + 1 if self._items else 1
