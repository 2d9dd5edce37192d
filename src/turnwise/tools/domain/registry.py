"""ToolRegistry — session-scoped catalog of tools keyed by unique name."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from turnwise.tools.domain.errors import (
    DuplicateToolError,
    RegistryFrozenError,
    ToolNotFoundError,
)
from turnwise.tools.domain.tool import Tool

SERVER_PREFIX_SEPARATOR = "__"


@dataclass(frozen=True)
class RegisteredTool:
    """A tool as exposed to the model: its registered name plus the tool itself."""

    name: str
    tool: Tool

    @property
    def display_name(self) -> str:
        return self.tool.display_name

    @property
    def source_server(self) -> str | None:
        return self.tool.server_name

    @property
    def schema(self) -> dict[str, Any]:
        """Function declaration advertised to the backend under the registered name."""
        return {
            "name": self.name,
            "description": self.tool.description,
            "parameters": self.tool.parameter_schema,
        }


class ToolRegistry:
    """Catalog of tools with names that are unique at all times.

    Built-in tools register first under their natural name. Tools from an
    external server keep their natural name unless it is already taken, in
    which case they are registered as ``{server}__{name}``. Collisions are
    resolved here, at registration, never at lookup. Once start-up discovery
    is over the registry is frozen and treated as read-only.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RegisteredTool] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, tool: Tool) -> RegisteredTool:
        """Register a built-in tool under its natural name.

        Raises:
            DuplicateToolError: if the name is already registered.
            RegistryFrozenError: if the registry has been frozen.
        """
        self._ensure_mutable(name=tool.name)
        if tool.name in self._entries:
            raise DuplicateToolError(name=tool.name)
        entry = RegisteredTool(name=tool.name, tool=tool)
        self._entries[entry.name] = entry
        return entry

    def register_server_tools(
        self, server_name: str, tools: Sequence[Tool]
    ) -> list[RegisteredTool]:
        """Register every tool of one external server, or none of them.

        Raises:
            DuplicateToolError: if the server's own listing would produce the
                same registered name twice; nothing is registered in that case.
            RegistryFrozenError: if the registry has been frozen.
        """
        names = [self.resolve_name(server_name=server_name, tool_name=t.name) for t in tools]
        for name in names:
            self._ensure_mutable(name=name)
            if name in self._entries:
                raise DuplicateToolError(name=name)
        if len(set(names)) != len(names):
            duplicate = next(n for n in names if names.count(n) > 1)
            raise DuplicateToolError(name=duplicate)

        entries = [RegisteredTool(name=name, tool=tool) for name, tool in zip(names, tools)]
        for entry in entries:
            self._entries[entry.name] = entry
        return entries

    def resolve_name(self, server_name: str, tool_name: str) -> str:
        """Return the name a server tool would be registered under right now."""
        if tool_name not in self._entries:
            return tool_name
        return f"{server_name}{SERVER_PREFIX_SEPARATOR}{tool_name}"

    def freeze(self) -> None:
        self._frozen = True

    def get(self, name: str) -> RegisteredTool | None:
        return self._entries.get(name)

    def require(self, name: str) -> RegisteredTool:
        """
        Raises:
            ToolNotFoundError: if no tool is registered under *name*.
        """
        entry = self._entries.get(name)
        if entry is None:
            raise ToolNotFoundError(name=name)
        return entry

    def names(self) -> list[str]:
        return list(self._entries)

    def entries(self) -> list[RegisteredTool]:
        return list(self._entries.values())

    def tools_for_server(self, server_name: str) -> list[RegisteredTool]:
        return [e for e in self._entries.values() if e.source_server == server_name]

    def function_declarations(self) -> list[dict[str, Any]]:
        return [entry.schema for entry in self._entries.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _ensure_mutable(self, name: str) -> None:
        if self._frozen:
            raise RegistryFrozenError(name=name)
