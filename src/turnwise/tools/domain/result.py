"""ToolResult value objects — what a tool execution hands back."""

from pydantic import BaseModel


class FileDiff(BaseModel, frozen=True):
    """Display form for edits: a unified diff of one file."""

    file_name: str
    file_diff: str


type ToolResultDisplay = str | FileDiff


class ToolResult(BaseModel, frozen=True):
    """Outcome of one tool execution.

    ``llm_content`` is folded into the conversation for the model; ``display``
    is the user-facing form. A set ``error`` marks the execution as failed
    even though the tool returned normally (e.g. non-zero exit status).
    """

    llm_content: str
    display: ToolResultDisplay
    error: str | None = None
