"""Tool call request, lifecycle record and update value objects."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from turnwise.scheduler.domain.errors import IllegalTransitionError
from turnwise.tools.domain.confirmation import ConfirmationDetails, ConfirmationOutcome
from turnwise.tools.domain.result import ToolResult, ToolResultDisplay


class ToolCallStatus(StrEnum):
    PENDING = "pending"
    CONFIRMING = "confirming"
    EXECUTING = "executing"
    SUCCESS = "success"
    ERROR = "error"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({ToolCallStatus.SUCCESS, ToolCallStatus.ERROR, ToolCallStatus.CANCELED})

_ALLOWED_TRANSITIONS: dict[ToolCallStatus, frozenset[ToolCallStatus]] = {
    ToolCallStatus.PENDING: frozenset(
        {
            ToolCallStatus.CONFIRMING,
            ToolCallStatus.EXECUTING,
            ToolCallStatus.ERROR,
            ToolCallStatus.CANCELED,
        }
    ),
    ToolCallStatus.CONFIRMING: frozenset(
        {ToolCallStatus.EXECUTING, ToolCallStatus.ERROR, ToolCallStatus.CANCELED}
    ),
    ToolCallStatus.EXECUTING: frozenset(
        {ToolCallStatus.SUCCESS, ToolCallStatus.ERROR, ToolCallStatus.CANCELED}
    ),
    ToolCallStatus.SUCCESS: frozenset(),
    ToolCallStatus.ERROR: frozenset(),
    ToolCallStatus.CANCELED: frozenset(),
}


class ToolCallRequest(BaseModel, frozen=True):
    """A tool invocation requested by the model."""

    call_id: str = Field(min_length=1)
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ToolCallResponse(BaseModel, frozen=True):
    """Terminal outcome of a call.

    ``content`` is what gets folded back into the conversation for the model;
    it is None for canceled calls, which contribute nothing.
    """

    call_id: str
    content: str | None
    display: ToolResultDisplay | None = None
    error: str | None = None


class ToolCallUpdate(BaseModel, frozen=True):
    """Progress notification for one call: a status change or a chunk of live output."""

    call_id: str
    tool_name: str
    status: ToolCallStatus
    confirmation_details: ConfirmationDetails | None = None
    output: str | None = None


class ToolCallRecord:
    """Scheduler-owned lifecycle of one tool call.

    Status only moves forward along pending -> confirming? -> executing ->
    success | error | canceled, with pending and confirming allowed to end
    early in error or canceled. Any other move raises IllegalTransitionError.
    """

    def __init__(self, request: ToolCallRequest) -> None:
        self._request = request
        self._args = request.args
        self._status = ToolCallStatus.PENDING
        self._history: list[ToolCallStatus] = [ToolCallStatus.PENDING]
        self._confirmation_details: ConfirmationDetails | None = None
        self._outcome: ConfirmationOutcome | None = None
        self._response: ToolCallResponse | None = None

    @property
    def request(self) -> ToolCallRequest:
        return self._request

    @property
    def call_id(self) -> str:
        return self._request.call_id

    @property
    def args(self) -> dict[str, Any]:
        """Arguments the call runs with; differs from the request after modify_then_proceed."""
        return self._args

    @property
    def status(self) -> ToolCallStatus:
        return self._status

    @property
    def history(self) -> tuple[ToolCallStatus, ...]:
        return tuple(self._history)

    @property
    def confirmation_details(self) -> ConfirmationDetails | None:
        return self._confirmation_details

    @property
    def outcome(self) -> ConfirmationOutcome | None:
        return self._outcome

    @property
    def response(self) -> ToolCallResponse | None:
        return self._response

    @property
    def is_terminal(self) -> bool:
        return self._status.is_terminal

    def begin_confirming(self, details: ConfirmationDetails) -> None:
        self._advance(ToolCallStatus.CONFIRMING)
        self._confirmation_details = details

    def record_outcome(
        self, outcome: ConfirmationOutcome, modified_args: dict[str, Any] | None = None
    ) -> None:
        self._outcome = outcome
        if modified_args is not None:
            self._args = modified_args

    def begin_executing(self) -> None:
        self._advance(ToolCallStatus.EXECUTING)

    def succeed(self, result: ToolResult) -> None:
        """Finish from a tool result; a result carrying an error finishes as ``error``."""
        target = ToolCallStatus.ERROR if result.error is not None else ToolCallStatus.SUCCESS
        self._advance(target)
        self._response = ToolCallResponse(
            call_id=self.call_id,
            content=result.llm_content,
            display=result.display,
            error=result.error,
        )

    def fail(self, message: str) -> None:
        self._advance(ToolCallStatus.ERROR)
        self._response = ToolCallResponse(
            call_id=self.call_id, content=message, display=message, error=message
        )

    def cancel(self, reason: str) -> None:
        self._advance(ToolCallStatus.CANCELED)
        self._response = ToolCallResponse(
            call_id=self.call_id, content=None, display=reason, error=None
        )

    def update(self, output: str | None = None) -> ToolCallUpdate:
        return ToolCallUpdate(
            call_id=self.call_id,
            tool_name=self._request.name,
            status=self._status,
            confirmation_details=self._confirmation_details,
            output=output,
        )

    def _advance(self, target: ToolCallStatus) -> None:
        if target not in _ALLOWED_TRANSITIONS[self._status]:
            raise IllegalTransitionError(
                call_id=self.call_id, current=self._status.value, target=target.value
            )
        if self._status is ToolCallStatus.CONFIRMING:
            self._confirmation_details = None
        self._status = target
        self._history.append(target)
