"""Turn — one request/response exchange, owned by the Turn Engine while it runs."""

from enum import StrEnum

from turnwise.core.errors import FatalInternalError
from turnwise.scheduler.domain.call import ToolCallRequest


class TurnStatus(StrEnum):
    COMPLETED = "completed"
    CANCELED = "canceled"
    ERRORED = "errored"


class Turn:
    def __init__(self, turn_id: str, model: str) -> None:
        self.turn_id = turn_id
        self.model = model
        self.rounds = 0
        self._content: list[str] = []
        self._requests: list[ToolCallRequest] = []
        self._status: TurnStatus | None = None
        self._error: str | None = None

    @property
    def content(self) -> tuple[str, ...]:
        return tuple(self._content)

    @property
    def requests(self) -> tuple[ToolCallRequest, ...]:
        return tuple(self._requests)

    @property
    def status(self) -> TurnStatus | None:
        return self._status

    @property
    def error(self) -> str | None:
        return self._error

    def add_content(self, text: str) -> None:
        self._content.append(text)

    def add_request(self, request: ToolCallRequest) -> None:
        self._requests.append(request)

    def finish(self, status: TurnStatus, error: str | None = None) -> None:
        if self._status is not None:
            raise FatalInternalError(
                f"Failed to finish turn '{self.turn_id}': already {self._status.value}"
            )
        self._status = status
        self._error = error
