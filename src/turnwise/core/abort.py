"""AbortSignal — cooperative cancellation scope shared by a Turn and its tool calls."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from turnwise.core.errors import AbortedError

T = TypeVar("T")


class AbortSignal:
    """A one-shot cancellation flag that can be awaited.

    Aborting is advisory: holders are expected to check ``aborted`` or await
    ``wait()`` and stop promptly. Child scopes are aborted together with their
    parent but may also be aborted on their own without affecting the parent.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._listeners: list[Callable[[str | None], None]] = []

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def abort(self, reason: str | None = None) -> None:
        """Abort this scope and every child scope. Repeated calls are no-ops."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(reason)

    async def wait(self) -> None:
        await self._event.wait()

    def on_abort(self, listener: Callable[[str | None], None]) -> None:
        """Register a callback run synchronously when the scope is aborted."""
        if self._event.is_set():
            listener(self._reason)
            return
        self._listeners.append(listener)

    def child(self) -> "AbortSignal":
        """Return a new scope that is aborted whenever this one is."""
        child = AbortSignal()
        self.on_abort(child.abort)
        return child

    def raise_if_aborted(self) -> None:
        if self.aborted:
            raise AbortedError(reason=self._reason)


async def race(awaitable: Awaitable[T], signal: AbortSignal) -> T:
    """Await *awaitable* unless *signal* fires first.

    On abort the awaitable's task is cancelled and left to finish on its own;
    the caller is not blocked waiting for it.

    Raises:
        AbortedError: if the signal fires before the awaitable completes.
    """
    signal.raise_if_aborted()
    work = asyncio.ensure_future(awaitable)
    aborted = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({work, aborted}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        aborted.cancel()
        raise

    if work.done():
        aborted.cancel()
        return work.result()

    work.cancel()
    work.add_done_callback(_consume_result)
    raise AbortedError(reason=signal.reason)


def _consume_result(task: "asyncio.Future[object]") -> None:
    # Detached tasks must not log "exception was never retrieved".
    if not task.cancelled():
        task.exception()
