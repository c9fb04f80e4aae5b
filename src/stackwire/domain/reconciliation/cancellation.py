"""Cooperative cancellation shared by the reconciler, handlers and the waiter."""

from __future__ import annotations

import asyncio
import contextlib

from stackwire.domain.errors import OperationCancelledError


class CancellationToken:
    """One-shot signal threaded through a reconciliation run.

    The token is bound lazily to the running event loop, so it can be created
    outside of ``asyncio.run`` and cancelled from a signal handler. It rebinds
    when awaited from a different loop, so one token can span several runs.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._event: asyncio.Event | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError

    async def wait(self) -> None:
        """Block until the token is cancelled."""

        event = self._bound_event()
        await event.wait()

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first; raise on cancellation."""

        self.raise_if_cancelled()
        event = self._bound_event()
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(event.wait(), timeout=max(seconds, 0.0))
        self.raise_if_cancelled()

    def _bound_event(self) -> asyncio.Event:
        loop = asyncio.get_running_loop()
        if self._event is None or self._loop is not loop:
            self._event = asyncio.Event()
            self._loop = loop
            if self._cancelled:
                self._event.set()
        return self._event
