"""Thread-safe cooperative cancellation for graph runs."""
import asyncio
import threading

from .errors import Aborted


class CancellationToken:
    """Signal observed by the engine before each node and by long-running nodes.

    ``cancel()`` may be called from any thread. Coroutines can ``await
    token.wait()`` to be woken as soon as it fires.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._cancelled = False
        self._reason = ""
        self._waiters: list[tuple[asyncio.AbstractEventLoop, asyncio.Future]] = []

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    @property
    def reason(self) -> str:
        with self._lock:
            return self._reason

    def cancel(self, reason: str = "Cancelled"):
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            self._reason = reason
            waiters, self._waiters = self._waiters, []
        for loop, fut in waiters:
            loop.call_soon_threadsafe(_resolve, fut)

    def raise_if_cancelled(self):
        if self.cancelled:
            raise Aborted(self.reason)

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        loop = asyncio.get_running_loop()
        fut = loop.create_future()
        with self._lock:
            if self._cancelled:
                return
            self._waiters.append((loop, fut))
        try:
            await fut
        finally:
            with self._lock:
                if (loop, fut) in self._waiters:
                    self._waiters.remove((loop, fut))

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first, in which case raise Aborted."""
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self.wait(), timeout=max(seconds, 0))
        except asyncio.TimeoutError:
            return
        raise Aborted(self.reason)


def _resolve(fut: asyncio.Future):
    if not fut.done():
        fut.set_result(None)
