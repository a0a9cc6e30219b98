"""
Cancellation Token.

Carries an interruption request (SIGINT/SIGTERM or a caller's own stop)
through every suspension point of an audit run. Pacing and backoff waits
go through ``CancellationToken.sleep`` so they end as soon as the token
fires instead of holding the process open.
"""

import asyncio
import logging
import signal
from typing import Coroutine, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AuditCancelled(Exception):
    """Raised when an audit run is interrupted."""

    def __init__(self, reason: str = "cancelled"):
        self.reason = reason
        super().__init__(f"Audit cancelled: {reason}")


class CancellationToken:
    """Cooperative cancellation flag shared by one audit run."""

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        """Request cancellation. Later calls keep the first reason."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.warning(f"Cancellation requested ({reason})")

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def raise_if_cancelled(self) -> None:
        """Raise AuditCancelled if cancellation was requested."""
        if self._event.is_set():
            raise AuditCancelled(self._reason or "cancelled")

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()

    async def sleep(self, seconds: float) -> None:
        """
        Sleep for ``seconds`` unless cancelled first.

        Raises:
            AuditCancelled: If the token fires before or during the wait
        """
        self.raise_if_cancelled()
        if seconds <= 0:
            return

        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return

        self.raise_if_cancelled()

    async def run(self, coro: Coroutine[None, None, T]) -> T:
        """
        Await ``coro`` unless the token fires first.

        The losing coroutine is cancelled and awaited before returning.

        Raises:
            AuditCancelled: If cancellation won the race
        """
        if self.cancelled:
            coro.close()
            self.raise_if_cancelled()

        task = asyncio.ensure_future(coro)
        stop = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop.cancel()
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        if task.cancelled():
            raise AuditCancelled(self._reason or "cancelled")
        return task.result()


def install_signal_handlers(
    token: CancellationToken,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> bool:
    """
    Route SIGINT and SIGTERM to ``token.cancel``.

    Args:
        token: Token to cancel when a signal arrives
        loop: Event loop (defaults to the running loop)

    Returns:
        True if handlers were installed
    """
    loop = loop or asyncio.get_running_loop()
    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, token.cancel, sig.name)
    except (NotImplementedError, RuntimeError):
        logger.warning("Signal handlers not supported on this platform")
        return False
    return True


def remove_signal_handlers(loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    """Undo install_signal_handlers."""
    loop = loop or asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.remove_signal_handler(sig)
        except (NotImplementedError, RuntimeError):
            pass
