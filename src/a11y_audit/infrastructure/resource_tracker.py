"""
Resource Tracker.

Keeps the live set of expensive handles (browser instances) opened by page
checks. The set is the single source of truth for what must be closed
before the process may exit.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

Closer = Callable[[], Awaitable[Any]]


class ResourceTracker:
    """
    Tracks open resources and closes them on demand.

    Features:
    - Atomic register/release under an asyncio lock
    - Best-effort close_all() that never raises
    - A handle is removed from the live set before it is closed, so no
      handle is ever closed twice
    """

    def __init__(self):
        self._resources: Dict[int, tuple] = {}  # id(handle) -> (handle, closer)
        self._lock = asyncio.Lock()
        self._total_registered = 0
        self._close_failures = 0

    async def register(self, handle: Any, closer: Optional[Closer] = None) -> None:
        """
        Add a handle to the live set.

        Args:
            handle: Resource to track
            closer: Async callable closing the handle (defaults to handle.close)
        """
        if closer is None:
            closer = handle.close

        async with self._lock:
            if id(handle) in self._resources:
                return
            self._resources[id(handle)] = (handle, closer)
            self._total_registered += 1

        logger.debug(f"Registered resource {type(handle).__name__} ({self.live_count} live)")

    async def release(self, handle: Any) -> bool:
        """
        Close one handle now and forget it.

        Args:
            handle: Previously registered resource

        Returns:
            True if the handle was live and closed without error
        """
        async with self._lock:
            entry = self._resources.pop(id(handle), None)

        if entry is None:
            return False

        return await self._close(entry)

    async def close_all(self) -> int:
        """
        Close every live handle, swallowing individual errors.

        Returns:
            Number of handles that closed cleanly
        """
        async with self._lock:
            entries = list(self._resources.values())
            self._resources.clear()

        if not entries:
            return 0

        logger.info(f"🧹 Cleaning up {len(entries)} browser instance(s)...")
        results = await asyncio.gather(
            *(self._close(entry) for entry in entries),
            return_exceptions=True,
        )
        return sum(1 for result in results if result is True)

    async def _close(self, entry: tuple) -> bool:
        handle, closer = entry
        try:
            await closer()
            return True
        except Exception as e:
            self._close_failures += 1
            logger.warning(f"Error closing {type(handle).__name__}: {e}")
            return False

    def __contains__(self, handle: Any) -> bool:
        return id(handle) in self._resources

    def __len__(self) -> int:
        return len(self._resources)

    @property
    def live_count(self) -> int:
        """Number of handles still open."""
        return len(self._resources)

    @property
    def total_registered(self) -> int:
        return self._total_registered

    @property
    def close_failures(self) -> int:
        return self._close_failures
