"""Fire-and-forget search history logging."""

import asyncio
import logging

from kura_search.models.search import SearchHistoryRecord
from kura_search.search.adapters import HistorySink

logger = logging.getLogger(__name__)


class SearchHistoryLogger:
    """Appends history records on detached tasks.

    Writes run outside the caller's task, so cancelling a search does not
    cancel its history write, and a slow or failing sink never delays or
    fails the search. Each write is bounded by ``timeout``.
    """

    def __init__(self, sink: HistorySink, *, timeout: float = 2.0):
        """Initialize with a history sink and per-write timeout in seconds."""
        self.sink = sink
        self.timeout = timeout
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of writes still in flight."""
        return len(self._tasks)

    def log(self, record: SearchHistoryRecord) -> None:
        """Schedule a write and return immediately."""
        try:
            task = asyncio.get_running_loop().create_task(self._write(record))
        except RuntimeError:
            logger.warning("No running event loop, search history not recorded")
            return
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for all in-flight writes to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _write(self, record: SearchHistoryRecord) -> None:
        try:
            async with asyncio.timeout(self.timeout):
                await self.sink.insert_search_history(record)
        except TimeoutError:
            logger.warning("Search history write timed out after %.1fs", self.timeout)
        except Exception:
            logger.warning("Failed to log search query: %s", record.query, exc_info=True)
        else:
            logger.debug("Search query logged: %s (%d results)", record.query, record.result_count)
