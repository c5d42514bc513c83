import asyncio
import logging
from collections.abc import Callable

from vdom_testing.runtime.config import max_flush_passes
from vdom_testing.runtime.views import WidgetNode

logger = logging.getLogger(__name__)


class RecursiveUpdateError(RuntimeError):
    """Raised when widgets keep re-queuing each other past the flush pass limit."""


class Scheduler:
    """Batches widget updates and flushes them on a later loop iteration.

    Updates queued while a loop is running are flushed via ``loop.call_soon``;
    ``next_tick()`` resolves once that flush has run. Without a running loop
    the queue is flushed synchronously.
    """

    def __init__(self, run: Callable[[WidgetNode], None], max_passes: int | None = None):
        self._run = run
        self.max_passes = max_passes or max_flush_passes()
        self._queue: dict[int, WidgetNode] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._flush_handle: asyncio.Handle | None = None
        self._waiter: asyncio.Future | None = None
        self._flushing = False

    @property
    def pending(self) -> bool:
        return bool(self._queue)

    def queue(self, widget: WidgetNode) -> None:
        self._queue.setdefault(id(widget), widget)
        if self._flushing:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, flushing %d update(s) synchronously", len(self._queue))
            self.flush()
            return
        if self._flush_handle is not None and self._loop is loop:
            return
        self._loop = loop
        self._waiter = loop.create_future()
        self._flush_handle = loop.call_soon(self.flush)

    def flush(self) -> None:
        """Run queued updates, parents before children, until the queue drains."""
        self._flush_handle = None
        waiter, self._waiter = self._waiter, None
        self._flushing = True
        passes = 0
        try:
            while self._queue:
                passes += 1
                if passes > self.max_passes:
                    self._queue.clear()
                    raise RecursiveUpdateError(
                        f"Updates still pending after {self.max_passes} flush passes; "
                        "a render is probably writing state it reads"
                    )
                batch = sorted(self._queue.values(), key=lambda widget: widget.depth)
                self._queue.clear()
                for widget in batch:
                    self._run(widget)
        except Exception as e:
            if waiter is None or waiter.done():
                raise
            # The tick may have no awaiter.
            logger.error("Flushing queued updates failed", exc_info=e)
            waiter.set_exception(e)
            return
        finally:
            self._flushing = False
        logger.debug("Flushed updates in %d pass(es)", passes)
        if waiter is not None and not waiter.done():
            waiter.set_result(None)

    async def next_tick(self) -> None:
        """Resolve after the next scheduled flush, or after one loop turn if none is pending."""
        loop = asyncio.get_running_loop()
        if self._waiter is None or self._waiter.get_loop() is not loop:
            await asyncio.sleep(0)
            if self._waiter is None or self._waiter.get_loop() is not loop:
                return
        await asyncio.shield(self._waiter)
