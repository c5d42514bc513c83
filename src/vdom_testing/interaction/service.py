"""Event and value simulation.

Every operation that can mutate component state waits for the runtime's next
render tick before returning, so a caller can assert on the DOM right after
``await``.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from vdom_testing.dom import Event, HTMLElement
from vdom_testing.errors import UnsupportedControlError, UnsupportedDispatchError, WaitTimeoutError
from vdom_testing.runtime import Runtime, get_default_runtime

logger = logging.getLogger(__name__)


def _coerce_value(value: Any) -> str:
    return "" if value is None else str(value)


class InteractionService:
    """Dispatch synthetic events and assign form-control values."""

    def __init__(self, runtime: Runtime | None = None):
        self.runtime = runtime or get_default_runtime()

    async def next_tick(self) -> None:
        await self.runtime.next_tick()

    async def flush_promises(self) -> None:
        """Let already-scheduled coroutines advance one step, then wait for a render."""
        await asyncio.sleep(0)
        await self.runtime.next_tick()

    async def trigger(self, element: Any, event_name: str, payload: Any = None) -> None:
        """Dispatch a bubbling, cancelable event on *element* and wait a tick.

        Args:
            element: Target element.
            event_name: Event type, e.g. ``"click"``, ``"input"``, ``"change"``.
            payload: Stored on ``event.detail``.

        Raises:
            UnsupportedDispatchError: If *element* cannot receive events.
        """
        if not isinstance(element, HTMLElement):
            raise UnsupportedDispatchError(
                f"Cannot dispatch {event_name!r} on {type(element).__name__}; an element is required"
            )
        event = Event(event_name, bubbles=True, cancelable=True, detail=payload)
        logger.debug("Dispatching %r on <%s>", event_name, element.name)
        element.dispatch_event(event)
        await self.runtime.next_tick()

    async def set_dom_value(self, element: Any, value: Any) -> None:
        """Assign *value* to a form control and fire the events a user edit would.

        - ``input``/``textarea``: set ``value``, then ``input``, then ``change``.
        - ``select``: select the option whose value matches, then ``change``.

        Raises:
            UnsupportedControlError: For any other element kind.
        """
        tag = element.name if isinstance(element, HTMLElement) else None
        match tag:
            case "input" | "textarea":
                element.value = _coerce_value(value)
                await self.trigger(element, "input")
                await self.trigger(element, "change")
            case "select":
                str_value = _coerce_value(value)
                for option in element.options:
                    option.selected = option.value == str_value
                await self.trigger(element, "change")
            case _:
                raise UnsupportedControlError(
                    f"set_value only supports input, textarea and select elements, got {tag or type(element).__name__!r}"
                )

    async def wait_for(
        self,
        condition: Callable[[], Any | Awaitable[Any]],
        timeout: float = 1.0,
        interval: float = 0.01,
    ) -> Any:
        """Retry *condition* until it passes or *timeout* seconds elapse.

        The condition passes when it returns without raising ``AssertionError``
        and its result is truthy or ``None`` (plain assertion functions).
        Pending async work is flushed before each attempt.

        Returns:
            The passing result.

        Raises:
            WaitTimeoutError: Chained to the last ``AssertionError``, if any.
        """
        deadline = time.monotonic() + timeout
        last_error: AssertionError | None = None
        while True:
            await self.flush_promises()
            try:
                result = condition()
                if inspect.isawaitable(result):
                    result = await result
                if result or result is None:
                    return result
                last_error = None
            except AssertionError as e:
                last_error = e
            if time.monotonic() >= deadline:
                raise WaitTimeoutError(f"Condition not met within {timeout}s") from last_error
            await asyncio.sleep(interval)


async def next_tick(runtime: Runtime | None = None) -> None:
    await InteractionService(runtime).next_tick()


async def flush_promises(runtime: Runtime | None = None) -> None:
    await InteractionService(runtime).flush_promises()


async def trigger(element: Any, event_name: str, payload: Any = None, runtime: Runtime | None = None) -> None:
    await InteractionService(runtime).trigger(element, event_name, payload)


async def set_value(element: Any, value: Any, runtime: Runtime | None = None) -> None:
    await InteractionService(runtime).set_dom_value(element, value)


async def wait_for(
    condition: Callable[[], Any | Awaitable[Any]],
    timeout: float = 1.0,
    interval: float = 0.01,
    runtime: Runtime | None = None,
) -> Any:
    return await InteractionService(runtime).wait_for(condition, timeout=timeout, interval=interval)
