"""Event emitter and subscriber system.

Async pub/sub for SystemEvents. Jobs and the record processor emit events;
the alert logger and any external observability hook consume them.

Usage:
    from src.events import emit

    await emit(SystemEvent(
        event_type=EventType.JOB_FAILED,
        job_name="finalize-deletions",
        data={"message": result.message},
    ))

    # Register a subscriber at startup:
    from src.events import subscribe

    subscribe(my_handler)  # async def my_handler(event: SystemEvent) -> None
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]

# ── Internal state ───────────────────────────────────────────────────

_subscribers: list[EventHandler] = []
_type_subscribers: dict[EventType, list[EventHandler]] = {}
_queue: asyncio.Queue[SystemEvent] | None = None
_worker_task: asyncio.Task[None] | None = None


# ── Public API ───────────────────────────────────────────────────────


def subscribe(handler: EventHandler, event_types: list[EventType] | None = None) -> None:
    """Register an event handler.

    Args:
        handler: Async function that accepts a SystemEvent.
        event_types: If provided, handler only receives these event types.
                     If None, handler receives ALL events.
    """
    if event_types is None:
        _subscribers.append(handler)
        logger.info("Registered global event subscriber: %s", handler.__name__)
    else:
        for et in event_types:
            _type_subscribers.setdefault(et, []).append(handler)
        logger.info(
            "Registered event subscriber %s for types: %s",
            handler.__name__,
            [t.value for t in event_types],
        )


def unsubscribe(handler: EventHandler) -> None:
    """Remove a previously registered handler."""
    if handler in _subscribers:
        _subscribers.remove(handler)
    for handlers in _type_subscribers.values():
        if handler in handlers:
            handlers.remove(handler)


def clear_subscribers() -> None:
    """Drop every registered handler."""
    _subscribers.clear()
    _type_subscribers.clear()


async def emit(event: SystemEvent) -> None:
    """Publish a SystemEvent to all subscribers.

    While the event system is running, events go through the background queue
    so the emitter is never blocked by slow subscribers. Otherwise (one-off
    runs, tests) they are dispatched inline.
    """
    if _queue is None or _worker_task is None or _worker_task.done():
        await _dispatch(event)
        return

    await _queue.put(event)
    logger.debug("Event queued: %s (job=%s)", event.event_type.value, event.job_name)


# ── Background worker ────────────────────────────────────────────────


async def _event_worker(queue: asyncio.Queue[SystemEvent]) -> None:
    """Drain the event queue and dispatch to subscribers."""
    while True:
        event = await queue.get()
        try:
            await _dispatch(event)
        except Exception:
            logger.exception("Error in event worker")
        finally:
            queue.task_done()


async def _dispatch(event: SystemEvent) -> None:
    """Dispatch a single event to all matching subscribers."""
    handlers: list[EventHandler] = list(_subscribers)
    handlers.extend(_type_subscribers.get(event.event_type, []))

    if not handlers:
        return

    # Run all handlers concurrently; one failing handler does not affect the rest
    results = await asyncio.gather(
        *[handler(event) for handler in handlers],
        return_exceptions=True,
    )
    for handler, result in zip(handlers, results):
        if isinstance(result, Exception):
            logger.error(
                "Handler %s failed for event %s: %s",
                handler.__name__,
                event.event_type.value,
                result,
            )


# ── Lifecycle ────────────────────────────────────────────────────────


async def start_event_system() -> None:
    """Start the background worker. Call once at process startup."""
    global _queue, _worker_task
    if _worker_task is not None and not _worker_task.done():
        return

    _queue = asyncio.Queue()
    _worker_task = asyncio.create_task(_event_worker(_queue))
    logger.info(
        "Event system started with %d global + %d typed subscribers",
        len(_subscribers),
        sum(len(v) for v in _type_subscribers.values()),
    )


async def stop_event_system() -> None:
    """Drain pending events and stop the worker."""
    global _worker_task, _queue

    if _queue is not None:
        await _queue.join()

    if _worker_task is not None and not _worker_task.done():
        _worker_task.cancel()
        try:
            await _worker_task
        except asyncio.CancelledError:
            pass

    _worker_task = None
    _queue = None
    logger.info("Event system stopped")
