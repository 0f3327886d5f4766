"""
Change Stream Operators

Underlying change streams are chatty: one logical edit can produce a
burst of events. ``debounce_distinct`` coalesces a burst into its final
state and drops emissions that repeat the previous one.
"""

import asyncio
import json
from typing import Any, AsyncIterator, Callable, TypeVar


T = TypeVar("T")

_ITEM = "item"
_END = "end"
_ERROR = "error"
_QUIET = "quiet"
_UNSET = object()


def serialize(value: Any) -> str:
    """Deep-equality fingerprint: sorted-key JSON."""
    if hasattr(value, "model_dump"):
        value = value.model_dump(mode="json")
    return json.dumps(value, sort_keys=True, default=str)


async def debounce_distinct(
    source: AsyncIterator[T],
    quiet_window: float,
    fingerprint: Callable[[Any], str] = serialize,
) -> AsyncIterator[T]:
    """
    Emit the last item of each burst, skipping repeats.

    An item is emitted once ``quiet_window`` seconds pass with no newer
    item. It is then dropped if its fingerprint equals the previously
    emitted one. When the source ends, a pending item is flushed; when
    the source fails, the pending item is flushed and the error re-raised.
    Emission order follows the source.
    """
    queue: asyncio.Queue = asyncio.Queue()

    async def pump() -> None:
        try:
            async for item in source:
                queue.put_nowait((_ITEM, item))
        except Exception as e:
            queue.put_nowait((_ERROR, e))
        else:
            queue.put_nowait((_END, None))

    # Items are pumped through a queue so that waiting for a quiet window
    # never cancels the source itself
    task = asyncio.create_task(pump())
    pending: Any = _UNSET
    last_fingerprint: Any = _UNSET

    try:
        while True:
            if pending is _UNSET:
                tag, value = await queue.get()
            else:
                try:
                    tag, value = await asyncio.wait_for(queue.get(), timeout=quiet_window)
                except asyncio.TimeoutError:
                    tag, value = _QUIET, None

            if tag == _ITEM:
                pending = value
                continue

            if pending is not _UNSET:
                current = fingerprint(pending)
                if current != last_fingerprint:
                    last_fingerprint = current
                    yield pending
                pending = _UNSET

            if tag == _ERROR:
                raise value
            if tag == _END:
                return
    finally:
        task.cancel()
