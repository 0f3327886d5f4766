"""
Change Announcer

A multicast publish/subscribe channel scoped to one signed-in session.
Producers announce that a data set changed; consumers that derive state
from it re-derive. Neither side knows about the other.

GUARANTEES:
- each event reaches every listener subscribed when it was published, once
- listeners see events in publication order
- a failing listener is logged and does not stop delivery to the others
"""

from typing import Any, Callable, Optional, Union

from ledger_sync.audit import get_logger
from ledger_sync.models.events import ChangeEvent, ChangeEventKind


Listener = Callable[[ChangeEvent], None]


def _kind_value(kind: Union[ChangeEventKind, str]) -> str:
    return kind.value if isinstance(kind, ChangeEventKind) else str(kind)


class ChangeAnnouncer:
    """Session-scoped change notification bus."""

    def __init__(self):
        self._listeners: list[tuple[Listener, Optional[str]]] = []
        self._closed = False
        self._logger = get_logger(__name__)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(
        self,
        listener: Listener,
        kind: Optional[Union[ChangeEventKind, str]] = None,
    ) -> Callable[[], None]:
        """
        Register a listener, optionally for one kind of event only.

        Returns:
            A callable that removes this subscription
        """
        entry = (listener, _kind_value(kind) if kind is not None else None)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def publish(self, event: ChangeEvent) -> None:
        if self._closed:
            self._logger.warning("publish_on_closed_announcer", **event.to_log_dict())
            return

        self._logger.info("change_event", **event.to_log_dict())

        # Listeners added while dispatching wait for the next event
        for listener, kind in list(self._listeners):
            if kind is not None and kind != event.kind:
                continue
            try:
                listener(event)
            except Exception as e:
                self._logger.error(
                    "change_listener_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                    kind=event.kind,
                )

    def announce(
        self,
        kind: Union[ChangeEventKind, str],
        payload: Any = None,
        user_id: Optional[str] = None,
        description: str = "",
    ) -> ChangeEvent:
        """Build and publish an event in one call."""
        event = ChangeEvent(
            kind=_kind_value(kind),
            payload=payload,
            user_id=user_id,
            description=description,
        )
        self.publish(event)
        return event

    def close(self) -> None:
        """Drop every listener. Later publishes are ignored."""
        self._listeners.clear()
        self._closed = True
