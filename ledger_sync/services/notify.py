"""
Notification Collaborator

Surfaces short success/error messages to a human. The reconcilers fire
and forget; they never wait on or read anything back from a notifier.
"""

from abc import ABC, abstractmethod

from ledger_sync.audit import get_logger


DEFAULT_DURATION_MS = 2000


class Notifier(ABC):
    """Accepts ``(message, duration_hint_ms)`` notifications."""

    @abstractmethod
    def notify(self, message: str, duration_hint_ms: int = DEFAULT_DURATION_MS) -> None:
        pass


class LogNotifier(Notifier):
    """Writes notifications to the structured log."""

    def __init__(self):
        self._logger = get_logger(__name__)

    def notify(self, message: str, duration_hint_ms: int = DEFAULT_DURATION_MS) -> None:
        self._logger.info("user_notification", message=message, duration_ms=duration_hint_ms)


class RecordingNotifier(Notifier):
    """Keeps every notification in memory (useful for tests and headless runs)."""

    def __init__(self):
        self.messages: list[tuple[str, int]] = []

    def notify(self, message: str, duration_hint_ms: int = DEFAULT_DURATION_MS) -> None:
        self.messages.append((message, duration_hint_ms))

    @property
    def texts(self) -> list[str]:
        return [message for message, _ in self.messages]
