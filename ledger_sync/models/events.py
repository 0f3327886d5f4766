"""
Change Event Models

Change events tell decoupled consumers that a user-visible data set
changed, without the producer knowing who listens. They are
fire-and-forget: delivered once, in emission order, to whoever is
subscribed at the time.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class ChangeEventKind(str, Enum):
    """Tags for the data sets a change event can be about."""
    # Settings
    CATEGORIES_CHANGED = "categories_changed"
    SOURCE_TYPES_CHANGED = "source_types_changed"
    FILES_IMPORTED_CHANGED = "files_imported_changed"
    PROFILE_UPDATED = "profile_updated"
    USER_SETTINGS_LOADED = "user_settings_loaded"

    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSES_BATCH_APPLIED = "expenses_batch_applied"
    EXPENSES_IMPORTED = "expenses_imported"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChangeEvent(BaseModel):
    """A single change notification."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=_utcnow)

    # Custom kinds are allowed so callers can announce their own channels
    kind: str = Field(..., min_length=1, description="Change event tag")
    user_id: Optional[str] = Field(
        default=None,
        description="User whose data changed, if any"
    )
    payload: Any = Field(default=None, description="Opaque event data")
    description: str = Field(default="", max_length=500)

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.

        The payload itself is left out, it may be large.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind,
            "user_id": self.user_id,
            "description": self.description,
        }


class ChangeEventBuilder:
    """
    Helper class to build change events with common patterns.

    Usage:
        event = ChangeEventBuilder.categories_changed(user_id, categories)
        event = ChangeEventBuilder.expense_created(user_id, key)
    """

    @staticmethod
    def categories_changed(user_id: str, categories: list[str]) -> ChangeEvent:
        return ChangeEvent(
            kind=ChangeEventKind.CATEGORIES_CHANGED.value,
            user_id=user_id,
            payload=list(categories),
            description="Categories Added",
        )

    @staticmethod
    def files_imported_changed(user_id: str, files: list[str]) -> ChangeEvent:
        return ChangeEvent(
            kind=ChangeEventKind.FILES_IMPORTED_CHANGED.value,
            user_id=user_id,
            payload=list(files),
            description=f"Imported files list now has {len(files)} entries",
        )

    @staticmethod
    def profile_updated(user_id: str, profile: dict[str, str]) -> ChangeEvent:
        return ChangeEvent(
            kind=ChangeEventKind.PROFILE_UPDATED.value,
            user_id=user_id,
            payload=dict(profile),
            description="Profile updated",
        )

    @staticmethod
    def user_settings_loaded(user_id: str, snapshot: Any) -> ChangeEvent:
        return ChangeEvent(
            kind=ChangeEventKind.USER_SETTINGS_LOADED.value,
            user_id=user_id,
            payload=snapshot,
            description="User settings loaded",
        )

    @staticmethod
    def expense_created(user_id: str, key: str) -> ChangeEvent:
        return ChangeEvent(
            kind=ChangeEventKind.EXPENSE_CREATED.value,
            user_id=user_id,
            payload=key,
            description=f"Expense created: {key}",
        )

    @staticmethod
    def expenses_batch_applied(
        user_id: str,
        written: list[str],
        deleted: list[str],
    ) -> ChangeEvent:
        return ChangeEvent(
            kind=ChangeEventKind.EXPENSES_BATCH_APPLIED.value,
            user_id=user_id,
            payload={"written": list(written), "deleted": list(deleted)},
            description=(
                f"Batch applied: {len(written)} written, {len(deleted)} deleted"
            ),
        )

    @staticmethod
    def expenses_imported(user_id: str, keys: list[str]) -> ChangeEvent:
        return ChangeEvent(
            kind=ChangeEventKind.EXPENSES_IMPORTED.value,
            user_id=user_id,
            payload=list(keys),
            description=f"{len(keys)} expenses imported",
        )
