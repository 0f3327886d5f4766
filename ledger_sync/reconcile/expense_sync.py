"""
Expense Sync Reconciliation

Manages the live expense collection of a user under
``users/{uid}/expenses/{key}``.

Reads come from a change stream that is debounced and deduplicated
before anyone sees it. Writes are single-record (create, update,
remove) or batched; a batch always goes to the store as ONE multi-path
update, so either every record in it changes or none does.
"""

import contextlib
import json
from typing import Any, AsyncIterator, Awaitable, Mapping, Optional, Sequence

from ledger_sync.audit import create_correlation_id, get_logger
from ledger_sync.config import get_settings
from ledger_sync.models.events import ChangeEventBuilder
from ledger_sync.models.expense import (
    ChangeBatch,
    ExpenseInput,
    ExpenseRecord,
    to_record,
)
from ledger_sync.reconcile.announcer import ChangeAnnouncer
from ledger_sync.reconcile.streams import debounce_distinct
from ledger_sync.services.auth import AuthProvider, NotSignedInError, require_user_id
from ledger_sync.services.storage import (
    ChildSnapshot,
    PathAddressedStore,
    RemoteWriteError,
)
from ledger_sync.services.storage.paths import (
    expense_path,
    expenses_path,
    join_path,
    validate_key,
)


def _fingerprint(children: list[ChildSnapshot]) -> str:
    return json.dumps(
        [[child.key, child.value] for child in children],
        sort_keys=True,
        default=str,
    )


class ExpenseSyncReconciler:
    """
    Owns the live expense view of the active user.

    The view is whatever the last emitted ChangeBatch held; it is empty
    until a subscription emits and after ``clear()``.
    """

    def __init__(
        self,
        store: PathAddressedStore,
        auth: Optional[AuthProvider] = None,
        announcer: Optional[ChangeAnnouncer] = None,
        quiet_window: Optional[float] = None,
    ):
        self._store = store
        self._auth = auth
        self._announcer = announcer or ChangeAnnouncer()
        self._quiet_window = (
            quiet_window
            if quiet_window is not None
            else get_settings().sync.quiet_window_seconds
        )
        self._logger = get_logger(__name__)

        self._expenses: list[ExpenseRecord] = []
        self._generation = 0

    @property
    def expenses(self) -> list[ExpenseRecord]:
        return list(self._expenses)

    @property
    def quiet_window(self) -> float:
        return self._quiet_window

    @property
    def announcer(self) -> ChangeAnnouncer:
        return self._announcer

    def attach_announcer(self, announcer: ChangeAnnouncer) -> None:
        self._announcer = announcer

    # ------------------------------------------------------------------
    # Change stream
    # ------------------------------------------------------------------

    async def subscribe(self, user_id: str) -> AsyncIterator[ChangeBatch]:
        """
        Stream coalesced states of the user's expense collection.

        Bursts inside the quiet window collapse into their final state;
        a state identical to the previous emission is not emitted again.
        Infinite until the consumer stops iterating or ``clear()`` runs.
        May be called again after a subscription ends.
        """
        user_id = require_user_id(user_id)
        generation = self._generation
        source = self._store.subscribe_list(expenses_path(user_id))
        self._logger.info("expense_subscription_started", user_id=user_id)

        try:
            async with contextlib.aclosing(
                debounce_distinct(source, self._quiet_window, fingerprint=_fingerprint)
            ) as states:
                async for children in states:
                    if generation != self._generation:
                        return
                    batch = ChangeBatch(
                        user_id=user_id,
                        expenses=[
                            ExpenseRecord(key=child.key, data=child.value)
                            for child in children
                        ],
                    )
                    self._expenses = list(batch.expenses)
                    yield batch
        finally:
            self._logger.info("expense_subscription_ended", user_id=user_id)

    # ------------------------------------------------------------------
    # Single-record writes
    # ------------------------------------------------------------------

    async def create(self, user_id: Optional[str], expense: ExpenseInput) -> str:
        """
        Append an expense and return its generated key.

        Raises:
            MissingUserError: If ``user_id`` is empty (no store call)
            RemoteWriteError: If the write fails
        """
        user_id = require_user_id(user_id)
        record = to_record(expense)

        key = await self._write(
            "expense_create_failed",
            user_id,
            self._store.push(expenses_path(user_id), record),
        )

        self._logger.info("expense_created", user_id=user_id, key=key)
        self._announcer.publish(ChangeEventBuilder.expense_created(user_id, key))
        return key

    async def update(
        self,
        user_id: Optional[str],
        key: str,
        fields: ExpenseInput,
    ) -> None:
        """Merge fields into the existing record at ``expenses/{key}``."""
        user_id = require_user_id(user_id)
        path = expense_path(user_id, key)

        await self._write(
            "expense_update_failed",
            user_id,
            self._store.update(path, to_record(fields)),
        )
        self._logger.info("expense_updated", user_id=user_id, key=key)

    async def remove(self, user_id: Optional[str], key: str) -> None:
        """Delete the record at ``expenses/{key}``."""
        user_id = require_user_id(user_id)
        validate_key(key)

        await self._write(
            "expense_remove_failed",
            user_id,
            self._store.remove(expenses_path(user_id), key),
        )
        self._logger.info("expense_removed", user_id=user_id, key=key)

    # ------------------------------------------------------------------
    # Batched writes
    # ------------------------------------------------------------------

    async def batch_apply_for_user(
        self,
        user_id: Optional[str],
        updates: Mapping[str, Optional[ExpenseInput]],
    ) -> None:
        """
        Apply many expense writes as one atomic multi-path update.

        A None value deletes that record; anything else creates or
        replaces it.

        Raises:
            MissingUserError: If ``user_id`` is empty (no store call)
            InvalidPathError: If a key cannot be addressed (no store call)
            RemoteWriteError: If the write fails; nothing was applied
        """
        user_id = require_user_id(user_id)

        scoped: dict[str, Any] = {}
        written: list[str] = []
        deleted: list[str] = []
        for key, expense in updates.items():
            if expense is None:
                scoped[expense_path(user_id, key)] = None
                deleted.append(key)
            else:
                scoped[expense_path(user_id, key)] = to_record(expense)
                written.append(key)

        if not scoped:
            return

        await self._submit_multi_path(user_id, scoped, "batch_apply")
        self._announcer.publish(
            ChangeEventBuilder.expenses_batch_applied(user_id, written, deleted)
        )

    async def batch_apply_for_current_user(
        self,
        updates: Mapping[str, Optional[ExpenseInput]],
    ) -> None:
        """
        Same as ``batch_apply_for_user``, for whoever is signed in.

        Raises:
            NotSignedInError: If no user is signed in (no store call)
        """
        user_id = await self._auth.current_user_id() if self._auth else None
        if not user_id:
            raise NotSignedInError()
        await self.batch_apply_for_user(user_id, updates)

    async def push_many(
        self,
        expenses: Sequence[ExpenseInput],
        user_id: Optional[str],
    ) -> list[str]:
        """
        Create many expenses in one atomic write.

        One key is allocated per expense up front, then every record is
        written by a single multi-path update.

        Returns:
            The allocated keys, in input order
        """
        user_id = require_user_id(user_id)
        records = [to_record(expense) for expense in expenses]
        if not records:
            return []

        collection = expenses_path(user_id)
        keys: list[str] = []
        scoped: dict[str, Any] = {}
        for record in records:
            key = self._store.allocate_key(collection)
            keys.append(key)
            scoped[join_path(collection, key)] = record

        await self._submit_multi_path(user_id, scoped, "push_many")
        self._announcer.publish(ChangeEventBuilder.expenses_imported(user_id, keys))
        return keys

    async def _submit_multi_path(
        self,
        user_id: str,
        scoped: dict[str, Any],
        operation: str,
    ) -> None:
        logger = self._logger.bind(
            correlation_id=str(create_correlation_id()),
            user_id=user_id,
            operation=operation,
        )
        logger.info(
            "multi_path_update_submitted",
            path_count=len(scoped),
            deletes=sum(1 for value in scoped.values() if value is None),
        )
        await self._write(
            "multi_path_update_failed",
            user_id,
            self._store.multi_update(scoped),
            logger=logger,
        )
        logger.info("multi_path_update_applied")

    async def _write(
        self,
        failure_event: str,
        user_id: str,
        operation: Awaitable[Any],
        logger=None,
    ) -> Any:
        logger = logger or self._logger
        try:
            return await operation
        except RemoteWriteError as e:
            logger.error(failure_event, user_id=user_id, error=e.message)
            raise
        except Exception as e:
            logger.error(failure_event, user_id=user_id, error=str(e))
            raise RemoteWriteError(str(e))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Drop the live view and stop open subscriptions (sign-out)."""
        self._generation += 1
        self._expenses = []
        self._logger.info("expense_view_cleared")
