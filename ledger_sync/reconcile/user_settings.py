"""
User Settings Reconciliation

Keeps the active user's categories, expense source types, imported-files
list and profile consistent between the store and local state.

FLOW:
1. Load   -> one read of ``users/{uid}``, normalize, apply defaults, commit
2. Edit   -> the UI replaces a taxonomy's working copy
3. Save   -> whole-list ``set``; committed state changes only on success

GUARANTEES:
- Nothing touches the store without a user id
- A failed load leaves the previous canonical state in place
- A failed save leaves both the committed and the working copy in place
- Overlapping saves of one taxonomy are NOT serialized: they race at the
  store and the last write to complete wins. ``is_saving`` lets callers
  disable concurrent submits.
- Writes for a user other than the loaded one reach the store but never
  change local state or publish events
"""

from typing import Any, Optional, Sequence, Union

from ledger_sync.audit import get_logger
from ledger_sync.config import get_settings
from ledger_sync.models.events import ChangeEventBuilder, ChangeEventKind
from ledger_sync.models.settings import (
    OptionEntry,
    TaxonomyKind,
    TaxonomyState,
    UserProfile,
    UserSettingsSnapshot,
)
from ledger_sync.reconcile.announcer import ChangeAnnouncer
from ledger_sync.reconcile.defaults import DefaultsPolicy
from ledger_sync.reconcile.normalizer import normalize_string_list
from ledger_sync.services.auth import MissingUserError, require_user_id
from ledger_sync.services.notify import LogNotifier, Notifier
from ledger_sync.services.storage import (
    InvalidPathError,
    PathAddressedStore,
    RemoteReadError,
    RemoteWriteError,
)
from ledger_sync.services.storage.paths import (
    FILES_IMPORTED_FIELD,
    FIRST_NAME_FIELD,
    LAST_NAME_FIELD,
    user_field,
    user_root,
)


SAVE_MESSAGES = {
    TaxonomyKind.CATEGORIES: "Categories saved!",
    TaxonomyKind.SOURCE_TYPES: "Expense Source Types saved!",
}


class UserSettingsReconciler:
    """
    Owns the canonical settings state of the active user.

    Created empty; populated by ``load_for_user``; cleared on sign-out.
    """

    def __init__(
        self,
        store: PathAddressedStore,
        policy: Optional[DefaultsPolicy] = None,
        announcer: Optional[ChangeAnnouncer] = None,
        notifier: Optional[Notifier] = None,
        notification_duration_ms: Optional[int] = None,
    ):
        self._store = store
        self._policy = policy or DefaultsPolicy.from_settings()
        self._announcer = announcer or ChangeAnnouncer()
        self._notifier = notifier or LogNotifier()
        self._duration_ms = (
            notification_duration_ms
            if notification_duration_ms is not None
            else get_settings().sync.notification_duration_ms
        )
        self._logger = get_logger(__name__)

        self._taxonomies = {kind: TaxonomyState(kind) for kind in TaxonomyKind}
        self._files_imported: list[str] = []
        self._profile = UserProfile()
        self._user_id: Optional[str] = None
        # Bumped by clear() so results of calls started before a sign-out
        # are never committed into the next session
        self._generation = 0

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def policy(self) -> DefaultsPolicy:
        return self._policy

    @property
    def announcer(self) -> ChangeAnnouncer:
        return self._announcer

    def attach_announcer(self, announcer: ChangeAnnouncer) -> None:
        self._announcer = announcer

    def taxonomy(self, kind: TaxonomyKind) -> TaxonomyState:
        return self._taxonomies[kind]

    @property
    def categories(self) -> TaxonomyState:
        return self._taxonomies[TaxonomyKind.CATEGORIES]

    @property
    def source_types(self) -> TaxonomyState:
        return self._taxonomies[TaxonomyKind.SOURCE_TYPES]

    @property
    def files_imported(self) -> list[str]:
        return list(self._files_imported)

    @property
    def profile(self) -> UserProfile:
        return self._profile.model_copy()

    @property
    def is_loading(self) -> bool:
        return any(state.is_loading for state in self._taxonomies.values())

    def is_saving(self, kind: TaxonomyKind) -> bool:
        return self._taxonomies[kind].is_saving

    def set_working(self, kind: TaxonomyKind, values: Sequence[str]) -> list[OptionEntry]:
        """Replace a taxonomy's working copy with an edited list."""
        entries = self._policy.entries(kind, normalize_string_list(list(values)))
        self._taxonomies[kind].set_working(entries)
        return entries

    def snapshot(self) -> Optional[UserSettingsSnapshot]:
        """Current canonical state, or None before the first load."""
        if self._user_id is None:
            return None
        return UserSettingsSnapshot(
            user_id=self._user_id,
            categories=self.categories.committed,
            source_types=self.source_types.committed,
            files_imported=self._files_imported,
            profile=self._profile,
        )

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def load_for_user(self, user_id: str) -> UserSettingsSnapshot:
        """
        Load categories, source types, imported files and profile.

        One read of ``users/{uid}`` covers every field.

        Raises:
            MissingUserError: If ``user_id`` is empty (no store call)
            RemoteReadError: If the read fails; canonical state is untouched
        """
        user_id = require_user_id(user_id)
        path = user_root(user_id)
        generation = self._generation
        self._set_loading(True)

        try:
            snapshot = await self._store.read(path)
        except RemoteReadError as e:
            self._load_failed(user_id, e.message)
            raise
        except Exception as e:
            self._load_failed(user_id, str(e))
            raise RemoteReadError(str(e))

        data = snapshot.value if isinstance(snapshot.value, dict) else {}

        categories = self._policy.fallback_if_empty(
            normalize_string_list(data.get(TaxonomyKind.CATEGORIES.store_field)),
            TaxonomyKind.CATEGORIES,
        )
        source_types = self._policy.fallback_if_empty(
            normalize_string_list(data.get(TaxonomyKind.SOURCE_TYPES.store_field)),
            TaxonomyKind.SOURCE_TYPES,
        )
        files_imported = normalize_string_list(data.get(FILES_IMPORTED_FIELD))
        profile = UserProfile(
            first_name=_as_text(data.get(FIRST_NAME_FIELD)),
            last_name=_as_text(data.get(LAST_NAME_FIELD)),
        )

        result = UserSettingsSnapshot(
            user_id=user_id,
            categories=self._policy.entries(TaxonomyKind.CATEGORIES, categories),
            source_types=self._policy.entries(TaxonomyKind.SOURCE_TYPES, source_types),
            files_imported=files_imported,
            profile=profile,
        )

        if generation != self._generation:
            self._logger.info("stale_settings_load_discarded", user_id=user_id)
            return result

        categories_changed = (
            self._user_id != user_id
            or self.categories.committed_values != result.category_values
        )

        self._user_id = user_id
        self.categories.commit(result.categories)
        self.source_types.commit(result.source_types)
        self._files_imported = list(files_imported)
        self._profile = profile
        self._set_loading(False)

        self._logger.info(
            "user_settings_loaded",
            user_id=user_id,
            categories=len(categories),
            source_types=len(source_types),
            files_imported=len(files_imported),
        )

        if categories_changed:
            self._announcer.publish(
                ChangeEventBuilder.categories_changed(user_id, result.category_values)
            )
        self._announcer.publish(
            ChangeEventBuilder.user_settings_loaded(user_id, result)
        )
        return result

    def _set_loading(self, loading: bool) -> None:
        for state in self._taxonomies.values():
            state.is_loading = loading

    def _load_failed(self, user_id: str, message: str) -> None:
        self._set_loading(False)
        self._logger.error("settings_load_failed", user_id=user_id, error=message)
        self._notifier.notify(f"Error! {message}.", self._duration_ms)

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    async def save_categories(
        self,
        user_id: Optional[str],
        new_list: Optional[Sequence[str]] = None,
    ) -> None:
        """
        Replace the stored category list.

        ``new_list`` defaults to the working copy.

        Raises:
            MissingUserError: If ``user_id`` is empty (no store call)
            RemoteWriteError: If the write fails; state is untouched
        """
        values = await self._save_taxonomy(TaxonomyKind.CATEGORIES, user_id, new_list)
        if values is not None:
            self._announcer.publish(
                ChangeEventBuilder.categories_changed(self._user_id, values)
            )

    async def save_source_types(
        self,
        user_id: Optional[str],
        new_list: Optional[Sequence[str]] = None,
    ) -> None:
        """
        Replace the stored source-type list.

        Same contract as ``save_categories``. Source types have no
        announcement channel of their own, nothing is published.
        """
        await self._save_taxonomy(TaxonomyKind.SOURCE_TYPES, user_id, new_list)

    def _is_active(self, user_id: str, generation: int) -> bool:
        """True if a write for ``user_id`` may change canonical state."""
        if generation != self._generation:
            self._logger.info("stale_write_discarded", user_id=user_id)
            return False
        if user_id != self._user_id:
            # Written remotely, but another user's data never enters this state
            self._logger.info(
                "inactive_user_write_not_committed",
                user_id=user_id,
                active_user_id=self._user_id,
            )
            return False
        return True

    async def _save_taxonomy(
        self,
        kind: TaxonomyKind,
        user_id: Optional[str],
        new_list: Optional[Sequence[str]],
    ) -> Optional[list[str]]:
        """
        Write a taxonomy and commit it for the active user.

        The list is normalized before anything is written, so the store
        only ever receives what a later load would read back.

        Returns:
            The saved values if they were committed, else None
        """
        state = self._taxonomies[kind]
        state.is_saving = True

        try:
            user_id = require_user_id(user_id)
            path = user_field(user_id, kind.store_field)
        except (MissingUserError, InvalidPathError) as e:
            state.is_saving = False
            self._notifier.notify(str(e), self._duration_ms)
            raise

        raw = list(new_list) if new_list is not None else state.working_values
        values = normalize_string_list(raw)
        if len(values) != len(raw):
            self._logger.warning(
                "taxonomy_values_dropped",
                user_id=user_id,
                taxonomy=kind.value,
                dropped=len(raw) - len(values),
            )
        entries = self._policy.entries(kind, values)
        generation = self._generation

        try:
            await self._store.set(path, values)
        except Exception as e:
            message = e.message if isinstance(e, RemoteWriteError) else str(e)
            state.is_saving = False
            self._logger.error(
                "taxonomy_save_failed",
                user_id=user_id,
                taxonomy=kind.value,
                error=message,
            )
            self._notifier.notify(message, self._duration_ms)
            if isinstance(e, RemoteWriteError):
                raise
            raise RemoteWriteError(message)

        state.is_saving = False
        self._logger.info(
            "taxonomy_saved",
            user_id=user_id,
            taxonomy=kind.value,
            count=len(values),
        )
        self._notifier.notify(SAVE_MESSAGES[kind], self._duration_ms)

        if not self._is_active(user_id, generation):
            return None
        state.commit(entries)
        return values

    async def save_imported_files(self, user_id: Optional[str], files: Sequence[str]) -> None:
        """
        Replace the stored list of imported file identifiers.

        Raises:
            MissingUserError: If ``user_id`` is empty (no store call)
            RemoteWriteError: If the write fails; state is untouched
        """
        user_id = require_user_id(user_id)
        values = normalize_string_list(list(files))
        generation = self._generation

        await self._write(
            "imported_files_save_failed",
            user_id,
            self._store.set(user_field(user_id, FILES_IMPORTED_FIELD), values),
        )

        if not self._is_active(user_id, generation):
            return
        self._files_imported = values
        self._announcer.publish(
            ChangeEventBuilder.files_imported_changed(user_id, values)
        )

    async def update_profile(self, user_id: Optional[str], profile: UserProfile) -> None:
        """
        Merge the profile fields into ``users/{uid}``.

        Raises:
            MissingUserError: If ``user_id`` is empty (no store call)
            RemoteWriteError: If the write fails; state is untouched
        """
        user_id = require_user_id(user_id)
        fields = profile.to_store_fields()
        generation = self._generation

        await self._write(
            "profile_update_failed",
            user_id,
            self._store.update(user_root(user_id), fields),
        )
        self._notifier.notify("Profile update saved successfully!", self._duration_ms)

        if not self._is_active(user_id, generation):
            return
        self._profile = profile.model_copy()
        self._announcer.publish(ChangeEventBuilder.profile_updated(user_id, fields))

    async def _write(self, failure_event: str, user_id: str, operation) -> None:
        try:
            await operation
        except RemoteWriteError as e:
            self._logger.error(failure_event, user_id=user_id, error=e.message)
            self._notifier.notify(e.message, self._duration_ms)
            raise
        except Exception as e:
            self._logger.error(failure_event, user_id=user_id, error=str(e))
            self._notifier.notify(str(e), self._duration_ms)
            raise RemoteWriteError(str(e))

    # ------------------------------------------------------------------
    # Announcements and lifecycle
    # ------------------------------------------------------------------

    def announce(
        self,
        kind: Union[ChangeEventKind, str],
        payload: Any = None,
    ) -> None:
        """Publish a change event for the active user."""
        self._announcer.announce(kind, payload, user_id=self._user_id)

    def clear(self) -> None:
        """Forget everything about the active user (sign-out)."""
        self._generation += 1
        for state in self._taxonomies.values():
            state.clear()
        self._files_imported = []
        self._profile = UserProfile()
        self._user_id = None
        self._logger.info("user_settings_cleared")


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""
