"""
Session Wiring for Ledger Sync

This module ties together the store, the identity collaborator, the
change announcer and both reconcilers for one signed-in user.

DESIGN DECISION: The announcer lives exactly as long as a session.
Sign-out clears every reconciler, closes the announcer and installs a
fresh one BEFORE a new user can be loaded, so no state or listener
leaks from one session into the next.
"""

from typing import Optional

from ledger_sync.audit import get_logger
from ledger_sync.config import get_settings
from ledger_sync.models.settings import UserSettingsSnapshot
from ledger_sync.reconcile import (
    ChangeAnnouncer,
    DefaultsPolicy,
    ExpenseSyncReconciler,
    UserSettingsReconciler,
)
from ledger_sync.services.auth import SessionAuthProvider
from ledger_sync.services.notify import LogNotifier, Notifier
from ledger_sync.services.storage import (
    FirebaseRestClient,
    FirebaseTreeStore,
    InMemoryTreeStore,
    PathAddressedStore,
)


class LedgerSession:
    """
    One user session over a path-addressed store.

    Flow:
    1. sign_in(uid)  -> identity set, settings loaded
    2. reconcilers serve reads/writes for that user
    3. sign_out()    -> all state cleared, announcer replaced
    """

    def __init__(
        self,
        store: PathAddressedStore,
        auth: Optional[SessionAuthProvider] = None,
        policy: Optional[DefaultsPolicy] = None,
        notifier: Optional[Notifier] = None,
        quiet_window: Optional[float] = None,
    ):
        self.store = store
        self.auth = auth or SessionAuthProvider()
        self.announcer = ChangeAnnouncer()
        self.settings = UserSettingsReconciler(
            store,
            policy=policy,
            announcer=self.announcer,
            notifier=notifier,
        )
        self.expenses = ExpenseSyncReconciler(
            store,
            auth=self.auth,
            announcer=self.announcer,
            quiet_window=quiet_window,
        )
        self._logger = get_logger(__name__)

    @property
    def user_id(self) -> Optional[str]:
        return self.auth.user_id

    async def sign_in(self, user_id: str) -> UserSettingsSnapshot:
        """
        Establish identity and load the user's settings.

        A previous user's state is cleared first.
        """
        if self.auth.user_id and self.auth.user_id != user_id:
            self.sign_out()
        self.auth.sign_in(user_id)
        return await self.settings.load_for_user(user_id)

    def sign_out(self) -> None:
        """Clear all per-user state and start a fresh announcer."""
        self.settings.clear()
        self.expenses.clear()

        self.announcer.close()
        self.announcer = ChangeAnnouncer()
        self.settings.attach_announcer(self.announcer)
        self.expenses.attach_announcer(self.announcer)

        self.auth.sign_out()
        self._logger.info("session_reset")


def create_session(
    use_remote: bool = True,
    notifier: Optional[Notifier] = None,
) -> LedgerSession:
    """
    Factory function to create a session from configuration.

    Args:
        use_remote: Whether to connect to Firebase.
                    Set to False for an in-memory store.

    Returns:
        A session with no user signed in
    """
    settings = get_settings()
    logger = get_logger(__name__)

    store: PathAddressedStore
    if use_remote:
        try:
            store = FirebaseTreeStore(FirebaseRestClient(settings.firebase))
        except Exception as e:
            # Remote store not configured - continue without it
            logger.warning("remote_store_unavailable", error=str(e))
            store = InMemoryTreeStore()
    else:
        store = InMemoryTreeStore()

    return LedgerSession(
        store,
        policy=DefaultsPolicy.from_settings(settings.sync),
        notifier=notifier or LogNotifier(),
        quiet_window=settings.sync.quiet_window_seconds,
    )
