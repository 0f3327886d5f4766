"""Tests for session wiring and sign-in/sign-out lifecycle."""

import asyncio
import logging

import pytest

from ledger_sync.models import ChangeEventKind
from ledger_sync.services.storage import InMemoryTreeStore
from ledger_sync.session import LedgerSession, create_session


@pytest.fixture
def session(make_store, policy, notifier):
    store = make_store({"users": {
        "u1": {"categories": ["Food"], "firstName": "Ada"},
        "u2": {"categories": ["Rent"]},
    }})
    return LedgerSession(store, policy=policy, notifier=notifier, quiet_window=0.02)


class TestLedgerSession:
    """Tests for LedgerSession."""

    def test_sign_in_loads_settings(self, session):
        snapshot = asyncio.run(session.sign_in("u1"))
        assert session.user_id == "u1"
        assert snapshot.category_values == ["Food"]
        assert snapshot.display_name() == "Ada"

    def test_reconcilers_share_the_announcer(self, session):
        received = []
        session.announcer.subscribe(received.append)

        async def scenario():
            await session.sign_in("u1")
            await session.expenses.create("u1", {"amount": 1})

        asyncio.run(scenario())
        assert [e.kind for e in received] == [
            "categories_changed",
            "user_settings_loaded",
            "expense_created",
        ]

    def test_sign_out_clears_state_and_listeners(self, session):
        received = []
        old_announcer = session.announcer
        old_announcer.subscribe(received.append)
        asyncio.run(session.sign_in("u1"))
        received.clear()

        session.sign_out()

        assert session.user_id is None
        assert session.settings.snapshot() is None
        assert session.expenses.expenses == []
        assert old_announcer.closed is True
        assert session.announcer is not old_announcer

        asyncio.run(session.settings.save_categories("u2", ["Rent", "Pets"]))
        assert received == []

    def test_switching_users_resets_first(self, session):
        """Test the previous user's data never leaks into the next session."""
        asyncio.run(session.sign_in("u1"))
        old_announcer = session.announcer
        snapshot = asyncio.run(session.sign_in("u2"))

        assert old_announcer.closed is True
        assert snapshot.user_id == "u2"
        assert session.settings.categories.committed_values == ["Rent"]
        assert session.settings.profile.first_name == ""

    def test_new_announcer_receives_events(self, session):
        asyncio.run(session.sign_in("u1"))
        session.sign_out()

        received = []
        session.announcer.subscribe(received.append, kind=ChangeEventKind.CATEGORIES_CHANGED)
        asyncio.run(session.sign_in("u2"))
        assert [e.payload for e in received] == [["Rent"]]

    def test_current_user_batch_uses_session_identity(self, session):
        async def scenario():
            await session.sign_in("u2")
            await session.expenses.batch_apply_for_current_user({"k1": {"amount": 4}})

        asyncio.run(scenario())
        assert session.store.dump()["users"]["u2"]["expenses"] == {"k1": {"amount": 4}}


class TestCreateSession:
    """Tests for the session factory."""

    def test_in_memory_session(self, monkeypatch, notifier):
        from ledger_sync.config import get_settings

        monkeypatch.setenv("LEDGER_DEFAULT_CATEGORIES", "Rent,Food")
        monkeypatch.setenv("LEDGER_QUIET_WINDOW_SECONDS", "0.1")
        get_settings.cache_clear()

        session = create_session(use_remote=False, notifier=notifier)

        assert isinstance(session.store, InMemoryTreeStore)
        assert session.expenses.quiet_window == 0.1
        snapshot = asyncio.run(session.sign_in("u1"))
        assert snapshot.category_values == ["Rent", "Food"]

    def test_remote_without_configuration_falls_back(self, monkeypatch):
        from ledger_sync.config import get_settings

        monkeypatch.delenv("FIREBASE_DATABASE_URL", raising=False)
        monkeypatch.delenv("FIREBASE_CREDENTIALS_PATH", raising=False)
        get_settings.cache_clear()

        session = create_session(use_remote=True)
        assert isinstance(session.store, InMemoryTreeStore)

    def test_factory_leaves_logging_configuration_alone(self, monkeypatch):
        """Test handler setup happens once in the logging module, not per session."""
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

        create_session(use_remote=False)
        create_session(use_remote=False)
        assert calls == []
