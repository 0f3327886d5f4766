"""Tests for the session-scoped change announcer."""

from ledger_sync.models import ChangeEvent, ChangeEventKind
from ledger_sync.reconcile import ChangeAnnouncer


class TestChangeAnnouncer:
    """Tests for ChangeAnnouncer."""

    def test_every_listener_receives_each_event_in_order(self, announcer):
        first, second = [], []
        announcer.subscribe(first.append)
        announcer.subscribe(second.append)

        announcer.announce("a")
        announcer.announce("b")

        assert [e.kind for e in first] == ["a", "b"]
        assert [e.kind for e in second] == ["a", "b"]

    def test_kind_filter(self, announcer):
        received = []
        announcer.subscribe(received.append, kind=ChangeEventKind.CATEGORIES_CHANGED)

        announcer.announce(ChangeEventKind.EXPENSE_CREATED, "k1")
        announcer.announce(ChangeEventKind.CATEGORIES_CHANGED, ["Food"])

        assert len(received) == 1
        assert received[0].payload == ["Food"]

    def test_custom_kinds_are_allowed(self, announcer):
        received = []
        announcer.subscribe(received.append, kind="budget_recalculated")
        event = announcer.announce("budget_recalculated", {"month": "2024-05"}, user_id="u1")
        assert received == [event]
        assert event.user_id == "u1"

    def test_unsubscribe(self, announcer):
        received = []
        unsubscribe = announcer.subscribe(received.append)
        unsubscribe()
        unsubscribe()
        announcer.announce("a")
        assert received == []
        assert announcer.listener_count == 0

    def test_late_subscriber_gets_no_history(self, announcer):
        announcer.announce("before")
        received = []
        announcer.subscribe(received.append)
        announcer.announce("after")
        assert [e.kind for e in received] == ["after"]

    def test_failing_listener_does_not_block_others(self, announcer):
        """Test a listener error is logged and delivery continues."""
        received = []

        def broken(event):
            raise RuntimeError("listener bug")

        announcer.subscribe(broken)
        announcer.subscribe(received.append)
        announcer.announce("a")
        assert [e.kind for e in received] == ["a"]

    def test_listener_added_during_dispatch_waits_for_next_event(self, announcer):
        late = []

        def add_listener(event):
            announcer.subscribe(late.append)

        announcer.subscribe(add_listener)
        announcer.announce("first")
        assert late == []

    def test_closed_announcer_drops_events(self):
        announcer = ChangeAnnouncer()
        received = []
        announcer.subscribe(received.append)
        announcer.close()

        announcer.publish(ChangeEvent(kind="a"))

        assert announcer.closed is True
        assert announcer.listener_count == 0
        assert received == []
