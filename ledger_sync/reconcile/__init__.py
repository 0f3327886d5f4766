"""Reconciliation package."""

from ledger_sync.reconcile.announcer import ChangeAnnouncer
from ledger_sync.reconcile.defaults import DefaultsPolicy
from ledger_sync.reconcile.expense_sync import ExpenseSyncReconciler
from ledger_sync.reconcile.normalizer import normalize_string_list
from ledger_sync.reconcile.streams import debounce_distinct, serialize
from ledger_sync.reconcile.user_settings import UserSettingsReconciler

__all__ = [
    "ChangeAnnouncer",
    "DefaultsPolicy",
    "ExpenseSyncReconciler",
    "UserSettingsReconciler",
    "debounce_distinct",
    "normalize_string_list",
    "serialize",
]
