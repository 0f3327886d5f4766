"""
Data Models Package

This package contains the Pydantic models and state holders used by the
reconciliation layer.
"""

from ledger_sync.models.events import (
    ChangeEvent,
    ChangeEventBuilder,
    ChangeEventKind,
)
from ledger_sync.models.expense import (
    ChangeBatch,
    ExpenseInput,
    ExpenseRecord,
    to_record,
)
from ledger_sync.models.settings import (
    OptionEntry,
    TaxonomyKind,
    TaxonomyState,
    UserProfile,
    UserSettingsSnapshot,
)

__all__ = [
    # Event models
    "ChangeEvent",
    "ChangeEventBuilder",
    "ChangeEventKind",
    # Expense models
    "ChangeBatch",
    "ExpenseInput",
    "ExpenseRecord",
    "to_record",
    # Settings models
    "OptionEntry",
    "TaxonomyKind",
    "TaxonomyState",
    "UserProfile",
    "UserSettingsSnapshot",
]
