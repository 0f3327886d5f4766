"""
Expense Models

Expenses are opaque to the reconciliation layer: it reads and writes
whole records and never looks inside them. The only structure it adds
is the generated key the store assigns on creation.
"""

from typing import Any, Mapping, Union

from pydantic import BaseModel, Field


# A JSON-compatible record, or any pydantic model that dumps to one
ExpenseInput = Union[Mapping[str, Any], BaseModel]


def to_record(expense: ExpenseInput) -> dict[str, Any]:
    """Convert an expense to the JSON-compatible dict written to the store."""
    if isinstance(expense, BaseModel):
        return expense.model_dump(mode="json", by_alias=True)
    if isinstance(expense, Mapping):
        return dict(expense)
    raise TypeError(f"Expense must be a mapping or model, got {type(expense).__name__}")


class ExpenseRecord(BaseModel):
    """An expense together with its generated key."""

    key: str = Field(..., min_length=1)
    data: Any = Field(default=None, description="The stored record")


class ChangeBatch(BaseModel):
    """
    Coalesced state of a user's expense collection.

    Emitted by the expense subscription after each quiet window.
    """

    user_id: str
    expenses: list[ExpenseRecord] = Field(default_factory=list)

    @property
    def keys(self) -> list[str]:
        return [record.key for record in self.expenses]

    def get(self, key: str) -> Any:
        for record in self.expenses:
            if record.key == key:
                return record.data
        return None
