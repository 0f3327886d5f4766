"""
User Settings Models

Models for the per-user taxonomies (expense categories, expense source
types), the imported-files list and the profile fields that live next
to them under ``users/{uid}``.

DESIGN DECISION: ``removable`` on an option is derived from the defaults
policy every time entries are built. It is never stored remotely.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ledger_sync.services.storage.paths import CATEGORIES_FIELD, SOURCE_TYPES_FIELD


class TaxonomyKind(str, Enum):
    """The two controlled-vocabulary lists a user maintains."""
    CATEGORIES = "categories"
    SOURCE_TYPES = "source_types"

    @property
    def store_field(self) -> str:
        """Field name under ``users/{uid}`` holding this taxonomy."""
        if self is TaxonomyKind.CATEGORIES:
            return CATEGORIES_FIELD
        return SOURCE_TYPES_FIELD


class OptionEntry(BaseModel):
    """One value of a taxonomy as shown to the user."""

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., min_length=1)
    removable: bool = Field(
        ...,
        description="False for default entries, True for user-added ones"
    )


class UserProfile(BaseModel):
    """Profile scalars stored as ``firstName``/``lastName``."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")

    def to_store_fields(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


class TaxonomyState:
    """
    Canonical state of one taxonomy.

    Holds two explicit values: the last committed snapshot (what the store
    confirmed) and a working copy the UI may replace while editing.
    ``commit`` is the only way the committed snapshot changes.
    """

    def __init__(self, kind: TaxonomyKind):
        self.kind = kind
        self.committed: list[OptionEntry] = []
        self.working: list[OptionEntry] = []
        self.is_loading = False
        self.is_saving = False

    @property
    def committed_values(self) -> list[str]:
        return [entry.value for entry in self.committed]

    @property
    def working_values(self) -> list[str]:
        return [entry.value for entry in self.working]

    @property
    def has_unsaved_changes(self) -> bool:
        return self.working != self.committed

    def commit(self, entries: list[OptionEntry]) -> None:
        """Replace both snapshots wholesale after a confirmed load or save."""
        self.committed = list(entries)
        self.working = list(entries)

    def set_working(self, entries: list[OptionEntry]) -> None:
        self.working = list(entries)

    def clear(self) -> None:
        self.committed = []
        self.working = []
        self.is_loading = False
        self.is_saving = False


class UserSettingsSnapshot(BaseModel):
    """Canonical settings of one user after normalization and defaults."""

    user_id: str = Field(..., min_length=1)
    categories: list[OptionEntry] = Field(default_factory=list)
    source_types: list[OptionEntry] = Field(default_factory=list)
    files_imported: list[str] = Field(default_factory=list)
    profile: UserProfile = Field(default_factory=UserProfile)

    @property
    def category_values(self) -> list[str]:
        return [entry.value for entry in self.categories]

    @property
    def source_type_values(self) -> list[str]:
        return [entry.value for entry in self.source_types]

    def entries_for(self, kind: TaxonomyKind) -> list[OptionEntry]:
        if kind is TaxonomyKind.CATEGORIES:
            return list(self.categories)
        return list(self.source_types)

    def display_name(self) -> Optional[str]:
        name = f"{self.profile.first_name} {self.profile.last_name}".strip()
        return name or None
