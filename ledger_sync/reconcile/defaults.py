"""
Default Taxonomies

Users who never saved a taxonomy see the default list. Default entries
cannot be removed; anything the user added can.
"""

from typing import Optional, Sequence

from ledger_sync.config import SyncSettings, get_settings
from ledger_sync.models.settings import OptionEntry, TaxonomyKind


class DefaultsPolicy:
    """Holds the default category and source-type lists."""

    def __init__(self, categories: Sequence[str], source_types: Sequence[str]):
        # Stored as tuples so nothing handed out can alias them
        self._defaults = {
            TaxonomyKind.CATEGORIES: tuple(categories),
            TaxonomyKind.SOURCE_TYPES: tuple(source_types),
        }

    @classmethod
    def from_settings(cls, settings: Optional[SyncSettings] = None) -> "DefaultsPolicy":
        settings = settings or get_settings().sync
        return cls(
            categories=settings.default_categories_list,
            source_types=settings.default_source_types_list,
        )

    def defaults_for(self, kind: TaxonomyKind) -> list[str]:
        """Fresh copy of the default list for a taxonomy."""
        return list(self._defaults[kind])

    def is_removable(self, kind: TaxonomyKind, value: str) -> bool:
        """False iff ``value`` is one of the defaults (exact match)."""
        return value not in self._defaults[kind]

    def fallback_if_empty(self, values: list[str], kind: TaxonomyKind) -> list[str]:
        """Return ``values`` unchanged, or a copy of the defaults when empty."""
        if values:
            return values
        return self.defaults_for(kind)

    def entries(self, kind: TaxonomyKind, values: Sequence[str]) -> list[OptionEntry]:
        """Build option entries with removability computed per value."""
        return [
            OptionEntry(value=value, removable=self.is_removable(kind, value))
            for value in values
        ]
