"""
Store Path Helpers

All per-user data lives under ``users/{uid}``:

    users/{uid}/categories          ordered list (array or keyed object)
    users/{uid}/types               ordered list, expense source types
    users/{uid}/filesImported       ordered list, imported file identifiers
    users/{uid}/firstName           profile scalar
    users/{uid}/lastName            profile scalar
    users/{uid}/expenses/{key}      one expense record per generated key
"""

from ledger_sync.services.storage.interface import InvalidPathError


USERS_ROOT = "users"

CATEGORIES_FIELD = "categories"
SOURCE_TYPES_FIELD = "types"
FILES_IMPORTED_FIELD = "filesImported"
FIRST_NAME_FIELD = "firstName"
LAST_NAME_FIELD = "lastName"
EXPENSES_FIELD = "expenses"

# Characters the store refuses in keys
FORBIDDEN_KEY_CHARS = frozenset(".$#[]/")
MAX_KEY_BYTES = 768


def split_path(path: str) -> list[str]:
    """Split a slash-delimited path, dropping empty segments."""
    return [segment for segment in path.split("/") if segment]


def join_path(*parts: str) -> str:
    """Join path fragments into one normalized path."""
    segments: list[str] = []
    for part in parts:
        segments.extend(split_path(part))
    return "/".join(segments)


def validate_key(key: str) -> str:
    """
    Check that a single key can be addressed in the store.

    Raises:
        InvalidPathError: If the key is empty, too long or contains
            forbidden or control characters.
    """
    if not isinstance(key, str) or not key:
        raise InvalidPathError("Key must be a non-empty string")
    if len(key.encode("utf-8")) > MAX_KEY_BYTES:
        raise InvalidPathError(f"Key exceeds {MAX_KEY_BYTES} bytes: {key[:32]}...")
    bad = FORBIDDEN_KEY_CHARS.intersection(key)
    if bad:
        raise InvalidPathError(
            f"Key {key!r} contains forbidden characters: {''.join(sorted(bad))}"
        )
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in key):
        raise InvalidPathError(f"Key {key!r} contains control characters")
    return key


def user_root(user_id: str) -> str:
    return join_path(USERS_ROOT, validate_key(user_id))


def user_field(user_id: str, field: str) -> str:
    return join_path(user_root(user_id), field)


def expenses_path(user_id: str) -> str:
    return user_field(user_id, EXPENSES_FIELD)


def expense_path(user_id: str, key: str) -> str:
    return join_path(expenses_path(user_id), validate_key(key))
