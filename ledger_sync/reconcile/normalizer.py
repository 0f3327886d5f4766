"""
List Normalization

The store has no native arrays. A list written as ``["a", "b"]`` may
come back as an array, or as a keyed object (``{"0": "a", "2": "b"}``)
once it becomes sparse. Older data may also hold non-string junk.
"""

from collections.abc import Mapping
from typing import Any


def _keep_strings(values) -> list[str]:
    return [value for value in values if isinstance(value, str) and value]


def normalize_string_list(raw: Any) -> list[str]:
    """
    Convert a raw stored value into an ordered list of non-empty strings.

    - None                 -> []
    - list/tuple           -> its non-empty string elements, in order
    - mapping (keyed list) -> its non-empty string values, in the store's
                              iteration order
    - anything else        -> []

    Keyed objects keep the order the store iterates them in, which is
    not necessarily the order the list was written in when it is sparse.

    Never raises.
    """
    if isinstance(raw, (list, tuple)):
        return _keep_strings(raw)
    if isinstance(raw, Mapping):
        return _keep_strings(raw.values())
    return []
