"""
JSON Tree Helpers

Pure functions over the JSON-shaped trees the store holds. Nothing here
mutates its input: writes copy the containers along the written path and
share everything else.
"""

from typing import Any


def child_items(node: Any) -> list[tuple[str, Any]]:
    """Children of a node as ``(key, value)`` pairs in iteration order."""
    if isinstance(node, dict):
        return [(str(key), value) for key, value in node.items() if value is not None]
    if isinstance(node, list):
        return [(str(i), value) for i, value in enumerate(node) if value is not None]
    return []


def get_path(node: Any, segments: list[str]) -> Any:
    """Value at ``segments`` below ``node``, or None."""
    for segment in segments:
        if isinstance(node, dict):
            node = node.get(segment)
        elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
            node = node[int(segment)]
        else:
            return None
    return node


def assign_path(node: Any, segments: list[str], value: Any) -> Any:
    """
    Return a copy of ``node`` with ``value`` stored at ``segments``.

    A None value deletes. Containers emptied by a delete collapse to None,
    so the parent loses the key too. Arrays on the path are re-keyed as
    objects, which is how the store addresses into them.
    """
    if not segments:
        return value

    head, rest = segments[0], segments[1:]
    if isinstance(node, dict):
        container = dict(node)
    elif isinstance(node, list):
        container = {str(i): item for i, item in enumerate(node) if item is not None}
    else:
        container = {}

    child = assign_path(container.get(head), rest, value)
    if child is None:
        container.pop(head, None)
    else:
        container[head] = child
    return container or None
