"""
Helpers for writing values at dotted paths inside nested payloads.

Paths use dots for keys and either brackets or bare digits for list
indices: ``parent.id``, ``items[0].owner_id`` and ``items.0.owner_id``
address the same kind of locations.
"""

import re
from collections.abc import MutableMapping, MutableSequence
from functools import reduce
from typing import Any

from related_queue.exceptions import RelationPathError

_PATH_TOKEN = re.compile(r"[^.\[\]]+|\[(\d+)\]")


def split_path(path: str) -> list[str | int]:
    """
    Split a dotted path into keys and list indices.

    Args:
        path: Dotted path, e.g. ``a.b[0].c``.

    Returns:
        List of path segments; list indices are ints.
    """
    if not path:
        raise RelationPathError(path, "path is empty")
    segments: list[str | int] = []
    for match in _PATH_TOKEN.finditer(path):
        index, token = match.group(1), match.group(0)
        if index is not None:
            segments.append(int(index))
        elif token.isdigit():
            segments.append(int(token))
        else:
            segments.append(token)
    return segments


def _child(container: Any, key: str | int, next_key: str | int) -> Any:
    """Get the child at key, creating it when missing."""
    existing = _read(container, key)
    if isinstance(existing, (MutableMapping, MutableSequence)) or (
        existing is not None and hasattr(existing, "__dict__")
    ):
        return existing
    created: Any = [] if isinstance(next_key, int) else {}
    _write(container, key, created)
    return created


def _read(container: Any, key: str | int) -> Any:
    if isinstance(container, MutableMapping):
        return container.get(key)
    if isinstance(container, MutableSequence) and isinstance(key, int):
        return container[key] if key < len(container) else None
    return getattr(container, str(key), None)


def _write(container: Any, key: str | int, value: Any) -> None:
    if isinstance(container, MutableMapping):
        container[key] = value
    elif isinstance(container, MutableSequence) and isinstance(key, int):
        if key >= len(container):
            container.extend([None] * (key + 1 - len(container)))
        container[key] = value
    else:
        setattr(container, str(key), value)


def set_path(target: Any, path: str, value: Any) -> Any:
    """
    Write value into target at path, creating intermediate containers.

    Missing containers become lists when the following segment is an index
    and dicts otherwise.

    Args:
        target: The object to modify in place.
        path: Dotted path of the destination.
        value: Value to write.

    Returns:
        The modified target.

    Raises:
        RelationPathError: If a segment lands on a value that cannot hold keys,
            such as a string or a frozen object.
    """
    segments = split_path(path)
    last = segments.pop()
    lookahead = segments[1:] + [last]
    try:
        parent = reduce(
            lambda container, pair: _child(container, pair[0], pair[1]),
            zip(segments, lookahead),
            target,
        )
        _write(parent, last, value)
    except (AttributeError, TypeError) as e:
        raise RelationPathError(path, str(e)) from e
    return target
