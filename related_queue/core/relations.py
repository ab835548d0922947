"""
Relation resolution.

Fills payload fields with the identifiers of entries that have been handled.
"""

import copy
from collections.abc import Mapping, Sequence
from typing import Any, NamedTuple

from related_queue.core.paths import set_path
from related_queue.types.entry import Relation


class ResolvedRelations(NamedTuple):
    """Result of resolving relations against an id map."""

    payload: Any
    relations: list[Relation]


def resolve_relations(
    payload: Any,
    relations: Sequence[Relation],
    id_map: Mapping[str, str],
) -> ResolvedRelations:
    """
    Resolve the relations whose targets appear in the id map.

    When no relation matches, the original payload and relations objects are
    returned so callers can detect the no-op by identity. Otherwise the payload
    is deep-copied, each matched id is written at its destination path and the
    unmatched relations are returned as a new list.

    Args:
        payload: The entry payload.
        relations: Pending relations of the entry.
        id_map: Mapping of entry identity to its assigned id.

    Returns:
        ResolvedRelations with the (possibly new) payload and remaining relations.
    """
    if payload is None:
        raise ValueError("Missing payload argument")
    if relations is None:
        raise ValueError("Missing relations argument")
    if id_map is None:
        raise ValueError("Missing id_map argument")

    matched = [r for r in relations if r.target_identity in id_map]

    if not matched:
        return ResolvedRelations(payload, relations)

    updated = copy.deepcopy(payload)
    for relation in matched:
        set_path(updated, relation.destination_path, id_map[relation.target_identity])

    remaining = [r for r in relations if r.target_identity not in id_map]

    return ResolvedRelations(updated, remaining)
