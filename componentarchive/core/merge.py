"""Merge engine: identity-keyed upsert into descriptor collections.

An incoming entry whose identity is new is appended.  An entry whose
identity already exists is merged field by field: identity fields come
from the incoming entry, every other field from the incoming entry when
it is set (not ``None``, empty string, empty list or empty mapping) and
from the existing entry otherwise.  The merged entry replaces the
existing one at the same position.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, TypeVar

from componentarchive.core.identity import find_index
from componentarchive.models.descriptor import DescriptorEntry
from componentarchive.models.identity import IDENTITY_FIELDS

logger = logging.getLogger(__name__)

EntryT = TypeVar("EntryT", bound=DescriptorEntry)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, dict)) and not value)


def merge_entries(existing: EntryT, incoming: EntryT) -> EntryT:
    """Merge ``incoming`` onto ``existing`` (last write wins per field)."""
    update: dict[str, Any] = {}
    for field_name in type(incoming).model_fields:
        if field_name in IDENTITY_FIELDS:
            continue
        value = getattr(incoming, field_name)
        if _is_empty(value):
            update[field_name] = getattr(existing, field_name)
    return incoming.model_copy(update=update)


def merge(collection: Sequence[EntryT], incoming: EntryT) -> list[EntryT]:
    """Upsert ``incoming`` into ``collection`` by identity.

    Returns a new list; ``collection`` is left untouched.
    """
    result = list(collection)
    index = find_index(result, incoming)
    if index == -1:
        logger.debug("Appending new entry %s", incoming.identity)
        result.append(incoming)
        return result

    logger.debug("Merging entry %s at position %d", incoming.identity, index)
    result[index] = merge_entries(result[index], incoming)
    return result
