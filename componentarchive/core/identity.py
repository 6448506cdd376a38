"""Identity operations over descriptor entries."""

from __future__ import annotations

from collections.abc import Sequence

from componentarchive.models.descriptor import DescriptorEntry
from componentarchive.models.identity import Identity


def identity(entry: DescriptorEntry) -> Identity:
    """Return the identity of a resource, source or component reference."""
    return entry.identity


def same_identity(a: DescriptorEntry, b: DescriptorEntry) -> bool:
    """True iff name, version, type and every extraIdentity pair are equal."""
    return a.identity == b.identity


def find_index(collection: Sequence[DescriptorEntry], entry: DescriptorEntry) -> int:
    """Position of the entry sharing ``entry``'s identity, or -1."""
    wanted = entry.identity
    for index, existing in enumerate(collection):
        if existing.identity == wanted:
            return index
    return -1


def duplicate_identities(collection: Sequence[DescriptorEntry]) -> list[Identity]:
    """Identities that occur more than once, in first-seen order."""
    seen: set[Identity] = set()
    duplicates: list[Identity] = []
    for entry in collection:
        key = entry.identity
        if key in seen and key not in duplicates:
            duplicates.append(key)
        seen.add(key)
    return duplicates
