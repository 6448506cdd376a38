"""Repository context tracker: value-deduplicated registry locations."""

from __future__ import annotations

from collections.abc import Sequence

from componentarchive.models.descriptor import OCI_REGISTRY_TYPE, RepositoryContext


def add_repository_context(
    contexts: Sequence[RepositoryContext],
    type: str = OCI_REGISTRY_TYPE,
    base_url: str = "",
) -> list[RepositoryContext]:
    """Append ``{type, baseUrl}`` unless an equal context is already present.

    Existing order is preserved and new contexts go to the end.  The input
    sequence is not modified.
    """
    candidate = RepositoryContext(type=type, base_url=base_url)
    result = list(contexts)
    if candidate not in result:
        result.append(candidate)
    return result
