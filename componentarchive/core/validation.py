"""Schema rules for component descriptors (schema ``v2``).

``validate_descriptor`` checks a whole descriptor (component metadata,
every entry, identity uniqueness per collection); ``validate_entry``
checks a single resource, source or component reference and is run on
every freshly merged entry before the descriptor-wide pass.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from componentarchive.core.identity import duplicate_identities
from componentarchive.models.descriptor import (
    SCHEMA_VERSION,
    ComponentDescriptor,
    ComponentReference,
    DescriptorEntry,
    Resource,
)

# SemVer 2.0 with an optional leading "v" and optional minor/patch parts.
_SEMVER_RE = re.compile(
    r"^v?(0|[1-9]\d*)(\.(0|[1-9]\d*))?(\.(0|[1-9]\d*))?"
    r"(-[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?"
    r"(\+[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?$"
)
_RESERVED_IDENTITY_KEYS = frozenset({"name", "version", "type"})
_IDENTITY_KEY_RE = re.compile(r"^[a-zA-Z0-9]([-_.a-zA-Z0-9]*[a-zA-Z0-9])?$")


class SchemaError(BaseModel):
    """A single schema rule violation at ``field``."""

    model_config = ConfigDict(frozen=True)

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


def is_semver(version: str) -> bool:
    return bool(_SEMVER_RE.match(version))


def validate_entry(entry: DescriptorEntry, path: str = "") -> list[SchemaError]:
    """Per-entry rules for resources, sources and component references."""
    errors: list[SchemaError] = []

    def _err(field: str, message: str) -> None:
        errors.append(SchemaError(field=f"{path}.{field}" if path else field, message=message))

    if not entry.name:
        _err("name", "must not be empty")
    if not entry.version:
        _err("version", "must not be empty")
    elif not is_semver(entry.version):
        _err("version", f"{entry.version!r} is not a valid semantic version")
    if not isinstance(entry, ComponentReference) and not entry.type:
        _err("type", "must not be empty")

    for key in entry.extra_identity:
        if key in _RESERVED_IDENTITY_KEYS:
            _err(f"extraIdentity.{key}", "key is reserved for the identity attributes")
        elif not _IDENTITY_KEY_RE.match(key):
            _err(f"extraIdentity.{key}", "key must be alphanumeric with '-', '_' or '.'")

    seen_labels: set[str] = set()
    for index, label in enumerate(entry.labels):
        if not label.name:
            _err(f"labels[{index}].name", "must not be empty")
        elif label.name in seen_labels:
            _err(f"labels[{index}].name", f"duplicate label {label.name!r}")
        seen_labels.add(label.name)

    if isinstance(entry, Resource):
        if entry.relation is None:
            _err("relation", "must be one of 'local' or 'external'")
        if entry.access is None:
            _err("access", "must be defined (either access or input is required)")
        elif not entry.access.type:
            _err("access.type", "must not be empty")
    elif isinstance(entry, ComponentReference):
        if not entry.component_name:
            _err("componentName", "must not be empty")

    return errors


def _validate_collection(
    entries: Sequence[DescriptorEntry], path: str
) -> list[SchemaError]:
    errors: list[SchemaError] = []
    for index, entry in enumerate(entries):
        errors.extend(validate_entry(entry, f"{path}[{index}]"))
    for duplicate in duplicate_identities(entries):
        errors.append(SchemaError(field=path, message=f"duplicate identity {duplicate}"))
    return errors


def validate_descriptor(descriptor: ComponentDescriptor) -> list[SchemaError]:
    """Validate the whole descriptor; an empty list means it is valid."""
    errors: list[SchemaError] = []
    if descriptor.meta.schema_version != SCHEMA_VERSION:
        errors.append(
            SchemaError(
                field="meta.schemaVersion",
                message=f"unsupported schema version {descriptor.meta.schema_version!r}",
            )
        )

    component = descriptor.component
    if not component.name:
        errors.append(SchemaError(field="component.name", message="must not be empty"))
    if not component.version:
        errors.append(SchemaError(field="component.version", message="must not be empty"))
    elif not is_semver(component.version):
        errors.append(
            SchemaError(
                field="component.version",
                message=f"{component.version!r} is not a valid semantic version",
            )
        )

    for index, context in enumerate(component.repository_contexts):
        if not context.type:
            errors.append(
                SchemaError(field=f"component.repositoryContexts[{index}].type", message="must not be empty")
            )
        if not context.base_url:
            errors.append(
                SchemaError(field=f"component.repositoryContexts[{index}].baseUrl", message="must not be empty")
            )

    errors.extend(_validate_collection(component.resources, "component.resources"))
    errors.extend(_validate_collection(component.sources, "component.sources"))
    errors.extend(
        _validate_collection(component.component_references, "component.componentReferences")
    )
    return errors


