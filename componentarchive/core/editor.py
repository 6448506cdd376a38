"""Add pipeline: applies streamed templates to a component archive.

For every decoded document:

1. apply default rules (local resources inherit the component version,
   ``access`` and ``input`` are mutually exclusive);
2. for resources with ``input``: digest the content, store the blob and
   replace ``input`` with a ``localFilesystemBlob`` access;
3. merge the entry into its collection by identity;
4. validate the merged entry, then the whole descriptor;
5. persist the descriptor.

Each document commits on its own: a failing document aborts the command,
but documents committed before it stay in the archive.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import IO, Any

from componentarchive.core.archive_store import ArchiveStore, ComponentArchive
from componentarchive.core.blob_resolver import DEFAULT_SPOOL_MAX_BYTES, resolve_blob
from componentarchive.core.decoder import (
    TemplateSource,
    apply_resource_defaults,
    decode_documents,
    iter_template_sources,
)
from componentarchive.core.merge import merge
from componentarchive.core.validation import validate_entry
from componentarchive.errors import ComponentArchiveError, SchemaValidationFailed
from componentarchive.models.descriptor import (
    Access,
    ComponentReference,
    DescriptorEntry,
    Resource,
    ResourceTemplate,
    Source,
)
from componentarchive.models.identity import Identity

logger = logging.getLogger(__name__)

RESOURCES = "resources"
SOURCES = "sources"
COMPONENT_REFERENCES = "component_references"


@dataclass
class AddReport:
    """Identities committed by one add command, in commit order."""

    collection: str
    committed: list[Identity] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.committed)


@contextmanager
def _document_context(source: TemplateSource, ordinal: int, template: DescriptorEntry) -> Iterator[None]:
    """Attach the template location to any archive error raised inside."""
    try:
        yield
    except ComponentArchiveError as exc:
        raise exc.with_context(origin=source.origin, document=ordinal, identity=template.identity)


class ArchiveEditor:
    """Upserts resources, sources and component references into archives.

    Parameters
    ----------
    store:
        Archive store used for loading, blob storage and persistence.
    spool_max_bytes:
        In-memory threshold for packaged directory / compressed blobs.
    """

    def __init__(
        self,
        store: ArchiveStore | None = None,
        *,
        spool_max_bytes: int = DEFAULT_SPOOL_MAX_BYTES,
    ) -> None:
        self.store = store or ArchiveStore()
        self._spool_max_bytes = spool_max_bytes

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def add_resources(
        self,
        archive_path: Path | str,
        template_path: Path | str | None = None,
        stdin: IO[Any] | None = None,
    ) -> AddReport:
        """Add or update resources from a template file and/or piped input.

        Resources with an ``input`` block get their content stored as a blob
        in the archive before they are merged.
        """
        archive = self.store.load(archive_path)
        report = AddReport(collection=RESOURCES)

        for source in iter_template_sources(template_path, stdin, self.store.storage):
            normalize = partial(
                apply_resource_defaults, component_version=self.store.get_version(archive)
            )
            for ordinal, template in decode_documents(
                source.stream, ResourceTemplate, origin=source.origin, normalize=normalize
            ):
                with _document_context(source, ordinal, template):
                    resource = self._materialize_resource(archive, template, source)
                    self._merge_and_persist(archive, RESOURCES, resource)
                self._record(report, resource, source, ordinal)

        logger.info("Added %d resource(s) to %r", report.count, archive)
        return report

    def add_sources(
        self,
        archive_path: Path | str,
        template_path: Path | str | None = None,
        stdin: IO[Any] | None = None,
    ) -> AddReport:
        """Add or update sources from a template file and/or piped input."""
        return self._add_entries(archive_path, template_path, stdin, Source, SOURCES)

    def add_component_references(
        self,
        archive_path: Path | str,
        template_path: Path | str | None = None,
        stdin: IO[Any] | None = None,
    ) -> AddReport:
        """Add or update component references from a template file and/or piped input."""
        return self._add_entries(
            archive_path, template_path, stdin, ComponentReference, COMPONENT_REFERENCES
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _add_entries(
        self,
        archive_path: Path | str,
        template_path: Path | str | None,
        stdin: IO[Any] | None,
        model: type[DescriptorEntry],
        collection: str,
    ) -> AddReport:
        archive = self.store.load(archive_path)
        report = AddReport(collection=collection)

        for source in iter_template_sources(template_path, stdin, self.store.storage):
            for ordinal, template in decode_documents(source.stream, model, origin=source.origin):
                with _document_context(source, ordinal, template):
                    self._merge_and_persist(archive, collection, template)
                self._record(report, template, source, ordinal)

        logger.info("Added %d %s entries to %r", report.count, collection, archive)
        return report

    def _materialize_resource(
        self, archive: ComponentArchive, template: ResourceTemplate, source: TemplateSource
    ) -> Resource:
        if template.input is None:
            return template.to_resource()

        logger.info("Adding input blob from %r", template.input.path)
        blob = resolve_blob(
            template.input,
            source.base_dir,
            self.store.storage,
            media_type=template.type or None,
            spool_max_bytes=self._spool_max_bytes,
        )
        reader = blob.open()
        try:
            info = self.store.put_blob(archive, blob.info, reader)
        finally:
            reader.close()
        return template.to_resource(access=Access.local_blob(info))

    def _merge_and_persist(
        self, archive: ComponentArchive, collection: str, entry: DescriptorEntry
    ) -> None:
        merged_collection = merge(getattr(archive.descriptor.component, collection), entry)
        merged_entry = next(e for e in merged_collection if e.identity == entry.identity)

        errors = validate_entry(merged_entry)
        if errors:
            raise SchemaValidationFailed(errors)

        candidate = ComponentArchive(
            archive.path, archive.descriptor.replace_component(**{collection: merged_collection})
        )
        # persist re-validates the whole descriptor before writing
        self.store.persist(candidate)
        archive.descriptor = candidate.descriptor

    @staticmethod
    def _record(
        report: AddReport, entry: DescriptorEntry, source: TemplateSource, ordinal: int
    ) -> None:
        report.committed.append(entry.identity)
        logger.info(
            "Committed %s from document %d of %s to %s",
            entry.identity,
            ordinal,
            source.origin,
            report.collection,
        )
