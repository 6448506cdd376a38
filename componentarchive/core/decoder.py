"""Multi-document template decoder.

Templates are YAML (or JSON, which YAML accepts) documents separated by
``---`` and optionally terminated by ``...``.  Documents are decoded lazily,
one at a time, so that everything before a malformed document can be
committed before the error surfaces.

Two input origins are supported per command: an explicit template file and
piped standard input.  The file is always read first.  The input stream is
passed in explicitly; nothing here reads ``sys.stdin`` on its own.
"""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import IO, Any, NamedTuple, TypeVar

import yaml
from pydantic import ValidationError

from componentarchive.core.storage import LocalStorage, Storage
from componentarchive.errors import (
    ComponentArchiveError,
    ConflictingResourceSource,
    InputNotFound,
    InputUnreadable,
    MalformedTemplate,
)
from componentarchive.models.descriptor import DescriptorEntry, ResourceRelation, ResourceTemplate

logger = logging.getLogger(__name__)

STDIN_ORIGIN = "<stdin>"

TemplateT = TypeVar("TemplateT", bound=DescriptorEntry)


class TemplateSource(NamedTuple):
    """An opened template stream and the directory its relative paths refer to."""

    origin: str
    base_dir: Path
    stream: IO[Any]


def decode_templates(
    stream: IO[Any] | str | bytes,
    model: type[TemplateT],
    *,
    origin: str = "<stream>",
    normalize: Callable[[TemplateT], TemplateT] | None = None,
) -> Iterator[TemplateT]:
    """Like :func:`decode_documents`, without the document ordinals."""
    for _ordinal, template in decode_documents(stream, model, origin=origin, normalize=normalize):
        yield template


def decode_documents(
    stream: IO[Any] | str | bytes,
    model: type[TemplateT],
    *,
    origin: str = "<stream>",
    normalize: Callable[[TemplateT], TemplateT] | None = None,
) -> Iterator[tuple[int, TemplateT]]:
    """Lazily decode ``(ordinal, template)`` pairs, one per document of ``stream``.

    Empty documents are skipped but still counted, so the 1-based ordinal
    reported in errors always matches the position in the stream.

    Raises
    ------
    MalformedTemplate
        On a syntax error, a non-mapping document or a document that does
        not fit ``model``.  No later document is decoded.
    """
    documents = yaml.safe_load_all(stream)
    ordinal = 0
    while True:
        ordinal += 1
        try:
            document = next(documents)
        except StopIteration:
            return
        except yaml.YAMLError as exc:
            raise MalformedTemplate(
                f"unable to decode template: {exc}", origin=origin, document=ordinal
            ) from exc

        if document is None:
            logger.debug("Skipping empty document %d of %s", ordinal, origin)
            continue
        if not isinstance(document, dict):
            raise MalformedTemplate(
                f"template must be a mapping, got {type(document).__name__}",
                origin=origin,
                document=ordinal,
            )

        try:
            template = model.model_validate(document)
        except ValidationError as exc:
            raise MalformedTemplate(
                f"unable to decode template: {_summarize(exc)}", origin=origin, document=ordinal
            ) from exc

        if normalize is not None:
            try:
                template = normalize(template)
            except ComponentArchiveError as exc:
                raise exc.with_context(origin=origin, document=ordinal)

        yield ordinal, template


def apply_resource_defaults(template: ResourceTemplate, component_version: str) -> ResourceTemplate:
    """Default rules for resource templates.

    A local resource without a version inherits the component version.
    Defining both ``access`` and ``input`` is rejected.
    """
    if template.relation == ResourceRelation.LOCAL and not template.version:
        template = template.model_copy(update={"version": component_version})
    if template.access is not None and template.input is not None:
        raise ConflictingResourceSource(
            f"resource {template.name!r} defines both input and access; only one is allowed",
            identity=template.identity,
        )
    return template


def has_piped_input(stream: IO[Any] | None) -> bool:
    """Tell "data was piped in" apart from "nothing was piped".

    A terminal or an empty regular file counts as no input; a pipe or a
    non-empty file does.  Streams without a file descriptor (in-memory
    buffers handed in by callers and tests) always count as input.
    """
    if stream is None:
        return False
    try:
        fd = stream.fileno()
    except (AttributeError, OSError, ValueError):
        return True
    try:
        if os.isatty(fd):
            return False
        info = os.fstat(fd)
    except OSError:
        return False
    return stat.S_ISFIFO(info.st_mode) or info.st_size != 0


def iter_template_sources(
    template_path: Path | str | None,
    stdin: IO[Any] | None,
    storage: Storage | None = None,
) -> Iterator[TemplateSource]:
    """Yield the template file first, then piped input when present.

    Relative ``input`` paths in the file resolve against the file's
    directory; in piped input they resolve against the working directory.
    """
    storage = storage or LocalStorage()
    if template_path:
        path = Path(template_path)
        try:
            handle = storage.open_read(path)
        except FileNotFoundError:
            raise InputNotFound(f"template file {str(path)!r} does not exist") from None
        except OSError as exc:
            raise InputUnreadable(f"unable to read template file {str(path)!r}: {exc}") from exc
        with handle:
            yield TemplateSource(origin=str(path), base_dir=path.parent, stream=handle)

    if stdin is not None and has_piped_input(stdin):
        yield TemplateSource(origin=STDIN_ORIGIN, base_dir=Path.cwd(), stream=stdin)


def _summarize(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "<root>"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)
