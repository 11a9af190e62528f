"""Compile documents into rendered output: the request boundary.

A request names a document (source text or a path inside a storage root),
optional variable overrides and an optional output language. The result is
the rendered body plus the file name a server would offer for download.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from ._capability import LocalCapability
from ._errors import DocumentNotFound, UnsupportedFormat
from ._eval import evaluate_document
from ._io import OutputFormat, load_document, render
from ._syntax import parse_document

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._capability import Capability
    from ._eval_engine import EvaluationResult
    from ._functions import FunctionRegistry
    from ._syntax import Document
    from ._value import Value

logger = logging.getLogger(__name__)

INDEX_DOCUMENT = "index.hcl"


@dataclass(frozen=True, slots=True)
class CompiledDocument:
    """Rendered output of one request.

    Attributes:
        body: Rendered text.
        filename: Download file name (stem and language extension).
        output_format: Language the body is rendered in.
        result: The underlying evaluation result.

    """

    body: str
    filename: str
    output_format: OutputFormat
    result: EvaluationResult

    @property
    def media_type(self) -> str:
        return self.output_format.media_type

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


def select_format(
    language: str | None,
    meta: Mapping[str, Value],
    default: str | None = None,
) -> OutputFormat:
    """Choose the output language.

    The requested language wins, then the extension of ``meta.file``, then
    ``meta.export``, then ``default``.

    Raises:
        UnsupportedFormat: If no language is available or it is not supported.

    """
    if language:
        return OutputFormat.parse(language)
    file_name = meta.get("file")
    if isinstance(file_name, str) and PurePosixPath(file_name.strip()).suffix:
        return OutputFormat.parse(PurePosixPath(file_name.strip()).suffix[1:])
    export = meta.get("export")
    if isinstance(export, str) and export:
        return OutputFormat.parse(export)
    if default:
        return OutputFormat.parse(default)
    msg = "Language not found: none requested and the document declares no meta export"
    raise UnsupportedFormat(msg)


def output_stem(meta: Mapping[str, Value], default: str) -> str:
    """File name stem: ``meta.file`` without its extension, else ``default``."""
    file_name = meta.get("file")
    if isinstance(file_name, str) and file_name.strip():
        pure = PurePosixPath(file_name.strip())
        return pure.stem if pure.suffix else pure.name
    return default


def compile_document(
    document: Document,
    *,
    name: str = "document",
    language: str | None = None,
    default_language: str | None = None,
    overrides: Mapping[str, Value] | None = None,
    registry: FunctionRegistry | None = None,
    capability: Capability | None = None,
) -> CompiledDocument:
    """Evaluate and render a parsed document.

    Args:
        document: The parsed document.
        name: Default file name stem when the document sets no ``meta.file``.
        language: Requested output language.
        default_language: Language used when neither the request nor the
            document names one.
        overrides: Values replacing variable declarations.
        registry: Function registry (defaults to the built-in one).
        capability: Effect handle (defaults to one that refuses all effects).

    Returns:
        The compiled document.

    Raises:
        StrataError: If evaluation, language selection or encoding fails.

    """
    result = evaluate_document(document, overrides, registry=registry, capability=capability)
    output_format = select_format(language, result.meta, default_language)
    filename = f"{output_stem(result.meta, name)}.{output_format.extension}"
    body = render(result.tree, output_format)
    logger.debug("Compiled %s (%d bytes)", filename, len(body))
    return CompiledDocument(body=body, filename=filename, output_format=output_format, result=result)


def compile_source(
    text: str,
    *,
    source: str | None = None,
    name: str = "document",
    language: str | None = None,
    default_language: str | None = None,
    overrides: Mapping[str, Value] | None = None,
    registry: FunctionRegistry | None = None,
    capability: Capability | None = None,
) -> CompiledDocument:
    """Parse, evaluate and render document source text.

    Raises:
        StrataError: If parsing, evaluation, language selection or encoding fails.

    """
    document = parse_document(text, source=source)
    return compile_document(
        document,
        name=name,
        language=language,
        default_language=default_language,
        overrides=overrides,
        registry=registry,
        capability=capability,
    )


def resolve_document_path(storage: Path, path: str) -> Path:
    """Map a request path to a document file inside the storage root.

    A directory resolves to its ``index.hcl``.

    Raises:
        DocumentNotFound: If the path escapes the storage root or no document exists.

    """
    root = storage.resolve()
    candidate = (root / path.strip("/")).resolve()
    if not candidate.is_relative_to(root):
        msg = f"Document '{path}' not found"
        raise DocumentNotFound(msg)
    if candidate.is_dir():
        candidate /= INDEX_DOCUMENT
    if not candidate.is_file():
        msg = f"Document '{path}' not found"
        raise DocumentNotFound(msg)
    return candidate


def compile_path(
    storage: Path,
    path: str,
    *,
    language: str | None = None,
    default_language: str | None = None,
    overrides: Mapping[str, Value] | None = None,
    registry: FunctionRegistry | None = None,
    capability: Capability | None = None,
) -> CompiledDocument:
    """Compile the document stored at ``path`` inside ``storage``.

    Args:
        storage: Storage root directory.
        path: Request path relative to the storage root.
        language: Requested output language.
        default_language: Language used when neither the request nor the
            document names one.
        overrides: Values replacing variable declarations.
        registry: Function registry (defaults to the built-in one).
        capability: Effect handle (defaults to a LocalCapability on the storage root).

    Returns:
        The compiled document.

    Raises:
        DocumentNotFound: If no document exists at the path.
        StrataError: If parsing, evaluation, language selection or encoding fails.

    """
    document_path = resolve_document_path(storage, path)
    document = load_document(document_path)
    stem = PurePosixPath(path.strip("/")).stem or document_path.stem
    if capability is None:
        capability = LocalCapability(storage)
    return compile_document(
        document,
        name=stem,
        language=language,
        default_language=default_language,
        overrides=overrides,
        registry=registry,
        capability=capability,
    )
