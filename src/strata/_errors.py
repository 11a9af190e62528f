"""Error taxonomy for document evaluation.

Every failure raised by the engine is a ``StrataError`` carrying a kind code,
an HTTP-like status, the source location of the failing expression (when
known) and the declaration or attribute path being evaluated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar


class ErrorKind(StrEnum):
    """Kind code attached to every engine error."""

    PARSE_DELEGATION = "parse_delegation_error"
    UNDEFINED_REFERENCE = "undefined_reference"
    DUPLICATE_CONST = "duplicate_const"
    DUPLICATE_KEY = "duplicate_key"
    CIRCULAR_REFERENCE = "circular_reference"
    UNKNOWN_FUNCTION = "unknown_function"
    ARITY_MISMATCH = "arity_mismatch"
    TYPE_MISMATCH = "type_mismatch"
    EMPTY_COLLECTION = "empty_collection"
    PARSE_ERROR = "parse_error"
    FUNCTION_ERROR = "function_error"
    ENCODING_ERROR = "encoding_error"
    INVALID_OVERRIDE = "invalid_override"
    INVALID_OPERATION = "invalid_operation"
    INVALID_DOCUMENT = "invalid_document"
    UNSUPPORTED_FORMAT = "unsupported_format"
    DOCUMENT_NOT_FOUND = "document_not_found"


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """Position of a node in the source document (1-based)."""

    line: int
    column: int
    source: str | None = None

    def __str__(self) -> str:
        prefix = f"{self.source}:" if self.source else ""
        return f"{prefix}{self.line}:{self.column}"


class StrataError(Exception):
    """Base class of all evaluation errors."""

    kind: ClassVar[ErrorKind]
    status: ClassVar[int] = 500

    def __init__(self, message: str, *, location: SourceLocation | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.location = location
        self.path: str | None = None

    def locate(self, location: SourceLocation | None) -> None:
        """Attach a location unless a more precise one is already set."""
        if self.location is None and location is not None:
            self.location = location

    def within(self, path: str) -> None:
        """Record the declaration or attribute being evaluated when the error occurred."""
        if self.path is None:
            self.path = path

    def detail(self) -> str:
        """Message prefixed with the evaluation path and source location."""
        parts = []
        if self.path:
            parts.append(f"in {self.path}")
        if self.location:
            parts.append(f"at {self.location}")
        if not parts:
            return self.message
        return f"{self.message} ({', '.join(parts)})"

    def render(self) -> str:
        """Render the error as the ``(message)``/``(error)`` text pair."""
        return f"(message)\n{self.detail()}\n\n(error)\n{self.kind}\n"

    def __str__(self) -> str:
        return self.detail()


class ParseDelegationError(StrataError):
    """The source text could not be parsed into a document."""

    kind = ErrorKind.PARSE_DELEGATION
    status = 400


class UndefinedReference(StrataError):
    """An identifier, attribute or index does not resolve to a value."""

    kind = ErrorKind.UNDEFINED_REFERENCE

    def __init__(self, name: str, message: str | None = None, *, location: SourceLocation | None = None) -> None:
        super().__init__(message or f"Undefined reference '{name}'", location=location)
        self.name = name


class DuplicateConst(StrataError):
    """A const name was defined or overridden more than once."""

    kind = ErrorKind.DUPLICATE_CONST

    def __init__(self, name: str, *, location: SourceLocation | None = None) -> None:
        super().__init__(f"Cannot redefine const '{name}'", location=location)
        self.name = name


class DuplicateKey(StrataError):
    """A map key, attribute or declaration name appears twice."""

    kind = ErrorKind.DUPLICATE_KEY

    def __init__(self, key: str, message: str | None = None, *, location: SourceLocation | None = None) -> None:
        super().__init__(message or f"Duplicate key '{key}'", location=location)
        self.key = key


class CircularReference(StrataError):
    """Declarations reference each other in a cycle."""

    kind = ErrorKind.CIRCULAR_REFERENCE

    def __init__(self, cycle: tuple[str, ...], *, location: SourceLocation | None = None) -> None:
        chain = " -> ".join([*cycle, cycle[0]]) if cycle else ""
        super().__init__(f"Circular reference: {chain}", location=location)
        self.cycle = cycle


class UnknownFunction(StrataError):
    """No function is registered under the called name."""

    kind = ErrorKind.UNKNOWN_FUNCTION

    def __init__(self, name: str, *, location: SourceLocation | None = None) -> None:
        super().__init__(f"Unknown function '{name}'", location=location)
        self.name = name


class ArityMismatch(StrataError):
    """A function was called with the wrong number of arguments."""

    kind = ErrorKind.ARITY_MISMATCH

    def __init__(self, name: str, expected: str, got: int, *, location: SourceLocation | None = None) -> None:
        super().__init__(f"Function '{name}' expects {expected} argument(s), got {got}", location=location)
        self.name = name
        self.expected = expected
        self.got = got


class TypeMismatch(StrataError):
    """A value has a type the operation does not accept."""

    kind = ErrorKind.TYPE_MISMATCH


class EmptyCollection(StrataError):
    """An aggregate function received an empty collection."""

    kind = ErrorKind.EMPTY_COLLECTION

    def __init__(self, name: str, *, location: SourceLocation | None = None) -> None:
        super().__init__(f"Function '{name}' requires a non-empty collection", location=location)
        self.name = name


class ParseError(StrataError):
    """A string value could not be parsed into the requested form."""

    kind = ErrorKind.PARSE_ERROR


class FunctionError(StrataError):
    """A function implementation or one of its effects failed."""

    kind = ErrorKind.FUNCTION_ERROR

    def __init__(self, name: str, cause: BaseException | str, *, location: SourceLocation | None = None) -> None:
        super().__init__(f"Function '{name}' failed: {cause}", location=location)
        self.name = name
        self.cause = cause


class EncodingError(StrataError):
    """The evaluated tree could not be serialized."""

    kind = ErrorKind.ENCODING_ERROR

    def __init__(self, format_name: str, cause: BaseException | str) -> None:
        super().__init__(f"Cannot encode document as {format_name}: {cause}")
        self.format_name = format_name
        self.cause = cause


class InvalidOverride(StrataError):
    """An override targets a declaration that cannot be overridden."""

    kind = ErrorKind.INVALID_OVERRIDE
    status = 400


class InvalidOperation(StrataError):
    """An operator cannot be applied to its operands (e.g. division by zero)."""

    kind = ErrorKind.INVALID_OPERATION


class InvalidDocument(StrataError):
    """The document structure is not valid for evaluation."""

    kind = ErrorKind.INVALID_DOCUMENT
    status = 400


class UnsupportedFormat(StrataError):
    """The requested output language is not supported."""

    kind = ErrorKind.UNSUPPORTED_FORMAT
    status = 400


class DocumentNotFound(StrataError):
    """The requested document does not exist in the storage root."""

    kind = ErrorKind.DOCUMENT_NOT_FOUND
    status = 404
