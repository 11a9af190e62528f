"""Configuration document compiler."""

__all__ = [
    "Capability",
    "CapabilityError",
    "CompiledDocument",
    "DeclarationKind",
    "DependencyGraph",
    "Document",
    "ErrorKind",
    "EvaluationResult",
    "FunctionRegistry",
    "FunctionSpec",
    "HttpOptions",
    "LocalCapability",
    "NullCapability",
    "OutputFormat",
    "Scope",
    "SourceLocation",
    "StrataError",
    "compile_document",
    "compile_path",
    "compile_source",
    "default_registry",
    "evaluate_document",
    "parse_document",
    "parse_expression",
    "render",
]

from ._capability import Capability, CapabilityError, HttpOptions, LocalCapability, NullCapability
from ._compile import CompiledDocument, compile_document, compile_path, compile_source
from ._errors import ErrorKind, SourceLocation, StrataError
from ._eval import evaluate_document
from ._eval_engine import EvaluationResult
from ._functions import FunctionRegistry, FunctionSpec, default_registry
from ._graph import DependencyGraph
from ._io import OutputFormat, render
from ._scope import DeclarationKind, Scope
from ._syntax import Document, parse_document, parse_expression
