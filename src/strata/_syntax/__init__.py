"""Syntax module: document syntax tree and parser.

Key types:
- Document, Block, Attribute: document structure
- Expression node classes (Literal, Identifier, FunctionCall, ...)
- parse_document / parse_expression: source text to syntax tree
"""

from ._nodes import (
    Attribute,
    BinaryOp,
    Block,
    Conditional,
    Document,
    Expression,
    FunctionCall,
    GetAttr,
    Identifier,
    Index,
    ListLiteral,
    Literal,
    MapLiteral,
    Template,
    UnaryOp,
    child_expressions,
)
from ._parser import parse_document, parse_expression

__all__ = [
    "Attribute",
    "BinaryOp",
    "Block",
    "Conditional",
    "Document",
    "Expression",
    "FunctionCall",
    "GetAttr",
    "Identifier",
    "Index",
    "ListLiteral",
    "Literal",
    "MapLiteral",
    "Template",
    "UnaryOp",
    "child_expressions",
    "parse_document",
    "parse_expression",
]
