"""Parser turning source text into the syntax tree."""

import logging
import re
from decimal import Decimal
from functools import cache
from pathlib import Path

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedInput, VisitError

from strata._errors import ParseDelegationError, SourceLocation, StrataError

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
)

logger = logging.getLogger(__name__)

_GRAMMAR_PATH = Path(__file__).with_name("hcl.lark")

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\"}
_UNICODE_ESCAPE = re.compile(r"u([0-9a-fA-F]{4})|U([0-9a-fA-F]{8})")


@cache
def _lark() -> Lark:
    return Lark(
        _GRAMMAR_PATH.read_text(encoding="utf-8"),
        start=["document", "expression"],
        parser="lalr",
        propagate_positions=True,
    )


def _location(meta_like: object, source: str | None) -> SourceLocation | None:
    line = getattr(meta_like, "line", None)
    column = getattr(meta_like, "column", None)
    if line is None or column is None:
        return None
    return SourceLocation(line=line, column=column, source=source)


def _unescape(raw: str, location: SourceLocation | None) -> str:
    """Resolve backslash escapes of a quoted string segment."""
    out: list[str] = []
    i = 0
    while i < len(raw):
        char = raw[i]
        if char != "\\":
            out.append(char)
            i += 1
            continue
        nxt = raw[i + 1 : i + 2]
        if nxt in _ESCAPES:
            out.append(_ESCAPES[nxt])
            i += 2
            continue
        match = _UNICODE_ESCAPE.match(raw, i + 1)
        if match is None:
            msg = f"Invalid escape sequence '\\{nxt}'"
            raise ParseDelegationError(msg, location=location)
        out.append(chr(int(match.group(1) or match.group(2), 16)))
        i = match.end()
    return "".join(out)


def _split_template(raw: str, location: SourceLocation | None) -> list[tuple[bool, str]]:
    """Split quoted string content into (is_expression, text) segments.

    ``$${`` is an escaped literal ``${``.
    """
    segments: list[tuple[bool, str]] = []
    literal: list[str] = []
    i = 0
    while i < len(raw):
        if raw.startswith("$${", i):
            literal.append("${")
            i += 3
        elif raw.startswith("${", i):
            end = raw.find("}", i + 2)
            if end == -1:
                msg = "Unterminated interpolation in string"
                raise ParseDelegationError(msg, location=location)
            if literal:
                segments.append((False, "".join(literal)))
                literal = []
            segments.append((True, raw[i + 2 : end]))
            i = end + 1
        elif raw[i] == "\\" and i + 1 < len(raw):
            literal.append(raw[i : i + 2])
            i += 2
        else:
            literal.append(raw[i])
            i += 1
    if literal:
        segments.append((False, "".join(literal)))
    return segments


@v_args(meta=True, inline=True)
class _SyntaxTreeBuilder(Transformer):
    """Build syntax tree nodes from the lark parse tree."""

    def __init__(self, source: str | None, fixed_location: SourceLocation | None = None) -> None:
        super().__init__()
        self._source = source
        # nodes parsed from an interpolation report the enclosing string
        self._fixed_location = fixed_location

    def _loc(self, meta: object) -> SourceLocation | None:
        return self._fixed_location or _location(meta, self._source)

    def _string(self, token: Token) -> Expression:
        location = self._loc(token)
        segments = _split_template(token.value[1:-1], location)
        if not any(is_expr for is_expr, _ in segments):
            text = "".join(_unescape(text, location) for _, text in segments)
            return Literal(text, location)
        parts: list[Expression] = []
        for is_expr, text in segments:
            if is_expr:
                parts.append(_parse_embedded(text, self._source, location))
            else:
                parts.append(Literal(_unescape(text, location), location))
        return Template(tuple(parts), location)

    # --- Structure ---

    def document(self, meta, body):
        return Document(body=body, source=self._source)

    def body(self, meta, *items):
        return tuple(items)

    def attribute(self, meta, name, expression):
        return Attribute(str(name), expression, self._loc(meta))

    def block(self, meta, block_type, *rest):
        *labels, body = rest
        return Block(str(block_type), tuple(labels), body, self._loc(meta))

    def label_ident(self, meta, token):
        return str(token)

    def label_string(self, meta, token):
        return _unescape(token.value[1:-1], self._loc(token))

    # --- Expressions ---

    def conditional(self, meta, condition, then, otherwise):
        return Conditional(condition, then, otherwise, self._loc(meta))

    def binary(self, meta, left, op, right):
        return BinaryOp(str(op), left, right, self._loc(meta))

    def unary(self, meta, op, operand):
        return UnaryOp(str(op), operand, self._loc(meta))

    def get_attr(self, meta, target, name):
        return GetAttr(target, str(name), self._loc(meta))

    def index(self, meta, target, key):
        return Index(target, key, self._loc(meta))

    def number(self, meta, token):
        text = str(token)
        if text.isdigit():
            return Literal(int(text), self._loc(meta))
        return Literal(Decimal(text), self._loc(meta))

    def string(self, meta, token):
        return self._string(token)

    def true(self, meta, token):
        return Literal(True, self._loc(meta))  # noqa: FBT003

    def false(self, meta, token):
        return Literal(False, self._loc(meta))  # noqa: FBT003

    def null(self, meta, token):
        return Literal(None, self._loc(meta))

    def variable(self, meta, token):
        return Identifier(str(token), self._loc(meta))

    def function_call(self, meta, name, arguments=((), False)):
        args, expand_final = arguments
        return FunctionCall(str(name), args, expand_final, self._loc(meta))

    def arguments(self, meta, *items):
        expand_final = bool(items) and isinstance(items[-1], Token) and items[-1].type == "ELLIPSIS"
        args = items[:-1] if expand_final else items
        return (tuple(args), expand_final)

    def list(self, meta, *items):
        return ListLiteral(tuple(items), self._loc(meta))

    def object(self, meta, *items):
        return MapLiteral(tuple(items), self._loc(meta))

    def object_item(self, meta, key, value):
        return (key, value)

    def key_ident(self, meta, token):
        return Literal(str(token), self._loc(token))

    def key_string(self, meta, token):
        return self._string(token)

    def key_expr(self, meta, expression):
        return expression


def _transform(tree, source: str | None, fixed_location: SourceLocation | None = None):
    try:
        return _SyntaxTreeBuilder(source, fixed_location).transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, StrataError):
            raise e.orig_exc from None
        raise


def _parse_embedded(text: str, source: str | None, location: SourceLocation | None) -> Expression:
    try:
        tree = _lark().parse(text, start="expression")
    except UnexpectedInput as e:
        msg = f"Invalid interpolation '${{{text}}}': {e.__class__.__name__}"
        raise ParseDelegationError(msg, location=location) from e
    return _transform(tree, source, location)


def parse_expression(text: str, source: str | None = None) -> Expression:
    """Parse a single expression.

    Raises:
        ParseDelegationError: If the text is not a valid expression.

    """
    try:
        tree = _lark().parse(text, start="expression")
    except UnexpectedInput as e:
        msg = f"Syntax error in expression: {_describe(e)}"
        raise ParseDelegationError(msg, location=SourceLocation(e.line, e.column, source)) from e
    return _transform(tree, source)


def parse_document(text: str, source: str | None = None) -> Document:
    """Parse a whole document.

    Args:
        text: Source text.
        source: Name of the source (file path) used in error locations.

    Returns:
        The parsed Document.

    Raises:
        ParseDelegationError: If the text is not a valid document.

    """
    logger.debug("Parsing document %s", source or "<string>")
    try:
        tree = _lark().parse(text, start="document")
    except UnexpectedInput as e:
        msg = f"Syntax error: {_describe(e)}"
        raise ParseDelegationError(msg, location=SourceLocation(e.line, e.column, source)) from e
    return _transform(tree, source)


def _describe(error: UnexpectedInput) -> str:
    token = getattr(error, "token", None)
    if token is not None:
        if token.type == "$END":
            return "unexpected end of input"
        return f"unexpected {token.value!r}"
    char = getattr(error, "char", None)
    if char is not None:
        return f"unexpected character {char!r}"
    return error.__class__.__name__
