"""Document assembly: evaluate declarations, meta and the document tree."""

import logging
from collections.abc import Mapping
from importlib.metadata import PackageNotFoundError, version

from ._capability import Capability, NullCapability
from ._errors import DuplicateKey, InvalidDocument, StrataError
from ._eval_engine import EvaluationResult, Evaluator, resolve_order
from ._functions import FunctionRegistry, default_registry
from ._scope import NAMESPACE_ROOTS, Declaration, DeclarationKind, Scope
from ._syntax import Attribute, Block, Document
from ._value import Value

logger = logging.getLogger(__name__)

DECLARATION_BLOCKS: Mapping[str, DeclarationKind] = {
    "variables": DeclarationKind.VARIABLE,
    "let": DeclarationKind.VARIABLE,
    "var": DeclarationKind.VARIABLE,
    "vars": DeclarationKind.VARIABLE,
    "locals": DeclarationKind.LOCAL,
    "const": DeclarationKind.CONST,
    "meta": DeclarationKind.META,
}

ENGINE_SYNTAX = "v1"


def engine_version() -> str:
    try:
        return version("strata")
    except PackageNotFoundError:
        return "0+unknown"


def builtin_values() -> dict[str, Value]:
    """Values available to every document unless shadowed by a declaration."""
    return {
        "boolean": True,
        "number": 0,
        "string": "",
        "object": {},
        "array": [],
        "engine": {"syntax": ENGINE_SYNTAX, "pkg": engine_version()},
    }


def build_scope(document: Document) -> Scope:
    """Register the declarations of a document's declaration blocks.

    Raises:
        InvalidDocument: If a declaration block has labels or nested blocks,
            or declares a reserved name.
        DuplicateConst: If a const name is declared twice.
        DuplicateKey: If any other name is declared twice.

    """
    scope = Scope(builtins=builtin_values())
    for item in document.body:
        if not isinstance(item, Block) or item.type not in DECLARATION_BLOCKS:
            continue
        kind = DECLARATION_BLOCKS[item.type]
        if item.labels:
            msg = f"'{item.type}' blocks take no labels"
            raise InvalidDocument(msg, location=item.location)
        for member in item.body:
            if isinstance(member, Block):
                msg = f"'{item.type}' blocks may only contain attributes, found block '{member.type}'"
                raise InvalidDocument(msg, location=member.location)
            if kind is not DeclarationKind.META and member.name in NAMESPACE_ROOTS:
                msg = f"'{member.name}' is a reserved name"
                raise InvalidDocument(msg, location=member.location)
            scope.define(member.name, kind, member.expression, member.location)
    return scope


def _service_names(document: Document) -> list[Value]:
    names: dict[str, None] = {}
    for item in document.body:
        if not isinstance(item, Block) or item.type != "services":
            continue
        if item.labels:
            names[item.labels[0]] = None
            continue
        for member in item.body:
            names[member.name if isinstance(member, Attribute) else member.type] = None
    return list(names)


def _evaluate_meta(evaluator: Evaluator, declaration: Declaration) -> Value:
    try:
        value = evaluator.evaluate(declaration.expression)
    except StrataError as e:
        e.within(declaration.qualified_name)
        raise
    evaluator.scope.mark_resolved(declaration.name, value, meta=True)
    return value


def _insert_block(
    tree: dict[str, Value],
    shapes: dict[tuple[str, ...], str],
    block: Block,
    value: dict[str, Value],
) -> None:
    """Insert an evaluated block body, nesting one map level per label.

    A repeated block (same type and labels) turns into a list of bodies.
    """
    keys = (block.type, *block.labels)
    container = tree
    for depth in range(1, len(keys)):
        prefix = keys[:depth]
        if shapes.setdefault(prefix, "container") != "container":
            raise DuplicateKey(".".join(prefix), location=block.location)
        container = container.setdefault(keys[depth - 1], {})  # type: ignore[assignment]

    shape = shapes.get(keys)
    last = keys[-1]
    if shape is None:
        container[last] = value
        shapes[keys] = "block"
    elif shape == "block":
        container[last] = [container[last], value]
        shapes[keys] = "blocks"
    elif shape == "blocks":
        container[last].append(value)  # type: ignore[union-attr]
    else:
        raise DuplicateKey(".".join(keys), location=block.location)


def _assemble(
    body: tuple[Attribute | Block, ...],
    evaluator: Evaluator,
    path: tuple[str, ...] = (),
) -> dict[str, Value]:
    tree: dict[str, Value] = {}
    shapes: dict[tuple[str, ...], str] = {}
    for item in body:
        if isinstance(item, Attribute):
            if (item.name,) in shapes:
                msg = f"Duplicate attribute '{item.name}'"
                raise DuplicateKey(item.name, msg, location=item.location)
            try:
                tree[item.name] = evaluator.evaluate(item.expression)
            except StrataError as e:
                e.within(".".join((*path, item.name)))
                raise
            shapes[(item.name,)] = "attribute"
            continue
        if not path and item.type in DECLARATION_BLOCKS:
            continue
        value = _assemble(item.body, evaluator, (*path, item.type, *item.labels))
        _insert_block(tree, shapes, item, value)
    return tree


def evaluate_document(
    document: Document,
    overrides: Mapping[str, Value] | None = None,
    *,
    registry: FunctionRegistry | None = None,
    capability: Capability | None = None,
) -> EvaluationResult:
    """Evaluate a parsed document.

    This function:
    1. Registers the declarations of ``variables``/``let``/``var``/``vars``,
       ``locals``, ``const`` and ``meta`` blocks
    2. Applies request overrides to variables
    3. Evaluates ``meta.kind`` and binds ``services`` for docker documents
    4. Orders declarations by their references and evaluates them
    5. Evaluates the remaining ``meta`` attributes
    6. Evaluates every other block and attribute into the document tree

    Args:
        document: The parsed document.
        overrides: Values replacing variable declarations.
        registry: Functions callable from expressions. Defaults to the
            built-in registry.
        capability: Effect handle for effectful functions. Defaults to a
            capability that refuses every effect.

    Returns:
        EvaluationResult with the document tree, meta values and declarations.

    Raises:
        StrataError: On the first failure; nothing is returned partially.

    Example:
        >>> document = parse_document('locals { a = 1 }\\nvalue = local.a + 1')
        >>> evaluate_document(document).tree
        {'value': 2}

    """
    registry = registry or default_registry()
    capability = capability or NullCapability()

    scope = build_scope(document)
    if overrides:
        scope.apply_overrides(overrides)

    order = resolve_order(scope)
    evaluator = Evaluator(scope, registry, capability)

    # services must be bound before any declaration can reference it
    kind = next((d for d in scope.meta_declarations() if d.name == "kind"), None)
    if kind is not None and _evaluate_meta(evaluator, kind) == "docker":
        scope.builtins["services"] = _service_names(document)

    logger.debug("Evaluating %d declarations", len(order))
    for name in order:
        evaluator.resolve(name)

    meta: dict[str, Value] = {}
    for declaration in scope.meta_declarations():
        if declaration.resolved:
            meta[declaration.name] = declaration.value
            continue
        meta[declaration.name] = _evaluate_meta(evaluator, declaration)

    tree = _assemble(document.body, evaluator)
    logger.debug("Assembled document with %d top-level keys", len(tree))
    return EvaluationResult(tree=tree, meta=meta, values=scope.values(), order=tuple(order))
