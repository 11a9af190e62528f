"""Tests for reference collection and evaluation ordering."""

import pytest

from strata._errors import CircularReference
from strata._eval import build_scope
from strata._eval_engine import Reference, build_reference_graph, collect_references, resolve_order
from strata._syntax import parse_document, parse_expression


def order_of(text: str) -> list[str]:
    return resolve_order(build_scope(parse_document(text)))


class TestCollectReferences:
    """Tests for collect_references."""

    def test_bare_and_qualified(self) -> None:
        refs = list(collect_references(parse_expression("a + local.b + var.c")))
        assert refs == [Reference(None, "a"), Reference("local", "b"), Reference("var", "c")]

    def test_namespace_root(self) -> None:
        assert list(collect_references(parse_expression("length(local)"))) == [Reference("local", None)]

    def test_nested_in_collections_and_templates(self) -> None:
        refs = list(collect_references(parse_expression('{ k = [x, "${y}"] }')))
        assert refs == [Reference(None, "x"), Reference(None, "y")]

    def test_map_attribute_access_is_not_a_namespace(self) -> None:
        refs = list(collect_references(parse_expression("settings.port")))
        assert refs == [Reference(None, "settings")]


class TestResolveOrder:
    """Tests for resolve_order."""

    def test_no_references_keeps_source_order(self) -> None:
        assert order_of("variables {\n c = 1\n a = 2\n}\nlocals {\n b = 3\n}") == ["c", "a", "b"]

    def test_forward_reference(self) -> None:
        assert order_of("locals {\n a = b + 1\n}\nlocals {\n b = 2\n}") == ["b", "a"]

    def test_ready_declarations_keep_source_order(self) -> None:
        text = "locals {\n x = 1\n a = c\n b = 2\n c = 3\n}"
        assert order_of(text) == ["x", "b", "c", "a"]

    def test_builtins_and_unknown_names_are_not_edges(self) -> None:
        assert order_of("locals {\n a = engine\n b = missing\n}") == ["a", "b"]

    def test_graph_edges(self) -> None:
        scope = build_scope(parse_document("locals {\n a = b\n b = 1\n}"))
        graph = build_reference_graph(scope)
        assert graph.predecessors("a") == ("b",)
        assert graph.nodes == ("a", "b")

    def test_cycle_names_every_member(self) -> None:
        with pytest.raises(CircularReference) as exc_info:
            order_of("locals {\n a = b\n b = c\n c = a\n}")
        error = exc_info.value
        assert error.cycle == ("a", "b", "c")
        assert error.message == "Circular reference: a -> b -> c -> a"
        assert error.location is not None
        assert error.location.line == 2

    def test_self_reference(self) -> None:
        with pytest.raises(CircularReference) as exc_info:
            order_of("locals {\n a = a + 1\n}")
        assert exc_info.value.cycle == ("a",)

    def test_cycle_starts_with_first_declared(self) -> None:
        with pytest.raises(CircularReference) as exc_info:
            order_of("locals {\n ok = 1\n y = x\n x = y\n}")
        assert exc_info.value.cycle == ("y", "x")
