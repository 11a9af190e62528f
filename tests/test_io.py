"""Tests for document loading and output rendering in strata._io."""

import json
import tomllib
from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from strata._errors import EncodingError, UnsupportedFormat
from strata._eval import evaluate_document
from strata._io import OutputFormat, export_document, load_document, render
from strata._syntax import parse_document

TREE = {
    "name": "app",
    "replicas": 3,
    "ratio": Decimal("0.75"),
    "enabled": True,
    "owner": None,
    "ports": [80, 443],
    "service": {"web": {"image": "nginx"}},
}


class TestOutputFormat:
    """Tests for OutputFormat parsing."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("json", OutputFormat.JSON),
            ("JSON", OutputFormat.JSON),
            ("yml", OutputFormat.YAML),
            ("yaml", OutputFormat.YAML),
            (" toml ", OutputFormat.TOML),
        ],
    )
    def test_parse(self, name: str, expected: OutputFormat) -> None:
        assert OutputFormat.parse(name) is expected

    def test_unknown_language(self) -> None:
        with pytest.raises(UnsupportedFormat, match="Language not found: 'xml'") as exc_info:
            OutputFormat.parse("xml")
        assert exc_info.value.status == 400

    def test_extension_and_media_type(self) -> None:
        assert OutputFormat.YAML.extension == "yml"
        assert OutputFormat.JSON.media_type == "application/json"


class TestRender:
    """Tests for rendering trees."""

    def test_json(self) -> None:
        text = render(TREE, OutputFormat.JSON)
        assert text.endswith("}\n")
        assert '  "name": "app"' in text
        assert json.loads(text) == {
            "name": "app",
            "replicas": 3,
            "ratio": 0.75,
            "enabled": True,
            "owner": None,
            "ports": [80, 443],
            "service": {"web": {"image": "nginx"}},
        }

    def test_json_keeps_insertion_order(self) -> None:
        text = render({"b": 1, "a": 2}, OutputFormat.JSON)
        assert text.index('"b"') < text.index('"a"')

    def test_yaml(self) -> None:
        text = render(TREE, OutputFormat.YAML)
        assert text.startswith("name: app\n")
        assert yaml.safe_load(text)["service"] == {"web": {"image": "nginx"}}
        assert yaml.safe_load(text)["owner"] is None

    def test_toml_encodes_null_as_string(self) -> None:
        text = render(TREE, OutputFormat.TOML)
        data = tomllib.loads(text)
        assert data["owner"] == "null"
        assert data["ports"] == [80, 443]
        assert data["service"]["web"]["image"] == "nginx"

    @pytest.mark.parametrize("output_format", list(OutputFormat))
    def test_decimals_keep_every_digit(self, output_format: OutputFormat) -> None:
        tree = parse_document("x = 0.12345678901234567890123\ny = 2.50")
        text = render(evaluate_document(tree).tree, output_format)
        assert "0.12345678901234567890123" in text
        assert "2.5" in text

    def test_tiny_decimal_is_not_zero(self) -> None:
        text = render({"x": Decimal("1E-30")}, OutputFormat.YAML)
        assert text == "x: 0.000000000000000000000000000001\n"
        assert json.loads(render({"x": Decimal("1E-30")}, OutputFormat.JSON), parse_float=Decimal)["x"] == Decimal("1E-30")

    def test_toml_null_inside_list(self) -> None:
        text = render({"values": [None, 1]}, OutputFormat.TOML)
        assert tomllib.loads(text) == {"values": ["null", 1]}

    def test_encoding_error(self) -> None:
        with pytest.raises(EncodingError, match="Cannot encode document as json"):
            render({"bad": object()}, OutputFormat.JSON)  # type: ignore[dict-item]


class TestFiles:
    """Tests for loading and exporting documents."""

    def test_load_document(self, tmp_path: Path) -> None:
        path = tmp_path / "main.hcl"
        path.write_text('name = "app"\n', encoding="utf-8")
        document = load_document(path)
        assert document.source == str(path)
        assert len(document.body) == 1

    def test_export_document_creates_parents(self, tmp_path: Path) -> None:
        output = tmp_path / "out" / "config.json"
        export_document({"a": 1}, OutputFormat.JSON, output)
        assert json.loads(output.read_text(encoding="utf-8")) == {"a": 1}
