"""Tests for the request boundary in strata._compile."""

import json
from pathlib import Path

import pytest

from strata._capability import NullCapability
from strata._compile import (
    compile_path,
    compile_source,
    output_stem,
    resolve_document_path,
    select_format,
)
from strata._errors import DocumentNotFound, StrataError, UnsupportedFormat
from strata._io import OutputFormat

from conftest import FakeCapability


class TestSelectFormat:
    """Tests for output language selection."""

    def test_request_wins(self) -> None:
        meta = {"export": "toml", "file": "a.json"}
        assert select_format("yaml", meta, "json") is OutputFormat.YAML

    def test_file_extension_before_export(self) -> None:
        assert select_format(None, {"export": "yaml", "file": "out.json"}) is OutputFormat.JSON

    def test_meta_export_when_file_has_no_extension(self) -> None:
        assert select_format(None, {"export": "TOML", "file": "settings"}) is OutputFormat.TOML

    def test_meta_export_without_file(self) -> None:
        assert select_format(None, {"export": "TOML"}) is OutputFormat.TOML

    def test_meta_file_extension(self) -> None:
        assert select_format(None, {"file": "settings.yaml"}) is OutputFormat.YAML

    def test_default(self) -> None:
        assert select_format(None, {"file": "settings"}, "json") is OutputFormat.JSON

    def test_nothing_available(self) -> None:
        with pytest.raises(UnsupportedFormat, match="none requested"):
            select_format(None, {})

    def test_unknown_request(self) -> None:
        with pytest.raises(UnsupportedFormat, match="'ini'"):
            select_format("ini", {})


class TestOutputStem:
    """Tests for output file naming."""

    @pytest.mark.parametrize(
        ("meta", "expected"),
        [
            ({"file": "config.json"}, "config"),
            ({"file": "Dockerfile"}, "Dockerfile"),
            ({"file": "  "}, "doc"),
            ({}, "doc"),
        ],
    )
    def test_stem(self, meta: dict[str, str], expected: str) -> None:
        assert output_stem(meta, "doc") == expected


class TestCompileSource:
    """Tests for compile_source."""

    def test_default_name(self) -> None:
        compiled = compile_source("a = 1", language="json")
        assert compiled.filename == "document.json"
        assert compiled.body == '{\n  "a": 1\n}\n'
        assert compiled.media_type == "application/json"
        assert compiled.content_disposition == 'attachment; filename="document.json"'

    def test_meta_names_output(self) -> None:
        text = 'meta {\n file = "app.yml"\n}\nname = "app"'
        compiled = compile_source(text)
        assert compiled.filename == "app.yml"
        assert compiled.output_format is OutputFormat.YAML
        assert compiled.body == "name: app\n"
        assert compiled.result.meta == {"file": "app.yml"}

    def test_meta_file_extension_wins_over_export(self) -> None:
        text = 'meta {\n file = "out.json"\n export = "yaml"\n}\nname = "app"'
        compiled = compile_source(text)
        assert compiled.filename == "out.json"
        assert json.loads(compiled.body) == {"name": "app"}

    def test_float_override_is_a_number(self) -> None:
        text = "variables {\n ratio = 1\n}\nscaled = ratio + 1"
        compiled = compile_source(text, language="json", overrides={"ratio": 1.5})  # type: ignore[dict-item]
        assert compiled.body == '{\n  "scaled": 2.5\n}\n'

    def test_overrides_and_capability(self, capability: FakeCapability) -> None:
        capability.files["greeting.txt"] = b"hi"
        text = 'variables {\n who = "world"\n}\nlocals {\n greeting = file("greeting.txt")\n}\nmessage = "${greeting} ${who}"'
        compiled = compile_source(text, language="json", overrides={"who": "there"}, capability=capability)
        assert json.loads(compiled.body) == {"message": "hi there"}

    def test_errors_propagate(self) -> None:
        with pytest.raises(StrataError, match="'missing'"):
            compile_source("a = missing", language="json")


@pytest.fixture
def storage(tmp_path: Path) -> Path:
    (tmp_path / "app.hcl").write_text('meta {\n export = "json"\n}\nname = "app"\n')
    (tmp_path / "motd.txt").write_text("welcome")
    nested = tmp_path / "services" / "web"
    nested.mkdir(parents=True)
    (nested / "index.hcl").write_text('motd = file("motd.txt")\n')
    (nested / "motd.txt").write_text("web says hi")
    return tmp_path


class TestResolveDocumentPath:
    """Tests for mapping request paths to files."""

    def test_file(self, storage: Path) -> None:
        assert resolve_document_path(storage, "/app.hcl") == (storage / "app.hcl").resolve()

    def test_directory_index(self, storage: Path) -> None:
        expected = (storage / "services" / "web" / "index.hcl").resolve()
        assert resolve_document_path(storage, "services/web/") == expected

    def test_missing(self, storage: Path) -> None:
        with pytest.raises(DocumentNotFound, match="Document 'nope.hcl' not found") as exc_info:
            resolve_document_path(storage, "nope.hcl")
        assert exc_info.value.status == 404

    def test_directory_without_index(self, storage: Path) -> None:
        with pytest.raises(DocumentNotFound):
            resolve_document_path(storage, "services")

    def test_escape(self, storage: Path) -> None:
        with pytest.raises(DocumentNotFound):
            resolve_document_path(storage / "services", "../app.hcl")


class TestCompilePath:
    """Tests for compile_path."""

    def test_named_after_path(self, storage: Path) -> None:
        compiled = compile_path(storage, "app.hcl")
        assert compiled.filename == "app.json"
        assert json.loads(compiled.body) == {"name": "app"}

    def test_index_reads_files_from_storage_root(self, storage: Path) -> None:
        compiled = compile_path(storage, "services/web", language="yml")
        assert compiled.filename == "web.yml"
        assert compiled.body == "motd: welcome\n"

    def test_root_index_named_index(self, storage: Path) -> None:
        (storage / "index.hcl").write_text("ok = true\n")
        compiled = compile_path(storage, "", default_language="toml")
        assert compiled.filename == "index.toml"
        assert compiled.body == "ok = true\n"

    def test_explicit_capability(self, storage: Path) -> None:
        with pytest.raises(StrataError, match="File access is not available"):
            compile_path(storage, "services/web", language="json", capability=NullCapability())
