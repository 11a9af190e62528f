from __future__ import annotations

import logging
from enum import StrEnum
from pathlib import Path
from typing import Any

import tomli_w
import yaml

from ._codec import dump_json, dump_yaml
from ._errors import EncodingError, UnsupportedFormat
from ._syntax import Document, parse_document
from ._value import Value, to_plain

logger = logging.getLogger(__name__)


class OutputFormat(StrEnum):
    """Output language of a rendered document."""

    JSON = "json"
    YAML = "yml"
    TOML = "toml"

    @classmethod
    def parse(cls, name: str) -> OutputFormat:
        """Parse a language name (``json``, ``yml``/``yaml``, ``toml``), ignoring case.

        Raises:
            UnsupportedFormat: If the language is not supported.

        """
        normalized = name.strip().lower()
        if normalized == "yaml":
            normalized = "yml"
        try:
            return cls(normalized)
        except ValueError:
            msg = f"Language not found: '{name}'"
            raise UnsupportedFormat(msg) from None

    @property
    def extension(self) -> str:
        return self.value

    @property
    def media_type(self) -> str:
        return {
            OutputFormat.JSON: "application/json",
            OutputFormat.YAML: "application/yaml",
            OutputFormat.TOML: "application/toml",
        }[self]


def _serialize_for_toml(value: Value) -> Any:
    """Recursively prepare a value for TOML, which has no null.

    Handles:
    - None: encoded as the string "null"
    - dict/list: recursively serialized
    - Decimal and other scalars: returned as-is (tomli_w writes Decimal natively)
    """
    if value is None:
        return "null"
    if isinstance(value, dict):
        return {k: _serialize_for_toml(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_serialize_for_toml(item) for item in value]
    return value


def render(tree: dict[str, Value], output_format: OutputFormat) -> str:
    """Render a document tree in the given output language.

    Args:
        tree: Evaluated document tree.
        output_format: Target language.

    Returns:
        The rendered text.

    Raises:
        EncodingError: If the encoder rejects the tree.

    """
    logger.debug("Rendering document as %s", output_format)
    try:
        match output_format:
            case OutputFormat.JSON:
                return dump_json(to_plain(tree), indent=2) + "\n"
            case OutputFormat.YAML:
                return dump_yaml(to_plain(tree))
            case OutputFormat.TOML:
                return tomli_w.dumps(_serialize_for_toml(tree))
    except (TypeError, ValueError, yaml.YAMLError) as e:
        raise EncodingError(str(output_format), e) from e
    msg = f"Unsupported output format: {output_format}"
    raise ValueError(msg)


def load_document(path: Path) -> Document:
    """Read and parse a document file.

    Raises:
        OSError: If the file cannot be read.
        ParseDelegationError: If the file is not a valid document.

    """
    logger.debug("Loading document from %s", path)
    return parse_document(path.read_text(encoding="utf-8"), source=str(path))


def export_document(tree: dict[str, Value], output_format: OutputFormat, output_path: Path) -> None:
    """Render a document tree and write it to a file.

    Raises:
        EncodingError: If the encoder rejects the tree.

    """
    text = render(tree, output_format)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")
    logger.debug("Wrote %s", output_path)
