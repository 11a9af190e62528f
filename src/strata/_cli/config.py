"""Configuration loading from pyproject.toml."""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

from strata._errors import UnsupportedFormat
from strata._io import OutputFormat

DEFAULT_HTTP_TIMEOUT = 30.0


class ConfigError(Exception):
    """Error in strata configuration."""


@dataclass(slots=True, frozen=True)
class StrataConfig:
    """Configuration loaded from pyproject.toml.

    All relative paths are resolved from the project root (directory containing pyproject.toml).
    """

    storage: Path | None = None
    format: OutputFormat | None = None
    vault_url: str | None = None
    vault_token: str | None = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    project_root: Path | None = None


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()

    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def _optional_str(section: dict[str, object], key: str) -> str | None:
    value = section.get(key)
    if value is not None and not isinstance(value, str):
        msg = f"Invalid [tool.strata].{key}: expected string"
        raise ConfigError(msg)
    return value


def load_config(pyproject_path: Path) -> StrataConfig:
    """Load and validate [tool.strata] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed StrataConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent
    env_token = os.environ.get("VAULT_TOKEN") or None

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    tool_section = data.get("tool", {})
    section = tool_section.get("strata", {})

    if not section:
        return StrataConfig(vault_token=env_token, project_root=project_root)

    storage: Path | None = None
    storage_value = _optional_str(section, "storage")
    if storage_value is not None:
        storage = Path(storage_value)
        if not storage.is_absolute():
            storage = project_root / storage

    output_format: OutputFormat | None = None
    format_value = _optional_str(section, "format")
    if format_value is not None:
        try:
            output_format = OutputFormat.parse(format_value)
        except UnsupportedFormat as e:
            msg = f"Invalid [tool.strata].format: {e.message}"
            raise ConfigError(msg) from e

    timeout_value = section.get("http_timeout", DEFAULT_HTTP_TIMEOUT)
    # bool is an int subclass
    if isinstance(timeout_value, bool) or not isinstance(timeout_value, (int, float)) or timeout_value <= 0:
        msg = "Invalid [tool.strata].http_timeout: expected a positive number of seconds"
        raise ConfigError(msg)

    return StrataConfig(
        storage=storage,
        format=output_format,
        vault_url=_optional_str(section, "vault_url"),
        vault_token=_optional_str(section, "vault_token") or env_token,
        http_timeout=float(timeout_value),
        project_root=project_root,
    )


def get_config() -> StrataConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        StrataConfig (may be empty if no pyproject.toml or no [tool.strata] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return StrataConfig(vault_token=os.environ.get("VAULT_TOKEN") or None)
    return load_config(pyproject_path)
