"""Side effects available to built-in functions.

Functions never perform I/O directly. They receive a ``Capability`` and go
through it for HTTP requests, file reads and secret lookups, so evaluation can
run against a fake in tests or a restricted implementation in a server.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import requests
from pydantic import BaseModel, ValidationError

from ._value import Value, from_native

logger = logging.getLogger(__name__)


class CapabilityError(Exception):
    """An effect failed or is not permitted."""


@dataclass(frozen=True, slots=True)
class HttpOptions:
    """Request options passed to the HTTP methods of a capability."""

    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | None = None


class Capability(Protocol):
    """Effects a document may trigger through built-in functions."""

    def http_get(self, url: str, options: HttpOptions) -> bytes: ...

    def http_post(self, url: str, options: HttpOptions) -> bytes: ...

    def http_put(self, url: str, options: HttpOptions) -> bytes: ...

    def http_json(self, url: str, options: HttpOptions) -> bytes:
        """POST a JSON body (already encoded in ``options.body``)."""
        ...

    def read_file(self, path: str) -> bytes: ...

    def secret_get(self, path: str, key: str | None) -> Value:
        """Return one key of a secret, or the whole secret as a map when key is None."""
        ...


class NullCapability:
    """Capability that refuses every effect."""

    def _refuse(self, what: str) -> CapabilityError:
        return CapabilityError(f"{what} is not available in this evaluation")

    def http_get(self, url: str, options: HttpOptions) -> bytes:
        raise self._refuse("HTTP")

    def http_post(self, url: str, options: HttpOptions) -> bytes:
        raise self._refuse("HTTP")

    def http_put(self, url: str, options: HttpOptions) -> bytes:
        raise self._refuse("HTTP")

    def http_json(self, url: str, options: HttpOptions) -> bytes:
        raise self._refuse("HTTP")

    def read_file(self, path: str) -> bytes:
        raise self._refuse("File access")

    def secret_get(self, path: str, key: str | None) -> Value:
        raise self._refuse("Secret access")


class _VaultKvData(BaseModel):
    data: dict[str, Any]


class _VaultKvResponse(BaseModel):
    """Response body of a Vault KV version 2 read."""

    data: _VaultKvData


class LocalCapability:
    """Default capability: HTTP through ``requests``, files under a storage root, Vault KV secrets.

    Args:
        storage_root: Directory that file reads are confined to.
        vault_url: Base URL of the Vault server, e.g. ``http://127.0.0.1:8200``.
        vault_token: Token sent as ``X-Vault-Token``.
        timeout: Timeout in seconds for every HTTP request.
        session: Optional preconfigured ``requests.Session``.

    """

    def __init__(
        self,
        storage_root: Path,
        *,
        vault_url: str | None = None,
        vault_token: str | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.storage_root = storage_root.resolve()
        self.vault_url = vault_url.rstrip("/") if vault_url else None
        self.vault_token = vault_token
        self.timeout = timeout
        self._session = session or requests.Session()

    def _request(self, method: str, url: str, options: HttpOptions) -> bytes:
        logger.debug("HTTP %s %s", method, url)
        try:
            response = self._session.request(
                method,
                url,
                headers=dict(options.headers),
                data=options.body,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            msg = f"{method} {url} failed: {e}"
            raise CapabilityError(msg) from e
        return response.content

    def http_get(self, url: str, options: HttpOptions) -> bytes:
        return self._request("GET", url, options)

    def http_post(self, url: str, options: HttpOptions) -> bytes:
        return self._request("POST", url, options)

    def http_put(self, url: str, options: HttpOptions) -> bytes:
        return self._request("PUT", url, options)

    def http_json(self, url: str, options: HttpOptions) -> bytes:
        headers = {"Content-Type": "application/json", **options.headers}
        return self._request("POST", url, HttpOptions(headers=headers, body=options.body))

    def resolve_path(self, path: str) -> Path:
        """Resolve a path against the storage root, rejecting paths that escape it.

        Raises:
            CapabilityError: If the path lies outside the storage root.

        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.storage_root / candidate
        resolved = candidate.resolve()
        if not resolved.is_relative_to(self.storage_root):
            msg = f"Path '{path}' is outside the storage root"
            raise CapabilityError(msg)
        return resolved

    def read_file(self, path: str) -> bytes:
        resolved = self.resolve_path(path)
        logger.debug("Reading %s", resolved)
        try:
            return resolved.read_bytes()
        except OSError as e:
            msg = f"Cannot read '{path}': {e.strerror or e}"
            raise CapabilityError(msg) from e

    def secret_get(self, path: str, key: str | None) -> Value:
        if not self.vault_url or not self.vault_token:
            msg = "Secret store is not configured (vault_url and vault_token are required)"
            raise CapabilityError(msg)

        url = f"{self.vault_url}/v1/kv/data/{path.strip('/')}"
        body = self._request("GET", url, HttpOptions(headers={"X-Vault-Token": self.vault_token}))
        try:
            secret = _VaultKvResponse.model_validate_json(body).data.data
        except ValidationError as e:
            msg = f"Unexpected secret store response for '{path}': {e.error_count()} validation error(s)"
            raise CapabilityError(msg) from e

        if key is None:
            return from_native(secret)
        if key not in secret:
            msg = f"Secret '{path}' has no key '{key}'"
            raise CapabilityError(msg)
        return from_native(secret[key])
