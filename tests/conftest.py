"""Shared fixtures."""

from dataclasses import dataclass, field

import pytest

from strata._capability import CapabilityError, HttpOptions
from strata._value import Value


@dataclass
class FakeCapability:
    """In-memory capability recording every effect it performs."""

    files: dict[str, bytes] = field(default_factory=dict)
    responses: dict[tuple[str, str], bytes] = field(default_factory=dict)
    secrets: dict[str, dict[str, Value]] = field(default_factory=dict)
    calls: list[tuple[str, str, HttpOptions]] = field(default_factory=list)

    def _http(self, method: str, url: str, options: HttpOptions) -> bytes:
        self.calls.append((method, url, options))
        try:
            return self.responses[(method, url)]
        except KeyError:
            msg = f"{method} {url} failed: 404 Not Found"
            raise CapabilityError(msg) from None

    def http_get(self, url: str, options: HttpOptions) -> bytes:
        return self._http("GET", url, options)

    def http_post(self, url: str, options: HttpOptions) -> bytes:
        return self._http("POST", url, options)

    def http_put(self, url: str, options: HttpOptions) -> bytes:
        return self._http("PUT", url, options)

    def http_json(self, url: str, options: HttpOptions) -> bytes:
        return self._http("JSON", url, options)

    def read_file(self, path: str) -> bytes:
        try:
            return self.files[path]
        except KeyError:
            msg = f"Cannot read '{path}': No such file or directory"
            raise CapabilityError(msg) from None

    def secret_get(self, path: str, key: str | None) -> Value:
        secret = self.secrets.get(path)
        if secret is None:
            msg = f"Secret '{path}' not found"
            raise CapabilityError(msg)
        if key is None:
            return dict(secret)
        if key not in secret:
            msg = f"Secret '{path}' has no key '{key}'"
            raise CapabilityError(msg)
        return secret[key]


@pytest.fixture
def capability() -> FakeCapability:
    return FakeCapability()
