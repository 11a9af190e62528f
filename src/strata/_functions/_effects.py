"""Functions with side effects: file reads, HTTP requests and secrets.

Every effect goes through the capability handed to the registry.
"""

from strata._capability import Capability, HttpOptions
from strata._codec import dump_json
from strata._errors import TypeMismatch
from strata._value import ParamType, Value, kind_of, stringify, to_plain

from ._crypto import hex_digest
from ._registry import FunctionGroup

functions = FunctionGroup()


def _options(headers: dict[str, Value] | None, body: bytes | None = None) -> HttpOptions:
    converted: dict[str, str] = {}
    for name, value in (headers or {}).items():
        if isinstance(value, (list, dict)) or value is None:
            msg = f"Header '{name}' must be a scalar value, got {kind_of(value)}"
            raise TypeMismatch(msg)
        converted[name] = stringify(value)
    return HttpOptions(headers=converted, body=body)


@functions.register("fs::read", ParamType.STRING, aliases=("file",), effectful=True)
def read(capability: Capability, path: str) -> Value:
    """Contents of a UTF-8 text file."""
    return capability.read_file(path).decode("utf-8")


@functions.register("fs::hash::md5", ParamType.STRING, aliases=("filemd5",), effectful=True)
def file_md5(capability: Capability, path: str) -> Value:
    return hex_digest("md5", capability.read_file(path))


@functions.register("fs::hash::sha1", ParamType.STRING, aliases=("filesha1",), effectful=True)
def file_sha1(capability: Capability, path: str) -> Value:
    return hex_digest("sha1", capability.read_file(path))


@functions.register("fs::hash::sha256", ParamType.STRING, aliases=("filesha256",), effectful=True)
def file_sha256(capability: Capability, path: str) -> Value:
    return hex_digest("sha256", capability.read_file(path))


@functions.register("fs::hash::sha512", ParamType.STRING, aliases=("filesha512",), effectful=True)
def file_sha512(capability: Capability, path: str) -> Value:
    return hex_digest("sha512", capability.read_file(path))


@functions.register("http::get", ParamType.STRING, optional=(ParamType.MAP,), effectful=True)
def http_get(capability: Capability, url: str, headers: dict[str, Value] | None = None) -> Value:
    """Response body of a GET request."""
    return capability.http_get(url, _options(headers)).decode("utf-8")


@functions.register("http::post", ParamType.STRING, ParamType.STRING, optional=(ParamType.MAP,), effectful=True)
def http_post(capability: Capability, url: str, body: str, headers: dict[str, Value] | None = None) -> Value:
    """Response body of a POST request with a text body."""
    return capability.http_post(url, _options(headers, body.encode())).decode("utf-8")


@functions.register("http::put", ParamType.STRING, ParamType.STRING, optional=(ParamType.MAP,), effectful=True)
def http_put(capability: Capability, url: str, body: str, headers: dict[str, Value] | None = None) -> Value:
    """Response body of a PUT request with a text body."""
    return capability.http_put(url, _options(headers, body.encode())).decode("utf-8")


@functions.register("http::post_json", ParamType.STRING, ParamType.ANY, optional=(ParamType.MAP,), effectful=True)
def http_post_json(capability: Capability, url: str, body: Value, headers: dict[str, Value] | None = None) -> Value:
    """Response body of a POST request whose body is the JSON encoding of a value."""
    payload = dump_json(to_plain(body)).encode()
    return capability.http_json(url, _options(headers, payload)).decode("utf-8")


@functions.register("secret::kv", ParamType.STRING, optional=(ParamType.STRING,), effectful=True)
def secret_kv(capability: Capability, path: str, key: str | None = None) -> Value:
    """One key of a key/value secret, or the whole secret as a map."""
    return capability.secret_get(path, key)
