"""Hashing and identifier functions."""

import hashlib
import uuid as uuid_lib

import bcrypt as bcrypt_lib

from strata._errors import ParseError
from strata._value import ParamType, Value, require_integer

from ._registry import FunctionGroup

functions = FunctionGroup()

DEFAULT_BCRYPT_COST = 12

_UUID_NAMESPACES = {
    "dns": uuid_lib.NAMESPACE_DNS,
    "url": uuid_lib.NAMESPACE_URL,
    "oid": uuid_lib.NAMESPACE_OID,
    "x500": uuid_lib.NAMESPACE_X500,
}


def hex_digest(algorithm: str, data: bytes) -> str:
    return hashlib.new(algorithm, data).hexdigest()


@functions.register("hash::md5", ParamType.STRING, aliases=("md5",))
def md5(value: str) -> Value:
    return hex_digest("md5", value.encode())


@functions.register("hash::sha1", ParamType.STRING, aliases=("sha1",))
def sha1(value: str) -> Value:
    return hex_digest("sha1", value.encode())


@functions.register("hash::sha256", ParamType.STRING, aliases=("sha256",))
def sha256(value: str) -> Value:
    return hex_digest("sha256", value.encode())


@functions.register("hash::sha512", ParamType.STRING, aliases=("sha512",))
def sha512(value: str) -> Value:
    return hex_digest("sha512", value.encode())


@functions.register("hash::bcrypt", ParamType.STRING, optional=(ParamType.NUMBER,), aliases=("bcrypt",))
def bcrypt(value: str, cost: Value = DEFAULT_BCRYPT_COST) -> Value:
    """Salted bcrypt hash; a new salt is drawn on every call."""
    rounds = require_integer(cost, "bcrypt() cost")
    return bcrypt_lib.hashpw(value.encode(), bcrypt_lib.gensalt(rounds=rounds)).decode()


@functions.register("uuid")
def uuid() -> Value:
    """Random (version 4) UUID."""
    return str(uuid_lib.uuid4())


@functions.register("uuidv5", ParamType.STRING, ParamType.STRING)
def uuidv5(namespace: str, name: str) -> Value:
    """Name-based (version 5) UUID."""
    ns = _UUID_NAMESPACES.get(namespace.lower())
    if ns is None:
        try:
            ns = uuid_lib.UUID(namespace)
        except ValueError:
            msg = f"Invalid UUID namespace '{namespace}'"
            raise ParseError(msg) from None
    return str(uuid_lib.uuid5(ns, name))
