"""Tests for the built-in function library."""

import hashlib
import json
import uuid
from decimal import Decimal

import pytest

from strata._capability import NullCapability
from strata._errors import (
    ArityMismatch,
    EmptyCollection,
    FunctionError,
    ParseError,
    TypeMismatch,
    UnknownFunction,
)
from strata._functions import FunctionGroup, FunctionRegistry, FunctionSpec, default_registry
from strata._functions._date import parse_duration
from strata._value import ParamType, Value

from conftest import FakeCapability


def call(name: str, *args: Value) -> Value:
    return default_registry().call(name, list(args), NullCapability())


class TestRegistry:
    """Tests for the registry and its dispatch contract."""

    def test_default_registry_is_shared(self) -> None:
        assert default_registry() is default_registry()

    def test_aliases_resolve_to_same_spec(self) -> None:
        registry = default_registry()
        assert registry.get("upper") is registry.get("str::upper")
        assert "tostring" in registry

    def test_unknown_function(self) -> None:
        with pytest.raises(UnknownFunction, match="Unknown function 'nope'"):
            call("nope")

    def test_arity_mismatch_names_call(self) -> None:
        with pytest.raises(ArityMismatch) as exc_info:
            call("upper", "a", "b")
        assert exc_info.value.expected == "1"
        assert exc_info.value.got == 2
        assert "'upper'" in exc_info.value.message

    def test_argument_type_checked(self) -> None:
        with pytest.raises(TypeMismatch, match=r"Argument 1 of join\(\)"):
            call("join", "not a list", ",")

    def test_duplicate_registration_rejected(self) -> None:
        spec = FunctionSpec(name="f", impl=lambda: None, aliases=("g",))
        with pytest.raises(ValueError, match="registered twice"):
            FunctionRegistry([spec, FunctionSpec(name="g", impl=lambda: None)])

    def test_group_registration(self) -> None:
        group = FunctionGroup()

        @group.register("twice", ParamType.NUMBER, optional=(ParamType.NUMBER,))
        def twice(value: Value, factor: Value = 2) -> Value:
            """Multiply a number."""
            return value * factor  # type: ignore[operator]

        registry = FunctionRegistry(group)
        (spec,) = registry.specs
        assert spec.summary == "Multiply a number."
        assert spec.arity_text() == "1 to 2"
        assert spec.signature() == "twice(number, [number])"
        assert registry.call("twice", [3], NullCapability()) == 6

    def test_implementation_errors_become_function_errors(self) -> None:
        with pytest.raises(FunctionError, match="Function 'range' failed"):
            call("range", 0, 5, 0)

    def test_variadic_arity_text(self) -> None:
        assert default_registry().get("merge").arity_text() == "at least 0"


class TestCollectionFunctions:
    """Tests for collection functions."""

    def test_merge_later_wins_and_keeps_order(self) -> None:
        result = call("merge", {"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert result == {"a": 1, "b": 3, "c": 4}
        assert list(result) == ["a", "b", "c"]  # type: ignore[arg-type]

    def test_flatten_one_level(self) -> None:
        assert call("flatten", [[1, 2], [3, [4]]]) == [1, 2, 3, [4]]

    def test_length(self) -> None:
        assert call("length", [1, 2]) == 2
        assert call("length", {"a": 1}) == 1
        assert call("length", "abc") == 3

    def test_length_rejects_numbers(self) -> None:
        with pytest.raises(TypeMismatch):
            call("length", 5)

    def test_unique_is_type_aware(self) -> None:
        assert call("unique", [1, Decimal("1.0"), "1", True, 1]) == [1, "1", True]
        assert call("toset", ["b", "a", "b"]) == ["b", "a"]

    def test_compact(self) -> None:
        assert call("compact", [1, None, 2]) == [1, 2]
        assert call("compact", {"a": None, "b": 1}) == {"b": 1}

    def test_range(self) -> None:
        assert call("range", 0, 3) == [0, 1, 2]
        assert call("range", 5, 0, -2) == [5, 3, 1]

    def test_list_aliases(self) -> None:
        assert call("list", 1, "a") == [1, "a"]
        assert call("tuple") == []

    def test_contains(self) -> None:
        assert call("contains", [1, 2], Decimal("2.0")) is True
        assert call("contains", "hello", "ell") is True
        assert call("contains", [1, 2], "1") is False

    def test_reverse(self) -> None:
        assert call("reverse", [1, 2, 3]) == [3, 2, 1]
        assert call("reverse", "abc") == "cba"

    def test_keys_and_values(self) -> None:
        assert call("keys", {"b": 1, "a": 2}) == ["b", "a"]
        assert call("map::values", {"b": 1, "a": 2}) == [1, 2]

    def test_type_of(self) -> None:
        assert call("typeof", {}) == "object"
        assert call("type_of", []) == "array"

    def test_tostring(self) -> None:
        assert call("tostring", Decimal("2.50")) == "2.5"
        assert call("string", None) == "null"

    def test_tonumber(self) -> None:
        assert call("tonumber", "42") == 42
        assert call("tonumber", " 1.5 ") == Decimal("1.5")
        assert call("tonumber", None) is None

    def test_tonumber_rejects_text(self) -> None:
        with pytest.raises(ParseError, match="Cannot parse 'abc'"):
            call("tonumber", "abc")
        with pytest.raises(ParseError):
            call("tonumber", "NaN")


class TestStringFunctions:
    """Tests for string functions."""

    def test_case(self) -> None:
        assert call("upper", "abc") == "ABC"
        assert call("str::lower", "ABC") == "abc"

    def test_trim_family(self) -> None:
        assert call("trimspace", "  x  ") == "x"
        assert call("trim", "--x--", "-") == "x"
        assert call("trimprefix", "hello", "he") == "llo"
        assert call("trimsuffix", "hello", "lo") == "hel"

    def test_trimprefix_without_match(self) -> None:
        assert call("trimprefix", "hello", "xyz") == "hello"

    def test_numbers_coerced_to_strings(self) -> None:
        assert call("upper", 12) == "12"
        assert call("concat", "port-", 8080) == "port-8080"

    def test_join_and_split(self) -> None:
        assert call("join", ["a", 1, True], ",") == "a,1,true"
        assert call("split", "a,b", ",") == ["a", "b"]
        assert call("split", "ab", "") == ["a", "b"]

    def test_format(self) -> None:
        assert call("format", "%s:%d (%f) 100%%", "host", 80, Decimal("0.5")) == "host:80 (0.5) 100%"

    def test_format_rejects_non_number_for_d(self) -> None:
        with pytest.raises(TypeMismatch):
            call("format", "%d", "x")

    def test_format_missing_arguments(self) -> None:
        with pytest.raises(FunctionError, match="Not enough arguments"):
            call("format", "%s %s", "a")

    def test_format_unknown_verb(self) -> None:
        with pytest.raises(FunctionError, match="Unknown format specifier"):
            call("format", "%x", 1)


class TestNumericFunctions:
    """Tests for numeric functions."""

    def test_sum(self) -> None:
        assert call("sum", [1, 2, 3]) == 6
        assert call("sum", [1, Decimal("0.5")]) == Decimal("1.5")

    def test_sum_empty(self) -> None:
        with pytest.raises(EmptyCollection, match="'sum'"):
            call("sum", [])

    def test_sum_rejects_strings(self) -> None:
        with pytest.raises(TypeMismatch):
            call("sum", [1, "2"])

    def test_max_and_min(self) -> None:
        assert call("max", [3, 7, 5]) == 7
        assert call("max", 3, 7, 5) == 7
        assert call("min", "b", "a") == "a"

    def test_max_empty(self) -> None:
        with pytest.raises(EmptyCollection):
            call("max", [])
        with pytest.raises(EmptyCollection):
            call("min")

    def test_max_mixed_types(self) -> None:
        with pytest.raises(TypeMismatch):
            call("max", [1, "a"])

    def test_single_incomparable_element(self) -> None:
        with pytest.raises(TypeMismatch, match=r"max\(\) element 1 is object"):
            call("max", [{}])
        with pytest.raises(TypeMismatch, match=r"min\(\) element 1 is array"):
            call("min", [[1]])

    def test_rounding(self) -> None:
        assert call("ceil", Decimal("1.2")) == 2
        assert call("floor", Decimal("-1.2")) == -2
        assert call("abs", -3) == 3

    def test_parseint(self) -> None:
        assert call("parseint", "ff", 16) == 255
        assert call("parseint", "-12") == -12

    def test_parseint_invalid(self) -> None:
        with pytest.raises(ParseError, match="base 10"):
            call("parseint", "1_000")
        with pytest.raises(ParseError):
            call("parseint", "12", 2)


class TestDateFunctions:
    """Tests for date and duration functions."""

    def test_parse_duration(self) -> None:
        assert parse_duration("1h30m") == 5400
        assert parse_duration("2d") == 172800

    def test_invalid_duration(self) -> None:
        with pytest.raises(ParseError):
            parse_duration("1 hour")

    def test_timeadd(self) -> None:
        assert call("timeadd", 1000, "10s") == 1010

    def test_formatdate(self) -> None:
        assert call("formatdate", "%Y-%m-%dT%H:%M:%SZ", 0) == "1970-01-01T00:00:00Z"

    def test_timestamp_is_integer(self) -> None:
        assert isinstance(call("timestamp"), int)


class TestCryptoFunctions:
    """Tests for hashing and identifier functions."""

    def test_digests(self) -> None:
        assert call("md5", "abc") == hashlib.md5(b"abc").hexdigest()  # noqa: S324
        assert call("hash::sha256", "abc") == hashlib.sha256(b"abc").hexdigest()

    def test_bcrypt(self) -> None:
        import bcrypt  # noqa: PLC0415

        hashed = call("bcrypt", "secret", 4)
        assert isinstance(hashed, str)
        assert bcrypt.checkpw(b"secret", hashed.encode())

    def test_uuid(self) -> None:
        assert uuid.UUID(str(call("uuid"))).version == 4

    def test_uuidv5(self) -> None:
        assert call("uuidv5", "dns", "example.com") == str(uuid.uuid5(uuid.NAMESPACE_DNS, "example.com"))

    def test_uuidv5_invalid_namespace(self) -> None:
        with pytest.raises(ParseError):
            call("uuidv5", "nope", "x")


class TestEncodingFunctions:
    """Tests for encoding and decoding functions."""

    def test_base64(self) -> None:
        assert call("base64encode", "hi") == "aGk="
        assert call("base64decode", "aGk=") == "hi"

    def test_base64_invalid(self) -> None:
        with pytest.raises(ParseError):
            call("base64decode", "***")

    def test_json(self) -> None:
        assert call("jsonencode", {"a": [1, Decimal("1.5")]}) == '{"a":[1,1.5]}'
        assert call("jsondecode", '{"a": 1.5}') == {"a": Decimal("1.5")}
        assert call("jsonencode", [Decimal("0.12345678901234567890123")]) == "[0.12345678901234567890123]"

    def test_json_invalid(self) -> None:
        with pytest.raises(ParseError):
            call("jsondecode", "{")
        with pytest.raises(ParseError):
            call("jsondecode", "NaN")

    def test_url(self) -> None:
        assert call("urlencode", "a b/c") == "a%20b%2Fc"
        assert call("urldecode", "a%20b") == "a b"

    def test_yaml(self) -> None:
        assert call("yamldecode", "a: 1\nb: [x, y]\n") == {"a": 1, "b": ["x", "y"]}
        assert call("yamlencode", {"a": 1}) == "a: 1\n"
        assert call("yamlencode", {"r": Decimal("0.1000")}) == "r: 0.1\n"

    def test_yaml_invalid(self) -> None:
        with pytest.raises(ParseError):
            call("yamldecode", "a: [")


class TestNetworkFunctions:
    """Tests for CIDR functions."""

    def test_netmask(self) -> None:
        assert call("cidrnetmask", "10.0.0.0/16") == "255.255.0.0"

    def test_range(self) -> None:
        assert call("cidrrange", "10.0.0.0/30") == ["10.0.0.0", "10.0.0.3"]

    def test_host(self) -> None:
        assert call("cidrhost", "10.0.0.0/24", 5) == "10.0.0.5"
        assert call("cidrhost", "10.0.0.0/24", -1) == "10.0.0.255"

    def test_host_out_of_range(self) -> None:
        with pytest.raises(FunctionError):
            call("cidrhost", "10.0.0.0/30", 4)

    def test_subnets(self) -> None:
        assert call("cidrsubnets", "10.0.0.0/24", 1) == ["10.0.0.0/25", "10.0.0.128/25"]

    def test_invalid_prefix(self) -> None:
        with pytest.raises(ParseError):
            call("cidrnetmask", "not-a-cidr")

    def test_ipv6(self) -> None:
        assert call("cidrhost", "fd00::/64", 1) == "fd00::1"


class TestEffectfulFunctions:
    """Tests for functions that go through the capability."""

    def test_null_capability_refuses(self) -> None:
        with pytest.raises(FunctionError, match="not available"):
            call("file", "a.txt")

    def test_file_read_and_hash(self, capability: FakeCapability) -> None:
        capability.files["a.txt"] = b"content"
        registry = default_registry()
        assert registry.call("file", ["a.txt"], capability) == "content"
        assert registry.call("filesha1", ["a.txt"], capability) == hashlib.sha1(b"content").hexdigest()  # noqa: S324

    def test_http_get_with_headers(self, capability: FakeCapability) -> None:
        capability.responses[("GET", "https://example.test/v")] = b"1.2.3"
        result = default_registry().call("http::get", ["https://example.test/v", {"X-N": 1}], capability)
        assert result == "1.2.3"
        (_, _, options) = capability.calls[0]
        assert options.headers == {"X-N": "1"}

    def test_http_header_must_be_scalar(self, capability: FakeCapability) -> None:
        with pytest.raises(TypeMismatch, match="Header 'X'"):
            default_registry().call("http::get", ["https://example.test", {"X": [1]}], capability)

    def test_post_json_encodes_body(self, capability: FakeCapability) -> None:
        capability.responses[("JSON", "https://example.test/api")] = b"ok"
        default_registry().call("http::post_json", ["https://example.test/api", {"a": 1}], capability)
        (_, _, options) = capability.calls[0]
        assert json.loads(options.body) == {"a": 1}

    def test_failed_request(self, capability: FakeCapability) -> None:
        with pytest.raises(FunctionError, match="404"):
            default_registry().call("http::post", ["https://example.test/missing", "body"], capability)

    def test_secret(self, capability: FakeCapability) -> None:
        capability.secrets["app/db"] = {"password": "hunter2", "user": "app"}
        registry = default_registry()
        assert registry.call("secret::kv", ["app/db", "password"], capability) == "hunter2"
        assert registry.call("secret::kv", ["app/db"], capability) == {"password": "hunter2", "user": "app"}
