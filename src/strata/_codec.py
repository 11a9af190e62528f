"""JSON and YAML encoders that keep decimal numbers exact.

Both take plain values as produced by ``to_plain``: fractional numbers arrive
as ``Decimal`` and are written digit for digit.
"""

from decimal import Decimal
from typing import Any

import simplejson
import yaml


class _Dumper(yaml.SafeDumper):
    """Safe dumper that writes decimals as plain float scalars."""


def _represent_decimal(dumper: yaml.SafeDumper, value: Decimal) -> yaml.ScalarNode:
    # fixed notation always carries a dot, so the scalar resolves back to a float
    return dumper.represent_scalar("tag:yaml.org,2002:float", format(value, "f"))


_Dumper.add_representer(Decimal, _represent_decimal)


def dump_json(data: Any, *, indent: int | None = None) -> str:
    """Encode as JSON; compact unless ``indent`` is given.

    Raises:
        TypeError: If the data holds an object JSON cannot represent.

    """
    if indent is None:
        return simplejson.dumps(data, use_decimal=True, separators=(",", ":"), ensure_ascii=False)
    return simplejson.dumps(data, use_decimal=True, indent=indent, ensure_ascii=False)


def dump_yaml(data: Any) -> str:
    """Encode as block-style YAML in insertion order.

    Raises:
        yaml.YAMLError: If the data holds an object YAML cannot represent.

    """
    return yaml.dump(data, Dumper=_Dumper, sort_keys=False, allow_unicode=True, default_flow_style=False)
