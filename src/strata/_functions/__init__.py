"""Built-in function library.

Key types:
- FunctionSpec: arity/type contract and implementation of one function
- FunctionRegistry: immutable table used to dispatch calls
- default_registry: the process-wide registry of every built-in function
"""

from functools import cache

from . import _collection, _crypto, _date, _effects, _encoding, _network, _numeric, _string
from ._registry import FunctionGroup, FunctionRegistry, FunctionSpec

_GROUPS = (
    _collection.functions,
    _string.functions,
    _numeric.functions,
    _date.functions,
    _crypto.functions,
    _encoding.functions,
    _network.functions,
    _effects.functions,
)


@cache
def default_registry() -> FunctionRegistry:
    """Return the shared registry of built-in functions (built on first use)."""
    return FunctionRegistry(spec for group in _GROUPS for spec in group)


__all__ = ["FunctionGroup", "FunctionRegistry", "FunctionSpec", "default_registry"]
