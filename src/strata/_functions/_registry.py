"""Function specifications and the immutable registry that dispatches calls."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from strata._capability import CapabilityError
from strata._errors import ArityMismatch, FunctionError, StrataError, TypeMismatch, UnknownFunction
from strata._value import ParamType, Value, coerce

if TYPE_CHECKING:
    from strata._capability import Capability

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FunctionSpec:
    """Contract and implementation of one built-in function.

    Attributes:
        name: Canonical (possibly namespaced) name.
        impl: Implementation. Effectful implementations receive the capability
            as their first argument.
        params: Types of the required parameters.
        optional: Types of the optional parameters following the required ones.
        variadic: Type of every further argument, or None if the arity is bounded.
        aliases: Alternative names the function is callable by.
        effectful: Whether the function performs I/O through the capability.
        summary: One-line description.

    """

    name: str
    impl: Callable[..., Value]
    params: tuple[ParamType, ...] = ()
    optional: tuple[ParamType, ...] = ()
    variadic: ParamType | None = None
    aliases: tuple[str, ...] = ()
    effectful: bool = False
    summary: str = ""

    @property
    def min_arity(self) -> int:
        return len(self.params)

    @property
    def max_arity(self) -> int | None:
        if self.variadic is not None:
            return None
        return len(self.params) + len(self.optional)

    def accepts(self, count: int) -> bool:
        """Check whether ``count`` arguments satisfy the arity contract."""
        max_arity = self.max_arity
        return count >= self.min_arity and (max_arity is None or count <= max_arity)

    def arity_text(self) -> str:
        """Human readable arity, e.g. ``2``, ``1 to 2`` or ``at least 1``."""
        max_arity = self.max_arity
        if max_arity is None:
            return f"at least {self.min_arity}"
        if max_arity == self.min_arity:
            return str(max_arity)
        return f"{self.min_arity} to {max_arity}"

    def param_type(self, position: int) -> ParamType:
        """Declared type of the argument at a 1-based position."""
        fixed = self.params + self.optional
        if position <= len(fixed):
            return fixed[position - 1]
        if self.variadic is None:
            msg = f"Function '{self.name}' has no parameter {position}"
            raise IndexError(msg)
        return self.variadic

    def signature(self) -> str:
        """Signature text such as ``join(list, string)`` or ``merge(map...)``."""
        parts = [str(p) for p in self.params]
        parts.extend(f"[{p}]" for p in self.optional)
        if self.variadic is not None:
            parts.append(f"{self.variadic}...")
        return f"{self.name}({', '.join(parts)})"


class FunctionGroup:
    """Collects the functions declared in one module.

    Example:
        >>> functions = FunctionGroup()
        >>> @functions.register("str::upper", ParamType.STRING, aliases=("upper",))
        ... def upper(value: str) -> str:
        ...     return value.upper()

    """

    def __init__(self) -> None:
        self.specs: list[FunctionSpec] = []

    def register(
        self,
        name: str,
        *params: ParamType,
        optional: tuple[ParamType, ...] = (),
        variadic: ParamType | None = None,
        aliases: tuple[str, ...] = (),
        effectful: bool = False,
    ) -> Callable[[Callable[..., Value]], Callable[..., Value]]:
        def decorator(fn: Callable[..., Value]) -> Callable[..., Value]:
            doc = inspect.getdoc(fn) or ""
            self.specs.append(
                FunctionSpec(
                    name=name,
                    impl=fn,
                    params=params,
                    optional=optional,
                    variadic=variadic,
                    aliases=aliases,
                    effectful=effectful,
                    summary=doc.splitlines()[0] if doc else "",
                ),
            )
            return fn

        return decorator

    def __iter__(self) -> Iterator[FunctionSpec]:
        return iter(self.specs)


class FunctionRegistry:
    """Immutable name-to-function table.

    A registry is built once and shared read-only by every evaluation.
    """

    def __init__(self, specs: Iterable[FunctionSpec]) -> None:
        self._specs = tuple(specs)
        table: dict[str, FunctionSpec] = {}
        for spec in self._specs:
            for name in (spec.name, *spec.aliases):
                if name in table:
                    msg = f"Function '{name}' is registered twice"
                    raise ValueError(msg)
                table[name] = spec
        self._functions = MappingProxyType(table)

    @property
    def specs(self) -> tuple[FunctionSpec, ...]:
        """Every registered function, in registration order."""
        return self._specs

    def get(self, name: str) -> FunctionSpec:
        """Look up a function by name or alias.

        Raises:
            UnknownFunction: If no function has this name.

        """
        try:
            return self._functions[name]
        except KeyError:
            raise UnknownFunction(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._specs)

    def call(self, name: str, args: Sequence[Value], capability: Capability) -> Value:
        """Validate arguments against the function's contract and invoke it.

        Args:
            name: Function name or alias as written in the document.
            args: Evaluated arguments, in source order.
            capability: Effect handle passed to effectful functions.

        Returns:
            The function result.

        Raises:
            UnknownFunction: If the name is not registered.
            ArityMismatch: If the argument count is outside the declared range.
            TypeMismatch: If an argument cannot be coerced to its parameter type.
            FunctionError: If the implementation or one of its effects fails.

        """
        spec = self.get(name)
        if not spec.accepts(len(args)):
            raise ArityMismatch(name, spec.arity_text(), len(args))

        coerced: list[Value] = []
        for position, arg in enumerate(args, start=1):
            try:
                coerced.append(coerce(arg, spec.param_type(position)))
            except TypeMismatch as e:
                msg = f"Argument {position} of {name}(): {e.message}"
                raise TypeMismatch(msg) from e

        try:
            if spec.effectful:
                logger.debug("Calling effectful function %s", name)
                return spec.impl(capability, *coerced)
            return spec.impl(*coerced)
        except StrataError:
            raise
        except (CapabilityError, OSError, ValueError, ArithmeticError, LookupError, TypeError) as e:
            raise FunctionError(name, e) from e
