from __future__ import annotations

import functools
import inspect
import threading
import types
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Protocol

from dynawire._internal.descriptors import resolved_hints
from dynawire._internal.type_checks import runtime_class_of, strip_annotated

_BARE_CALLABLE_TYPES: tuple[type[Any], ...] = (
    types.FunctionType,
    types.MethodType,
    types.BuiltinFunctionType,
    types.BuiltinMethodType,
    functools.partial,
)
_CAPABILITY_BASES: frozenset[type[Any]] = frozenset({object, Protocol, Generic})  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class Capability:
    """A single-method capability type and the name of its sole method."""

    type: type[Any]
    method_name: str
    returns: Any


@functools.cache
def _capability_of_class(cls: type[Any]) -> Capability | None:
    if cls.__module__ == "builtins":
        return None
    if getattr(cls, "_is_protocol", False):
        method_names = {
            name
            for klass in cls.__mro__
            if klass not in _CAPABILITY_BASES and getattr(klass, "_is_protocol", False)
            for name, value in vars(klass).items()
            if not name.startswith("_") and inspect.isfunction(value)
        }
    else:
        method_names = set(getattr(cls, "__abstractmethods__", ()))
    if len(method_names) != 1:
        return None
    (method_name,) = method_names
    if method_name.startswith("_"):
        # Dunder-only ABCs such as ``Callable`` or ``Sized`` describe protocols, not callbacks.
        return None
    method = getattr(cls, method_name)
    returns = resolved_hints(method).get("return", inspect.Parameter.empty)
    return Capability(type=cls, method_name=method_name, returns=returns)


def capability_of(annotation: Any) -> Capability | None:
    """Return the capability described by ``annotation``, or None.

    A capability is a ``Protocol`` declaring exactly one public method, or an
    abstract base class with exactly one abstract method. ``Action[str]`` and
    similar parameterised forms reduce to their origin class.
    """
    cls = runtime_class_of(annotation)
    if cls is None:
        return None
    return _capability_of_class(cls)


def satisfies_capability(value: Any, capability: Capability) -> bool:
    """Return true when ``value`` already implements ``capability``."""
    try:
        if isinstance(value, capability.type):
            return True
    except TypeError:
        # Protocols that are not runtime checkable refuse isinstance.
        pass
    if isinstance(value, _BARE_CALLABLE_TYPES):
        return False
    return callable(getattr(value, capability.method_name, None))


def is_bare_callable(value: Any, capability: Capability) -> bool:
    return callable(value) and not satisfies_capability(value, capability)


class CallbackWrapper:
    """Base of adapters forwarding a capability's sole method to a callable."""

    __dynawire_capability__: Capability

    def __init__(self, delegate: Callable[..., Any]) -> None:
        self.delegate = delegate
        self._accepted_positional = _accepted_positional_count(delegate)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.delegate!r})"


class CallbackCoercer:
    """Wrap bare callables so they satisfy single-method capability types.

    Adapter classes are synthesized once per capability type and cached; each
    coercion creates one adapter instance owning the callable.
    """

    def __init__(self) -> None:
        self._adapters: dict[type[Any], type[CallbackWrapper]] = {}
        self._lock = threading.Lock()

    def coerce(self, capability: Capability, raw: Callable[..., Any]) -> CallbackWrapper:
        adapter = self._adapters.get(capability.type)
        if adapter is None:
            with self._lock:
                adapter = self._adapters.get(capability.type)
                if adapter is None:
                    adapter = _build_adapter_class(capability)
                    self._adapters[capability.type] = adapter
        return adapter(raw)


def _build_adapter_class(capability: Capability) -> type[CallbackWrapper]:
    translate = _result_translator(capability.returns)

    def forward(self: CallbackWrapper, *args: Any, **kwargs: Any) -> Any:
        accepted = self._accepted_positional
        if accepted is not None and len(args) > accepted:
            args = args[:accepted]
        return translate(self.delegate(*args, **kwargs))

    forward.__name__ = capability.method_name
    forward.__qualname__ = f"{capability.type.__qualname__}Adapter.{capability.method_name}"

    namespace = {
        capability.method_name: forward,
        "__init__": CallbackWrapper.__init__,
        "__dynawire_capability__": capability,
        "__module__": __name__,
    }
    return types.new_class(
        f"{capability.type.__name__}Adapter",
        (CallbackWrapper, capability.type),
        {},
        lambda ns: ns.update(namespace),
    )


def _result_translator(returns: Any) -> Callable[[Any], Any]:
    returns = strip_annotated(returns)
    if returns is None or returns is type(None):
        return lambda _result: None
    if returns is bool:
        return bool
    return lambda result: result


def _accepted_positional_count(delegate: Callable[..., Any]) -> int | None:
    """Return how many positional arguments ``delegate`` takes, None for unbounded."""
    try:
        signature = inspect.signature(delegate)
    except (TypeError, ValueError):
        return None
    count = 0
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if parameter.kind in {
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        }:
            count += 1
    return count


def convert_enum(enum_type: type[Enum], value: Any) -> Enum:
    """Convert ``value`` into a member of ``enum_type``.

    Strings match member names exactly, then case-insensitively, then member
    values. Anything else is looked up by value.
    """
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        members = enum_type.__members__
        if value in members:
            return members[value]
        folded = value.casefold()
        for name, member in members.items():
            if name.casefold() == folded:
                return member
    try:
        return enum_type(value)
    except ValueError:
        msg = (
            f"Cannot convert {value!r} to {enum_type.__qualname__}. "
            f"Candidates are: {', '.join(enum_type.__members__)}."
        )
        raise ValueError(msg) from None
