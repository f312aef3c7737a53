from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, get_type_hints

from dynawire._internal.type_checks import strip_annotated


class MemberKind(Enum):
    """Kind of a declared member recorded by the member registry."""

    METHOD = "method"
    FIELD = "field"
    PROPERTY = "property"


@dataclass(frozen=True, slots=True)
class ParameterDescriptor:
    """A declared method parameter, excluding the receiver."""

    name: str
    kind: inspect._ParameterKind
    annotation: Any
    has_default: bool

    @property
    def is_variadic(self) -> bool:
        return self.kind in {inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD}


@dataclass(frozen=True, slots=True)
class MemberDescriptor:
    """An immutable description of one declared member of a base class.

    Methods carry their signature and parameter descriptors; fields and
    properties carry their declared value type in ``annotation``.
    """

    name: str
    kind: MemberKind
    declaring_type: type[Any] | None
    annotation: Any = inspect.Parameter.empty
    parameters: tuple[ParameterDescriptor, ...] = ()
    function: Callable[..., Any] | None = None
    signature: inspect.Signature | None = None
    order: int = 0

    @property
    def arity(self) -> int:
        """Number of non-variadic parameters, excluding the receiver."""
        return sum(1 for parameter in self.parameters if not parameter.is_variadic)

    @property
    def last_parameter(self) -> ParameterDescriptor | None:
        """The last declared parameter, when it is not variadic."""
        if not self.parameters or self.parameters[-1].is_variadic:
            return None
        return self.parameters[-1]

    def describe(self) -> str:
        if self.kind is not MemberKind.METHOD:
            return f"{self.kind.value} {self.name}: {_describe_annotation(self.annotation)}"
        rendered = ", ".join(
            f"{parameter.name}: {_describe_annotation(parameter.annotation)}"
            for parameter in self.parameters
        )
        return f"method {self.name}({rendered})"


def resolved_hints(target: Any) -> dict[str, Any]:
    """Resolve annotations with extras, falling back to the raw annotations."""
    try:
        return get_type_hints(target, include_extras=True)
    except (AttributeError, NameError, TypeError):
        return dict(getattr(target, "__annotations__", {}) or {})


def describe_method(
    function: Callable[..., Any],
    *,
    name: str,
    declaring_type: type[Any] | None,
    order: int,
) -> MemberDescriptor:
    """Build a method descriptor from a function defined in a class body.

    The first parameter is treated as the receiver and left out of the
    parameter descriptors.
    """
    signature = inspect.signature(function)
    hints = resolved_hints(function)
    parameters = list(signature.parameters.values())[1:]
    return MemberDescriptor(
        name=name,
        kind=MemberKind.METHOD,
        declaring_type=declaring_type,
        annotation=hints.get("return", signature.return_annotation),
        parameters=tuple(
            ParameterDescriptor(
                name=parameter.name,
                kind=parameter.kind,
                annotation=hints.get(parameter.name, parameter.annotation),
                has_default=parameter.default is not inspect.Parameter.empty,
            )
            for parameter in parameters
        ),
        function=function,
        signature=signature,
        order=order,
    )


def _describe_annotation(annotation: Any) -> str:
    annotation = strip_annotated(annotation)
    if annotation is inspect.Parameter.empty:
        return "Any"
    return getattr(annotation, "__qualname__", None) or repr(annotation)
