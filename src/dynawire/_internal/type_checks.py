from __future__ import annotations

import inspect
import types
from enum import Enum
from typing import Annotated, Any, TypeGuard, TypeVar, Union, get_args, get_origin

_TOP_ANNOTATIONS: tuple[Any, ...] = (Any, object, inspect.Parameter.empty)
_UNION_ORIGINS: tuple[Any, ...] = (Union, types.UnionType)
_NUMERIC_PROMOTIONS: dict[type[Any], tuple[type[Any], ...]] = {
    float: (int,),
    complex: (int, float),
}


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def strip_annotated(annotation: Any) -> Any:
    """Return the inner type of ``Annotated[T, ...]``, or the annotation itself."""
    while get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    return annotation


def is_top_annotation(annotation: Any) -> bool:
    """Return true for annotations that accept any value."""
    annotation = strip_annotated(annotation)
    if isinstance(annotation, TypeVar):
        return True
    return any(annotation is top for top in _TOP_ANNOTATIONS)


def is_union(annotation: Any) -> bool:
    return get_origin(annotation) in _UNION_ORIGINS


def is_numeric_promotion(parameter_type: type[Any], value_type: type[Any]) -> bool:
    """Return true when ``value_type`` is implicitly accepted by ``parameter_type``.

    Mirrors the numeric tower shortcut: ``int`` is accepted where ``float`` is
    declared, and both are accepted where ``complex`` is declared.
    """
    return issubclass(value_type, _NUMERIC_PROMOTIONS.get(parameter_type, ()))


def is_enum_class(candidate: object) -> TypeGuard[type[Enum]]:
    return is_runtime_class(candidate) and issubclass(candidate, Enum)


def runtime_class_of(annotation: Any) -> type[Any] | None:
    """Return the runtime class behind an annotation, or None when there is none.

    Parameterised generics such as ``list[int]`` reduce to their origin class.
    """
    annotation = strip_annotated(annotation)
    if is_runtime_class(annotation):
        return annotation
    origin = get_origin(annotation)
    if is_runtime_class(origin):
        return origin
    return None


def is_type_compatible(value_type: Any, declared_type: Any) -> bool:
    """Return true when values of ``value_type`` can be assigned to ``declared_type``."""
    if is_top_annotation(declared_type) or is_top_annotation(value_type):
        return True
    if is_union(strip_annotated(declared_type)):
        return any(
            is_type_compatible(value_type, member)
            for member in get_args(strip_annotated(declared_type))
        )
    value_class = runtime_class_of(value_type)
    declared_class = runtime_class_of(declared_type)
    if value_class is None or declared_class is None:
        return strip_annotated(value_type) == strip_annotated(declared_type)
    return issubclass(value_class, declared_class) or is_numeric_promotion(
        declared_class,
        value_class,
    )


__all__ = [
    "is_enum_class",
    "is_numeric_promotion",
    "is_runtime_class",
    "is_top_annotation",
    "is_type_compatible",
    "is_union",
    "runtime_class_of",
    "strip_annotated",
]
