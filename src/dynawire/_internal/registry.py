from __future__ import annotations

import functools
import inspect
import logging
import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Any, ClassVar, get_args, get_origin

from dynawire._internal.descriptors import (
    MemberDescriptor,
    MemberKind,
    describe_method,
    resolved_hints,
)
from dynawire._internal.overloads import OverloadSet
from dynawire._internal.type_checks import is_type_compatible, strip_annotated
from dynawire.exceptions import DynawireRegistrationError
from dynawire.markers import INJECTION_MARKERS_ATTR, InjectionMarker, build_annotated

logger = logging.getLogger(__name__)

METHOD_MISSING_HOOK = "method_missing"
PROPERTY_GET_MISSING_HOOK = "property_missing_get"
PROPERTY_SET_MISSING_HOOK = "property_missing_set"
SERVICES_MEMBER = "services"
_GETTER_PREFIX = "get_"
_SETTER_PREFIX = "set_"
_IGNORED_BASES: tuple[type[Any], ...] = (object,)


class InjectionStyle(Enum):
    """How an injection point is declared on the base class."""

    FIELD = "field"
    """``name: Injected[T]`` class attribute annotation."""

    PROPERTY = "property"
    """``@property`` whose getter carries an injection marker."""

    METHOD = "method"
    """Zero-argument method carrying an injection marker."""


@dataclass(frozen=True, slots=True)
class InjectionPoint:
    """A declared member whose value is supplied by the lookup service."""

    name: str
    style: InjectionStyle
    getter: MemberDescriptor
    key: Any
    setter: MemberDescriptor | None = None

    @property
    def settable(self) -> bool:
        return self.setter is not None


@dataclass(frozen=True)
class RegistryEntry:
    """The reflected members of one base class, shared by all its instances.

    Entries are built once per class and marker set and never mutated
    afterwards.
    """

    type: type[Any]
    methods: Mapping[str, tuple[MemberDescriptor, ...]]
    properties: Mapping[str, MemberDescriptor]
    injection_points: Mapping[str, InjectionPoint]
    declared_names: frozenset[str] = field(default_factory=frozenset)

    def methods_named(self, name: str) -> tuple[MemberDescriptor, ...]:
        return self.methods.get(name, ())

    def has_method(self, name: str) -> bool:
        return name in self.methods

    def has_property(self, name: str) -> bool:
        return name in self.properties or name in self.injection_points

    def declares(self, name: str) -> bool:
        return name in self.declared_names

    def type_hook(self, hook_name: str) -> MemberDescriptor | None:
        candidates = self.methods.get(hook_name, ())
        return candidates[0] if candidates else None

    def iter_members(self) -> Iterator[MemberDescriptor]:
        for descriptors in self.methods.values():
            yield from descriptors
        yield from self.properties.values()


class MemberRegistry:
    """Reflect base classes into ``RegistryEntry`` objects and cache them.

    ``build`` is idempotent: the first caller for a class and marker set pays the
    reflection cost and later callers share the cached entry.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[type[Any], frozenset[type[Any]]], RegistryEntry] = {}
        self._lock = threading.Lock()

    def build(
        self,
        cls: type[Any],
        injection_markers: frozenset[type[InjectionMarker]],
    ) -> RegistryEntry:
        """Return the registry entry for ``cls``, reflecting it on first use.

        Args:
            cls: Base class to reflect.
            injection_markers: Marker classes that designate injection points.

        Raises:
            DynawireRegistrationError: When injection declarations are malformed.

        """
        cache_key = (cls, injection_markers)
        entry = self._entries.get(cache_key)
        if entry is not None:
            return entry
        with self._lock:
            entry = self._entries.get(cache_key)
            if entry is None:
                entry = _EntryBuilder(cls, injection_markers).build()
                self._entries[cache_key] = entry
                logger.debug(
                    "Reflected %s: %d method names, %d properties, %d injection points",
                    cls.__qualname__,
                    len(entry.methods),
                    len(entry.properties),
                    len(entry.injection_points),
                )
        return entry


class _EntryBuilder:
    def __init__(self, cls: type[Any], injection_markers: frozenset[type[InjectionMarker]]) -> None:
        self._cls = cls
        self._injection_markers = tuple(injection_markers)
        self._methods: dict[str, tuple[MemberDescriptor, ...]] = {}
        self._properties: dict[str, MemberDescriptor] = {}
        self._points: dict[str, InjectionPoint] = {}
        self._order = 0
        self._class_vars: set[str] = set()
        self._hints = resolved_hints(cls)

    def build(self) -> RegistryEntry:
        declared_names: set[str] = set()
        for klass in reversed(self._cls.__mro__):
            if klass in _IGNORED_BASES:
                continue
            declared_names.update(vars(klass))
            self._collect_annotations(klass)
            for name, value in vars(klass).items():
                if _is_dunder(name):
                    continue
                self._collect_member(klass, name, value)
        self._pair_method_setters()
        declared_names.update(self._properties)
        declared_names.update(self._points)
        return RegistryEntry(
            type=self._cls,
            methods=MappingProxyType(dict(self._methods)),
            properties=MappingProxyType(dict(self._properties)),
            injection_points=MappingProxyType(dict(self._points)),
            declared_names=frozenset(declared_names),
        )

    def _next_order(self) -> int:
        self._order += 1
        return self._order

    def _forget(self, name: str) -> None:
        self._methods.pop(name, None)
        self._properties.pop(name, None)
        self._points.pop(name, None)

    def _collect_annotations(self, klass: type[Any]) -> None:
        for name, raw_annotation in inspect.get_annotations(klass).items():
            if _is_dunder(name):
                continue
            annotation = self._hints.get(name, raw_annotation)
            if _is_class_var(annotation, raw_annotation):
                self._forget(name)
                self._class_vars.add(name)
                continue
            self._class_vars.discard(name)
            self._forget(name)
            descriptor = MemberDescriptor(
                name=name,
                kind=MemberKind.FIELD,
                declaring_type=klass,
                annotation=annotation,
                order=self._next_order(),
            )
            self._properties[name] = descriptor
            markers = self._recognized(_annotation_markers(annotation))
            if markers:
                self._points[name] = InjectionPoint(
                    name=name,
                    style=InjectionStyle.FIELD,
                    getter=descriptor,
                    key=self._lookup_key(name, markers, annotation),
                    setter=descriptor,
                )

    def _collect_member(self, klass: type[Any], name: str, value: Any) -> None:
        if isinstance(value, (staticmethod, classmethod)):
            self._forget(name)
            return
        if isinstance(value, OverloadSet):
            self._forget(name)
            self._methods[name] = tuple(
                describe_method(function, name=name, declaring_type=klass, order=self._next_order())
                for function in value.variants
            )
            return
        if inspect.isfunction(value):
            self._forget(name)
            descriptor = describe_method(
                value,
                name=name,
                declaring_type=klass,
                order=self._next_order(),
            )
            self._methods[name] = (descriptor,)
            markers = self._recognized(getattr(value, INJECTION_MARKERS_ATTR, ()))
            if markers:
                self._collect_method_point(name, descriptor, markers)
            return
        if isinstance(value, (property, functools.cached_property)):
            self._forget(name)
            self._collect_property(klass, name, value)
            return
        if name in self._properties and self._properties[name].declaring_type is klass:
            # Annotated attribute with a default value.
            return
        if name in self._class_vars:
            return
        if name.startswith("_") or callable(value) or hasattr(type(value), "__get__"):
            return
        self._forget(name)
        self._properties[name] = MemberDescriptor(
            name=name,
            kind=MemberKind.FIELD,
            declaring_type=klass,
            annotation=type(value),
            order=self._next_order(),
        )

    def _collect_property(
        self,
        klass: type[Any],
        name: str,
        value: property | functools.cached_property[Any],
    ) -> None:
        getter = value.fget if isinstance(value, property) else value.func
        annotation = resolved_hints(getter).get("return", inspect.Parameter.empty) if getter else Any
        descriptor = MemberDescriptor(
            name=name,
            kind=MemberKind.PROPERTY,
            declaring_type=klass,
            annotation=annotation,
            function=getter,
            order=self._next_order(),
        )
        self._properties[name] = descriptor
        markers = self._recognized(getattr(getter, INJECTION_MARKERS_ATTR, ()))
        if not markers:
            return
        setter: MemberDescriptor | None = None
        fset = value.fset if isinstance(value, property) else None
        if fset is not None:
            setter = describe_method(fset, name=name, declaring_type=klass, order=descriptor.order)
        point = InjectionPoint(
            name=name,
            style=InjectionStyle.PROPERTY,
            getter=descriptor,
            key=self._lookup_key(name, markers, annotation),
            setter=setter,
        )
        self._check_setter(point)
        self._points[name] = point

    def _collect_method_point(
        self,
        name: str,
        descriptor: MemberDescriptor,
        markers: tuple[InjectionMarker, ...],
    ) -> None:
        if descriptor.arity:
            msg = (
                f"Injected method '{self._cls.__qualname__}.{name}' must not take "
                f"parameters, it declares {descriptor.arity}."
            )
            raise DynawireRegistrationError(msg)
        point_name = name.removeprefix(_GETTER_PREFIX) or name
        self._points[point_name] = InjectionPoint(
            name=point_name,
            style=InjectionStyle.METHOD,
            getter=descriptor,
            key=self._lookup_key(name, markers, descriptor.annotation),
        )

    def _pair_method_setters(self) -> None:
        for point_name, point in list(self._points.items()):
            if point.style is not InjectionStyle.METHOD:
                continue
            setters = self._methods.get(f"{_SETTER_PREFIX}{point_name}", ())
            if not setters:
                continue
            paired = InjectionPoint(
                name=point.name,
                style=point.style,
                getter=point.getter,
                key=point.key,
                setter=setters[0],
            )
            self._check_setter(paired)
            self._points[point_name] = paired

    def _check_setter(self, point: InjectionPoint) -> None:
        setter = point.setter
        if setter is None or setter.kind is not MemberKind.METHOD:
            return
        value_parameters = [parameter for parameter in setter.parameters if not parameter.has_default]
        if len(value_parameters) != 1:
            msg = (
                f"Setter for injection point '{self._cls.__qualname__}.{point.name}' must "
                f"take exactly one value parameter."
            )
            raise DynawireRegistrationError(msg)
        setter_type = value_parameters[0].annotation
        if not is_type_compatible(point.getter.annotation, setter_type):
            msg = (
                f"Setter for injection point '{self._cls.__qualname__}.{point.name}' accepts "
                f"{_describe(setter_type)}, which is incompatible with the getter type "
                f"{_describe(point.getter.annotation)}."
            )
            raise DynawireRegistrationError(msg)

    def _recognized(self, markers: tuple[Any, ...]) -> tuple[InjectionMarker, ...]:
        return tuple(marker for marker in markers if isinstance(marker, self._injection_markers))

    def _lookup_key(
        self,
        member_name: str,
        markers: tuple[InjectionMarker, ...],
        annotation: Any,
    ) -> Any:
        inferred = _strip_markers(annotation, self._injection_markers)
        keys: list[Any] = []
        for marker in markers:
            key = marker.key if marker.key is not None else inferred
            if key not in keys:
                keys.append(key)
        if len(keys) > 1:
            msg = (
                f"Member '{self._cls.__qualname__}.{member_name}' declares conflicting "
                f"injection markers: {', '.join(repr(marker) for marker in markers)}."
            )
            raise DynawireRegistrationError(msg)
        key = keys[0]
        if key is inspect.Parameter.empty or (key is inferred and isinstance(key, str)):
            msg = (
                f"Cannot infer the lookup key of injection point "
                f"'{self._cls.__qualname__}.{member_name}': annotate its type or pass key=..."
            )
            raise DynawireRegistrationError(msg)
        return key


def _annotation_markers(annotation: Any) -> tuple[Any, ...]:
    if get_origin(annotation) is not Annotated:
        return ()
    return get_args(annotation)[1:]


def _strip_markers(annotation: Any, marker_types: tuple[type[Any], ...]) -> Any:
    if get_origin(annotation) is not Annotated:
        return annotation
    args = get_args(annotation)
    metadata = tuple(item for item in args[1:] if not isinstance(item, marker_types))
    if not metadata:
        return args[0]
    return build_annotated((args[0], *metadata))


def _describe(annotation: Any) -> str:
    annotation = strip_annotated(annotation)
    return getattr(annotation, "__qualname__", None) or repr(annotation)


def _is_class_var(annotation: Any, raw_annotation: Any) -> bool:
    if get_origin(annotation) is ClassVar or annotation is ClassVar:
        return True
    return isinstance(raw_annotation, str) and raw_annotation.startswith("ClassVar")


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")
