from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Literal, get_args, get_origin

from dynawire._internal.coercion import (
    Capability,
    CallbackCoercer,
    capability_of,
    convert_enum,
    is_bare_callable,
    satisfies_capability,
)
from dynawire._internal.descriptors import MemberDescriptor
from dynawire._internal.type_checks import (
    is_enum_class,
    is_numeric_promotion,
    is_runtime_class,
    is_top_annotation,
    is_union,
    strip_annotated,
)

_RECEIVER_PLACEHOLDER: Any = object()


class MatchTier(IntEnum):
    """How specifically a parameter type matches a runtime argument, best first."""

    EXACT = 0
    SUPERTYPE = 1
    TOP = 2


@dataclass(slots=True)
class OverloadMatch:
    """The overload selected for a call, with the adjustments its arguments need.

    ``bound`` holds the call arguments bound to the selected signature with a
    placeholder receiver; ``coercions`` and ``enum_conversions`` name the bound
    parameters whose values must be adapted before the call.
    """

    descriptor: MemberDescriptor
    bound: inspect.BoundArguments
    score: int
    coercions: dict[str, Capability] = field(default_factory=dict)
    enum_conversions: dict[str, type[Any]] = field(default_factory=dict)

    def invoke(self, receiver: Any, coercer: CallbackCoercer) -> Any:
        """Adapt the bound arguments and call the selected function on ``receiver``.

        Exceptions raised by the function propagate unchanged.
        """
        arguments = self.bound.arguments
        for name, capability in self.coercions.items():
            arguments[name] = coercer.coerce(capability, arguments[name])
        for name, enum_type in self.enum_conversions.items():
            arguments[name] = convert_enum(enum_type, arguments[name])
        arguments[next(iter(self.bound.signature.parameters))] = receiver
        function = self.descriptor.function
        assert function is not None
        return function(*self.bound.args, **self.bound.kwargs)


class OverloadResolver:
    """Pick the most specific declared overload for a runtime argument list.

    Candidates are the methods registered under the requested name whose
    signature accepts the arguments. Each bound argument is ranked with a
    ``MatchTier``; the candidate with the lowest summed rank wins and ties keep
    the first declared candidate.
    """

    def resolve(
        self,
        candidates: Iterable[MemberDescriptor],
        args: tuple[Any, ...],
        kwargs: Mapping[str, Any],
    ) -> OverloadMatch | None:
        """Return the best matching overload, or None when nothing matches."""
        best: OverloadMatch | None = None
        for candidate in candidates:
            match = self.match(candidate, args, kwargs)
            if match is None:
                continue
            if best is None or match.score < best.score:
                best = match
        return best

    def match(
        self,
        candidate: MemberDescriptor,
        args: tuple[Any, ...],
        kwargs: Mapping[str, Any],
    ) -> OverloadMatch | None:
        """Score one candidate against the arguments, None when it is ineligible."""
        if candidate.signature is None:
            return None
        try:
            bound = candidate.signature.bind(_RECEIVER_PLACEHOLDER, *args, **kwargs)
        except TypeError:
            return None

        match = OverloadMatch(descriptor=candidate, bound=bound, score=0)
        last_parameter = candidate.last_parameter
        for parameter in candidate.parameters:
            if parameter.name not in bound.arguments:
                continue
            value = bound.arguments[parameter.name]
            if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
                tiers = [self.rank(parameter.annotation, item) for item in value]
            elif parameter.kind is inspect.Parameter.VAR_KEYWORD:
                tiers = [self.rank(parameter.annotation, item) for item in value.values()]
            elif parameter is last_parameter and self._needs_coercion(parameter.annotation, value):
                match.coercions[parameter.name] = capability_of(parameter.annotation)  # type: ignore[assignment]
                tiers = [MatchTier.EXACT]
            else:
                tier = self.rank(parameter.annotation, value)
                enum_type = strip_annotated(parameter.annotation)
                if (
                    tier is MatchTier.TOP
                    and is_enum_class(enum_type)
                    and not isinstance(value, enum_type)
                ):
                    match.enum_conversions[parameter.name] = enum_type
                tiers = [tier]
            if any(tier is None for tier in tiers):
                return None
            match.score += sum(tiers)  # type: ignore[arg-type]
        return match

    def rank(self, annotation: Any, value: Any) -> MatchTier | None:
        """Rank how well ``annotation`` accepts ``value``; None means it does not."""
        annotation = strip_annotated(annotation)
        if is_top_annotation(annotation):
            return MatchTier.TOP
        if is_union(annotation):
            tiers = [
                tier
                for tier in (self.rank(member, value) for member in get_args(annotation))
                if tier is not None
            ]
            return min(tiers) if tiers else None
        if annotation is None or annotation is type(None):
            return MatchTier.EXACT if value is None else None
        origin = get_origin(annotation)
        if origin is Literal:
            return MatchTier.EXACT if value in get_args(annotation) else None
        if value is None:
            return None
        if annotation is Callable or origin is Callable:
            return MatchTier.EXACT if callable(value) else None
        parameter_type = origin if is_runtime_class(origin) else annotation
        if not is_runtime_class(parameter_type):
            return MatchTier.TOP
        capability = capability_of(parameter_type)
        if capability is not None:
            return MatchTier.EXACT if satisfies_capability(value, capability) else None
        return self._rank_class(parameter_type, value)

    def _rank_class(self, parameter_type: type[Any], value: Any) -> MatchTier | None:
        value_type = type(value)
        if value_type is parameter_type:
            return MatchTier.EXACT
        if is_numeric_promotion(parameter_type, value_type):
            return MatchTier.SUPERTYPE
        try:
            if isinstance(value, parameter_type):
                return MatchTier.SUPERTYPE
        except TypeError:
            # Protocols that are not runtime checkable cannot be verified here.
            return MatchTier.TOP
        if is_enum_class(parameter_type) and isinstance(value, str):
            return MatchTier.TOP
        return None

    def _needs_coercion(self, annotation: Any, value: Any) -> bool:
        capability = capability_of(annotation)
        return capability is not None and is_bare_callable(value, capability)
