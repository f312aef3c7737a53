from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any, Literal, TypeVar, Union

import pytest

from dynawire._internal.coercion import CallbackCoercer, CallbackWrapper
from dynawire._internal.descriptors import MemberDescriptor, describe_method
from dynawire._internal.resolver import MatchTier, OverloadResolver
from dynawire.capabilities import Action

T = TypeVar("T")


class Animal:
    pass


class Dog(Animal):
    pass


class Mode(Enum):
    FAST = "fast"
    SLOW = "slow"


def takes_int(self: Any, value: int, action: Action[str]) -> str:
    return "int"


def takes_str(self: Any, value: str, action: Action[str]) -> str:
    return "str"


def takes_object(self: Any, value: object, action: Action[str]) -> str:
    return "object"


def takes_mode(self: Any, mode: Mode) -> Mode:
    return mode


def takes_action_first(self: Any, action: Action[str], value: int) -> str:
    return "action-first"


def describe(*functions: Callable[..., Any]) -> tuple[MemberDescriptor, ...]:
    return tuple(
        describe_method(function, name="candidate", declaring_type=None, order=order)
        for order, function in enumerate(functions)
    )


class TestRank:
    @pytest.mark.parametrize(
        ("annotation", "value", "expected"),
        [
            (int, 1, MatchTier.EXACT),
            (float, 1, MatchTier.SUPERTYPE),
            (complex, 1.5, MatchTier.SUPERTYPE),
            (Animal, Dog(), MatchTier.SUPERTYPE),
            (Dog, Dog(), MatchTier.EXACT),
            (object, 1, MatchTier.TOP),
            (Any, "x", MatchTier.TOP),
            (T, "x", MatchTier.TOP),
            (Mode, "FAST", MatchTier.TOP),
            (Literal["a", "b"], "a", MatchTier.EXACT),
            (Union[int, str], "x", MatchTier.EXACT),
            (int | None, None, MatchTier.EXACT),
            (list[int], [1], MatchTier.EXACT),
            (Callable[[int], int], abs, MatchTier.EXACT),
        ],
    )
    def test_accepting_annotations(
        self,
        resolver: OverloadResolver,
        annotation: Any,
        value: Any,
        expected: MatchTier,
    ) -> None:
        assert resolver.rank(annotation, value) == expected

    @pytest.mark.parametrize(
        ("annotation", "value"),
        [
            (int, "1"),
            (int, 1.5),
            (Dog, Animal()),
            (Literal["a"], "c"),
            (int, None),
            (Callable[[int], int], 1),
            (Mode, 1),
        ],
    )
    def test_rejecting_annotations(
        self,
        resolver: OverloadResolver,
        annotation: Any,
        value: Any,
    ) -> None:
        assert resolver.rank(annotation, value) is None


class TestResolve:
    def test_exact_beats_top(self, resolver: OverloadResolver) -> None:
        candidates = describe(takes_object, takes_str, takes_int)

        match = resolver.resolve(candidates, ("x", lambda subject: None), {})

        assert match is not None
        assert match.descriptor.function is takes_str
        assert match.score == MatchTier.EXACT
        assert "action" in match.coercions

    def test_integer_selects_integer_candidate(self, resolver: OverloadResolver) -> None:
        candidates = describe(takes_int, takes_str, takes_object)

        match = resolver.resolve(candidates, (1, print), {})

        assert match is not None
        assert match.descriptor.function is takes_int

    def test_no_match_returns_none(self, resolver: OverloadResolver) -> None:
        assert resolver.resolve(describe(takes_int, takes_str), (1,), {}) is None
        assert resolver.resolve(describe(takes_int), (1, "not callable"), {}) is None

    def test_coercion_only_applies_to_last_parameter(self, resolver: OverloadResolver) -> None:
        assert resolver.resolve(describe(takes_action_first), (lambda s: None, 1), {}) is None

    def test_enum_conversion_is_recorded(self, resolver: OverloadResolver) -> None:
        match = resolver.resolve(describe(takes_mode), ("slow",), {})

        assert match is not None
        assert match.enum_conversions == {"mode": Mode}

    def test_invoke_adapts_arguments(
        self,
        resolver: OverloadResolver,
        coercer: CallbackCoercer,
    ) -> None:
        received: list[Any] = []

        def capture(self: Any, value: str, action: Action[str]) -> str:
            received.append((self, action))
            return value

        match = resolver.resolve(describe(capture), ("x",), {"action": print})
        assert match is not None

        receiver = object()
        assert match.invoke(receiver, coercer) == "x"
        ((called_with, action),) = received
        assert called_with is receiver
        assert isinstance(action, CallbackWrapper)
        assert action.delegate is print

    def test_invoke_converts_enum(self, resolver: OverloadResolver, coercer: CallbackCoercer) -> None:
        match = resolver.resolve(describe(takes_mode), ("Fast",), {})
        assert match is not None

        assert match.invoke(object(), coercer) is Mode.FAST
