"""Tests for overload selection on decorated and plain instances."""

from enum import Enum
from typing import Any, Optional

import pytest

from dynawire import Action, DynawireUnknownMethodError, OverloadSet, decorate, overloaded


class Collector:
    def __init__(self) -> None:
        self.subjects: list[Any] = []

    def execute(self, subject: Any) -> None:
        self.subjects.append(subject)


class Formatter:
    @overloaded
    def render(self, value: int, action: Action[str]) -> str:
        action.execute(f"int:{value}")
        return "int"

    @render.register
    def render(self, value: str, action: Action[str]) -> str:
        action.execute(f"str:{value}")
        return "str"

    @render.register
    def render(self, value: object, action: Action[str]) -> str:
        action.execute(f"object:{value}")
        return "object"


class Scale:
    @overloaded
    def apply(self, value: float) -> str:
        return "float"

    @apply.register
    def apply(self, value: object) -> str:
        return "object"


class Tied:
    @overloaded
    def pick(self, value: object) -> str:
        return "first"

    @pick.register
    def pick(self, value: Any) -> str:
        return "second"


class Sizer:
    @overloaded
    def size(self) -> int:
        return 0

    @size.register
    def size(self, value: str) -> int:
        return len(value)

    @size.register
    def size(self, *values: int) -> int:
        return sum(values)


class Nullable:
    @overloaded
    def describe(self, value: Optional[int]) -> str:
        return "optional"

    @describe.register
    def describe(self, value: str) -> str:
        return "str"


class Color(Enum):
    RED = "red"
    GREEN = "green"


class Palette:
    current: Color = Color.RED

    def paint(self, color: Color) -> Color:
        return color


@pytest.fixture()
def formatter() -> Formatter:
    return decorate(Formatter).instantiate()


class TestOverloadSelection:
    def test_string_selects_string_overload(self, formatter: Formatter) -> None:
        seen: list[str] = []

        result = formatter.render("x", seen.append)

        assert result == "str"
        assert seen == ["str:x"]

    def test_integer_selects_integer_overload(self, formatter: Formatter) -> None:
        seen: list[str] = []

        result = formatter.render(5, lambda subject: seen.append(subject))

        assert result == "int"
        assert seen == ["int:5"]

    def test_other_values_fall_back_to_object(self, formatter: Formatter) -> None:
        seen: list[str] = []

        assert formatter.render(2.5, seen.append) == "object"
        assert seen == ["object:2.5"]

    def test_bool_prefers_integer_supertype(self, formatter: Formatter) -> None:
        assert formatter.render(True, lambda subject: None) == "int"

    def test_capability_object_and_bare_callable_agree(self, formatter: Formatter) -> None:
        """The selected overload returns the same value either way."""
        collector = Collector()
        seen: list[str] = []

        with_object = formatter.render("x", collector)
        with_callable = formatter.render("x", seen.append)

        assert with_object == with_callable == "str"
        assert collector.subjects == seen == ["str:x"]

    def test_numeric_promotion_beats_top_type(self) -> None:
        scale = decorate(Scale).instantiate()

        assert scale.apply(3) == "float"
        assert scale.apply(3.0) == "float"
        assert scale.apply("3") == "object"

    def test_ties_keep_first_declared(self) -> None:
        tied = decorate(Tied).instantiate()

        assert tied.pick(1) == "first"

    def test_arity_selects_candidates(self) -> None:
        sizer = decorate(Sizer).instantiate()

        assert sizer.size() == 0
        assert sizer.size("abc") == 3
        assert sizer.size(1, 2, 3) == 6

    def test_optional_accepts_none(self) -> None:
        nullable = decorate(Nullable).instantiate()

        assert nullable.describe(None) == "optional"
        assert nullable.describe(1) == "optional"
        assert nullable.describe("a") == "str"

    def test_keyword_arguments(self, formatter: Formatter) -> None:
        assert formatter.render(value="x", action=lambda subject: None) == "str"

    def test_no_match_without_handler(self, formatter: Formatter) -> None:
        with pytest.raises(DynawireUnknownMethodError) as exc_info:
            formatter.render()

        assert exc_info.value.name == "render"
        assert exc_info.value.arity == 0


class TestEnumConversion:
    def test_string_argument_converts_by_name(self) -> None:
        palette = decorate(Palette).instantiate()

        assert palette.paint("GREEN") is Color.GREEN
        assert palette.paint("green") is Color.GREEN
        assert palette.paint(Color.RED) is Color.RED

    def test_unknown_name_raises_value_error(self) -> None:
        palette = decorate(Palette).instantiate()

        with pytest.raises(ValueError, match="Color"):
            palette.paint("blue")

    def test_declared_property_assignment_converts(self) -> None:
        palette = decorate(Palette).instantiate()

        palette.current = "green"

        assert palette.current is Color.GREEN


class TestPlainOverloadSet:
    def test_overloads_dispatch_without_decoration(self) -> None:
        seen: list[str] = []

        assert Formatter().render("x", seen.append) == "str"
        assert Formatter().render(1, seen.append) == "int"
        assert seen == ["str:x", "int:1"]

    def test_class_access_returns_set(self) -> None:
        assert isinstance(Formatter.render, OverloadSet)
        assert len(Formatter.render.variants) == 3
        assert Formatter.render.__name__ == "render"

    def test_no_match_raises_unknown_method(self) -> None:
        with pytest.raises(DynawireUnknownMethodError):
            Scale().apply()
