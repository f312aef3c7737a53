"""Tests for decorate() and the synthesized decorated classes."""

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass

import pytest

from dynawire import (
    DecorateOptions,
    DynawireNotDecoratedError,
    DynawireRegistrationError,
    DynawireUnknownMethodError,
    DynawireUnknownPropertyError,
    LockMode,
    ServiceRegistry,
    as_dynamic,
    decorate,
    is_decorated,
)


class Greeter:
    def __init__(self, name: str) -> None:
        self.name = name

    def greet(self, greeting: str = "Hello") -> str:
        """Greet by name."""
        return f"{greeting}, {self.name}"


class Shape(ABC):
    @abstractmethod
    def area(self) -> float: ...

    def describe(self) -> str:
        return f"area={self.area()}"


class Square(Shape):
    def __init__(self, side: float) -> None:
        self.side = side

    def area(self) -> float:
        return self.side**2


@dataclass
class Point:
    x: int
    y: int = 0

    def norm(self) -> int:
        return abs(self.x) + abs(self.y)


class LedgerError(Exception):
    pass


class Ledger:
    def __init__(self) -> None:
        self.entries: list[int] = []

    def post(self, amount: int) -> None:
        self._check(amount)
        self.entries.append(amount)

    def _check(self, amount: int) -> None:
        if amount < 0:
            raise LedgerError(f"rejected {amount}")


class EagerProbe:
    def __init__(self) -> None:
        self.errors: list[Exception] = []
        self.hook_calls: list[str] = []
        self.setup()
        try:
            self.configure(1, 2, 3)
        except DynawireUnknownMethodError as error:
            self.errors.append(error)
        try:
            self.undeclared()
        except AttributeError as error:
            self.errors.append(error)

    def setup(self) -> None:
        self.ready = True

    def configure(self, value: int) -> None:
        self.value = value

    def method_missing(self, name, args):
        self.hook_calls.append(name)
        return name


class Final:
    def __init_subclass__(cls, **kwargs: object) -> None:
        msg = "Final cannot be subclassed"
        raise TypeError(msg)


class TestDecoratedClass:
    def test_decorated_class_subclasses_base(self) -> None:
        """Decorated classes are named after and derive from the base class."""
        factory = decorate(Greeter)

        assert issubclass(factory.decorated_type, Greeter)
        assert factory.decorated_type.__name__ == "Greeter_Decorated"
        assert factory.base_type is Greeter

    def test_instantiate_passes_constructor_arguments(self) -> None:
        """Constructor arguments reach the base constructor."""
        greeter = decorate(Greeter).instantiate("Ann")

        assert isinstance(greeter, Greeter)
        assert greeter.name == "Ann"
        assert greeter.greet() == "Hello, Ann"
        assert greeter.greet("Hi") == "Hi, Ann"

    def test_factory_is_callable(self) -> None:
        greeter = decorate(Greeter)(name="Bob")

        assert greeter.greet() == "Hello, Bob"

    def test_decorated_class_can_be_called_directly(self) -> None:
        greeter = decorate(Greeter).decorated_type("Cid")

        assert is_decorated(greeter)
        assert greeter.greet() == "Hello, Cid"

    def test_dispatcher_keeps_name_and_docstring(self) -> None:
        decorated = decorate(Greeter).decorated_type

        assert decorated.greet.__name__ == "greet"
        assert decorated.greet.__doc__ == "Greet by name."

    def test_constructor_signature_is_preserved(self) -> None:
        decorated = decorate(Greeter).decorated_type

        assert list(inspect.signature(decorated).parameters) == ["name"]

    def test_dataclass_base(self) -> None:
        point = decorate(Point).instantiate(3, -4)

        assert point.norm() == 7
        assert point.x == 3

    def test_abstract_methods_implemented_by_base(self) -> None:
        square = decorate(Square).instantiate(2.0)

        assert square.describe() == "area=4.0"

    def test_abstract_base_stays_abstract(self) -> None:
        factory = decorate(Shape)

        with pytest.raises(TypeError):
            factory.instantiate()

    def test_exception_identity_is_preserved(self) -> None:
        """Errors raised behind dynamic dispatch propagate with type and message."""
        ledger = decorate(Ledger).instantiate()

        with pytest.raises(LedgerError, match="rejected -5") as exc_info:
            ledger.post(-5)

        assert type(exc_info.value) is LedgerError
        assert ledger.entries == []

    def test_exception_from_constructor_propagates(self) -> None:
        with pytest.raises(TypeError):
            decorate(Greeter).instantiate()


class TestConstructionWindow:
    def test_declared_methods_work_during_construction(self) -> None:
        probe = decorate(EagerProbe).instantiate()

        assert probe.ready is True
        assert as_dynamic(probe).is_constructed

    def test_unmatched_calls_during_construction_skip_hooks(self) -> None:
        """Calls that match nothing while constructing never reach the hooks."""
        probe = decorate(EagerProbe).instantiate()

        unknown_method, unknown_property = probe.errors
        assert isinstance(unknown_method, DynawireUnknownMethodError)
        assert unknown_method.name == "configure"
        assert unknown_method.arity == 3
        assert isinstance(unknown_property, DynawireUnknownPropertyError)
        assert unknown_property.name == "undeclared"
        assert probe.hook_calls == []

    def test_hooks_apply_after_construction(self) -> None:
        probe = decorate(EagerProbe).instantiate()

        assert probe.undeclared() == "undeclared"
        assert probe.hook_calls == ["undeclared"]


class TestDecorateValidation:
    def test_non_class_is_rejected(self) -> None:
        with pytest.raises(DynawireRegistrationError, match="Only classes"):
            decorate(42)  # type: ignore[arg-type]

    def test_builtin_class_is_rejected(self) -> None:
        with pytest.raises(DynawireRegistrationError, match="Builtin class"):
            decorate(bool)

    def test_class_refusing_subclassing_is_rejected(self) -> None:
        with pytest.raises(DynawireRegistrationError, match="cannot be subclassed") as exc_info:
            decorate(Final)

        assert isinstance(exc_info.value.__cause__, TypeError)

    def test_invalid_injection_marker_is_rejected(self) -> None:
        with pytest.raises(DynawireRegistrationError, match="InjectionMarker"):
            DecorateOptions(injection_markers=frozenset({str}))  # type: ignore[arg-type]


class TestDecoratedClassCache:
    def test_same_configuration_shares_decorated_class(self) -> None:
        assert decorate(Greeter).decorated_type is decorate(Greeter).decorated_type

    def test_lookup_service_does_not_split_cache(self) -> None:
        first = decorate(Greeter, DecorateOptions(lookup_service=ServiceRegistry()))
        second = decorate(Greeter, DecorateOptions(lookup_service=ServiceRegistry()))

        assert first.decorated_type is second.decorated_type

    def test_lock_mode_splits_cache(self) -> None:
        threaded = decorate(Greeter, DecorateOptions(lock_mode=LockMode.THREAD))
        unlocked = decorate(Greeter, DecorateOptions(lock_mode=LockMode.NONE))

        assert threaded.decorated_type is not unlocked.decorated_type

    def test_decorating_decorated_class_uses_base(self) -> None:
        decorated = decorate(Greeter).decorated_type

        assert decorate(decorated).decorated_type is decorated

    def test_with_lookup_service_keeps_class(self) -> None:
        factory = decorate(Greeter)
        services = ServiceRegistry()

        bound = factory.with_lookup_service(services)

        assert bound.decorated_type is factory.decorated_type
        assert bound.options.lookup_service is services
        assert factory.options.lookup_service is None


class TestAsDynamic:
    def test_plain_object_is_rejected(self) -> None:
        with pytest.raises(DynawireNotDecoratedError) as exc_info:
            as_dynamic(Greeter("Dan"))

        assert isinstance(exc_info.value, TypeError)

    def test_is_decorated(self) -> None:
        assert is_decorated(decorate(Greeter).instantiate("Eve"))
        assert not is_decorated(Greeter("Eve"))
        assert not is_decorated(42)

    def test_dynamic_surface(self) -> None:
        greeter = decorate(Greeter).instantiate("Fay")
        dynamic = as_dynamic(greeter)

        assert dynamic.has_property("name")
        assert dynamic.get_property("name") == "Fay"
        dynamic.set_property("name", "Gus")
        assert greeter.name == "Gus"
        assert dynamic.has_method("greet")
        assert dynamic.has_method("greet", "Hey")
        assert not dynamic.has_method("greet", 1)
        assert not dynamic.has_method("wave")
        assert dynamic.invoke_method("greet", "Hey") == "Hey, Gus"
