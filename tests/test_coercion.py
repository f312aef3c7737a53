"""Tests for coercion of bare callables into capability parameters."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import pytest

from dynawire import Action, Transformer, decorate


class Predicate(ABC):
    @abstractmethod
    def test(self, value: int) -> bool: ...


class Pipeline:
    def __init__(self) -> None:
        self.events: list[str] = []

    def run(self, value: int, transformer: Transformer[str, int]) -> str:
        return transformer.transform(value)

    def keep(self, values: list[int], predicate: Predicate) -> list[int]:
        return [value for value in values if predicate.test(value)]

    def notify(self, action: Action[str]) -> str:
        result = action.execute("done")
        return f"notified:{result}"

    def subscribe(self, callback: Callable[[str], None]) -> Callable[[str], None]:
        callback("subscribed")
        return callback

    def forward(self, action: Action[str]) -> None:
        action.execute("forwarded")

    def record(self, event: str) -> None:
        self.events.append(event)


class AlwaysKeep(Predicate):
    def test(self, value: int) -> bool:
        return True


class CallbackFailure(Exception):
    pass


@pytest.fixture()
def pipeline() -> Pipeline:
    return decorate(Pipeline).instantiate()


class TestCoercion:
    def test_result_of_callable_is_returned(self, pipeline: Pipeline) -> None:
        assert pipeline.run(3, lambda value: f"<{value}>") == "<3>"

    def test_abstract_capability_translates_bool(self, pipeline: Pipeline) -> None:
        predicate_results: list[Any] = []

        def odd(value: int) -> int:
            predicate_results.append(value % 2)
            return value % 2

        assert pipeline.keep([1, 2, 3], odd) == [1, 3]
        assert predicate_results == [1, 0, 1]

    def test_capability_instance_is_passed_through(self, pipeline: Pipeline) -> None:
        assert pipeline.keep([1, 2], AlwaysKeep()) == [1, 2]

    def test_void_capability_discards_result(self, pipeline: Pipeline) -> None:
        assert pipeline.notify(lambda subject: "ignored") == "notified:None"

    def test_callable_parameter_is_not_wrapped(self, pipeline: Pipeline) -> None:
        seen: list[str] = []

        def callback(event: str) -> None:
            seen.append(event)

        assert pipeline.subscribe(callback) is callback
        assert seen == ["subscribed"]

    def test_implicit_parameter_callable(self, pipeline: Pipeline) -> None:
        calls: list[int] = []

        pipeline.forward(lambda: calls.append(1))

        assert calls == [1]

    def test_bound_method_of_decorated_instance(self, pipeline: Pipeline) -> None:
        """A coerced callback may call back into the same decorated instance."""
        pipeline.forward(pipeline.record)

        assert pipeline.events == ["forwarded"]

    def test_callback_errors_propagate_unchanged(self, pipeline: Pipeline) -> None:
        failure = CallbackFailure("from callback")

        def fail(subject: str) -> None:
            raise failure

        with pytest.raises(CallbackFailure) as exc_info:
            pipeline.forward(fail)

        assert exc_info.value is failure
