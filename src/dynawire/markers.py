from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any, NamedTuple, TypeVar, Union, get_args, get_origin

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])
C = TypeVar("C", bound=type[Any])

INJECTION_MARKERS_ATTR = "__dynawire_injection_markers__"
CLASS_MARKERS_ATTR = "__dynawire_class_markers__"


class Component(NamedTuple):
    """Differentiate multiple services registered for the same base type.

    Attach ``Component`` metadata to ``typing.Annotated`` so lookup keys for
    injection points stay distinct at runtime.

    Examples:
        .. code-block:: python

            ReplicaDb: TypeAlias = Annotated[Database, Component("replica")]


            class Repository:
                db: Injected[ReplicaDb]

    """

    value: Any


@dataclass(frozen=True)
class InjectionMarker:
    """Designate a member as an injection point.

    Subclass this to define custom markers and list the subclass in
    ``DecorateOptions.injection_markers``. A marker is applied either as
    ``typing.Annotated`` metadata on a class attribute annotation or as a
    decorator on a getter function.

    ``key`` overrides the lookup key, which otherwise is the declared value type.
    """

    key: Any = None

    def __call__(self, getter: F) -> F:
        markers = getattr(getter, INJECTION_MARKERS_ATTR, ())
        setattr(getter, INJECTION_MARKERS_ATTR, (*markers, self))
        return getter


@dataclass(frozen=True)
class InjectedMarker(InjectionMarker):
    """The default injection marker recognized by ``decorate``."""


inject = InjectedMarker()
"""Mark a getter as an injection point resolved by the declared return type.

Examples:
    .. code-block:: python

        class Task:
            @property
            @inject
            def clock(self) -> Clock:
                raise NotImplementedError

"""


class NonExtensible:
    """Class marker disabling the ``ext`` extension bag of decorated instances."""


def class_marker(*markers: Any) -> Callable[[C], C]:
    """Attach marker objects to a class.

    Markers are inherited by subclasses. ``decorate`` compares them against
    ``DecorateOptions.non_extensible_markers``.
    """

    def apply(cls: C) -> C:
        existing = cls.__dict__.get(CLASS_MARKERS_ATTR, ())
        setattr(cls, CLASS_MARKERS_ATTR, (*existing, *markers))
        return cls

    return apply


def non_extensible(cls: C) -> C:
    """Mark a class so decorated instances never create an extension bag."""
    return class_marker(NonExtensible())(cls)


if TYPE_CHECKING:
    Injected = Union[T, T]  # noqa: UP007,PYI016
    """Mark a class attribute as an injection point.

    At runtime ``Injected[T]`` becomes ``Annotated[T, InjectedMarker()]``.
    """

else:

    class Injected:
        """Mark a class attribute as an injection point.

        At runtime ``Injected[T]`` resolves to ``Annotated[T, InjectedMarker()]``.
        Extra ``Annotated`` metadata on ``T`` is kept and becomes part of the
        lookup key.

        Examples:
            .. code-block:: python

                class Report:
                    clock: Injected[Clock]
                    primary: Injected[Annotated[Database, Component("primary")]]

        """

        def __class_getitem__(cls, item: T) -> Annotated[T, InjectedMarker]:
            if get_origin(item) is Annotated:
                args = get_args(item)
                inner = args[0]
                metadata = args[1:]
                return build_annotated((inner, *metadata, InjectedMarker()))
            return build_annotated((item, InjectedMarker()))


def class_markers(cls: type[Any]) -> tuple[Any, ...]:
    """Return class markers declared on ``cls`` and its bases, most-derived first."""
    collected: list[Any] = []
    for klass in cls.__mro__:
        collected.extend(klass.__dict__.get(CLASS_MARKERS_ATTR, ()))
    return tuple(collected)


def build_annotated(params: tuple[object, ...]) -> Any:
    """Return Annotated[...] with a pre-built params tuple (Py 3.10+ compatible)."""
    try:
        return Annotated.__class_getitem__(params)  # type: ignore[attr-defined]
    except AttributeError:
        return Annotated.__getitem__(params)  # type: ignore[attr-defined]
