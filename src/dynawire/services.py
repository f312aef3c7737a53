from __future__ import annotations

import logging
import threading
from typing import Any

from typing_extensions import Self

from dynawire._internal.type_checks import is_runtime_class
from dynawire.exceptions import DynawireAmbiguousServiceError, DynawireServiceNotFoundError

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """A lookup service backed by an in-memory mapping.

    Values are found by their exact key first. For class keys, the single
    registered value whose class is a subclass of the key is returned
    otherwise.

    Examples:
        .. code-block:: python

            services = ServiceRegistry().add(Clock, SystemClock()).add(Mailer, SmtpMailer())
            factory = decorate(Task, DecorateOptions(lookup_service=services))

    """

    def __init__(self) -> None:
        self._values: dict[Any, Any] = {}
        self._lock = threading.Lock()

    def add(self, key: Any, value: Any) -> Self:
        """Register ``value`` under ``key``, replacing a previous registration."""
        with self._lock:
            self._values[key] = value
        logger.debug("Registered service for key %r", key)
        return self

    def remove(self, key: Any) -> None:
        with self._lock:
            self._values.pop(key, None)

    def get(self, key: Any) -> Any:
        """Return the value for ``key``.

        Raises:
            DynawireServiceNotFoundError: When no value matches ``key``.
            DynawireAmbiguousServiceError: When several values match a class key
                and none is registered under the exact key.

        """
        values = self._values
        if key in values:
            return values[key]
        if not is_runtime_class(key):
            raise DynawireServiceNotFoundError(key)
        candidates = tuple(value for value in values.values() if isinstance(value, key))
        if not candidates:
            raise DynawireServiceNotFoundError(key)
        if len(candidates) > 1:
            raise DynawireAmbiguousServiceError(key, candidates)
        return candidates[0]

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        keys = ", ".join(getattr(key, "__qualname__", None) or repr(key) for key in self._values)
        return f"ServiceRegistry({keys})"
