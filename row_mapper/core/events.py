"""Lifecycle event dispatcher.

Mappers fire named events around save and delete. Listeners may veto the
pre-events by returning False.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]


def _event_name(event: str | Enum) -> str:
    return event.value if isinstance(event, Enum) else event


@dataclass(frozen=True)
class _Registration:
    listener: Listener
    sender: type | None


class EventDispatcher:
    """Synchronous in-process event dispatcher.

    A listener registered with a ``sender`` class only receives events
    fired by instances of that class (or its subclasses).
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[_Registration]] = {}

    def listen(self, event: str | Enum, listener: Listener, sender: type | None = None) -> None:
        """Register a listener for an event name."""
        self._listeners.setdefault(_event_name(event), []).append(_Registration(listener, sender))

    def has_listeners(self, event: str | Enum) -> bool:
        return bool(self._listeners.get(_event_name(event)))

    def forget(self, event: str | Enum) -> None:
        """Remove every listener of an event name."""
        self._listeners.pop(_event_name(event), None)

    def fire(self, event: str | Enum, payload: Any, halt: bool = True) -> bool:
        """Call the listeners of ``event`` with ``payload``.

        Returns False when ``halt`` is set and a listener returned False;
        remaining listeners are skipped in that case.
        """
        name = _event_name(event)
        for registration in list(self._listeners.get(name, [])):
            if registration.sender is not None and not isinstance(payload, registration.sender):
                continue
            result = registration.listener(payload)
            if halt and result is False:
                logger.info("Event '%s' vetoed by %r", name, registration.listener)
                return False
        return True
