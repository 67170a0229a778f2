from __future__ import annotations

import logging
from typing import Any, Callable, List

logger = logging.getLogger("news_pulse")

Listener = Callable[..., None]


class Signal:
    """A list of callbacks fired synchronously, in connection order."""

    def __init__(self, name: str):
        self.name = name
        self._listeners: List[Listener] = []

    def connect(self, listener: Listener) -> Listener:
        self._listeners.append(listener)
        return listener

    def disconnect(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, *args: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(*args)
            except Exception as e:
                # A broken view must not wedge the core's state machine.
                logger.exception("Listener for %s failed: %s", self.name, e)
