"""Change notification fired after every committed store mutation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """What changed. ``ids`` holds the affected group/bookmark ids, if known."""

    kind: str
    ids: tuple[str, ...] = field(default_factory=tuple)


Listener = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """Multicast publish point for store changes."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._disposed = False

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``. Returns a function that unregisters it."""
        if self._disposed:
            raise RuntimeError("ChangeNotifier has been disposed")
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def fire(self, event: ChangeEvent) -> None:
        """Deliver ``event`` to every listener. A failing listener is logged and skipped."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Change listener %r failed on %s", listener, event.kind)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def dispose(self) -> None:
        self._listeners.clear()
        self._disposed = True
