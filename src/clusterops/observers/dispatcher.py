# src/clusterops/observers/dispatcher.py
from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from .events import BaseEvent

log = logging.getLogger("clusterops")


class Observer(Protocol):
    def notify(self, event: BaseEvent) -> None: ...


class EventBus:
    def __init__(self, observers: Optional[List[Observer]] = None):
        self._observers: List[Observer] = list(observers or [])

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def emit(self, event: BaseEvent) -> None:
        for ob in self._observers:
            try:
                ob.notify(event)
            except Exception as exc:
                # observers must not break operations
                log.debug("observer %r failed on %s: %s", ob, type(event).__name__, exc)

    def close(self) -> None:
        for ob in self._observers:
            close = getattr(ob, "close", None)
            if close is not None:
                close()
